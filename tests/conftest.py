"""Shared pytest fixtures for the citytiles test suite."""

import pytest
from shapely.geometry import Polygon

from citytiles.models import Feature
from citytiles.tiles import PlaneProjection, plane_to_geo

# ---------------------------------------------------------------------------
# Origin used across the suite (Berlin, Alexanderplatz)
# ---------------------------------------------------------------------------

BASE_LAT = 52.52
BASE_LON = 13.41


def rect_geo(minx, miny, maxx, maxy, holes=(), base_lat=BASE_LAT, base_lon=BASE_LON):
    """Polygon in lon/lat for a rectangle given in plane meters."""

    def _ring(x0, y0, x1, y1):
        corners = [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]
        ring = []
        for x, y in corners:
            lat, lon = plane_to_geo(x, y, base_lat, base_lon)
            ring.append((lon, lat))
        return ring

    return Polygon(_ring(minx, miny, maxx, maxy),
                   [_ring(*h) for h in holes])


def make_feature(fid, rect, tags, holes=()):
    """Feature with a rectangular footprint given in plane meters."""
    return Feature(id=fid, tags=dict(tags), geometry=rect_geo(*rect, holes=holes))


class FakeSource:
    """In-memory stand-in for OverpassSource."""

    def __init__(self, features=None, error=None):
        self.features = list(features or [])
        self.error = error
        self.requests = []

    async def fetch(self, bbox):
        self.requests.append(bbox)
        if self.error is not None:
            raise self.error
        return list(self.features)


@pytest.fixture()
def projection() -> PlaneProjection:
    return PlaneProjection(BASE_LAT, BASE_LON)


@pytest.fixture()
def collected() -> list:
    """A list usable as the rendering sink via ``collected.append``."""
    return []
