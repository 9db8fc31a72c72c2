"""Projection and slippy-map tile math.

Three coordinate systems are involved:

* Geocoordinates (lat, lon) in degrees.
* Tile coordinates (x, y), 0 to 2^zoom - 1 along each axis.  Tiles use
  the Web Mercator projection on a sphere, y grows southward.  See
  https://wiki.openstreetmap.org/wiki/Slippy_map_tilenames
* Plane coordinates (x, y) in meters around a fixed origin (baseLat,
  baseLon), y grows northward.  This is an equirectangular approximation
  that is only valid close to the origin.
"""

import math
from typing import Iterator

import numpy as np

from .constants import EQUATOR_M, POLES_M
from .models import BoundingBox


def tile_width_m(lat: float, zoom: int) -> float:
    """Width of a tile in meters at the given latitude and zoom level.

    Degenerates to zero at the poles, callers must avoid polar origins.
    """
    circumference_m = EQUATOR_M * math.cos(math.radians(lat))
    return circumference_m / 2 ** zoom


def latlon_to_fractional_tile(lat: float, lon: float, zoom: int) -> tuple:
    """Convert geocoordinates to tile coordinates for given zoom level.

    Returns floating point values where the integer part is the tile id
    and the fractional part is the position within the tile.
    """
    n_tiles = 2 ** zoom
    lat_rad = math.radians(lat)
    x = n_tiles * (lon + 180) / 360
    y = n_tiles * (1 - math.log(math.tan(lat_rad) + 1 / math.cos(lat_rad)) / math.pi) / 2
    return x, y


def tile_to_bbox(x: int, y: int, zoom: int) -> BoundingBox:
    """Bounding box of a tile in degrees (inverse Mercator)."""
    n_tiles = 2 ** zoom
    north = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n_tiles))))
    south = math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * (y + 1) / n_tiles))))
    west = x / n_tiles * 360 - 180
    east = (x + 1) / n_tiles * 360 - 180
    return BoundingBox(north=north, south=south, east=east, west=west)


def tile_key(x: int, y: int, zoom: int) -> int:
    """Pack a tile id into a single integer for set membership."""
    return (y << zoom) + x


def tiles_around(tile_x: float, tile_y: float, radius_tiles: float,
                 zoom: int) -> Iterator[tuple]:
    """Yield (x, y) for every tile within radius of a fractional tile position.

    The horizontal axis wraps around the date line, the vertical axis is
    clamped to the map (no wraparound over the poles).
    """
    n_tiles = 2 ** zoom
    start_x = math.floor(tile_x - radius_tiles)
    end_x = math.ceil(tile_x + radius_tiles)
    start_y = max(0, math.floor(tile_y - radius_tiles))
    end_y = min(n_tiles, math.ceil(tile_y + radius_tiles))
    if end_x - start_x >= n_tiles:
        start_x, end_x = 0, n_tiles

    for y in range(start_y, end_y):
        for x in range(start_x, end_x):
            yield x % n_tiles, y


def geo_to_plane(coords, base_lat: float, base_lon: float) -> np.ndarray:
    """Convert [lon, lat] positions into meters around the given base.

    Coordinate order is longitude, latitude as in GeoJSON.  Returns an
    (N, 2) array of [x, y] with y pointing north.
    """
    coords = np.asarray(coords, dtype=np.float64).reshape(-1, 2)
    circumference_m = EQUATOR_M * math.cos(math.radians(base_lat))
    x = (coords[:, 0] - base_lon) / 360 * circumference_m
    y = (coords[:, 1] - base_lat) / 360 * POLES_M
    return np.column_stack([x, y])


def plane_to_geo(x: float, y: float, base_lat: float, base_lon: float) -> tuple:
    """Inverse of geo_to_plane for a single point, returns (lat, lon)."""
    circumference_m = EQUATOR_M * math.cos(math.radians(base_lat))
    return base_lat + y / POLES_M * 360, base_lon + x / circumference_m * 360


class PlaneProjection:
    """Transformer-like wrapper around geo_to_plane for a fixed origin.

    Exposes ``transform(lon, lat)`` so it can be used wherever a pyproj
    ``Transformer`` with ``always_xy=True`` would be.
    """

    def __init__(self, base_lat: float, base_lon: float):
        self.base_lat = base_lat
        self.base_lon = base_lon

    def transform(self, lon, lat):
        if np.ndim(lon) == 0:
            xy = geo_to_plane([[lon, lat]], self.base_lat, self.base_lon)
            return float(xy[0, 0]), float(xy[0, 1])
        xy = geo_to_plane(np.column_stack([lon, lat]), self.base_lat, self.base_lon)
        return xy[:, 0], xy[:, 1]


def bbox_around(lat: float, lon: float, radius_m: float) -> BoundingBox:
    """Square bounding box reaching radius_m from the given point."""
    circumference_m = EQUATOR_M * math.cos(math.radians(lat))
    d_lat = radius_m / POLES_M * 360
    d_lon = radius_m / circumference_m * 360
    return BoundingBox(north=lat + d_lat, south=lat - d_lat,
                       east=lon + d_lon, west=lon - d_lon)
