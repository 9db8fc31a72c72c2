"""Data classes and path management."""

import pathlib
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np
from shapely.geometry import Polygon, box
from shapely.geometry.base import BaseGeometry

from . import config
from .constants import MAX_MERCATOR_LAT, MAX_ZOOM


class PathManager:
    """Manage paths relative to the output directory."""

    @staticmethod
    def get_output_path(filename: str) -> pathlib.Path:
        """Get the output file path."""
        return config.OUTPUT_DIR / filename


class GeoPoint(NamedTuple):
    lat: float
    lon: float


class Viewpoint(NamedTuple):
    """Snapshot of the tracked position in scene meters (y is up)."""
    x: float
    y: float
    z: float

    @classmethod
    def origin(cls) -> 'Viewpoint':
        return cls(0.0, 0.0, 0.0)


@dataclass
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def to_polygon(self) -> Polygon:
        """Convert bounding box to shapely polygon."""
        return box(self.west, self.south, self.east, self.north)

    def to_swne(self) -> tuple:
        """Overpass ordering: (south, west, north, east)."""
        return (self.south, self.west, self.north, self.east)

    def to_bbox_tuple(self) -> tuple:
        """osmnx ordering: (left/west, bottom/south, right/east, top/north)."""
        return (self.west, self.south, self.east, self.north)

    def union(self, other: 'BoundingBox') -> 'BoundingBox':
        return BoundingBox(
            north=max(self.north, other.north),
            south=min(self.south, other.south),
            east=max(self.east, other.east),
            west=min(self.west, other.west),
        )


@dataclass
class Feature:
    """An OSM feature with its tags and WGS84 geometry (x=lon, y=lat)."""
    id: str
    tags: dict
    geometry: BaseGeometry

    @property
    def kind(self) -> str:
        return self.geometry.geom_type if self.geometry is not None else 'None'

    @property
    def is_area(self) -> bool:
        return self.kind in ('Polygon', 'MultiPolygon')

    @property
    def is_building(self) -> bool:
        return _tag_set(self.tags, 'building')

    @property
    def is_building_part(self) -> bool:
        return _tag_set(self.tags, 'building:part')


def _tag_set(tags: dict, key: str) -> bool:
    value = tags.get(key)
    return value is not None and value != 'no'


class BuildingShape(str, Enum):
    extruded = "extruded"
    dome = "dome"


@dataclass
class Building3D:
    """Solid produced for one footprint, vertices in scene coordinates (Y up)."""
    feature_id: str
    outline: list
    holes: list
    height_m: float
    min_height_m: float
    color: str
    shape: BuildingShape
    vertices: np.ndarray = field(repr=False)
    faces: np.ndarray = field(repr=False)


@dataclass
class MapTile:
    """A raster basemap tile placed on the ground plane."""
    x: int
    y: int
    zoom: int
    url: str
    center_x: float
    center_z: float
    size_m: float


@dataclass
class LoaderConfig:
    lat: float
    lon: float
    zoom: int = config.ZOOM
    radius_m: float = config.RADIUS_M
    src: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.zoom <= MAX_ZOOM:
            raise ValueError(f"zoom must be within 0..{MAX_ZOOM}, got {self.zoom}")
        if abs(self.lat) >= MAX_MERCATOR_LAT:
            raise ValueError(f"origin latitude {self.lat} is outside the Mercator range")
        if self.radius_m < 0:
            raise ValueError(f"radius_m must not be negative, got {self.radius_m}")

    @classmethod
    def from_env(cls, lat: float, lon: float, **overrides) -> 'LoaderConfig':
        """Fill zoom and radius from the environment unless given."""
        values = {'zoom': config.ZOOM, 'radius_m': config.RADIUS_M}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(lat=lat, lon=lon, **values)
