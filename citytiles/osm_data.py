"""Building feature sources: Overpass (via osmnx) and static GeoJSON."""

import asyncio
import json
import logging
import pathlib
import threading

import geopandas as gpd
import osmnx as ox
import pandas as pd
from shapely.geometry import shape
from tqdm import tqdm

from . import config
from .constants import OVERPASS_TAGS
from .models import BoundingBox, Feature, GeoPoint

logger = logging.getLogger(__name__)

# ox.settings is global; held for the whole query so overlapping fetches
# never see each other's URL or timeout
_OX_SETTINGS_LOCK = threading.Lock()

# Columns osmnx may add that are not OSM tags
_NON_TAG_COLUMNS = {'geometry', 'nodes', 'ways', 'members'}


def _feature_id(idx) -> str:
    """'way/123' for osmnx (element, id) index entries."""
    if isinstance(idx, tuple) and len(idx) == 2:
        return f"{idx[0]}/{idx[1]}"
    return str(idx)


def gdf_to_features(gdf: gpd.GeoDataFrame, progress: bool = False) -> list:
    """Convert an osmnx features GeoDataFrame into Feature values."""
    features = []
    if gdf is None or len(gdf) == 0:
        return features
    tag_columns = [c for c in gdf.columns if c not in _NON_TAG_COLUMNS]
    rows = gdf.iterrows()
    if progress:
        rows = tqdm(rows, total=len(gdf), desc="Features")
    for idx, row in rows:
        geom = row.geometry
        if geom is None or geom.is_empty:
            continue
        tags = {}
        for col in tag_columns:
            value = row[col]
            if isinstance(value, (list, dict, tuple)):
                continue
            if pd.notna(value):
                tags[col] = str(value)
        features.append(Feature(id=_feature_id(idx), tags=tags, geometry=geom))
    return features


def _geojson_feature_id(item: dict, properties: dict):
    for candidate in (item.get('id'), properties.get('@id'), properties.get('id')):
        if candidate is not None:
            return str(candidate)
    return None


def features_from_geojson(data: dict) -> list:
    """Read a GeoJSON FeatureCollection into Feature values.

    Features without an id get a positional one; unreadable geometries
    are logged and skipped.
    """
    features = []
    for i, item in enumerate(data.get('features', [])):
        properties = item.get('properties') or {}
        fid = _geojson_feature_id(item, properties) or f"feature/{i}"
        tags = {k: str(v) for k, v in properties.items()
                if v is not None and not isinstance(v, (list, dict))}
        try:
            geom = shape(item['geometry']) if item.get('geometry') else None
        except Exception as e:
            logger.warning(f"Skipping feature {fid}: unreadable geometry ({e})")
            continue
        if geom is None or geom.is_empty:
            continue
        features.append(Feature(id=fid, tags=tags, geometry=geom))
    return features


def load_geojson(path) -> list:
    """Load a GeoJSON file from disk."""
    path = pathlib.Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    features = features_from_geojson(data)
    logger.info(f"Read {len(features)} features from {path.name}")
    return features


def features_center(features) -> GeoPoint:
    """Centre of the bounding box around all feature geometries."""
    bounds = [f.geometry.bounds for f in features
              if f.geometry is not None and not f.geometry.is_empty]
    if not bounds:
        raise ValueError("No features with geometry to compute a centre from")
    west = min(b[0] for b in bounds)
    south = min(b[1] for b in bounds)
    east = max(b[2] for b in bounds)
    north = max(b[3] for b in bounds)
    center = GeoPoint(lat=(south + north) / 2, lon=(west + east) / 2)
    logger.info(f"Geojson center (lat, lon): {center.lat:.6f}, {center.lon:.6f}")
    return center


class OverpassSource:
    """Fetch buildings and building parts inside a bbox from Overpass."""

    def __init__(self, overpass_url: str = config.OVERPASS_URL,
                 timeout: int = config.OVERPASS_TIMEOUT, progress: bool = False):
        self.overpass_url = overpass_url
        self.timeout = timeout
        self.progress = progress

    def fetch_sync(self, bbox: BoundingBox) -> list:
        with _OX_SETTINGS_LOCK:
            prev_url = ox.settings.overpass_url
            prev_req_timeout = ox.settings.requests_timeout
            ox.settings.overpass_url = self.overpass_url
            ox.settings.requests_timeout = self.timeout
            try:
                gdf = ox.features_from_bbox(bbox=bbox.to_bbox_tuple(), tags=OVERPASS_TAGS)
            except ox._errors.InsufficientResponseError:
                logger.info(f"No buildings in {bbox.to_swne()}")
                return []
            finally:
                ox.settings.overpass_url = prev_url
                ox.settings.requests_timeout = prev_req_timeout
        logger.info(f"  overpass query returned {len(gdf)} features")
        return gdf_to_features(gdf, progress=self.progress)

    async def fetch(self, bbox: BoundingBox) -> list:
        # osmnx is blocking, keep the tick loop responsive
        return await asyncio.to_thread(self.fetch_sync, bbox)


class GeoJsonSource:
    """A static feature collection asset, read once."""

    def __init__(self, path):
        self.path = pathlib.Path(path)

    async def load(self) -> list:
        return await asyncio.to_thread(load_geojson, self.path)
