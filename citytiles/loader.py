"""Incremental, tile-based building loader.

Building data is not tiled like the map, but a tile grid is still used to
remember which areas were requested: every tile within the radius of the
viewpoint that has not been seen yet is marked loaded immediately, and
their combined bounding box is fetched with a single request.

Everything runs on one event loop.  ``tick`` never blocks; fetches run
as fire-and-forget tasks and their features are added when they
complete, in completion order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .geometry import footprint_to_buildings
from .models import BoundingBox, LoaderConfig, Viewpoint
from .osm_data import GeoJsonSource, OverpassSource, features_center
from .reconcile import reconcile
from .tiles import (PlaneProjection, latlon_to_fractional_tile, tile_key,
                    tile_to_bbox, tile_width_m, tiles_around)

logger = logging.getLogger(__name__)


class FeatureRegistry:
    """Ids of features already materialized for the current origin."""

    def __init__(self):
        self._ids: set = set()

    def __contains__(self, feature_id) -> bool:
        return feature_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def mark(self, feature_id) -> None:
        self._ids.add(feature_id)


@dataclass
class LoaderState:
    """Everything that is thrown away when the origin changes."""
    lat: float
    lon: float
    zoom: int
    tile_size_m: float
    tile_base: tuple
    projection: PlaneProjection
    tiles_loaded: set = field(default_factory=set)
    features: FeatureRegistry = field(default_factory=FeatureRegistry)

    @classmethod
    def for_origin(cls, lat: float, lon: float, zoom: int) -> 'LoaderState':
        return cls(
            lat=lat,
            lon=lon,
            zoom=zoom,
            tile_size_m=tile_width_m(lat, zoom),
            tile_base=latlon_to_fractional_tile(lat, lon, zoom),
            projection=PlaneProjection(lat, lon),
        )

    def tile_position(self, pos: Viewpoint) -> tuple:
        """Fractional tile coordinates of a scene position (x east, z south)."""
        return (self.tile_base[0] + pos.x / self.tile_size_m,
                self.tile_base[1] + pos.z / self.tile_size_m)


class TileLoader:
    """Keep buildings loaded around a moving viewpoint.

    *source* provides ``async fetch(bbox) -> list[Feature]``; *sink*
    receives every Building3D produced.
    """

    def __init__(self, config: LoaderConfig, source=None,
                 sink: Optional[Callable] = None):
        self.config = config
        self.source = source if source is not None else OverpassSource()
        self.sink = sink
        self.state = LoaderState.for_origin(config.lat, config.lon, config.zoom)
        self.fetch_count = 0
        self._pending: set = set()

    # ── Origin ──────────────────────────────────────────────────────────

    def reset(self, lat: float, lon: float) -> None:
        """Move the origin, forgetting all loaded tiles and features."""
        self.config = LoaderConfig(lat=lat, lon=lon, zoom=self.config.zoom,
                                   radius_m=self.config.radius_m,
                                   src=self.config.src)
        self.state = LoaderState.for_origin(lat, lon, self.config.zoom)
        logger.info(f"Origin reset to ({lat:.6f}, {lon:.6f})")

    # ── Tile scanning ───────────────────────────────────────────────────

    def missing_bbox(self, pos: Viewpoint) -> Optional[BoundingBox]:
        """Mark unseen tiles around *pos* loaded and return their union bbox."""
        state = self.state
        tile_x, tile_y = state.tile_position(pos)
        radius = self.config.radius_m / state.tile_size_m

        bbox = None
        for x, y in tiles_around(tile_x, tile_y, radius, state.zoom):
            key = tile_key(x, y, state.zoom)
            if key in state.tiles_loaded:
                continue
            # mark before the request completes to avoid duplicate requests
            state.tiles_loaded.add(key)
            tile_bbox = tile_to_bbox(x, y, state.zoom)
            bbox = tile_bbox if bbox is None else bbox.union(tile_bbox)
        return bbox

    def tick(self, viewpoint: Optional[Viewpoint]) -> Optional[BoundingBox]:
        """Request buildings for any unseen tiles around *viewpoint*.

        Returns the requested bbox, or None when nothing was requested.
        Must be called from a running event loop, otherwise RuntimeError is
        raised before any tile is marked.
        """
        if viewpoint is None or self.config.radius_m <= 0:
            return None
        loop = asyncio.get_running_loop()
        bbox = self.missing_bbox(viewpoint)
        if bbox is None:
            return None
        logger.info(f"Bounding box for missing tiles (SWNE): {bbox.to_swne()}")
        self.fetch_count += 1
        self._spawn(loop, self._fetch_and_add(bbox))
        return bbox

    async def start(self) -> None:
        """Load the static asset (if any), then the area around the origin."""
        if self.config.src:
            features = await GeoJsonSource(self.config.src).load()
            if self.config.lat == 0 and self.config.lon == 0 and features:
                center = features_center(features)
                self.reset(center.lat, center.lon)
            self.add_features(features)
        self.tick(Viewpoint.origin())

    # ── Fetching ────────────────────────────────────────────────────────

    def _spawn(self, loop, coro) -> None:
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every in-flight fetch has been applied."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _fetch_and_add(self, bbox: BoundingBox) -> list:
        try:
            features = await self.source.fetch(bbox)
        except Exception as e:
            # tiles stay marked, the area is only retried after a reset
            logger.warning(f"Fetch failed for {bbox.to_swne()}: {e}")
            return []
        return self.add_features(features or [])

    # ── Materializing ───────────────────────────────────────────────────

    def add_features(self, features) -> list:
        """Reconcile a batch, convert kept footprints and emit them.

        Features already in the registry are ignored.  Returns the
        Building3D values emitted.
        """
        registry = self.state.features
        result = reconcile(features, self.state.projection, registry)
        for fid in result.decided_ids:
            registry.mark(fid)

        added = []
        for fid in result.kept_ids:
            footprint = result.footprints[fid]
            try:
                buildings = footprint_to_buildings(fid, footprint.geometry,
                                                   footprint.attrs)
                for building in buildings:
                    if self.sink is not None:
                        self.sink(building)
                    added.append(building)
            except Exception as e:
                logger.error(f"Error processing building {fid}: {e}")
                continue

        ignored = len(features) - len(result.kept_ids)
        logger.info(f"Loaded {len(added)} buildings, ignored {ignored}")
        return added
