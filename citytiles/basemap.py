"""OpenStreetMap raster tiles laid out on the ground plane around a viewpoint."""

import logging
from typing import Callable, Optional

from .constants import BASEMAP_RADIUS_M, BASEMAP_ZOOM, TILE_URL_TEMPLATE
from .models import MapTile, Viewpoint
from .loader import LoaderState
from .tiles import tile_key, tiles_around

logger = logging.getLogger(__name__)


def tile_url(x: int, y: int, zoom: int, template: str = TILE_URL_TEMPLATE) -> str:
    """e.g. https://tile.openstreetmap.org/14/8802/5373.png for Berlin."""
    return template.format(z=zoom, x=x, y=y)


def place_tile(x: int, y: int, state: LoaderState,
               template: str = TILE_URL_TEMPLATE) -> MapTile:
    """Scene placement of a tile relative to the state's origin.

    The tile base is the origin in fractional tile coordinates, so the
    tile centre sits half a tile beyond its top-left corner.  Tiles across
    the date line are placed next to the origin, not a world away.
    """
    size = state.tile_size_m
    n_tiles = 2 ** state.zoom
    dx = (x - state.tile_base[0] + n_tiles / 2) % n_tiles - n_tiles / 2
    return MapTile(
        x=x,
        y=y,
        zoom=state.zoom,
        url=tile_url(x, y, state.zoom, template),
        center_x=(dx + 0.5) * size,
        center_z=(y - state.tile_base[1] + 0.5) * size,
        size_m=size,
    )


class BasemapLoader:
    """Emit every map tile within the radius of the viewpoint exactly once."""

    def __init__(self, lat: float, lon: float, zoom: int = BASEMAP_ZOOM,
                 radius_m: float = BASEMAP_RADIUS_M,
                 sink: Optional[Callable] = None,
                 template: str = TILE_URL_TEMPLATE):
        self.radius_m = radius_m
        self.sink = sink
        self.template = template
        self.state = LoaderState.for_origin(lat, lon, zoom)

    def tick(self, viewpoint: Optional[Viewpoint] = None) -> list:
        pos = viewpoint if viewpoint is not None else Viewpoint.origin()
        state = self.state
        tile_x, tile_y = state.tile_position(pos)
        radius = self.radius_m / state.tile_size_m

        tiles = []
        for x, y in tiles_around(tile_x, tile_y, radius, state.zoom):
            key = tile_key(x, y, state.zoom)
            if key in state.tiles_loaded:
                continue
            state.tiles_loaded.add(key)
            tile = place_tile(x, y, state, self.template)
            if self.sink is not None:
                self.sink(tile)
            tiles.append(tile)
        if tiles:
            logger.debug(f"Placed {len(tiles)} map tiles")
        return tiles
