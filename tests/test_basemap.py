"""Tests for basemap tile placement."""

import pytest

from citytiles.basemap import BasemapLoader, place_tile, tile_url
from citytiles.loader import LoaderState
from citytiles.models import Viewpoint

from conftest import BASE_LAT, BASE_LON


def test_tile_url():
    assert tile_url(8802, 5373, 14) == "https://tile.openstreetmap.org/14/8802/5373.png"
    assert tile_url(1, 2, 3, template="{z}-{x}-{y}") == "3-1-2"


def test_origin_tile_is_centred_near_origin():
    state = LoaderState.for_origin(BASE_LAT, BASE_LON, 16)
    x, y = int(state.tile_base[0]), int(state.tile_base[1])
    tile = place_tile(x, y, state)
    assert abs(tile.center_x) <= tile.size_m / 2
    assert abs(tile.center_z) <= tile.size_m / 2

    east = place_tile(x + 1, y, state)
    south = place_tile(x, y + 1, state)
    assert east.center_x == pytest.approx(tile.center_x + tile.size_m)
    assert south.center_z == pytest.approx(tile.center_z + tile.size_m)


def test_tiles_across_date_line_stay_adjacent():
    state = LoaderState.for_origin(0.0, 179.99, 4)
    west_edge = place_tile(0, 8, state)
    east_edge = place_tile(15, 8, state)
    assert 0 < west_edge.center_x < state.tile_size_m
    assert -state.tile_size_m < east_edge.center_x < 0


def test_loader_emits_each_tile_once():
    sunk = []
    loader = BasemapLoader(BASE_LAT, BASE_LON, zoom=16, radius_m=500, sink=sunk.append)
    tiles = loader.tick()
    assert tiles
    assert tiles == sunk
    assert len({(t.x, t.y) for t in tiles}) == len(tiles)
    assert loader.tick() == []
    assert loader.tick(Viewpoint(3.0, 0.0, 3.0)) == []


def test_loader_follows_viewpoint():
    loader = BasemapLoader(BASE_LAT, BASE_LON, zoom=16, radius_m=300)
    first = {(t.x, t.y) for t in loader.tick()}
    second = loader.tick(Viewpoint(2000.0, 0.0, 0.0))
    assert second
    assert all(t.center_x > 1000 for t in second)
    assert first.isdisjoint((t.x, t.y) for t in second)
