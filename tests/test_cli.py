"""Tests for the click CLI."""

import json

from click.testing import CliRunner
from shapely.geometry import mapping

from citytiles.cli import cli

from conftest import rect_geo


def _asset(path):
    data = {'type': 'FeatureCollection', 'features': [
        {'type': 'Feature', 'id': 'way/1',
         'properties': {'building': 'yes', 'building:levels': '4'},
         'geometry': mapping(rect_geo(0, 0, 15, 25))},
        {'type': 'Feature', 'id': 'node/2',
         'properties': {'amenity': 'bench'},
         'geometry': {'type': 'Point', 'coordinates': [13.41, 52.52]}},
    ]}
    path.write_text(json.dumps(data))
    return str(path)


def test_basemap_prints_tiles():
    result = CliRunner().invoke(cli, ['basemap', '52.52', '13.41', '--radius', '200'])
    assert result.exit_code == 0, result.output
    tiles = json.loads(result.output)
    assert tiles
    assert all(t['url'].startswith('https://tile.openstreetmap.org/16/') for t in tiles)


def test_build_from_static_asset(tmp_path):
    src = _asset(tmp_path / 'city.geojson')
    output = tmp_path / 'out' / 'city.glb'
    result = CliRunner().invoke(cli, ['build', '0', '0', '--radius', '0',
                                      '--src', src, '--output', str(output)])
    assert result.exit_code == 0, result.output
    assert 'Generated 1 buildings from 0 requests' in result.output
    assert output.exists()


def test_build_without_buildings_fails(tmp_path):
    result = CliRunner().invoke(cli, ['build', '52.52', '13.41', '--radius', '0',
                                      '--output', str(tmp_path / 'empty.glb')])
    assert result.exit_code == 1
    assert 'No buildings to export' in result.output


def test_build_rejects_bad_zoom(tmp_path):
    result = CliRunner().invoke(cli, ['build', '52.52', '13.41', '--zoom', '30',
                                      '--output', str(tmp_path / 'x.glb')])
    assert result.exit_code == 2
    assert 'zoom' in result.output
