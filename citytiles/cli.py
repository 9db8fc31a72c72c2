"""Click CLI commands for citytiles."""

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Optional

import click

from .basemap import BasemapLoader
from .constants import BASEMAP_RADIUS_M, BASEMAP_ZOOM
from .glb import SceneCollector
from .loader import TileLoader
from .models import LoaderConfig, Viewpoint
from .osm_data import OverpassSource

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Load OpenStreetMap buildings tile by tile and export them as 3D solids."""
    pass


@cli.command()
@click.argument('lat', type=float)
@click.argument('lon', type=float)
@click.option('--radius', '-r', type=float, default=None, help='Load radius in meters (0 disables Overpass)')
@click.option('--zoom', '-z', type=int, default=None, help='Tile zoom level for batching requests')
@click.option('--src', type=click.Path(exists=True, dir_okay=False), default=None, help='Static GeoJSON asset')
@click.option('--output', '-o', default='buildings.glb', help='Output GLB file path')
def build(lat: float, lon: float, radius: Optional[float], zoom: Optional[int],
          src: Optional[str], output: str):
    """Load buildings around LAT LON and write them to a GLB file."""
    config = _make_config(lat, lon, radius_m=radius, zoom=zoom, src=src)
    asyncio.run(async_build(config, output, path=[]))


@cli.command()
@click.argument('lat', type=float)
@click.argument('lon', type=float)
@click.option('--radius', '-r', type=float, default=300.0, help='Load radius in meters')
@click.option('--zoom', '-z', type=int, default=None, help='Tile zoom level for batching requests')
@click.option('--step', type=float, default=100.0, help='Meters travelled east per tick')
@click.option('--steps', type=int, default=10, help='Number of ticks')
@click.option('--output', '-o', default='flyover.glb', help='Output GLB file path')
def flyover(lat: float, lon: float, radius: float, zoom: Optional[int],
            step: float, steps: int, output: str):
    """Tick the loader along an eastward path starting at LAT LON."""
    config = _make_config(lat, lon, radius_m=radius, zoom=zoom)
    path = [Viewpoint(x=step * i, y=0.0, z=0.0) for i in range(1, steps + 1)]
    asyncio.run(async_build(config, output, path=path))


@cli.command()
@click.argument('lat', type=float)
@click.argument('lon', type=float)
@click.option('--radius', '-r', type=float, default=BASEMAP_RADIUS_M, help='Radius in meters')
@click.option('--zoom', '-z', type=int, default=BASEMAP_ZOOM, help='Map tile zoom level')
def basemap(lat: float, lon: float, radius: float, zoom: int):
    """Print placements of the map tiles around LAT LON as JSON."""
    loader = BasemapLoader(lat, lon, zoom=zoom, radius_m=radius)
    tiles = loader.tick()
    click.echo(json.dumps([asdict(t) for t in tiles], indent=2))


def _make_config(lat, lon, **overrides) -> LoaderConfig:
    try:
        return LoaderConfig.from_env(lat, lon, **overrides)
    except ValueError as e:
        raise click.BadParameter(str(e))


async def async_build(config: LoaderConfig, output: str, path: list):
    """Initial load, optional ticks along *path*, then GLB export."""
    collector = SceneCollector()
    loader = TileLoader(config, source=OverpassSource(progress=True), sink=collector)
    try:
        await loader.start()
        for viewpoint in path:
            loader.tick(viewpoint)
            # let completed fetches run between ticks like frames would
            await asyncio.sleep(0)
        await loader.drain()
        result = collector.export(output)
        click.echo(f"Generated {collector.building_count} buildings "
                   f"from {loader.fetch_count} requests: {result}")
    except Exception as e:
        logger.error(f"Error building scene: {e}")
        raise click.ClickException(str(e))
