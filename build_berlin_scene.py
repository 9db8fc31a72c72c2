"""Load buildings around Alexanderplatz, fly east, and write a GLB scene."""
import asyncio, sys, time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from citytiles import LoaderConfig, TileLoader, Viewpoint
from citytiles.glb import SceneCollector

lat, lon = 52.5219, 13.4132

config = LoaderConfig(lat=lat, lon=lon, zoom=17, radius_m=400)
collector = SceneCollector()
loader = TileLoader(config, sink=collector)


async def main():
    await loader.start()
    for i in range(1, 6):
        loader.tick(Viewpoint(x=150.0 * i, y=0.0, z=0.0))
        await asyncio.sleep(0)
    await loader.drain()


t0 = time.time()
asyncio.run(main())
out = collector.export("berlin-alexanderplatz.glb")
print(f"\nDone in {time.time()-t0:.1f}s, {loader.fetch_count} requests -> {out}")
