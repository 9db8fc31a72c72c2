"""Physical constants, tag lookup tables and logging setup."""

import logging
import os

from dotenv import load_dotenv

# Load environment variables before anything reads them
load_dotenv()

# ── Earth dimensions ────────────────────────────────────────────────────
# OSM features use WGS84 (different circumference across equator and
# poles); map tiles assume a sphere with the equatorial circumference.
EQUATOR_M = 40075017  # equatorial circumference in meters
POLES_M = 40007863    # polar circumference in meters

# Web Mercator cuts the map off here; tile math is undefined beyond
MAX_MERCATOR_LAT = 85.0511
MAX_ZOOM = 22

# ── Building heights ────────────────────────────────────────────────────
FEET_TO_METER = 0.3048
LEVEL_HEIGHT_M = 3.0               # height of a single building level
DEFAULT_BUILDING_HEIGHT_M = 6.0    # cap for footprints without height tags
PERIMETER_HEIGHT_DIVISOR = 5.0     # long thin footprints get shorter

# Heights for `building=*` / `man_made=*` values without height tags.
BUILDING_TO_METER = {
    'church': 20.0,
    'water_tower': 20.0,
    # small structures, one level
    'allotment_house': LEVEL_HEIGHT_M,
    'boathouse': LEVEL_HEIGHT_M,
    'bunker': LEVEL_HEIGHT_M,
    'cabin': LEVEL_HEIGHT_M,
    'carport': LEVEL_HEIGHT_M,
    'container': LEVEL_HEIGHT_M,
    'garage': LEVEL_HEIGHT_M,
    'garages': LEVEL_HEIGHT_M,
    'gatehouse': LEVEL_HEIGHT_M,
    'greenhouse': LEVEL_HEIGHT_M,
    'guardhouse': LEVEL_HEIGHT_M,
    'hut': LEVEL_HEIGHT_M,
    'kiosk': LEVEL_HEIGHT_M,
    'service': LEVEL_HEIGHT_M,
    'shed': LEVEL_HEIGHT_M,
    'stable': LEVEL_HEIGHT_M,
    'sty': LEVEL_HEIGHT_M,
    'toilets': LEVEL_HEIGHT_M,
}

DEFAULT_COLOR = 'gray'
DOME_SHAPE = 'dome'
ROOF_PART = 'roof'

# ── Tiles ───────────────────────────────────────────────────────────────
DEFAULT_ZOOM = 17   # building tiles: small enough for one Overpass query
BASEMAP_ZOOM = 16
BASEMAP_RADIUS_M = 500.0
TILE_URL_TEMPLATE = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"

# ── Overpass ────────────────────────────────────────────────────────────
OVERPASS_TAGS = {
    'building': True,
    'building:part': True,
}

# Configure logging
logging.basicConfig(
    level=os.environ.get("CITYTILES_LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)
