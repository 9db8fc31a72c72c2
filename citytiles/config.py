import os
import pathlib

from . import constants

BASE_DIR = pathlib.Path(__file__).parent.parent.absolute()
OUTPUT_DIR = pathlib.Path(os.environ.get("CITYTILES_OUTPUT_DIR", BASE_DIR / "output"))

OVERPASS_URL = os.environ.get("CITYTILES_OVERPASS_URL", "https://overpass-api.de/api")
OVERPASS_TIMEOUT = int(os.environ.get("CITYTILES_OVERPASS_TIMEOUT", "30"))

ZOOM = int(os.environ.get("CITYTILES_ZOOM", str(constants.DEFAULT_ZOOM)))
# 0 disables dynamic loading from Overpass
RADIUS_M = float(os.environ.get("CITYTILES_RADIUS_M", "0"))
