"""citytiles — OpenStreetMap buildings as extruded 3D footprints, loaded tile by tile.

Import constants FIRST so environment variables and logging are set up
before any other module reads them.
"""

from citytiles import constants as _constants  # noqa: F401

from citytiles.loader import TileLoader, LoaderState, FeatureRegistry
from citytiles.models import BoundingBox, Building3D, Feature, LoaderConfig, Viewpoint
