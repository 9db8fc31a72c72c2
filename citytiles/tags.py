"""Height, colour and shape inference from OSM tags.

Tags are plain ``dict[str, str]``.  The typed accessors below return
``None`` whenever a tag is missing or unparseable, so the fallback chains
can treat both cases the same way.
"""

import math
import re
from dataclasses import dataclass
from typing import Optional

from .constants import (BUILDING_TO_METER, DEFAULT_COLOR, DOME_SHAPE,
                        FEET_TO_METER, LEVEL_HEIGHT_M, ROOF_PART)
from .models import BuildingShape

_LEADING_NUMBER = re.compile(r'^\s*([-+]?(?:\d+\.?\d*|\.\d+))')
_FEET_MARK = re.compile(r"'|\bft\b|\bfeet\b", re.IGNORECASE)


def parse_length(value) -> Optional[float]:
    """Parse an OSM length value into meters.

    Meters are the default unit and trailing suffixes like " m" are
    ignored.  Values with a foot mark ("33'", "10'6\"", "40 ft") are
    converted from feet, the inches remainder is dropped.
    See https://wiki.openstreetmap.org/wiki/Key:height
    """
    if value is None:
        return None
    raw_str = str(value)
    match = _LEADING_NUMBER.match(raw_str)
    if not match:
        return None
    try:
        number = float(match.group(1))
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    if _FEET_MARK.search(raw_str[match.end():]):
        number *= FEET_TO_METER
    return number


def get_numeric_tag(tags: dict, key: str) -> Optional[float]:
    """Length tag in meters, None if absent, unparseable or negative."""
    value = parse_length(tags.get(key))
    if value is None or value < 0:
        return None
    return value


def get_int_tag(tags: dict, key: str) -> Optional[int]:
    raw = tags.get(key)
    if raw is None:
        return None
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def get_enum_tag(tags: dict, key: str, allowed=None) -> Optional[str]:
    """Normalised tag value, None if absent or not one of *allowed*."""
    raw = tags.get(key)
    if raw is None:
        return None
    value = str(raw).strip().lower().replace('-', '_').replace(' ', '_')
    if allowed is not None and value not in allowed:
        return None
    return value


def is_part(tags: dict) -> bool:
    value = tags.get('building:part')
    return value is not None and value != 'no'


def is_roof_part(tags: dict) -> bool:
    return get_enum_tag(tags, 'building:part') == ROOF_PART


def resolve_height(tags: dict) -> Optional[float]:
    """Height of a building or part in meters, None when unknown.

    First match wins: ``height``, ``roof:height`` (parts only),
    ``building:levels``, then the building / man_made lookup table.
    A result of exactly 0 means the footprint must not be rendered.
    """
    height = get_numeric_tag(tags, 'height')
    if height is not None:
        return height

    if is_part(tags):
        roof_height = get_numeric_tag(tags, 'roof:height')
        if roof_height is not None:
            return roof_height

    levels = get_int_tag(tags, 'building:levels')
    # 0 levels is a height of 0, not a missing tag
    if levels is not None and levels >= 0:
        return levels * LEVEL_HEIGHT_M

    for key in ('building', 'man_made'):
        value = tags.get(key)
        if value in BUILDING_TO_METER:
            return BUILDING_TO_METER[value]

    return None


def resolve_min_height(tags: dict) -> float:
    min_height = get_numeric_tag(tags, 'min_height')
    if min_height is not None:
        return min_height
    min_level = get_int_tag(tags, 'building:min_level')
    if min_level is not None and min_level > 0:
        return min_level * LEVEL_HEIGHT_M
    return 0.0


def resolve_color(tags: dict) -> str:
    if 'building:colour' in tags and str(tags['building:colour']).strip():
        return str(tags['building:colour']).strip()
    return DEFAULT_COLOR


def is_dome(tags: dict) -> bool:
    return DOME_SHAPE in (get_enum_tag(tags, 'building:shape'),
                          get_enum_tag(tags, 'roof:shape'))


@dataclass
class BuildingAttributes:
    height: Optional[float]   # None = unknown, 0 = replaced by parts
    min_height: float
    color: str
    shape: BuildingShape
    is_part: bool
    is_roof_part: bool


def building_attributes(tags: dict) -> BuildingAttributes:
    """Resolve every attribute the converter needs from a tag map."""
    return BuildingAttributes(
        height=resolve_height(tags),
        min_height=resolve_min_height(tags),
        color=resolve_color(tags),
        shape=BuildingShape.dome if is_dome(tags) else BuildingShape.extruded,
        is_part=is_part(tags),
        is_roof_part=is_roof_part(tags),
    )
