"""Building / building:part reconciliation.

Per Simple 3D Buildings, ``building:part`` features may describe the
same volume as their building outline.  OSM carries no link between the
two, so the base building of each part is inferred from bounding-box
containment and buildings fully described by their parts are dropped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from shapely import STRtree
from shapely.geometry import box

from .geometry import transform_geometry
from .tags import building_attributes, BuildingAttributes
from .tiles import PlaneProjection

logger = logging.getLogger(__name__)

_CONTAIN_EPS = 1e-6  # meters


@dataclass
class Footprint:
    """Plane geometry and attributes cached for one feature in one batch."""
    feature: Any
    geometry: Any        # shapely Polygon / MultiPolygon in plane meters
    bbox: tuple          # (minx, miny, maxx, maxy)
    attrs: BuildingAttributes

    @property
    def bbox_area(self) -> float:
        minx, miny, maxx, maxy = self.bbox
        return (maxx - minx) * (maxy - miny)


@dataclass
class Reconciliation:
    kept_ids: list = field(default_factory=list)
    suppressed_ids: set = field(default_factory=set)
    footprints: dict = field(default_factory=dict)
    base_of_part: dict = field(default_factory=dict)

    @property
    def decided_ids(self) -> set:
        return set(self.footprints)


def prepare_footprints(features, projection: PlaneProjection,
                       registry=None) -> dict:
    """Project every new building / part area feature onto the plane.

    Points, lines, untagged features and ids already in *registry* are
    dropped, as are footprints whose geometry cannot be used.
    """
    footprints = {}
    for feature in features:
        if not (feature.is_building or feature.is_building_part):
            continue
        if not feature.is_area:
            continue
        if registry is not None and feature.id in registry:
            continue
        if feature.id in footprints:
            continue
        try:
            geom = transform_geometry(feature.geometry, projection)
        except Exception as e:
            logger.error(f"Error transforming feature {feature.id}: {e}")
            continue
        if geom is None:
            logger.warning(f"Skipping feature {feature.id}: malformed geometry")
            continue
        footprints[feature.id] = Footprint(
            feature=feature,
            geometry=geom,
            bbox=tuple(geom.bounds),
            attrs=building_attributes(feature.tags),
        )
    return footprints


def _contains(outer: tuple, inner: tuple) -> bool:
    return (outer[0] <= inner[0] + _CONTAIN_EPS and
            outer[1] <= inner[1] + _CONTAIN_EPS and
            outer[2] >= inner[2] - _CONTAIN_EPS and
            outer[3] >= inner[3] - _CONTAIN_EPS)


def find_base_building(part: Footprint, buildings: list, tree=None):
    """Id of the building whose bbox contains the part's bbox.

    When several buildings qualify the one with the smallest bbox wins,
    ties are broken by id so the result is deterministic.
    """
    if tree is not None:
        candidates = [buildings[i] for i in tree.query(box(*part.bbox))]
    else:
        candidates = buildings
    containing = [b for b in candidates if _contains(b.bbox, part.bbox)]
    if not containing:
        return None
    best = min(containing, key=lambda b: (b.bbox_area, str(b.feature.id)))
    return best.feature.id


def _sits_above_roofline(part: Footprint, building: Footprint) -> bool:
    building_height = building.attrs.height
    if building_height is None:
        return False
    return part.attrs.min_height >= building_height


def reconcile(features, projection: PlaneProjection, registry=None) -> Reconciliation:
    """Decide which building outlines are superseded by their parts.

    Roof parts never take part in the decision.  A building with a
    single part keeps both.  A building with two or more parts is
    suppressed unless every one of them sits at or above its roofline.
    """
    footprints = prepare_footprints(features, projection, registry)
    building_ids = [fid for fid, fp in footprints.items() if fp.feature.is_building]
    part_ids = [fid for fid, fp in footprints.items()
                if fp.feature.is_building_part and not fp.feature.is_building]

    buildings = [footprints[fid] for fid in building_ids]
    tree = STRtree([box(*b.bbox) for b in buildings]) if buildings else None

    result = Reconciliation(footprints=footprints)
    parts_by_building: dict[Any, list] = {}
    for pid in part_ids:
        part = footprints[pid]
        if part.attrs.is_roof_part:
            continue
        base_id = find_base_building(part, buildings, tree)
        if base_id is None:
            continue
        result.base_of_part[pid] = base_id
        parts_by_building.setdefault(base_id, []).append(part)

    for bid, parts in parts_by_building.items():
        if len(parts) < 2:
            continue
        building = footprints[bid]
        if all(_sits_above_roofline(p, building) for p in parts):
            logger.debug(f"Keeping {bid}: all {len(parts)} parts above roofline")
            continue
        result.suppressed_ids.add(bid)

    result.kept_ids = [fid for fid in footprints if fid not in result.suppressed_ids]
    if result.suppressed_ids:
        logger.info(f"  {len(result.suppressed_ids)} buildings replaced by "
                    f"their building:part features")
    return result
