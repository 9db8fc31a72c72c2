"""Plane transforms, watertight extrusion and dome meshes for footprints."""

import math
import logging

import numpy as np
import trimesh
from shapely.geometry import Polygon, MultiPolygon
from shapely.geometry.polygon import orient

from .constants import DEFAULT_BUILDING_HEIGHT_M, PERIMETER_HEIGHT_DIVISOR
from .models import Building3D, BuildingShape
from .tags import BuildingAttributes

logger = logging.getLogger(__name__)


# ── Coordinate transforms ───────────────────────────────────────────────

def transform_geometry(geom, transformer):
    """Transform an area geometry from WGS84 to plane coordinates.

    *transformer* is anything with ``transform(lon, lat)``, usually a
    :class:`citytiles.tiles.PlaneProjection`.  Returns None for
    geometries that cannot be used as a footprint.
    """
    if geom is None or geom.is_empty:
        return None

    if isinstance(geom, (Polygon, MultiPolygon)):
        transformed = transform_polygon(geom, transformer)
    else:
        return None

    if transformed is None or not transformed.is_valid:
        return None
    return transformed


def _transform_ring(coords, transformer):
    coords = np.asarray(coords, dtype=np.float64)
    xs, ys = transformer.transform(coords[:, 0], coords[:, 1])
    ring = np.column_stack([xs, ys])
    return ring[~np.isnan(ring).any(axis=1)]


def transform_polygon(polygon, transformer):
    """Transform polygon coordinates, dropping rings that collapse."""
    if isinstance(polygon, MultiPolygon):
        transformed_polys = []
        for p in polygon.geoms:
            transformed = transform_polygon(p, transformer)
            if transformed is not None and transformed.is_valid:
                transformed_polys.append(transformed)
        if not transformed_polys:
            return None
        if len(transformed_polys) == 1:
            return transformed_polys[0]
        return MultiPolygon(transformed_polys)

    # Need at least 3 distinct points (4 with the closing one)
    exterior = _transform_ring(polygon.exterior.coords, transformer)
    if len(exterior) < 4:
        logger.warning(f"Skipping ring with {len(exterior)} points")
        return None

    interiors = []
    for interior in polygon.interiors:
        ring = _transform_ring(interior.coords, transformer)
        if len(ring) >= 4:
            interiors.append(ring)
        else:
            logger.warning(f"Dropping hole with {len(ring)} points")

    transformed = Polygon(exterior, interiors)
    if transformed.is_valid and transformed.area > 0:
        return transformed
    logger.warning("Skipping invalid footprint after transform")
    return None


# ── Height fallback ──────────────────────────────────────────────────────

def estimate_height(polygon) -> float:
    """Nominal height for footprints without any height information.

    Compact footprints get the default height, long thin ones get
    progressively less.
    """
    perimeter = polygon.exterior.length
    return min(DEFAULT_BUILDING_HEIGHT_M, perimeter / PERIMETER_HEIGHT_DIVISOR)


# ── Watertight extrusion ─────────────────────────────────────────────────

def extrude_watertight(polygon, height: float, base_y: float = 0.0):
    """Extrude a footprint into a watertight mesh in scene coordinates.

    Uses ``trimesh.creation.extrude_polygon`` for proper constrained
    triangulation (handles concave polygons and holes).  The plane is
    then rotated -90 degrees about X so that extrusion points up (+Y)
    and plane north becomes -Z.  A rotation keeps face winding intact.

    Returns (vertices, faces) as numpy arrays.
    """
    if polygon.is_empty or height <= 0:
        return np.empty((0, 3)), np.empty((0, 3), dtype=np.int64)

    mesh = trimesh.creation.extrude_polygon(polygon, height=height)
    v = mesh.vertices
    verts = np.column_stack([v[:, 0], v[:, 2] + base_y, -v[:, 1]])
    return verts, np.asarray(mesh.faces, dtype=np.int64)


# ── Dome mesh ───────────────────────────────────────────────────────────

def dome_mesh(polygon, height: float, base_y: float = 0.0,
              n_lat: int = 8, n_lon: int = 16):
    """Half sphere fitted to the footprint's bounding box.

    Horizontal radius is half the bounding-box width, the vertical
    radius is *height*.  Only circular domes are supported.
    """
    minx, miny, maxx, maxy = polygon.bounds
    cx = (minx + maxx) / 2
    cy = (miny + maxy) / 2
    radius = (maxx - minx) / 2

    verts = []
    faces = []

    # Rings from equator (phi=0) to just below pole
    for i in range(n_lat):
        phi = (math.pi / 2) * i / n_lat
        cos_phi = math.cos(phi)
        sin_phi = math.sin(phi)
        for j in range(n_lon):
            theta = 2 * math.pi * j / n_lon
            x = cx + radius * cos_phi * math.cos(theta)
            y = base_y + height * sin_phi
            z = -(cy + radius * cos_phi * math.sin(theta))
            verts.append([x, y, z])

    # Pole vertex (single apex point)
    pole_idx = len(verts)
    verts.append([cx, base_y + height, -cy])

    # Quad faces between adjacent rings, wound outward
    for i in range(n_lat - 1):
        for j in range(n_lon):
            j_next = (j + 1) % n_lon
            v0 = i * n_lon + j
            v1 = i * n_lon + j_next
            v2 = (i + 1) * n_lon + j
            v3 = (i + 1) * n_lon + j_next
            faces.append([v0, v1, v2])
            faces.append([v1, v3, v2])

    # Triangle fan connecting top ring to pole
    last_ring = (n_lat - 1) * n_lon
    for j in range(n_lon):
        j_next = (j + 1) % n_lon
        faces.append([last_ring + j, last_ring + j_next, pole_idx])

    return np.array(verts, dtype=np.float64), np.array(faces, dtype=np.int64)


# ── Footprint → Building3D ──────────────────────────────────────────────

def footprint_to_buildings(feature_id: str, plane_geom,
                           attrs: BuildingAttributes) -> list:
    """Convert a plane footprint into Building3D solids.

    A resolved height of exactly 0 means the footprint is replaced by
    its parts and yields nothing.  Multipolygons yield one solid per
    member polygon.
    """
    if attrs.height == 0:
        logger.debug(f"Skipping {feature_id}: zero height")
        return []

    if isinstance(plane_geom, MultiPolygon):
        polygons = list(plane_geom.geoms)
    else:
        polygons = [plane_geom]

    buildings = []
    for poly in polygons:
        poly = orient(poly, sign=1.0)  # CCW exterior
        height = attrs.height if attrs.height is not None else estimate_height(poly)
        if height <= attrs.min_height:
            logger.warning(f"Skipping {feature_id}: height {height:.1f}m "
                           f"not above min_height {attrs.min_height:.1f}m")
            continue

        if attrs.shape == BuildingShape.dome:
            verts, faces = dome_mesh(poly, height - attrs.min_height,
                                     base_y=attrs.min_height)
        else:
            verts, faces = extrude_watertight(poly, height - attrs.min_height,
                                              base_y=attrs.min_height)
        if len(faces) == 0:
            continue

        buildings.append(Building3D(
            feature_id=feature_id,
            outline=[tuple(c) for c in poly.exterior.coords[:-1]],
            holes=[[tuple(c) for c in interior.coords[:-1]]
                   for interior in poly.interiors],
            height_m=height,
            min_height_m=attrs.min_height,
            color=attrs.color,
            shape=attrs.shape,
            vertices=verts,
            faces=faces,
        ))
    return buildings
