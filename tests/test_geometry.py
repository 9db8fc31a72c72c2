"""Tests for plane transforms and footprint solids."""

import numpy as np
import pytest
import trimesh
from shapely.geometry import LineString, MultiPolygon, Polygon, box

from citytiles.geometry import (dome_mesh, estimate_height, extrude_watertight,
                                footprint_to_buildings, transform_geometry)
from citytiles.models import BuildingShape
from citytiles.tags import building_attributes

from conftest import rect_geo


def _attrs(**tags):
    return building_attributes({'building': 'yes', **tags})


# ---------------------------------------------------------------------------
# transform_geometry
# ---------------------------------------------------------------------------


def test_transform_polygon_to_plane(projection):
    geom = transform_geometry(rect_geo(0, 0, 20, 10), projection)
    assert geom.bounds == pytest.approx((0, 0, 20, 10), abs=1e-6)
    assert geom.area == pytest.approx(200, rel=1e-6)


def test_transform_keeps_holes(projection):
    geom = transform_geometry(rect_geo(0, 0, 20, 20, holes=[(5, 5, 15, 15)]), projection)
    assert len(geom.interiors) == 1
    assert geom.area == pytest.approx(300, rel=1e-6)


def test_transform_rejects_lines(projection):
    assert transform_geometry(LineString([(13.41, 52.52), (13.42, 52.53)]), projection) is None


def test_transform_multipolygon(projection):
    multi = MultiPolygon([rect_geo(0, 0, 10, 10), rect_geo(20, 0, 30, 10)])
    geom = transform_geometry(multi, projection)
    assert geom.geom_type == 'MultiPolygon'
    assert len(geom.geoms) == 2


# ---------------------------------------------------------------------------
# Extrusion and domes
# ---------------------------------------------------------------------------


def test_estimate_height():
    assert estimate_height(box(0, 0, 10, 10)) == 6
    assert estimate_height(box(0, 0, 1, 1)) == pytest.approx(0.8)


def test_extrusion_is_y_up_and_north_is_minus_z():
    verts, faces = extrude_watertight(box(0, 10, 10, 20), 12.0, base_y=0.0)
    assert verts[:, 1].min() == pytest.approx(0)
    assert verts[:, 1].max() == pytest.approx(12)
    assert verts[:, 2].min() == pytest.approx(-20)
    assert verts[:, 2].max() == pytest.approx(-10)

    mesh = trimesh.Trimesh(vertices=verts, faces=faces)
    assert mesh.is_watertight
    assert mesh.volume == pytest.approx(1200)


def test_extrusion_subtracts_holes():
    poly = Polygon([(0, 0), (10, 0), (10, 10), (0, 10)],
                   [[(4, 4), (6, 4), (6, 6), (4, 6)]])
    verts, faces = extrude_watertight(poly, 5.0)
    mesh = trimesh.Trimesh(vertices=verts, faces=faces)
    assert mesh.volume == pytest.approx((100 - 4) * 5)


def test_extrusion_translated_by_base():
    verts, _ = extrude_watertight(box(0, 0, 10, 10), 8.0, base_y=4.0)
    assert verts[:, 1].min() == pytest.approx(4)
    assert verts[:, 1].max() == pytest.approx(12)


def test_dome_fits_bbox():
    verts, faces = dome_mesh(box(0, 0, 20, 20), 7.0, base_y=10.0)
    assert verts[:, 1].min() == pytest.approx(10)
    assert verts[:, 1].max() == pytest.approx(17)
    assert verts[:, 0].min() == pytest.approx(0)
    assert verts[:, 0].max() == pytest.approx(20)
    assert faces.max() < len(verts)


def test_dome_faces_point_outward():
    verts, faces = dome_mesh(box(-10, -10, 10, 10), 10.0)
    mesh = trimesh.Trimesh(vertices=verts, faces=faces, process=False)
    centers = mesh.triangles_center - np.array([0.0, 0.0, 0.0])
    assert (np.einsum('ij,ij->i', mesh.face_normals, centers) > 0).all()


# ---------------------------------------------------------------------------
# footprint_to_buildings
# ---------------------------------------------------------------------------


def test_building_from_tags():
    [building] = footprint_to_buildings('way/1', box(0, 0, 10, 10),
                                        _attrs(height='12', min_height='3'))
    assert building.height_m == 12
    assert building.min_height_m == 3
    assert building.shape == BuildingShape.extruded
    assert building.vertices[:, 1].max() == pytest.approx(12)
    assert building.vertices[:, 1].min() == pytest.approx(3)
    assert len(building.outline) == 4


def test_zero_height_yields_nothing():
    assert footprint_to_buildings('way/1', box(0, 0, 10, 10), _attrs(height='0')) == []


def test_unknown_height_uses_perimeter_fallback():
    [building] = footprint_to_buildings('way/1', box(0, 0, 2, 3), _attrs())
    assert building.height_m == pytest.approx(2.0)


def test_height_below_min_height_is_skipped():
    assert footprint_to_buildings('way/1', box(0, 0, 10, 10),
                                  _attrs(height='5', min_height='8')) == []


def test_dome_building():
    [building] = footprint_to_buildings('way/1', box(0, 0, 10, 10),
                                        _attrs(height='20', min_height='15',
                                               **{'roof:shape': 'dome'}))
    assert building.shape == BuildingShape.dome
    assert building.vertices[:, 1].max() == pytest.approx(20)


def test_multipolygon_yields_one_building_per_member():
    multi = MultiPolygon([box(0, 0, 10, 10), box(20, 0, 30, 10)])
    buildings = footprint_to_buildings('relation/7', multi, _attrs(height='9'))
    assert [b.feature_id for b in buildings] == ['relation/7', 'relation/7']


def test_holes_are_reported():
    poly = Polygon([(0, 0), (10, 0), (10, 10), (0, 10)],
                   [[(4, 4), (6, 4), (6, 6), (4, 6)]])
    [building] = footprint_to_buildings('way/1', poly, _attrs(height='9'))
    assert len(building.holes) == 1
