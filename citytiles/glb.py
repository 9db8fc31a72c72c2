"""GLB scene assembly from Building3D solids."""

import logging

import numpy as np
import trimesh
from PIL import ImageColor

from .constants import DEFAULT_COLOR
from .models import Building3D, PathManager

logger = logging.getLogger(__name__)


def parse_color(color: str) -> list:
    """CSS colour name or hex string to an RGBA list of floats."""
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        logger.debug(f"Unknown colour {color!r}, using {DEFAULT_COLOR}")
        rgb = ImageColor.getrgb(DEFAULT_COLOR)
    return [c / 255.0 for c in rgb[:3]] + [1.0]


class SceneCollector:
    """Collect buildings into one trimesh Scene."""

    def __init__(self):
        self.scene = trimesh.Scene()
        self.building_count = 0

    def __call__(self, building: Building3D) -> None:
        self.add_building(building)

    def add_building(self, building: Building3D) -> None:
        mesh = trimesh.Trimesh(vertices=np.asarray(building.vertices),
                               faces=np.asarray(building.faces),
                               process=False)
        material = trimesh.visual.material.PBRMaterial(
            baseColorFactor=parse_color(building.color),
            doubleSided=True,
        )
        mesh.visual = trimesh.visual.TextureVisuals(material=material)
        name = f"{building.feature_id}#{self.building_count}"
        self.scene.add_geometry(mesh, geom_name=name)
        self.building_count += 1

    def export(self, output_path: str) -> str:
        """Write the scene as GLB. Returns the absolute output path."""
        if self.building_count == 0:
            raise ValueError("No buildings to export")
        path = PathManager.get_output_path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.scene.export(str(path), file_type='glb')
        logger.info(f"GLB file generated successfully: {path} "
                    f"({self.building_count} buildings)")
        return str(path)
