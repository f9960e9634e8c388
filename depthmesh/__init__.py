from .depth_map import DepthMap, DepthStats, depth_stats, normalize, validate
from .depth_provider import SimulatedDepthProvider
from .exporter import export, save
from .mesh_generator import (
    Mesh,
    MeshType,
    generate_indices,
    generate_normals,
    generate_uvs,
    generate_vertices,
    reconstruct,
)
from .pipeline import PerspectivePipeline
from .settings import Quality, ViewerSettings

__all__ = [
    "DepthMap",
    "DepthStats",
    "Mesh",
    "MeshType",
    "PerspectivePipeline",
    "Quality",
    "SimulatedDepthProvider",
    "ViewerSettings",
    "depth_stats",
    "export",
    "generate_indices",
    "generate_normals",
    "generate_uvs",
    "generate_vertices",
    "normalize",
    "reconstruct",
    "save",
    "validate",
]
