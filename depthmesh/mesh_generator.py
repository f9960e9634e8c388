import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
import trimesh

from .depth_map import DepthMap

logger = logging.getLogger(__name__)


class MeshType(str, Enum):
    MESH = "mesh"
    POINTCLOUD = "pointcloud"


@dataclass(frozen=True, eq=False)
class Mesh:
    """
    Flattened mesh buffers, ready to be handed to a renderer.

    vertices and normals hold xyz triples, uvs hold uv pairs, all aligned 1:1
    per vertex. indices is a triangle list.
    """
    type: MeshType
    vertices: np.ndarray
    indices: np.ndarray
    normals: np.ndarray
    uvs: np.ndarray
    texture_reference: object = None

    def __post_init__(self):
        # Own read-only copies of the buffers
        for name, dtype in (("vertices", np.float64), ("indices", np.int64),
                            ("normals", np.float64), ("uvs", np.float64)):
            arr = np.array(getattr(self, name), dtype=dtype).reshape(-1)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def vertex_count(self) -> int:
        return len(self.vertices) // 3

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


def generate_vertices(depth_map: DepthMap) -> np.ndarray:
    """
    Displace a plane along Z by the depth values.

    X spans [-aspect, aspect), Y is flipped so the image top is +Y, and
    depth / max_depth is remapped from [0, 1] to [-1, 1]. max_depth must be non-zero.
    """
    width, height = depth_map.width, depth_map.height
    aspect_ratio = width / height

    x = np.arange(width)
    y = np.arange(height)
    xx, yy = np.meshgrid(x, y)

    depth = depth_map.as_grid() / depth_map.max_depth

    pos_x = ((xx / width) * 2 - 1) * aspect_ratio
    pos_y = -((yy / height) * 2 - 1)
    pos_z = depth * 2 - 1

    # Row-major: y outer, x inner
    return np.stack([pos_x, pos_y, pos_z], axis=-1).reshape(-1)


def generate_indices(width: int, height: int) -> np.ndarray:
    """Two triangles per grid cell, (tl, bl, tr) and (tr, bl, br)."""
    i = np.arange(height - 1)
    j = np.arange(width - 1)
    ii, jj = np.meshgrid(i, j, indexing='ij')

    top_left = ii * width + jj
    top_right = top_left + 1
    bottom_left = top_left + width
    bottom_right = bottom_left + 1

    cells = np.stack([top_left, bottom_left, top_right,
                      top_right, bottom_left, bottom_right], axis=-1)
    return cells.reshape(-1).astype(np.int64)


def generate_normals(depth_map: DepthMap) -> np.ndarray:
    """
    Per-vertex normals from central differences of the raw depth grid.

    Neighbours outside the grid are clamped to the border pixel. The z component
    of the unnormalized normal is fixed at 2, so its length is never zero.
    """
    grid = depth_map.as_grid()
    padded = np.pad(grid, 1, mode='edge')

    left = padded[1:-1, :-2]
    right = padded[1:-1, 2:]
    up = padded[:-2, 1:-1]
    down = padded[2:, 1:-1]

    dx = right - left
    dy = down - up

    normals = np.stack([-dx, -dy, np.full_like(dx, 2.0)], axis=-1)
    normals /= np.linalg.norm(normals, axis=-1, keepdims=True)
    return normals.reshape(-1)


def generate_uvs(width: int, height: int) -> np.ndarray:
    """
    Texture coordinates with V flipped, (0, 1) at the top-left pixel.

    A single column or row has no extent to divide by, so its denominator is 1
    and the coordinate stays at 0 (u) or 1 (v).
    """
    u = np.arange(width) / max(width - 1, 1)
    v = 1 - np.arange(height) / max(height - 1, 1)
    uu, vv = np.meshgrid(u, v)
    return np.stack([uu, vv], axis=-1).reshape(-1)


def reconstruct(image_ref, depth_map: DepthMap) -> Mesh:
    """
    Build a textured grid mesh from a depth map.

    Args:
        image_ref: Opaque image reference, forwarded as the texture reference
        depth_map: A validated DepthMap instance (see depth_map.validate); duck-typed
            maps must be converted first, as PerspectivePipeline.prepare_depth does
    """
    logger.info(f"Reconstructing mesh from {depth_map.width}x{depth_map.height} depth map...")
    mesh = Mesh(
        type=MeshType.MESH,
        vertices=generate_vertices(depth_map),
        indices=generate_indices(depth_map.width, depth_map.height),
        normals=generate_normals(depth_map),
        uvs=generate_uvs(depth_map.width, depth_map.height),
        texture_reference=image_ref,
    )
    logger.info(f"Mesh ready: {mesh.vertex_count} vertices, {mesh.triangle_count} triangles")
    return mesh


def to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    """Wrap the buffers in a trimesh object without merging or reordering vertices."""
    vertices = np.array(mesh.vertices, dtype=np.float64).reshape(-1, 3)
    faces = np.array(mesh.indices, dtype=np.int64).reshape(-1, 3)
    normals = np.array(mesh.normals, dtype=np.float64).reshape(-1, 3)
    uvs = np.array(mesh.uvs, dtype=np.float64).reshape(-1, 2)

    return trimesh.Trimesh(
        vertices=vertices,
        faces=faces,
        vertex_normals=normals,
        visual=trimesh.visual.TextureVisuals(uv=uvs),
        process=False,
    )
