"""
Model Exporter
Serializes a Mesh to JSON, Wavefront OBJ or glTF 2.0 text.
Binary formats (.glb, .ply, .stl) are written through trimesh.
"""
import base64
import json
import logging
import os

import numpy as np

from .mesh_generator import Mesh, MeshType, to_trimesh

logger = logging.getLogger(__name__)

GENERATOR = "depthmesh"

TEXT_FORMATS = ("json", "obj", "gltf")

# glTF constants
_FLOAT = 5126
_UNSIGNED_INT = 5125
_ARRAY_BUFFER = 34962
_ELEMENT_ARRAY_BUFFER = 34963
_TRIANGLES = 4


def export(mesh: Mesh, format: str = "json") -> str:
    """
    Serialize a mesh. Unknown formats fall back to JSON.

    Args:
        mesh: Mesh to export
        format: 'json', 'obj' or 'gltf' (case-insensitive)
    """
    fmt = str(format).lower()
    logger.info(f"Exporting model as {fmt.upper()}")

    if fmt == "obj":
        return export_obj(mesh)
    if fmt == "gltf":
        return export_gltf(mesh)
    if fmt != "json":
        logger.warning(f"Unknown export format '{format}', falling back to JSON")
    return export_json(mesh)


def _texture_reference(mesh: Mesh):
    ref = mesh.texture_reference
    if ref is None or isinstance(ref, (str, int, float, bool)):
        return ref
    return str(ref)


def export_json(mesh: Mesh) -> str:
    payload = {
        "type": MeshType(mesh.type).value,
        "vertices": np.asarray(mesh.vertices, dtype=np.float64).tolist(),
        "indices": np.asarray(mesh.indices, dtype=np.int64).tolist(),
        "normals": np.asarray(mesh.normals, dtype=np.float64).tolist(),
        "uvs": np.asarray(mesh.uvs, dtype=np.float64).tolist(),
        "texture_reference": _texture_reference(mesh),
    }
    return json.dumps(payload, indent=2)


def from_json(text: str) -> Mesh:
    """Rebuild a Mesh from export_json output."""
    payload = json.loads(text)
    return Mesh(
        type=MeshType(payload["type"]),
        vertices=np.array(payload["vertices"], dtype=np.float64),
        indices=np.array(payload["indices"], dtype=np.int64),
        normals=np.array(payload["normals"], dtype=np.float64),
        uvs=np.array(payload["uvs"], dtype=np.float64),
        texture_reference=payload.get("texture_reference"),
    )


def export_obj(mesh: Mesh) -> str:
    vertices = np.asarray(mesh.vertices, dtype=np.float64).reshape(-1, 3).tolist()
    uvs = np.asarray(mesh.uvs, dtype=np.float64).reshape(-1, 2).tolist()
    faces = (np.asarray(mesh.indices, dtype=np.int64).reshape(-1, 3) + 1).tolist()

    lines = ["# 3D Model Export", f"# Generated by {GENERATOR}", ""]
    lines.extend(f"v {x} {y} {z}" for x, y, z in vertices)
    lines.extend(f"vt {u} {v}" for u, v in uvs)

    # UVs are aligned with vertices, so both share one index
    lines.extend(["", "# Faces"])
    lines.extend(f"f {a}/{a} {b}/{b} {c}/{c}" for a, b, c in faces)
    return "\n".join(lines) + "\n"


def export_gltf(mesh: Mesh) -> str:
    """
    glTF 2.0 document with one embedded buffer.
    Accessor slots: POSITION=0, TEXCOORD_0=1, NORMAL=2, indices=3.
    """
    positions = np.asarray(mesh.vertices, dtype=np.float32).reshape(-1, 3)
    uvs = np.asarray(mesh.uvs, dtype=np.float32).reshape(-1, 2)
    normals = np.asarray(mesh.normals, dtype=np.float32).reshape(-1, 3)
    indices = np.asarray(mesh.indices, dtype=np.uint32)

    # Every chunk is a multiple of 4 bytes, so offsets stay aligned
    chunks = [positions.tobytes(), uvs.tobytes(), normals.tobytes(), indices.tobytes()]
    buffer_views = []
    offset = 0
    for n, chunk in enumerate(chunks):
        view = {
            "buffer": 0,
            "byteOffset": offset,
            "byteLength": len(chunk),
            "target": _ELEMENT_ARRAY_BUFFER if n == 3 else _ARRAY_BUFFER,
        }
        buffer_views.append(view)
        offset += len(chunk)
    blob = b"".join(chunks)

    position_accessor = {
        "bufferView": 0,
        "componentType": _FLOAT,
        "count": len(positions),
        "type": "VEC3",
    }
    if len(positions):
        position_accessor["min"] = positions.min(axis=0).tolist()
        position_accessor["max"] = positions.max(axis=0).tolist()

    accessors = [
        position_accessor,
        {"bufferView": 1, "componentType": _FLOAT, "count": len(uvs), "type": "VEC2"},
        {"bufferView": 2, "componentType": _FLOAT, "count": len(normals), "type": "VEC3"},
        {"bufferView": 3, "componentType": _UNSIGNED_INT, "count": len(indices), "type": "SCALAR"},
    ]

    gltf = {
        "asset": {"version": "2.0", "generator": GENERATOR},
        "scene": 0,
        "scenes": [{"nodes": [0]}],
        "nodes": [{"mesh": 0}],
        "meshes": [
            {
                "primitives": [
                    {
                        "attributes": {"POSITION": 0, "TEXCOORD_0": 1, "NORMAL": 2},
                        "indices": 3,
                        "mode": _TRIANGLES,
                    }
                ]
            }
        ],
        "accessors": accessors,
        "bufferViews": buffer_views,
        "buffers": [
            {
                "byteLength": len(blob),
                "uri": "data:application/octet-stream;base64," + base64.b64encode(blob).decode("ascii"),
            }
        ],
    }
    texture = _texture_reference(mesh)
    if texture is not None:
        gltf["extras"] = {"textureReference": texture}
    return json.dumps(gltf, indent=2)


def save(mesh: Mesh, path: str) -> str:
    """
    Write the mesh to `path`, picking the format from the file suffix.
    Text formats use export(); anything else is delegated to trimesh.
    """
    suffix = os.path.splitext(path)[1].lower().lstrip(".")
    if suffix in TEXT_FORMATS:
        with open(path, "w", encoding="utf-8") as f:
            f.write(export(mesh, suffix))
    else:
        logger.info(f"Exporting model as {suffix.upper()} via trimesh")
        to_trimesh(mesh).export(path)
    return path
