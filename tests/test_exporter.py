import base64
import json

import numpy as np
import pytest

from depthmesh import exporter
from depthmesh.mesh_generator import MeshType, reconstruct


@pytest.fixture
def mesh(ramp_map):
    return reconstruct("photo.png", ramp_map)


def test_json_is_lossless(mesh):
    text = exporter.export(mesh, "json")
    payload = json.loads(text)
    assert payload["type"] == "mesh"
    assert payload["texture_reference"] == "photo.png"

    back = exporter.from_json(text)
    assert back.type == MeshType.MESH
    for name in ("vertices", "indices", "normals", "uvs"):
        np.testing.assert_array_equal(getattr(back, name), getattr(mesh, name))


def test_unknown_format_falls_back_to_json(mesh):
    assert exporter.export(mesh, "unknownformat") == exporter.export(mesh, "json")
    assert exporter.export(mesh) == exporter.export(mesh, "json")


def test_format_is_case_insensitive(mesh):
    assert exporter.export(mesh, "OBJ") == exporter.export(mesh, "obj")


def test_obj_lists_vertices_uvs_and_faces(mesh):
    lines = exporter.export(mesh, "obj").splitlines()
    v_lines = [l for l in lines if l.startswith("v ")]
    vt_lines = [l for l in lines if l.startswith("vt ")]
    f_lines = [l for l in lines if l.startswith("f ")]

    assert len(v_lines) == mesh.vertex_count
    assert len(vt_lines) == mesh.vertex_count
    assert len(f_lines) == mesh.triangle_count

    first = [float(t) for t in v_lines[0].split()[1:]]
    np.testing.assert_allclose(first, mesh.vertices[:3])
    first_uv = [float(t) for t in vt_lines[0].split()[1:]]
    np.testing.assert_allclose(first_uv, mesh.uvs[:2])
    # 1-based indices
    assert f_lines[0] == "f 1/1 5/5 2/2"


def test_gltf_structure(mesh):
    doc = json.loads(exporter.export(mesh, "gltf"))
    assert doc["asset"]["version"] == "2.0"
    primitive = doc["meshes"][0]["primitives"][0]
    assert primitive["attributes"] == {"POSITION": 0, "TEXCOORD_0": 1, "NORMAL": 2}
    assert primitive["indices"] == 3
    assert doc["scenes"][0]["nodes"] == [0]
    assert doc["nodes"][0]["mesh"] == 0


def test_gltf_buffers_hold_mesh_data(mesh):
    doc = json.loads(exporter.export(mesh, "gltf"))
    buffer = doc["buffers"][0]
    blob = base64.b64decode(buffer["uri"].split(",", 1)[1])
    assert len(blob) == buffer["byteLength"]

    def read(accessor_index, dtype):
        accessor = doc["accessors"][accessor_index]
        view = doc["bufferViews"][accessor["bufferView"]]
        chunk = blob[view["byteOffset"]:view["byteOffset"] + view["byteLength"]]
        return np.frombuffer(chunk, dtype=dtype)

    np.testing.assert_allclose(read(0, np.float32), mesh.vertices, rtol=1e-6, atol=1e-6)
    np.testing.assert_allclose(read(1, np.float32), mesh.uvs, rtol=1e-6, atol=1e-6)
    np.testing.assert_allclose(read(2, np.float32), mesh.normals, rtol=1e-6, atol=1e-6)
    np.testing.assert_array_equal(read(3, np.uint32), mesh.indices)

    position = doc["accessors"][0]
    assert position["count"] == mesh.vertex_count
    np.testing.assert_allclose(position["min"], mesh.vertices.reshape(-1, 3).min(axis=0), rtol=1e-6)


@pytest.mark.parametrize("suffix", ["json", "obj", "gltf"])
def test_save_text_formats(mesh, tmp_path, suffix):
    path = tmp_path / f"model.{suffix}"
    exporter.save(mesh, str(path))
    assert path.read_text(encoding="utf-8") == exporter.export(mesh, suffix)


def test_save_glb_via_trimesh(mesh, tmp_path):
    path = tmp_path / "model.glb"
    exporter.save(mesh, str(path))
    assert path.read_bytes()[:4] == b"glTF"
