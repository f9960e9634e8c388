import numpy as np
import pytest

from depthmesh import depth_map as dm
from depthmesh.depth_map import DepthMap
from depthmesh.depth_provider import SimulatedDepthProvider
from depthmesh.pipeline import PerspectivePipeline
from depthmesh.settings import ViewerSettings


def test_simulated_depth_is_radial():
    provider = SimulatedDepthProvider(width=8, height=6, max_depth=10.0)
    m = provider.estimate("photo.jpg")
    assert dm.validate(m)
    assert (m.min_depth, m.max_depth) == (0.0, 10.0)
    grid = m.as_grid()
    # centre pixel is the closest, corners the farthest
    assert grid[3, 4] == pytest.approx(10.0)
    assert grid[0, 0] == pytest.approx(0.0)
    assert grid.max() == grid[3, 4]


def test_provider_for_quality():
    provider = SimulatedDepthProvider.for_quality("low")
    assert (provider.width, provider.height) == (160, 120)


def test_provider_rejects_empty_size():
    with pytest.raises(ValueError):
        SimulatedDepthProvider(width=0, height=10)


def test_pipeline_uses_settings_resolution():
    pipe = PerspectivePipeline(ViewerSettings(depth_model_quality="low"))
    mesh = pipe.generate("photo.jpg")
    assert mesh.vertex_count == 160 * 120
    assert mesh.triangle_count == 159 * 119 * 2
    assert mesh.texture_reference == "photo.jpg"
    z = mesh.vertices.reshape(-1, 3)[:, 2]
    assert z.min() >= -1.0 and z.max() <= 1.0


def test_pipeline_with_custom_provider():
    class Constant:
        def estimate(self, image_ref):
            return DepthMap(width=4, height=4, data=[7.0] * 16, min_depth=7.0, max_depth=7.0)

    mesh = PerspectivePipeline(provider=Constant()).generate("img")
    # flat field becomes 0.5 -> z = 0
    np.testing.assert_allclose(mesh.vertices.reshape(-1, 3)[:, 2], 0.0)


def test_pipeline_rejects_invalid_depth():
    class Broken:
        def estimate(self, image_ref):
            return DepthMap(width=3, height=3, data=[1.0, 2.0])

    with pytest.raises(ValueError, match="Invalid depth map"):
        PerspectivePipeline(provider=Broken()).generate("img")


def test_pipeline_smoothing_keeps_shape():
    pipe = PerspectivePipeline(provider=SimulatedDepthProvider(width=10, height=10))
    smoothed = pipe.generate("img", smooth_iterations=2)
    raw = pipe.generate("img")
    assert smoothed.vertex_count == raw.vertex_count
    assert not np.allclose(smoothed.vertices, raw.vertices)


def test_pipeline_accepts_duck_typed_depth():
    from types import SimpleNamespace

    class Plain:
        def estimate(self, image_ref):
            return SimpleNamespace(width=2, height=2, data=[0.0, 2.0, 2.0, 4.0],
                                   min_depth=0.0, max_depth=4.0)

    mesh = PerspectivePipeline(provider=Plain()).generate("img")
    assert mesh.vertex_count == 4
    z = mesh.vertices.reshape(-1, 3)[:, 2]
    np.testing.assert_allclose(z, [-1.0, 0.0, 0.0, 1.0])
