import numpy as np
import pytest

from depthmesh.depth_map import DepthMap


@pytest.fixture
def flat_map():
    """4x4 plane at half depth."""
    return DepthMap(width=4, height=4, data=[0.5] * 16, min_depth=0.0, max_depth=1.0)


@pytest.fixture
def ramp_map():
    grid = np.arange(12, dtype=float).reshape(3, 4)
    return DepthMap.from_grid(grid, min_depth=0.0, max_depth=11.0)
