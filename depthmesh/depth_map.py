import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

import numpy as np
from PIL import Image
import scipy.ndimage as ndimage

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class DepthMap:
    """
    A width x height grid of depth values stored row-major in `data`.

    `data[y * width + x]` is the depth at pixel (x, y). Values are not necessarily
    inside [min_depth, max_depth] until the map has been normalized.
    """
    width: int
    height: int
    data: np.ndarray
    min_depth: float = 0.0
    max_depth: float = 1.0

    def __post_init__(self):
        # Keep the raw object when it is not array-like so validate() can reject it
        if isinstance(self.data, (list, tuple, np.ndarray)):
            arr = np.array(self.data, dtype=np.float64).reshape(-1)
            arr.setflags(write=False)
            object.__setattr__(self, "data", arr)

    @classmethod
    def from_grid(cls, grid, min_depth=None, max_depth=None) -> "DepthMap":
        """Build a depth map from a (height, width) array, bounds default to the data range."""
        grid = np.asarray(grid, dtype=np.float64)
        if grid.ndim != 2:
            raise ValueError(f"Expected a 2D depth grid, got shape {grid.shape}")
        height, width = grid.shape
        lo = float(grid.min()) if min_depth is None else float(min_depth)
        hi = float(grid.max()) if max_depth is None else float(max_depth)
        return cls(width=width, height=height, data=grid.reshape(-1), min_depth=lo, max_depth=hi)

    def as_grid(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width)


@dataclass(frozen=True)
class DepthStats:
    min: float
    max: float
    average: float
    standard_deviation: float
    point_count: int
    width: int
    height: int


def validate(depth_map) -> bool:
    """Structural check of a depth map. Returns False instead of raising."""
    if depth_map is None:
        return False
    data = getattr(depth_map, "data", None)
    if isinstance(data, np.ndarray):
        if data.ndim != 1:
            return False
    elif not isinstance(data, Sequence) or isinstance(data, (str, bytes)):
        return False
    width = getattr(depth_map, "width", 0)
    height = getattr(depth_map, "height", 0)
    try:
        if width <= 0 or height <= 0:
            return False
    except TypeError:
        return False
    if len(data) != width * height:
        return False
    return True


def normalize(depth_map: DepthMap) -> DepthMap:
    """
    Rescale depth values to [0, 1] using the declared bounds.

    A flat depth field (min_depth == max_depth) becomes a mid-gray plane of 0.5.
    """
    depth_range = depth_map.max_depth - depth_map.min_depth
    if depth_range == 0:
        data = np.full(depth_map.data.shape, 0.5)
    else:
        data = (depth_map.data - depth_map.min_depth) / depth_range
    return replace(depth_map, data=data, min_depth=0.0, max_depth=1.0)


def depth_stats(depth_map: DepthMap) -> DepthStats:
    data = depth_map.data
    return DepthStats(
        min=depth_map.min_depth,
        max=depth_map.max_depth,
        average=float(data.mean()),
        standard_deviation=float(data.std()),
        point_count=int(data.size),
        width=depth_map.width,
        height=depth_map.height,
    )


def resample(depth_map: DepthMap, width: int, height: int) -> DepthMap:
    """Bilinear resize of the depth grid. Declared bounds are kept."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid target size {width}x{height}")
    if (width, height) == (depth_map.width, depth_map.height):
        return depth_map

    grid = depth_map.as_grid().astype(np.float32)
    resized = Image.fromarray(grid).resize((width, height), Image.BILINEAR)
    logger.debug(f"Resampled depth map {depth_map.width}x{depth_map.height} -> {width}x{height}")
    return replace(depth_map, width=width, height=height, data=np.array(resized, dtype=np.float64))


def smooth(depth_map: DepthMap, iterations: int = 1) -> DepthMap:
    """Apply a 3x3 box blur with reflected borders."""
    if iterations <= 0:
        return depth_map

    grid = depth_map.as_grid()
    for _ in range(iterations):
        grid = ndimage.uniform_filter(grid, size=3, mode="reflect")
    return replace(depth_map, data=grid)


def to_image(depth_map: DepthMap) -> Image.Image:
    """Render the depth map as an 8-bit grayscale image (larger depth is brighter)."""
    grid = normalize(depth_map).as_grid()
    pixels = (np.clip(grid, 0.0, 1.0) * 255.0).round().astype(np.uint8)
    return Image.fromarray(pixels)


def from_image(image: Image.Image, max_depth: float = 1.0) -> DepthMap:
    """
    Read a grayscale depth image, mapping 0..255 to 0..max_depth.

    Args:
        image: Any PIL image, converted to 8-bit grayscale first
        max_depth: Depth assigned to a white pixel
    """
    if image.mode != "L":
        image = image.convert("L")
    grid = np.asarray(image, dtype=np.float64) / 255.0 * max_depth
    return DepthMap.from_grid(grid, min_depth=0.0, max_depth=max_depth)
