import logging
from typing import Protocol

import numpy as np

from .depth_map import DepthMap
from .settings import DEPTH_RESOLUTIONS, Quality

logger = logging.getLogger(__name__)


class DepthProvider(Protocol):
    def estimate(self, image_ref) -> DepthMap: ...


class SimulatedDepthProvider:
    """
    Stand-in for a depth estimation model.
    Produces a radial gradient that is deepest at the image centre, so the
    rest of the pipeline can run without any ML dependency.
    """

    def __init__(self, width: int = 640, height: int = 480, max_depth: float = 10.0):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid depth map size {width}x{height}")
        self.width = width
        self.height = height
        self.max_depth = max_depth

    @classmethod
    def for_quality(cls, quality, max_depth: float = 10.0) -> "SimulatedDepthProvider":
        width, height = DEPTH_RESOLUTIONS[Quality(quality)]
        return cls(width=width, height=height, max_depth=max_depth)

    def estimate(self, image_ref) -> DepthMap:
        """Generate a depth map for `image_ref`. The reference itself is never read."""
        logger.info(f"Estimating depth for {image_ref} at {self.width}x{self.height}...")

        center_x = self.width / 2
        center_y = self.height / 2
        xx, yy = np.meshgrid(np.arange(self.width), np.arange(self.height))

        distance = np.sqrt((xx - center_x) ** 2 + (yy - center_y) ** 2)
        max_distance = np.sqrt(center_x ** 2 + center_y ** 2)

        # Closer at the centre
        depth = (1 - distance / max_distance) * self.max_depth

        return DepthMap(
            width=self.width,
            height=self.height,
            data=depth.reshape(-1),
            min_depth=0.0,
            max_depth=self.max_depth,
        )
