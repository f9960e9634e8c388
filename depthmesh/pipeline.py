import logging
from typing import Optional

import numpy as np

from . import depth_map as dm
from .depth_map import DepthMap
from .depth_provider import DepthProvider, SimulatedDepthProvider
from .mesh_generator import Mesh, reconstruct
from .settings import ViewerSettings

logger = logging.getLogger(__name__)


class PerspectivePipeline:
    """
    Image -> depth map -> displaced grid mesh.

    The depth provider is simulated by default; any object with an
    `estimate(image_ref) -> DepthMap` method can replace it.
    """

    def __init__(self, settings: Optional[ViewerSettings] = None,
                 provider: Optional[DepthProvider] = None):
        self.settings = settings or ViewerSettings()
        self.provider = provider or SimulatedDepthProvider.for_quality(self.settings.depth_model_quality)

    def estimate_depth(self, image_ref) -> DepthMap:
        return self.provider.estimate(image_ref)

    def prepare_depth(self, depth: DepthMap, smooth_iterations: int = 0) -> DepthMap:
        """Validate and normalize a depth map, optionally smoothing it afterwards."""
        if not dm.validate(depth):
            raise ValueError("Invalid depth map")

        # Providers may return any object with the DepthMap fields
        if not isinstance(depth, DepthMap):
            depth = DepthMap(
                width=int(depth.width),
                height=int(depth.height),
                data=np.asarray(depth.data, dtype=np.float64),
                min_depth=float(getattr(depth, "min_depth", 0.0)),
                max_depth=float(getattr(depth, "max_depth", 1.0)),
            )

        depth = dm.normalize(depth)
        if smooth_iterations > 0:
            logger.info(f"Smoothing depth map ({smooth_iterations} iterations)...")
            depth = dm.smooth(depth, smooth_iterations)
        return depth

    def generate(self, image_ref, smooth_iterations: int = 0) -> Mesh:
        """
        Full pipeline: image reference -> depth -> mesh.

        Args:
            image_ref: Opaque image reference (path, URI, handle), used as the texture reference
            smooth_iterations: Box-blur passes applied to the normalized depth
        """
        depth = self.estimate_depth(image_ref)
        return self.generate_from_depth(image_ref, depth, smooth_iterations)

    def generate_from_depth(self, image_ref, depth: DepthMap, smooth_iterations: int = 0) -> Mesh:
        depth = self.prepare_depth(depth, smooth_iterations)
        mesh = reconstruct(image_ref, depth)
        logger.info("3D mesh generated successfully!")
        return mesh


# Create singleton instance
pipeline = PerspectivePipeline()
