"""
Viewer Settings
Statically enumerated configuration for the perspective viewer.

Settings can be overridden through environment variables:

    DEPTHMESH_CAMERA_RESOLUTION   low | medium | high
    DEPTHMESH_DEPTH_QUALITY       low | medium | high
    DEPTHMESH_HEAD_TRACKING       true | false
    DEPTHMESH_AUTO_PLAY           true | false
    DEPTHMESH_SHOW_FPS            true | false
"""
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Optional


class Quality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Depth grid size (width, height) per model quality
DEPTH_RESOLUTIONS = {
    Quality.LOW: (160, 120),
    Quality.MEDIUM: (320, 240),
    Quality.HIGH: (640, 480),
}

# Camera capture size (width, height) per resolution setting
CAMERA_RESOLUTIONS = {
    Quality.LOW: (640, 480),
    Quality.MEDIUM: (1280, 720),
    Quality.HIGH: (1920, 1080),
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_quality(name: str, value: str) -> Quality:
    try:
        return Quality(value.strip().lower())
    except ValueError:
        choices = ", ".join(q.value for q in Quality)
        raise ValueError(f"{name} must be one of {choices}, got {value!r}") from None


@dataclass(frozen=True)
class ViewerSettings:
    camera_resolution: Quality = Quality.HIGH
    depth_model_quality: Quality = Quality.MEDIUM
    head_tracking_enabled: bool = True
    auto_play: bool = True
    show_fps: bool = False

    def __post_init__(self):
        # Accept plain strings for the enum fields
        for name in ("camera_resolution", "depth_model_quality"):
            value = getattr(self, name)
            if not isinstance(value, Quality):
                object.__setattr__(self, name, _parse_quality(name, str(value)))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ViewerSettings":
        """Build settings from DEPTHMESH_* environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        kwargs = {}
        if "DEPTHMESH_CAMERA_RESOLUTION" in env:
            kwargs["camera_resolution"] = _parse_quality("DEPTHMESH_CAMERA_RESOLUTION", env["DEPTHMESH_CAMERA_RESOLUTION"])
        if "DEPTHMESH_DEPTH_QUALITY" in env:
            kwargs["depth_model_quality"] = _parse_quality("DEPTHMESH_DEPTH_QUALITY", env["DEPTHMESH_DEPTH_QUALITY"])
        if "DEPTHMESH_HEAD_TRACKING" in env:
            kwargs["head_tracking_enabled"] = _parse_bool("DEPTHMESH_HEAD_TRACKING", env["DEPTHMESH_HEAD_TRACKING"])
        if "DEPTHMESH_AUTO_PLAY" in env:
            kwargs["auto_play"] = _parse_bool("DEPTHMESH_AUTO_PLAY", env["DEPTHMESH_AUTO_PLAY"])
        if "DEPTHMESH_SHOW_FPS" in env:
            kwargs["show_fps"] = _parse_bool("DEPTHMESH_SHOW_FPS", env["DEPTHMESH_SHOW_FPS"])
        return cls(**kwargs)

    def updated(self, **changes) -> "ViewerSettings":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @property
    def depth_resolution(self):
        return DEPTH_RESOLUTIONS[self.depth_model_quality]

    @property
    def camera_size(self):
        return CAMERA_RESOLUTIONS[self.camera_resolution]
