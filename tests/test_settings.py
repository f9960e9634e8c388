import pytest

from depthmesh.settings import Quality, ViewerSettings


def test_defaults():
    s = ViewerSettings()
    assert s.camera_resolution is Quality.HIGH
    assert s.depth_model_quality is Quality.MEDIUM
    assert s.head_tracking_enabled and s.auto_play
    assert not s.show_fps
    assert s.depth_resolution == (320, 240)
    assert s.camera_size == (1920, 1080)


def test_strings_are_coerced():
    s = ViewerSettings(camera_resolution="low", depth_model_quality="HIGH")
    assert s.camera_resolution is Quality.LOW
    assert s.depth_model_quality is Quality.HIGH


def test_invalid_quality():
    with pytest.raises(ValueError):
        ViewerSettings(depth_model_quality="ultra")


def test_from_env():
    env = {
        "DEPTHMESH_CAMERA_RESOLUTION": "medium",
        "DEPTHMESH_DEPTH_QUALITY": "low",
        "DEPTHMESH_HEAD_TRACKING": "false",
        "DEPTHMESH_SHOW_FPS": "yes",
    }
    s = ViewerSettings.from_env(env)
    assert s.camera_resolution is Quality.MEDIUM
    assert s.depth_model_quality is Quality.LOW
    assert s.head_tracking_enabled is False
    assert s.show_fps is True
    assert s.auto_play is True


def test_from_env_rejects_bad_bool():
    with pytest.raises(ValueError):
        ViewerSettings.from_env({"DEPTHMESH_AUTO_PLAY": "maybe"})


def test_updated_returns_copy():
    s = ViewerSettings()
    t = s.updated(show_fps=True, depth_model_quality="high")
    assert t.show_fps and t.depth_model_quality is Quality.HIGH
    assert not s.show_fps
