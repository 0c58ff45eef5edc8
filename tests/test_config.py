"""
Tests for the Config Manager
============================
"""

import logging
import math
import os

import pytest

from galaxy_control.modules.utils.config import Config, config_value, default_config_path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "camera:\n"
        "  device_id: 2\n"
        "  width: 320\n"
        "  height: 240\n"
        "  fps: 30\n"
        "detector:\n"
        "  delegate: GPU\n"
        "controller:\n"
        "  rotation_alpha: 0.1\n"
        "  zoom_far: 12\n"
        "display:\n"
        "  refresh_hz: 60\n"
    )
    return path


class TestConfig:
    """Test suite for Config loading and access."""

    def test_singleton(self):
        assert Config() is Config()

    def test_load_and_dot_access(self, config_file):
        config = Config().load(str(config_file))

        assert config.get("camera.device_id") == 2
        assert config.get("controller.rotation_alpha") == 0.1
        assert config.get("controller.missing", "fallback") == "fallback"
        assert config.get("nothing.here") is None

    def test_sections(self, config_file):
        config = Config().load(str(config_file))

        assert config.camera["width"] == 320
        assert config.detector["delegate"] == "GPU"
        assert config.galaxy == {}
        assert config.logging == {}

    def test_missing_file_uses_defaults(self, tmp_path):
        config = Config().load(str(tmp_path / "absent.yaml"))

        assert config.camera == {}
        assert config.get("display.refresh_hz", 60) == 60

    def test_int_accepted_for_float(self, config_file):
        config = Config().load(str(config_file))
        assert not any("zoom_far" in w for w in config.validate())

    def test_validation_warnings(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "camera:\n"
            "  device_id: front\n"
            "controller: 3\n"
            "display:\n"
            "  refresh_hz: true\n"
        )
        config = Config().load(str(path))

        warnings = config.validate()

        assert any("camera.device_id" in w for w in warnings)
        assert any("Section 'controller'" in w for w in warnings)
        assert any("display.refresh_hz" in w for w in warnings)
        assert any("Missing config section: 'detector'" in w for w in warnings)

    def test_out_of_range(self, tmp_path):
        path = tmp_path / "range.yaml"
        path.write_text(
            "controller:\n"
            "  rotation_alpha: 1.5\n"
            "  pinch_min: 0.1\n"
            "  pinch_max: 0.1\n"
        )
        problems = Config().load(str(path)).validate()

        assert any("controller.rotation_alpha" in p and "above" in p for p in problems)
        assert any("pinch zoom is disabled" in p for p in problems)

    def test_update_merges_nested(self, config_file):
        config = Config().load(str(config_file))

        config.update({"camera": {"device_id": 5}, "logging": {"level": "DEBUG"}})

        assert config.get("camera.device_id") == 5
        assert config.get("camera.width") == 320
        assert config.get("logging.level") == "DEBUG"

    def test_reset(self, config_file):
        Config().load(str(config_file))
        Config.reset()

        assert Config().get("camera.device_id") is None


class TestConfigValue:
    """Test suite for reading one setting with a fallback."""

    def test_missing_or_null_gives_default(self):
        assert config_value({}, "controller", "rotation_alpha", 0.05) == 0.05
        assert config_value({"rotation_alpha": None}, "controller", "rotation_alpha", 0.05) == 0.05

    def test_converts_to_rule_type(self):
        assert config_value({"zoom_far": 12}, "controller", "zoom_far", 11.0) == 12.0
        assert config_value({"count": "100"}, "galaxy", "count", 8000) == 100

    def test_unconvertible_value_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            value = config_value({"width": "wide"}, "camera", "width", 640)

        assert value == 640
        assert "camera.width" in caplog.text

    def test_out_of_bounds_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            value = config_value({"fov_deg": 240}, "display", "fov_deg", 60.0)

        assert value == 60.0
        assert "above" in caplog.text

    def test_bool_is_not_a_number(self):
        assert config_value({"device_id": True}, "camera", "device_id", 0) == 0
        assert config_value({"threaded": "no"}, "camera", "threaded", True) is True
        assert config_value({"threaded": False}, "camera", "threaded", True) is False

    def test_non_finite_rejected(self):
        assert config_value({"spin": float("inf")}, "galaxy", "spin", 1.0) == 1.0


class TestShippedConfig:
    """The config.yaml in the repository."""

    def test_loads_without_warnings(self):
        config = Config().load()
        assert config.validate() == []

    def test_working_directory_config_preferred(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("camera:\n  device_id: 4\n")
        monkeypatch.chdir(tmp_path)

        config = Config().load()

        assert config.path == os.path.join(str(tmp_path), "config", "config.yaml")
        assert config.get("camera.device_id") == 4

    def test_source_checkout_fallback(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        path = default_config_path()

        assert os.path.isfile(path)
        assert path.endswith(os.path.join("config", "config.yaml"))

    def test_controller_tuning(self):
        config = Config().load()
        ctrl = config.controller

        assert ctrl["rotation_alpha"] == 0.05
        assert ctrl["zoom_alpha"] == 0.1
        assert ctrl["initial_polar"] == pytest.approx(math.pi / 3)
        assert config.get("display.refresh_hz") == 60


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
