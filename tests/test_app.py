"""
Tests for Application Wiring
============================
"""

import threading
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from galaxy_control import app as app_module
from galaxy_control.core.errors import DetectorUnavailable
from galaxy_control.core.events import EventBus, Events
from galaxy_control.core.types import TrackingStatus
from galaxy_control.modules.utils.config import Config


@pytest.fixture
def app():
    config = Config().load()
    config.update({
        "galaxy": {"count": 200, "seed": 1},
        "starfield": {"count": 100, "seed": 1},
        "display": {"width": 160, "height": 120},
    })
    return app_module.GalaxyHandControl(config)


@pytest.fixture
def hud_statuses(app):
    """Status line of every HUD drawn, with the window call patched out."""
    statuses = []
    draw = app._panel.render

    def spy(frame, state, preview=None):
        statuses.append(state["status"])
        return draw(frame, state, preview)

    with patch.object(app._panel, "render", side_effect=spy), \
            patch.object(app_module.cv2, "imshow"):
        yield statuses


def record(event_name):
    seen = []
    EventBus().subscribe(event_name, lambda **kw: seen.append(kw))
    return seen


def finish_loading(app):
    """Wait for the detector worker, then run the frame that picks up its outcome."""
    app._loader.join(timeout=5)
    assert not app._loader.is_alive()
    app._scheduler.run_frame()


def loads_successfully(app):
    def initialize():
        app._detector._landmarker = MagicMock()
    return initialize


class TestStartup:
    """Detector and camera bring-up."""

    def test_loading_status_shown_while_model_loads(self, app, hud_statuses):
        release = threading.Event()
        with patch.object(app._detector, "initialize", side_effect=lambda: release.wait(5)), \
                patch.object(app._source, "open", return_value=False):
            app._begin_startup()
            for _ in range(3):
                app._scheduler.run_frame()

            assert hud_statuses == ["Loading hand model..."] * 3
            assert app._state.tick_count == 3

            release.set()
            finish_loading(app)

        assert hud_statuses[-1] != "Loading hand model..."

    def test_detector_failure_sets_error_status(self, app, hud_statuses):
        failed = record(Events.DETECTOR_FAILED)
        with patch.object(app._detector, "initialize",
                          side_effect=DetectorUnavailable("no model")), \
                patch.object(app._source, "open") as open_camera:
            app._begin_startup()
            finish_loading(app)

        assert app._state.status is TrackingStatus.DETECTOR_ERROR
        assert hud_statuses[-1] == "Error: failed to load hand model"
        assert len(failed) == 1
        assert app._tracking_logger.get_history()[-1]["event"] == "detector_failed"
        open_camera.assert_not_called()
        assert app._render_task.is_running
        assert not app._startup_task.is_running

    def test_detector_not_ready_is_a_failure(self, app):
        with patch.object(app._detector, "initialize"):
            app._load_detector()
            assert app._finish_detector_load() is False

        assert app._state.status is TrackingStatus.DETECTOR_ERROR

    def test_detector_ready(self, app):
        ready = record(Events.DETECTOR_READY)
        with patch.object(app._detector, "initialize", side_effect=loads_successfully(app)):
            app._load_detector()
            assert app._finish_detector_load() is True

        assert app._state.status is TrackingStatus.READY
        assert len(ready) == 1

    def test_camera_failure_sets_error_status(self, app, hud_statuses):
        errors = record(Events.CAMERA_ERROR)
        with patch.object(app._detector, "initialize", side_effect=loads_successfully(app)), \
                patch.object(app._source, "open", return_value=False):
            app._begin_startup()
            finish_loading(app)

        assert app._state.status is TrackingStatus.CAMERA_ERROR
        assert hud_statuses[-1] == "Cannot access camera"
        assert errors == [{"device_id": 0}]
        assert not app._synchronizer.is_running

    def test_polling_starts_after_load(self, app, hud_statuses):
        started = record(Events.POLLING_STARTED)
        with patch.object(app._detector, "initialize", side_effect=loads_successfully(app)), \
                patch.object(app._source, "open", return_value=True), \
                patch.object(app._source, "start"):
            app._begin_startup()
            finish_loading(app)

            assert app._state.status is TrackingStatus.ACTIVE
            assert app._synchronizer.is_running
            assert len(started) == 1

            order = []
            tick = app._pipeline.render_tick
            with patch.object(app._source, "read",
                              side_effect=lambda: order.append("poll") or (None, None)), \
                    patch.object(app._pipeline, "render_tick",
                                 side_effect=lambda now: order.append("render") or tick(now)):
                app._scheduler.run_frame()

            assert order == ["poll", "render"]
            assert app._synchronizer.stats["polls"] == 1

        assert hud_statuses[-1] == "Move your hand!"
        app._synchronizer.stop()


class TestRenderFrame:
    """One refresh of the render task."""

    def test_render_frame_presents_image(self, app):
        with patch.object(app_module.cv2, "imshow") as imshow:
            app._render_frame(0.0)

        (window, image), _ = imshow.call_args
        assert window == "Galaxy Hand Control"
        assert image.shape == (120, 160, 3)
        assert image.dtype == np.uint8
        assert app._state.tick_count == 1
        assert app._perf.get_report()["total_frames"] == 1

    def test_keys(self, app):
        app._running = True
        with patch.object(app, "_print_report") as report:
            app._handle_key(ord("p"))
            report.assert_called_once()
        assert app._running

        app._handle_key(ord("q"))
        assert not app._running


class TestParseArgs:

    def test_overrides(self):
        args = app_module.parse_args(["--camera", "2", "--refresh-hz", "30", "--no-preview"])

        assert args.camera == 2
        assert args.refresh_hz == 30.0
        assert args.no_preview is True
        assert args.config is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
