"""
Tests for the Event Bus and Logging Utilities
=============================================
"""

import logging
import logging.handlers

import pytest

from galaxy_control.core.events import EventBus, Events
from galaxy_control.modules.utils.logger import TrackingLogger, log_timing, setup_logging


@pytest.fixture
def restore_root_logger(monkeypatch):
    root = logging.getLogger()
    level = root.level
    monkeypatch.setattr(root, "handlers", [])
    yield root
    for handler in root.handlers:
        handler.close()
    root.setLevel(level)


class TestEventBus:
    """Test suite for EventBus."""

    def test_singleton(self):
        assert EventBus() is EventBus()

    def test_emit_passes_kwargs(self):
        bus = EventBus()
        seen = []
        bus.subscribe(Events.HAND_DETECTED, lambda **kw: seen.append(kw))

        bus.emit(Events.HAND_DETECTED, handedness="Left")

        assert seen == [{"handedness": "Left"}]

    def test_priority_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("evt", lambda: order.append("low"), priority=0)
        bus.subscribe("evt", lambda: order.append("high"), priority=10)
        bus.subscribe("evt", lambda: order.append("low-2"), priority=0)

        bus.emit("evt")

        assert order == ["high", "low", "low-2"]

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(**kwargs):
            raise RuntimeError("handler bug")

        bus.subscribe(Events.HAND_LOST, broken, priority=1)
        bus.subscribe(Events.HAND_LOST, lambda **kw: seen.append(True))

        delivered = bus.emit(Events.HAND_LOST)

        assert seen == [True]
        assert delivered == 1

    def test_unsubscribe_and_clear(self):
        bus = EventBus()
        handler = lambda **kw: None  # noqa: E731
        bus.subscribe("a", handler)
        bus.subscribe("b", handler)

        bus.unsubscribe("a", handler)
        assert bus.listener_count == 1

        bus.clear()
        assert bus.listener_count == 0

    def test_history(self):
        bus = EventBus()
        bus.emit(Events.SYSTEM_STARTED, version="1.0.0")
        bus.emit(Events.SYSTEM_SHUTDOWN)

        history = bus.get_history()

        assert [h["event"] for h in history] == ["system_started", "system_shutdown"]
        assert history[0]["data_keys"] == ["version"]


class TestTrackingLogger:
    """Test suite for TrackingLogger."""

    def test_counts_and_history(self):
        tracking = TrackingLogger()

        tracking.on_hand_detected(handedness="Right", timestamp_ms=1.0)
        tracking.on_hand_lost()
        tracking.on_detector_failed(error=RuntimeError("no model"))
        tracking.on_camera_error(device_id=0)

        assert tracking.acquisitions == 1
        assert tracking.losses == 1
        events = [e["event"] for e in tracking.get_history()]
        assert events == ["hand_detected", "hand_lost", "detector_failed", "camera_error"]
        assert tracking.get_history(1)[0]["device_id"] == 0

    def test_history_bounded(self):
        tracking = TrackingLogger(max_history=3)
        for _ in range(10):
            tracking.on_hand_detected()
        assert len(tracking.get_history()) == 3


class TestLoggingSetup:

    def test_console_only(self, restore_root_logger):
        root = setup_logging(level="debug")

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_rotating_file(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "galaxy.log"

        root = setup_logging(level="INFO", log_file=str(log_file), max_size_mb=1, backup_count=2)
        logging.getLogger("galaxy_control.test").info("hello")
        for handler in root.handlers:
            handler.flush()

        rotating = [h for h in root.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert len(rotating) == 1
        assert rotating[0].backupCount == 2
        assert "hello" in log_file.read_text()

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        assert setup_logging(level="chatty").level == logging.INFO

    def test_log_timing_keeps_result(self, caplog):
        @log_timing
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG):
            assert add(2, 3) == 5

        assert add.__name__ == "add"
        assert "add took" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
