"""
Structured logging plus a tracking-event logger.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


# MediaPipe logs through absl; keep it out of the console unless it warns
_QUIET_LOGGERS = ("absl",)


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure console and optional rotating-file logging for the application.

    Returns the root logger.
    """
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_logger.level))

    return root_logger


class TrackingLogger:
    """Logs hand presence transitions and detector lifecycle events.

    Subscribed to the event bus by the application; keeps a bounded history
    so the shutdown summary can report how often tracking was lost.
    """

    def __init__(self, max_history=500):
        self.logger = logging.getLogger("tracking_events")
        self._history = []
        self._max_history = max_history
        self._hand_since = None
        self._acquired = 0
        self._lost = 0

    def _record(self, event, **data):
        self._history.append({"timestamp": time.time(), "event": event, **data})
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def on_hand_detected(self, handedness="unknown", **kwargs):
        self._acquired += 1
        self._hand_since = time.time()
        self._record("hand_detected", handedness=handedness)
        self.logger.info("Hand acquired | handedness: %s", handedness)

    def on_hand_lost(self, **kwargs):
        self._lost += 1
        held_s = time.time() - self._hand_since if self._hand_since else 0.0
        self._hand_since = None
        self._record("hand_lost", tracked_s=held_s)
        self.logger.info("Hand lost | tracked for %.1fs", held_s)

    def on_detector_failed(self, error="", **kwargs):
        self._record("detector_failed", error=str(error))
        self.logger.error("Hand detector unavailable: %s", error)

    def on_camera_error(self, device_id=None, **kwargs):
        self._record("camera_error", device_id=device_id)
        self.logger.error("Camera %s could not be opened", device_id)

    def get_history(self, last_n=None):
        """Get recent tracking events."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def acquisitions(self):
        return self._acquired

    @property
    def losses(self):
        return self._lost


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
