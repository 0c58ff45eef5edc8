"""
Webcam capture with threaded latest-frame buffering.

A background thread keeps reading from the camera and overwrites a single
slot with the newest frame. Every frame is stamped with a monotonic capture
time in milliseconds. That stamp is the "current time" the frame
synchronizer compares against, so a stamp only changes when a new frame
actually arrived.
"""

import time
import threading
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from galaxy_control.modules.utils.config import config_value

logger = logging.getLogger(__name__)


@dataclass
class VideoSourceConfig:
    """Camera configuration settings."""
    device_id: int = 0
    width: int = 640
    height: int = 480
    fps: int = 30
    backend: str = "auto"
    buffer_size: int = 1  # Minimal buffering for low latency
    threaded: bool = True
    warmup_frames: int = 5

    @classmethod
    def from_dict(cls, config: dict) -> "VideoSourceConfig":
        """Create config from dictionary (YAML parsed)."""
        return cls(
            device_id=config_value(config, "camera", "device_id", 0),
            width=config_value(config, "camera", "width", 640),
            height=config_value(config, "camera", "height", 480),
            fps=config_value(config, "camera", "fps", 30),
            backend=config_value(config, "camera", "backend", "auto"),
            buffer_size=config_value(config, "camera", "buffer_size", 1),
            threaded=config_value(config, "camera", "threaded", True),
            warmup_frames=config_value(config, "camera", "warmup_frames", 5),
        )


class VideoSource:
    """Latest-frame webcam reader.

    Example:
        >>> source = VideoSource(VideoSourceConfig())
        >>> if source.open():
        ...     source.start()
        ...     timestamp_ms, frame = source.read()
        >>> source.stop()
    """

    _BACKENDS = {
        "v4l2": "CAP_V4L2",
        "gstreamer": "CAP_GSTREAMER",
        "dshow": "CAP_DSHOW",
        "avfoundation": "CAP_AVFOUNDATION",
        "auto": "CAP_ANY",
    }

    def __init__(self, config: Optional[VideoSourceConfig] = None):
        self.config = config or VideoSourceConfig()
        self._cap = None
        self._frame: Optional[np.ndarray] = None
        self._timestamp_ms: Optional[float] = None
        self._frame_count = 0
        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def open(self) -> bool:
        """Open the camera. Returns False if the device cannot be opened."""
        cfg = self.config
        backend = getattr(cv2, self._BACKENDS.get(cfg.backend, "CAP_ANY"), cv2.CAP_ANY)

        self._cap = cv2.VideoCapture(cfg.device_id, backend)
        if not self._cap.isOpened():
            logger.error("Failed to open camera %d with backend %s", cfg.device_id, cfg.backend)
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
        self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
        self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

        actual_w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = self._cap.get(cv2.CAP_PROP_FPS)
        logger.info(
            "Camera opened: %dx%d @ %.0f FPS (requested %dx%d @ %d)",
            actual_w, actual_h, actual_fps, cfg.width, cfg.height, cfg.fps,
        )

        # Let auto-exposure settle
        for _ in range(cfg.warmup_frames):
            self._cap.read()

        return True

    def start(self):
        """Start background capture (no-op in non-threaded mode)."""
        if self._running or self._cap is None or not self.config.threaded:
            return
        self._running = True
        self._thread = threading.Thread(target=self._capture_loop, name="video-capture", daemon=True)
        self._thread.start()
        logger.info("Async capture started")

    def _capture_loop(self):
        """Background capture thread - always holds the latest frame."""
        while self._running:
            if not self._grab():
                time.sleep(0.001)

    def _grab(self) -> bool:
        ret, frame = self._cap.read()
        if not ret or frame is None:
            return False
        stamp = time.perf_counter() * 1000.0
        with self._lock:
            self._frame = frame
            self._timestamp_ms = stamp
            self._frame_count += 1
        return True

    def read(self) -> Tuple[Optional[float], Optional[np.ndarray]]:
        """Get the newest frame and its capture stamp (non-blocking when threaded).

        Returns:
            (timestamp_ms, BGR frame), or (None, None) if nothing captured yet.
            The frame is shared with the capture thread; do not modify it.
        """
        if self._cap is not None and not self.config.threaded:
            self._grab()
        with self._lock:
            return self._timestamp_ms, self._frame

    @property
    def latest_frame(self) -> Optional[np.ndarray]:
        """Newest frame without grabbing a new one (for the preview)."""
        with self._lock:
            return self._frame

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def resolution(self) -> tuple:
        return (self.config.width, self.config.height)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def stop(self):
        """Stop capture and release the camera."""
        self._running = False
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._cap:
            self._cap.release()
            self._cap = None
        logger.info("Camera stopped")

    def __enter__(self):
        self.open()
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
