"""
Hand Detection Module - MediaPipe Tasks API
===========================================

Wraps the MediaPipe HandLandmarker in VIDEO running mode, tracking a single
hand. The model file is downloaded on first use if it is not on disk.
"""

import logging
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import numpy as np
import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from galaxy_control.core.errors import DetectorUnavailable
from galaxy_control.core.types import Landmark, LandmarkSample
from galaxy_control.modules.utils.config import config_value
from galaxy_control.modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

HAND_LANDMARKER_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)
MODEL_RELPATH = Path("models") / "hand_landmarker.task"


@dataclass
class HandDetectorConfig:
    """Configuration for hand detector."""
    model_path: str = ""
    model_url: str = HAND_LANDMARKER_MODEL_URL
    delegate: str = "CPU"  # CPU or GPU
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    input_is_bgr: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        """Create config from dictionary."""
        return cls(
            model_path=config_value(d, "detector", "model_path", ""),
            model_url=config_value(d, "detector", "model_url", HAND_LANDMARKER_MODEL_URL),
            delegate=config_value(d, "detector", "delegate", "CPU").upper(),
            min_detection_confidence=config_value(d, "detector", "min_detection_confidence", 0.5),
            min_presence_confidence=config_value(d, "detector", "min_presence_confidence", 0.5),
            min_tracking_confidence=config_value(d, "detector", "min_tracking_confidence", 0.5),
            input_is_bgr=config_value(d, "detector", "input_is_bgr", True),
        )


def default_model_path() -> Path:
    """Where the model is cached when no model_path is configured."""
    return Path.cwd() / MODEL_RELPATH


def download_model(url: str, save_path: Path) -> bool:
    """Download the hand landmarker model if not present."""
    if save_path.exists():
        logger.info("Model already exists at %s", save_path)
        return True

    try:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading hand landmarker model to %s...", save_path)
        urllib.request.urlretrieve(url, save_path)
        logger.info("Model download complete")
        return True
    except Exception as e:
        logger.error("Failed to download model: %s", e)
        return False


class HandDetector:
    """
    Single-hand landmark detector.

    Not ready until initialize() succeeds; callers check is_ready before
    calling detect().

    Example:
        >>> detector = HandDetector(HandDetectorConfig())
        >>> detector.initialize()
        >>> sample = detector.detect(bgr_frame, timestamp_ms)
        >>> detector.close()
    """

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker = None
        self._last_timestamp_ms = -1

    def initialize(self):
        """Load the model and build the landmarker.

        Raises:
            DetectorUnavailable: if the model cannot be fetched or loaded
        """
        model_path = Path(self.config.model_path) if self.config.model_path else default_model_path()

        if not model_path.exists():
            if not download_model(self.config.model_url, model_path):
                raise DetectorUnavailable(f"Could not download hand landmarker model to {model_path}")

        delegate = (python.BaseOptions.Delegate.GPU if self.config.delegate == "GPU"
                    else python.BaseOptions.Delegate.CPU)

        try:
            options = vision.HandLandmarkerOptions(
                base_options=python.BaseOptions(
                    model_asset_path=str(model_path),
                    delegate=delegate,
                ),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=1,
                min_hand_detection_confidence=self.config.min_detection_confidence,
                min_hand_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except Exception as e:
            raise DetectorUnavailable(f"Failed to initialize HandLandmarker: {e}") from e

        self._last_timestamp_ms = -1
        logger.info("HandLandmarker initialized (model=%s, delegate=%s)",
                    model_path, self.config.delegate)

    @property
    def is_ready(self) -> bool:
        return self._landmarker is not None

    def _next_timestamp(self, timestamp_ms: float) -> int:
        # VIDEO mode rejects timestamps that do not strictly increase
        ts = int(timestamp_ms)
        if ts <= self._last_timestamp_ms:
            ts = self._last_timestamp_ms + 1
        self._last_timestamp_ms = ts
        return ts

    @log_timing
    def detect(self, frame: np.ndarray, timestamp_ms: float) -> Optional[LandmarkSample]:
        """Detect the hand in one video frame.

        Args:
            frame: image as numpy array (H, W, 3), BGR unless configured otherwise
            timestamp_ms: capture time of the frame

        Returns:
            LandmarkSample for the detected hand, or None if there is no hand
        """
        if self._landmarker is None:
            raise DetectorUnavailable("HandLandmarker not initialized. Call initialize() first.")

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB) if self.config.input_is_bgr else frame
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        result = self._landmarker.detect_for_video(mp_image, self._next_timestamp(timestamp_ms))

        if not result.hand_landmarks:
            return None

        handedness = "unknown"
        if result.handedness and result.handedness[0]:
            handedness = result.handedness[0][0].category_name

        return LandmarkSample(
            landmarks=tuple(Landmark(x=lm.x, y=lm.y, z=lm.z) for lm in result.hand_landmarks[0]),
            timestamp_ms=timestamp_ms,
            handedness=handedness,
        )

    def close(self):
        """Release MediaPipe resources."""
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
