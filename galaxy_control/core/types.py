"""
Shared domain types for the Galaxy Hand Control system.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import NamedTuple, Optional, Tuple


# =============================================================================
# Landmarks
# =============================================================================

class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


NUM_LANDMARKS = 21


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class LandmarkSample:
    """One hand's landmarks for a single video frame.

    Produced by the detector, consumed once by the gesture extractor and
    then dropped.
    """
    landmarks: Tuple[Landmark, ...]
    timestamp_ms: float = 0.0
    handedness: str = "unknown"

    def __post_init__(self):
        # Freeze whatever sequence the caller handed us
        if not isinstance(self.landmarks, tuple):
            object.__setattr__(self, "landmarks", tuple(self.landmarks))

    def __len__(self):
        return len(self.landmarks)

    def get(self, index: LandmarkIndex) -> Landmark:
        """Get landmark by index."""
        return self.landmarks[index]

    def has(self, *indices: int) -> bool:
        """True when every given landmark index is present."""
        return all(0 <= i < len(self.landmarks) for i in indices)


# =============================================================================
# Gesture / Camera
# =============================================================================

@dataclass(frozen=True)
class GestureSignal:
    """Compact gesture derived from one LandmarkSample.

    point_x is already mirrored (1 - x) so that moving the hand right in a
    mirrored preview moves the camera right. pinch_distance is None when the
    thumb / index tips were not usable.
    """
    point_x: float
    point_y: float
    pinch_distance: Optional[float] = None


class CameraState:
    """Orbital camera state, mutated in place by the smoothing controller.

    raw_polar holds the smoothed polar angle as-is; polar_angle is the
    clamped view everybody else reads, so the orbit never flips over a pole
    while the smoothed value is still free to come back from past the limit.

    Starting values come from SmoothingConfig.

    Uses __slots__ since one instance is touched every animation tick.
    """

    __slots__ = ("azimuth", "raw_polar", "radius", "polar_epsilon")

    def __init__(self, azimuth: float, polar: float, radius: float, polar_epsilon: float):
        self.azimuth = azimuth
        self.raw_polar = polar
        self.radius = radius
        self.polar_epsilon = polar_epsilon

    @property
    def polar_angle(self) -> float:
        eps = self.polar_epsilon
        return max(eps, min(math.pi - eps, self.raw_polar))

    def copy(self) -> "CameraState":
        return CameraState(self.azimuth, self.raw_polar, self.radius, self.polar_epsilon)

    def __repr__(self):
        return (f"CameraState(azimuth={self.azimuth:.3f}, "
                f"polar={self.polar_angle:.3f}, radius={self.radius:.3f})")


class CameraPose(NamedTuple):
    """Immutable snapshot handed to the renderer once per tick."""
    position: Tuple[float, float, float]
    target: Tuple[float, float, float]
    azimuth: float
    polar_angle: float
    radius: float


# =============================================================================
# Status
# =============================================================================

class TrackingStatus(Enum):
    """Human-readable tracking status shown by the HUD."""
    LOADING = "Loading hand model..."
    READY = "Hand model ready, opening camera"
    ACTIVE = "Move your hand!"
    DETECTOR_ERROR = "Error: failed to load hand model"
    CAMERA_ERROR = "Cannot access camera"

    @property
    def is_error(self) -> bool:
        return self in (TrackingStatus.DETECTOR_ERROR, TrackingStatus.CAMERA_ERROR)


class PipelineState:
    """Shared mutable state for the pipeline, observed by the HUD.

    Written and read on the same refresh scheduler, so no locking.
    """

    def __init__(self):
        self.status: TrackingStatus = TrackingStatus.LOADING
        self.hand_detected: bool = False
        self.pinch_distance: Optional[float] = None
        self.pose: Optional[CameraPose] = None
        self.fps: float = 0.0
        self.detection_ms: float = 0.0
        self.tick_count: int = 0

    def to_dashboard_dict(self) -> dict:
        """Convert to the dict format expected by StatusPanel.render()."""
        pose = self.pose
        return {
            "status": self.status.value,
            "status_is_error": self.status.is_error,
            "active": self.status is TrackingStatus.ACTIVE,
            "hand_detected": self.hand_detected,
            "pinch_distance": self.pinch_distance,
            "fps": self.fps,
            "detection_ms": self.detection_ms,
            "azimuth": pose.azimuth if pose else 0.0,
            "polar_angle": pose.polar_angle if pose else 0.0,
            "radius": pose.radius if pose else 0.0,
        }
