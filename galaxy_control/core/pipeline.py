"""
Gesture pipeline: detector output in, camera pose out.

Architecture:
    FrameSynchronizer -> on_detection() -> extract_gesture -> latest signal
    render tick       -> render_tick()  -> SmoothingController -> CameraPose

Detection and rendering run at different rates. on_detection() only
replaces the latest GestureSignal; render_tick() runs every displayed frame
and reuses that signal until a newer one arrives.
"""

import logging
from typing import Optional

from galaxy_control.core.events import EventBus, Events
from galaxy_control.core.types import CameraPose, GestureSignal, LandmarkSample, PipelineState
from galaxy_control.modules.control.smoothing_controller import SmoothingController
from galaxy_control.modules.recognition.gesture_extractor import extract_gesture

logger = logging.getLogger(__name__)


class GesturePipeline:
    """Holds the latest gesture and drives the camera controller."""

    def __init__(self, controller: Optional[SmoothingController] = None,
                 event_bus: Optional[EventBus] = None,
                 state: Optional[PipelineState] = None):
        self._controller = controller or SmoothingController()
        self._bus = event_bus or EventBus()
        self._state = state or PipelineState()
        self._latest_signal: Optional[GestureSignal] = None
        self._detections = 0
        self._state.pose = self._controller.pose

    def on_detection(self, sample: Optional[LandmarkSample]):
        """Accept one detector result (landmarks or None for no hand)."""
        self._detections += 1
        try:
            signal = extract_gesture(sample)
        except ValueError as e:
            # Malformed sample: keep the previous signal
            logger.warning("Dropping landmark sample: %s", e)
            return

        was_present = self._latest_signal is not None
        self._latest_signal = signal
        self._state.hand_detected = signal is not None
        self._state.pinch_distance = signal.pinch_distance if signal else None

        if signal is not None and not was_present:
            self._bus.emit(Events.HAND_DETECTED,
                           handedness=sample.handedness, timestamp_ms=sample.timestamp_ms)
        elif signal is None and was_present:
            self._bus.emit(Events.HAND_LOST)

    def render_tick(self, now: Optional[float] = None) -> CameraPose:
        """Advance the camera one tick using the latest known gesture."""
        pose = self._controller.update(self._latest_signal)
        self._state.pose = pose
        self._state.tick_count += 1
        return pose

    @property
    def hand_present(self) -> bool:
        """Whether a hand is currently tracked (display only)."""
        return self._latest_signal is not None

    @property
    def latest_signal(self) -> Optional[GestureSignal]:
        return self._latest_signal

    @property
    def pose(self) -> CameraPose:
        return self._controller.pose

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def detections(self) -> int:
        return self._detections
