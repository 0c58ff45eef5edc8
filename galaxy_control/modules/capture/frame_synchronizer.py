"""
Frame synchronizer: runs the hand detector at most once per video frame.

The display refreshes faster than the webcam delivers frames, so most polls
see the same frame as the poll before. Those polls are skipped without
touching the (expensive) detector.

Each poll:
    1. Detector not ready yet      -> skip
    2. Video source has no frame   -> skip
    3. Same timestamp as last time -> skip
    4. Otherwise detect once and hand the result (landmarks or None)
       to the downstream callback
"""

import logging
from typing import Callable, Optional

from galaxy_control.core.scheduler import RefreshScheduler, RepeatingTask
from galaxy_control.core.types import LandmarkSample

logger = logging.getLogger(__name__)

# last_processed_timestamp before the first frame
NEVER_PROCESSED = None


class FrameSynchronizer:
    """Polls a video source once per refresh and detects on new frames only.

    Args:
        video_source: object with read() -> (timestamp_ms, frame) or (None, None)
        detector: object with is_ready and detect(frame, timestamp_ms)
        on_result: called with a LandmarkSample or None for each new frame
        performance_monitor: optional PerformanceMonitor for detection timing
    """

    def __init__(self, video_source, detector,
                 on_result: Callable[[Optional[LandmarkSample]], None],
                 performance_monitor=None):
        self._source = video_source
        self._detector = detector
        self._on_result = on_result
        self._perf = performance_monitor

        self._last_processed_timestamp = NEVER_PROCESSED
        self._task: Optional[RepeatingTask] = None

        # Counters
        self._polls = 0
        self._detections = 0
        self._duplicate_skips = 0
        self._not_ready_skips = 0
        self._no_frame_skips = 0
        self._detection_errors = 0

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def poll(self, now: Optional[float] = None) -> bool:
        """Run one synchronization step.

        Args:
            now: refresh timestamp from the scheduler (unused, accepted so
                poll can be scheduled directly)

        Returns:
            True if the detector ran this poll
        """
        self._polls += 1

        if not self._detector.is_ready:
            self._not_ready_skips += 1
            return False

        timestamp, frame = self._source.read()
        if frame is None:
            self._no_frame_skips += 1
            return False

        if timestamp == self._last_processed_timestamp:
            self._duplicate_skips += 1
            return False

        # Marked before detecting so a frame that makes the detector throw
        # is not retried on every refresh
        self._last_processed_timestamp = timestamp
        self._detections += 1

        try:
            if self._perf is not None:
                with self._perf.measure("detection"):
                    sample = self._detector.detect(frame, timestamp)
            else:
                sample = self._detector.detect(frame, timestamp)
        except Exception as e:
            self._detection_errors += 1
            logger.warning("Detection failed for frame at %.1fms: %s", timestamp, e)
            return True

        self._on_result(sample)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, scheduler: RefreshScheduler):
        """Start polling once per refresh on the given scheduler."""
        if self.is_running:
            return
        self._task = RepeatingTask(scheduler, self.poll, name="frame-sync")
        self._task.start()
        logger.info("Frame synchronizer started")

    def stop(self):
        """Stop polling. Safe to call more than once or from inside poll()."""
        if self._task is None:
            return
        self._task.stop()
        self._task = None
        logger.info(
            "Frame synchronizer stopped (polls=%d, detections=%d, duplicates=%d)",
            self._polls, self._detections, self._duplicate_skips,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and self._task.is_running

    @property
    def last_processed_timestamp(self):
        return self._last_processed_timestamp

    @property
    def stats(self) -> dict:
        return {
            "polls": self._polls,
            "detections": self._detections,
            "duplicate_skips": self._duplicate_skips,
            "not_ready_skips": self._not_ready_skips,
            "no_frame_skips": self._no_frame_skips,
            "detection_errors": self._detection_errors,
        }
