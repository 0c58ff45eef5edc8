"""
Refresh-rate and per-stage latency tracking over rolling windows.

Stages used by the application:
    detection - one HandLandmarker call (only on new camera frames)
    render    - camera update plus galaxy rasterisation
    present   - cv2.imshow of the finished frame
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

import numpy as np

logger = logging.getLogger(__name__)

STAGES = ("detection", "render", "present")


class PerformanceMonitor:
    """Tracks display FPS and how long each stage takes."""

    def __init__(self, window_size=100):
        self._window_size = window_size
        self._lock = threading.Lock()
        self._intervals = deque(maxlen=window_size)
        self._samples = {name: deque(maxlen=window_size) for name in STAGES}
        self._last_tick = None
        self._frames = 0
        self._started = time.time()

    @contextmanager
    def measure(self, stage_name: str):
        """Time the enclosed block under stage_name (recorded even if it raises)."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(stage_name, (time.perf_counter() - start) * 1000.0)

    def record(self, stage_name: str, elapsed_ms: float):
        """Add one latency sample in milliseconds."""
        with self._lock:
            samples = self._samples.get(stage_name)
            if samples is None:
                samples = self._samples[stage_name] = deque(maxlen=self._window_size)
            samples.append(elapsed_ms)

    def tick(self):
        """Mark one presented frame."""
        now = time.perf_counter()
        with self._lock:
            if self._last_tick is not None:
                self._intervals.append(now - self._last_tick)
            self._last_tick = now
            self._frames += 1

    @property
    def fps(self) -> float:
        with self._lock:
            if len(self._intervals) < 2:
                return 0.0
            mean = sum(self._intervals) / len(self._intervals)
        return 1.0 / mean if mean > 0 else 0.0

    def get_stage_latency(self, stage_name: str) -> float:
        """Mean latency of a stage in ms, 0.0 if it was never measured."""
        with self._lock:
            samples = self._samples.get(stage_name)
            return sum(samples) / len(samples) if samples else 0.0

    def get_stage_percentile(self, stage_name: str, q: float = 95.0) -> float:
        """Latency percentile of a stage in ms, 0.0 if it was never measured."""
        with self._lock:
            samples = list(self._samples.get(stage_name, ()))
        return float(np.percentile(samples, q)) if samples else 0.0

    def get_report(self) -> dict:
        with self._lock:
            names = list(self._samples)
            frames = self._frames
        return {
            "fps": round(self.fps, 1),
            "total_frames": frames,
            "uptime_seconds": round(time.time() - self._started, 1),
            "latencies_ms": {n: round(self.get_stage_latency(n), 2) for n in names},
            "p95_ms": {n: round(self.get_stage_percentile(n), 2) for n in names},
        }

    def print_report(self, extra: dict = None):
        """Log the report, followed by any extra counters."""
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("Refresh FPS:    %.1f", report["fps"])
        logger.info("Total Frames:   %d", report["total_frames"])
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("Stage Latencies (avg / p95 ms):")
        for stage, mean in report["latencies_ms"].items():
            logger.info("  %-12s %7.2f / %7.2f", stage, mean, report["p95_ms"][stage])
        for key, value in (extra or {}).items():
            logger.info("  %-18s %s", key, value)
        logger.info("=" * 60)

    def reset(self):
        with self._lock:
            self._intervals.clear()
            for samples in self._samples.values():
                samples.clear()
            self._last_tick = None
            self._frames = 0
            self._started = time.time()
