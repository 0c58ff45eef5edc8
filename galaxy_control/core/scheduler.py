"""
Cooperative display-refresh scheduler.

Stands in for a browser-style animation-frame callback: callbacks are queued
with request_frame() and all fire, in request order, the next time the main
loop calls run_frame(). Everything runs on the caller's thread, so the frame
poll and the render tick never interleave mid-update.

RepeatingTask turns the one-shot queue into a loop with an explicit
start()/stop() contract. Stopping cancels the queued callback, so nothing
keeps firing after teardown.
"""

import logging
import time
from collections import OrderedDict
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """One-shot callback queue drained once per displayed frame."""

    def __init__(self):
        self._callbacks = OrderedDict()  # handle -> callback
        self._next_handle = 1
        self._frame_count = 0

    def request_frame(self, callback: Callable[[float], None]) -> int:
        """Queue callback for the next frame. Returns a handle for cancel()."""
        handle = self._next_handle
        self._next_handle += 1
        self._callbacks[handle] = callback
        return handle

    def cancel(self, handle: int) -> bool:
        """Drop a queued callback. Returns False if it already ran or never existed."""
        return self._callbacks.pop(handle, None) is not None

    def run_frame(self, timestamp: Optional[float] = None) -> int:
        """Fire every callback queued before this call.

        Callbacks queued while the frame runs wait for the next frame.
        A callback cancelled by an earlier one in the same frame is skipped.

        Returns:
            Number of callbacks invoked
        """
        if timestamp is None:
            timestamp = time.perf_counter() * 1000.0

        pending = list(self._callbacks.keys())
        fired = 0
        for handle in pending:
            callback = self._callbacks.pop(handle, None)
            if callback is None:
                continue
            callback(timestamp)
            fired += 1

        self._frame_count += 1
        return fired

    @property
    def pending(self) -> int:
        return len(self._callbacks)

    @property
    def frame_count(self) -> int:
        return self._frame_count


class RepeatingTask:
    """Runs a callback once per frame until stopped.

    Example:
        >>> task = RepeatingTask(scheduler, poll, name="frame-poll")
        >>> task.start()
        >>> scheduler.run_frame()   # poll() runs, next run is queued
        >>> task.stop()             # queued run is cancelled
    """

    def __init__(self, scheduler: RefreshScheduler, callback: Callable[[float], None],
                 name: str = "task"):
        self._scheduler = scheduler
        self._callback = callback
        self._name = name
        self._handle: Optional[int] = None
        self._running = False
        self._iterations = 0
        self._errors = 0

    def start(self):
        if self._running:
            return
        self._running = True
        self._handle = self._scheduler.request_frame(self._fire)
        logger.debug("Repeating task '%s' started", self._name)

    def stop(self):
        if not self._running:
            return
        self._running = False
        if self._handle is not None:
            self._scheduler.cancel(self._handle)
            self._handle = None
        logger.debug("Repeating task '%s' stopped after %d iterations",
                     self._name, self._iterations)

    def _fire(self, timestamp: float):
        self._handle = None
        if not self._running:
            return

        self._iterations += 1
        try:
            self._callback(timestamp)
        except Exception as e:
            self._errors += 1
            logger.error("Repeating task '%s' iteration %d failed: %s",
                         self._name, self._iterations, e)

        # The callback may have stopped us
        if self._running:
            self._handle = self._scheduler.request_frame(self._fire)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def errors(self) -> int:
        return self._errors

    @property
    def name(self) -> str:
        return self._name
