"""
Process-wide publish/subscribe bus.

The gesture pipeline and the application announce hand presence and
lifecycle changes here; the tracking logger listens without either side
importing the other.

Usage:
    bus = EventBus()
    bus.subscribe(Events.HAND_LOST, on_lost)
    bus.emit(Events.HAND_LOST)
"""

import time
import logging
import threading
from collections import defaultdict, deque
from typing import Callable, NamedTuple

logger = logging.getLogger(__name__)

HISTORY_SIZE = 100


class _Subscription(NamedTuple):
    priority: int
    order: int
    callback: Callable


def _callback_name(callback) -> str:
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Singleton event bus; higher priority listeners are called first."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._lock = threading.Lock()
            instance._subscriptions = defaultdict(list)
            instance._history = deque(maxlen=HISTORY_SIZE)
            instance._order = 0
            cls._instance = instance
        return cls._instance

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register callback(**kwargs) for event_name.

        Listeners with equal priority run in subscription order.
        """
        with self._lock:
            self._order += 1
            subs = self._subscriptions[event_name]
            subs.append(_Subscription(priority, self._order, callback))
            subs.sort(key=lambda s: (-s.priority, s.order))
        logger.debug("Subscribed %s to '%s'", _callback_name(callback), event_name)

    def unsubscribe(self, event_name: str, callback: Callable):
        with self._lock:
            subs = self._subscriptions.get(event_name)
            if subs:
                subs[:] = [s for s in subs if s.callback is not callback]

    def emit(self, event_name: str, **kwargs) -> int:
        """Call every listener of event_name with kwargs.

        A listener that raises is logged and skipped.

        Returns:
            Number of listeners that completed without raising
        """
        with self._lock:
            subs = list(self._subscriptions.get(event_name, ()))
            self._history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": sorted(kwargs),
            })

        delivered = 0
        for sub in subs:
            try:
                sub.callback(**kwargs)
            except Exception as e:
                logger.error("Listener %s failed on '%s': %s",
                             _callback_name(sub.callback), event_name, e)
            else:
                delivered += 1
        return delivered

    def clear(self, event_name: str = None):
        """Drop listeners of one event, or of all events."""
        with self._lock:
            if event_name is None:
                self._subscriptions.clear()
            else:
                self._subscriptions.pop(event_name, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(subs) for subs in self._subscriptions.values())

    def get_history(self, last_n: int = 10) -> list:
        """Most recent emitted events, oldest first."""
        with self._lock:
            history = list(self._history)
        return history[-last_n:] if last_n else history

    def reset(self):
        """Forget listeners and history (for testing)."""
        with self._lock:
            self._subscriptions.clear()
            self._history.clear()


class Events:
    """Event names used across the application."""

    # Tracking
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"

    # Detector / camera lifecycle
    DETECTOR_READY = "detector_ready"
    DETECTOR_FAILED = "detector_failed"
    CAMERA_ERROR = "camera_error"
    POLLING_STARTED = "polling_started"
    POLLING_STOPPED = "polling_stopped"

    # Application lifecycle
    SYSTEM_STARTED = "system_started"
    SYSTEM_SHUTDOWN = "system_shutdown"
