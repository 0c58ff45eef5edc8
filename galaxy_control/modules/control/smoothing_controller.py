"""
Exponential-smoothing orbital camera controller.

Turns the latest GestureSignal into camera azimuth, polar angle and zoom
radius. Every tick the current values move a fixed fraction of the way to
the values the hand asks for (one-pole low-pass filter).

The fraction is applied per tick, not per second: at 30 Hz the camera
responds half as fast as at 60 Hz. The gains below were tuned at a 60 Hz
refresh, so changing the refresh rate changes the feel of the controls.

Losing the hand does not snap anything back; the camera simply stays where
it was until a hand shows up again.
"""

import math
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from galaxy_control.core.types import CameraPose, CameraState, GestureSignal
from galaxy_control.modules.utils.config import config_value

logger = logging.getLogger(__name__)

ORIGIN = (0.0, 0.0, 0.0)


@dataclass
class SmoothingConfig:
    """Gesture-to-camera tuning."""
    azimuth_gain: float = 3.0       # rad for a full-frame horizontal sweep
    polar_gain: float = 1.5         # rad for a full-frame vertical sweep
    rotation_alpha: float = 0.05    # per-tick smoothing for azimuth / polar
    zoom_alpha: float = 0.1         # per-tick smoothing for radius
    polar_epsilon: float = 0.1      # keep polar this far from the poles
    pinch_min: float = 0.02         # pinch distance mapped to zoom_near
    pinch_max: float = 0.15         # pinch distance mapped to zoom_far
    zoom_near: float = 3.0
    zoom_far: float = 11.0
    initial_azimuth: float = 0.0
    initial_polar: float = math.pi / 3
    initial_radius: float = 5.0

    @classmethod
    def from_dict(cls, d: dict) -> "SmoothingConfig":
        """Create config from dictionary (YAML parsed)."""
        defaults = cls()
        return cls(**{
            name: config_value(d, "controller", name, getattr(defaults, name))
            for name in cls.__dataclass_fields__
        })

    @property
    def zoom_range(self) -> Tuple[float, float]:
        return (min(self.zoom_near, self.zoom_far), max(self.zoom_near, self.zoom_far))


def clamp(value: float, lo: float, hi: float) -> float:
    return lo if value < lo else hi if value > hi else value


def normalize_pinch(distance: float, min_dist: float, max_dist: float) -> Optional[float]:
    """Map a pinch distance onto [0, 1].

    Returns None when the mapping is undefined (zero-width range, NaN input).
    """
    span = max_dist - min_dist
    if span == 0 or not math.isfinite(span) or not math.isfinite(distance):
        return None
    return clamp((distance - min_dist) / span, 0.0, 1.0)


def desired_rotation(signal: GestureSignal, config: SmoothingConfig) -> Tuple[float, float]:
    """Azimuth and polar angle the hand position points at."""
    azimuth = (signal.point_x * 2.0 - 1.0) * config.azimuth_gain
    polar = math.pi / 2 + (signal.point_y * 2.0 - 1.0) * config.polar_gain
    return azimuth, polar


def desired_zoom(distance: float, config: SmoothingConfig) -> Optional[float]:
    """Zoom radius a pinch distance asks for, None if it cannot be computed."""
    t = normalize_pinch(distance, config.pinch_min, config.pinch_max)
    if t is None:
        return None
    return config.zoom_near + t * (config.zoom_far - config.zoom_near)


def spherical_to_cartesian(radius: float, polar: float, azimuth: float) -> Tuple[float, float, float]:
    """Y-up spherical coordinates to (x, y, z)."""
    sin_polar = math.sin(polar)
    return (
        radius * sin_polar * math.sin(azimuth),
        radius * math.cos(polar),
        radius * sin_polar * math.cos(azimuth),
    )


def _smooth(current: float, target: float, alpha: float) -> float:
    return current + (target - current) * alpha


class SmoothingController:
    """Owns the CameraState and advances it once per animation tick."""

    def __init__(self, config: Optional[SmoothingConfig] = None):
        self.config = config or SmoothingConfig()
        self._state = self._initial_state()
        self._held_updates = 0

    def _initial_state(self) -> CameraState:
        cfg = self.config
        return CameraState(
            azimuth=cfg.initial_azimuth,
            polar=cfg.initial_polar,
            radius=clamp(cfg.initial_radius, *cfg.zoom_range),
            polar_epsilon=cfg.polar_epsilon,
        )

    def update(self, signal: Optional[GestureSignal]) -> CameraPose:
        """Advance the camera by one tick.

        Args:
            signal: Latest gesture, possibly reused from an earlier tick.
                None freezes the camera where it is.

        Returns:
            CameraPose for this tick
        """
        if signal is not None:
            self._update_rotation(signal)
            if signal.pinch_distance is not None:
                self._update_zoom(signal.pinch_distance)
        return self.pose

    def _update_rotation(self, signal: GestureSignal):
        cfg = self.config
        state = self._state
        target_azimuth, target_polar = desired_rotation(signal, cfg)

        azimuth = _smooth(state.azimuth, target_azimuth, cfg.rotation_alpha)
        if math.isfinite(azimuth):
            state.azimuth = azimuth
        else:
            self._hold("azimuth", azimuth)

        polar = _smooth(state.raw_polar, target_polar, cfg.rotation_alpha)
        if math.isfinite(polar):
            state.raw_polar = polar
        else:
            self._hold("polar", polar)

    def _update_zoom(self, distance: float):
        cfg = self.config
        state = self._state
        target = desired_zoom(distance, cfg)
        if target is None:
            self._hold("radius", distance)
            return

        radius = _smooth(state.radius, target, cfg.zoom_alpha)
        if math.isfinite(radius):
            state.radius = clamp(radius, *cfg.zoom_range)
        else:
            self._hold("radius", radius)

    def _hold(self, field_name: str, value):
        self._held_updates += 1
        logger.debug("Holding %s, update produced %r", field_name, value)

    @property
    def pose(self) -> CameraPose:
        """Camera position looking at the origin for the current state."""
        state = self._state
        polar = state.polar_angle
        return CameraPose(
            position=spherical_to_cartesian(state.radius, polar, state.azimuth),
            target=ORIGIN,
            azimuth=state.azimuth,
            polar_angle=polar,
            radius=state.radius,
        )

    @property
    def state(self) -> CameraState:
        """Snapshot of the camera state (a copy; the controller keeps ownership)."""
        return self._state.copy()

    @property
    def held_updates(self) -> int:
        """How many field updates were discarded as non-finite."""
        return self._held_updates
