"""Shared fixtures and landmark builders for the test suite."""

import sys
from pathlib import Path

import pytest

# Make the project root importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from galaxy_control.core.events import EventBus
from galaxy_control.core.types import Landmark, LandmarkSample, NUM_LANDMARKS
from galaxy_control.modules.utils.config import Config


def create_mock_sample(center=(0.5, 0.5), pinch=0.08, timestamp_ms=0.0,
                       handedness="Right") -> LandmarkSample:
    """Build a 21-point hand whose pointing centroid sits exactly at `center`.

    Thumb tip and index tip are placed `pinch` apart horizontally.
    """
    cx, cy = center
    landmarks = [Landmark(cx, cy, 0.0) for _ in range(NUM_LANDMARKS)]

    # Wrist below, finger bases above: centroid stays at (cx, cy)
    landmarks[0] = Landmark(cx, cy + 0.10, 0.0)
    landmarks[5] = Landmark(cx - 0.03, cy - 0.05, 0.0)
    landmarks[9] = Landmark(cx + 0.03, cy - 0.05, 0.0)

    landmarks[4] = Landmark(cx - 0.04, cy - 0.08, -0.02)
    landmarks[8] = Landmark(cx - 0.04 + pinch, cy - 0.08, 0.05)

    return LandmarkSample(landmarks=landmarks, timestamp_ms=timestamp_ms, handedness=handedness)


@pytest.fixture(autouse=True)
def reset_singletons():
    """EventBus and Config are process-wide singletons."""
    EventBus().reset()
    Config.reset()
    yield
    EventBus().reset()
    Config.reset()
