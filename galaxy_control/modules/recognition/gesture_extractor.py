"""
Reduces a 21-point hand landmark set to the two numbers the camera needs:
a pointing position and a pinch distance.

The pointing position is the centroid of the wrist and the index / middle
finger bases. Those three points barely move when the fingers curl, so the
centroid is far steadier than any fingertip.
"""

import math
import logging
from typing import Optional

from galaxy_control.core.types import GestureSignal, LandmarkIndex, LandmarkSample

logger = logging.getLogger(__name__)

# Stable palm points averaged into the pointing position
POINTING_LANDMARKS = (
    LandmarkIndex.WRIST,
    LandmarkIndex.INDEX_MCP,
    LandmarkIndex.MIDDLE_MCP,
)

PINCH_LANDMARKS = (LandmarkIndex.THUMB_TIP, LandmarkIndex.INDEX_TIP)

REQUIRED_LANDMARKS = tuple(sorted(set(POINTING_LANDMARKS + PINCH_LANDMARKS)))


def pointing_centroid(sample: LandmarkSample):
    """Raw (unmirrored) centroid of the pointing landmarks."""
    points = [sample.get(i) for i in POINTING_LANDMARKS]
    cx = sum(p.x for p in points) / len(points)
    cy = sum(p.y for p in points) / len(points)
    return cx, cy


def pinch_distance(sample: LandmarkSample) -> Optional[float]:
    """Planar distance between thumb tip and index tip, None if unusable."""
    thumb = sample.get(LandmarkIndex.THUMB_TIP)
    index = sample.get(LandmarkIndex.INDEX_TIP)
    if not (thumb.is_finite and index.is_finite):
        return None
    return math.hypot(thumb.x - index.x, thumb.y - index.y)


def extract_gesture(sample: Optional[LandmarkSample]) -> Optional[GestureSignal]:
    """Convert one frame's landmarks into a GestureSignal.

    Args:
        sample: Landmarks of the tracked hand, or None when no hand is in view

    Returns:
        GestureSignal, or None when there is no hand

    Raises:
        ValueError: if the sample lacks any of the landmarks used here
    """
    if sample is None:
        return None

    if not sample.has(*REQUIRED_LANDMARKS):
        raise ValueError(
            f"LandmarkSample has {len(sample)} landmarks; "
            f"indices {list(map(int, REQUIRED_LANDMARKS))} are required"
        )

    cx, cy = pointing_centroid(sample)

    # Mirror X so the camera follows the hand as seen in a mirrored preview
    return GestureSignal(
        point_x=1.0 - cx,
        point_y=cy,
        pinch_distance=pinch_distance(sample),
    )
