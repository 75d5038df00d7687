"""Keypoint type and stateless geometry helpers.

Coordinates are in source pixel space. Every helper returns NaN instead of
raising when a keypoint is missing or carries a non-numeric coordinate, so
callers can feed the result straight into the aggregator and rule engine.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional, Sequence


@dataclass(frozen=True)
class Keypoint:
    """Single landmark with optional depth and visibility score."""

    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = None
    name: Optional[str] = None


class Landmark(IntEnum):
    """BlazePose landmark indices used by the squat features."""

    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


def keypoint_at(keypoints: Sequence[Optional[Keypoint]], index: int) -> Optional[Keypoint]:
    """Return ``keypoints[index]`` or ``None`` when the list is too short."""
    if 0 <= index < len(keypoints):
        return keypoints[index]
    return None


def is_valid_keypoint(kp: Optional[Keypoint]) -> bool:
    if kp is None:
        return False
    try:
        return not (math.isnan(kp.x) or math.isnan(kp.y))
    except TypeError:
        return False


def _has_depth(*kps: Keypoint) -> bool:
    return all(kp.z is not None and not math.isnan(kp.z) for kp in kps)


def _angle_between(u: Sequence[float], v: Sequence[float]) -> float:
    norm_u = math.sqrt(sum(c * c for c in u))
    norm_v = math.sqrt(sum(c * c for c in v))
    if norm_u == 0 or norm_v == 0:
        return 0.0
    cos_angle = sum(a * b for a, b in zip(u, v)) / (norm_u * norm_v)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


def calculate_angle(a: Optional[Keypoint], b: Optional[Keypoint], c: Optional[Keypoint]) -> float:
    """Interior 2D angle in degrees at ``b`` formed by ``a-b-c``.

    Returns NaN for invalid input and 0 when a segment has zero length.
    """

    if not (is_valid_keypoint(a) and is_valid_keypoint(b) and is_valid_keypoint(c)):
        return math.nan
    return _angle_between((a.x - b.x, a.y - b.y), (c.x - b.x, c.y - b.y))


def calculate_angle_3d(a: Optional[Keypoint], b: Optional[Keypoint], c: Optional[Keypoint]) -> float:
    """Like :func:`calculate_angle` but using z when all three points have it."""

    if not (is_valid_keypoint(a) and is_valid_keypoint(b) and is_valid_keypoint(c)):
        return math.nan
    if not _has_depth(a, b, c):
        return calculate_angle(a, b, c)
    return _angle_between(
        (a.x - b.x, a.y - b.y, a.z - b.z),
        (c.x - b.x, c.y - b.y, c.z - b.z),
    )


def angle_from_vertical(top: Optional[Keypoint], bottom: Optional[Keypoint]) -> float:
    """Unsigned angle in degrees between the ``bottom -> top`` line and straight up."""
    if not (is_valid_keypoint(top) and is_valid_keypoint(bottom)):
        return math.nan
    dx = top.x - bottom.x
    dy = top.y - bottom.y
    if dx == 0 and dy == 0:
        return math.nan
    # Image y grows downwards, so "up" is -y.
    return abs(math.degrees(math.atan2(dx, -dy)))


def angle_from_horizontal(a: Optional[Keypoint], b: Optional[Keypoint]) -> float:
    """Unsigned tilt of the ``a-b`` line from horizontal, in [0, 90] degrees."""
    if not (is_valid_keypoint(a) and is_valid_keypoint(b)):
        return math.nan
    dx = b.x - a.x
    dy = b.y - a.y
    if dx == 0 and dy == 0:
        return math.nan
    return math.degrees(math.atan2(abs(dy), abs(dx)))


def distance(a: Optional[Keypoint], b: Optional[Keypoint]) -> float:
    if not (is_valid_keypoint(a) and is_valid_keypoint(b)):
        return math.nan
    return math.hypot(a.x - b.x, a.y - b.y)


def distance_3d(a: Optional[Keypoint], b: Optional[Keypoint]) -> float:
    """Euclidean distance using z when both points have it."""
    if not (is_valid_keypoint(a) and is_valid_keypoint(b)):
        return math.nan
    if not _has_depth(a, b):
        return distance(a, b)
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + (a.z - b.z) ** 2)


def midpoint(a: Keypoint, b: Keypoint) -> Keypoint:
    """Midpoint of two keypoints; z and visibility only when both carry them."""
    z = (a.z + b.z) / 2 if a.z is not None and b.z is not None else None
    visibility = (
        (a.visibility + b.visibility) / 2
        if a.visibility is not None and b.visibility is not None
        else None
    )
    return Keypoint(x=(a.x + b.x) / 2, y=(a.y + b.y) / 2, z=z, visibility=visibility)


def is_visible(kp: Optional[Keypoint], threshold: float = 0.5) -> bool:
    """True for a valid keypoint whose visibility is unknown or >= ``threshold``."""
    if not is_valid_keypoint(kp):
        return False
    return kp.visibility is None or kp.visibility >= threshold


def all_visible(kps: Iterable[Optional[Keypoint]], threshold: float = 0.5) -> bool:
    return all(is_visible(kp, threshold) for kp in kps)
