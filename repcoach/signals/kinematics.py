"""Squat measurements derived from one frame of landmarks.

Produces the phase-tracking reference (hip midpoint height) and the named
features consumed by the aggregator and the rule engine. Any feature whose
landmarks are missing or below the visibility threshold is NaN.
"""

from __future__ import annotations

import math
from typing import Dict, NamedTuple, Optional, Sequence

from repcoach.vision.keypoints import (
    Keypoint,
    Landmark,
    all_visible,
    angle_from_vertical,
    calculate_angle,
    distance,
    keypoint_at,
    midpoint,
)

SQUAT_FEATURES = (
    "knee_angle",
    "knee_angle_left",
    "knee_angle_right",
    "trunk_angle",
    "stance_width",
)


class SquatFrame(NamedTuple):
    reference: float
    measurements: Dict[str, float]


def _mid_if_visible(a: Optional[Keypoint], b: Optional[Keypoint], threshold: float) -> Optional[Keypoint]:
    if not all_visible((a, b), threshold):
        return None
    return midpoint(a, b)


def _knee_angle(
    keypoints: Sequence[Optional[Keypoint]],
    hip: Landmark,
    knee: Landmark,
    ankle: Landmark,
    threshold: float,
) -> float:
    points = [keypoint_at(keypoints, idx) for idx in (hip, knee, ankle)]
    if not all_visible(points, threshold):
        return math.nan
    return calculate_angle(*points)


def squat_measurements(
    keypoints: Sequence[Optional[Keypoint]], *, min_visibility: float = 0.5
) -> SquatFrame:
    """Compute the squat feature set for one frame.

    Args:
        keypoints: BlazePose-ordered landmarks in source pixel space.
        min_visibility: Landmarks scoring below this are treated as missing.

    Returns:
        ``SquatFrame`` whose ``reference`` is the hip midpoint's y coordinate
        and whose ``measurements`` has one entry per name in
        :data:`SQUAT_FEATURES`: interior knee angles (degrees, 180 = straight),
        their mean, trunk lean from vertical, and ankle spacing relative to
        shoulder width.
    """

    left = _knee_angle(keypoints, Landmark.LEFT_HIP, Landmark.LEFT_KNEE, Landmark.LEFT_ANKLE, min_visibility)
    right = _knee_angle(
        keypoints, Landmark.RIGHT_HIP, Landmark.RIGHT_KNEE, Landmark.RIGHT_ANKLE, min_visibility
    )

    hips = _mid_if_visible(
        keypoint_at(keypoints, Landmark.LEFT_HIP),
        keypoint_at(keypoints, Landmark.RIGHT_HIP),
        min_visibility,
    )
    left_shoulder = keypoint_at(keypoints, Landmark.LEFT_SHOULDER)
    right_shoulder = keypoint_at(keypoints, Landmark.RIGHT_SHOULDER)
    shoulders = _mid_if_visible(left_shoulder, right_shoulder, min_visibility)

    trunk = angle_from_vertical(shoulders, hips)

    stance = math.nan
    ankles = (keypoint_at(keypoints, Landmark.LEFT_ANKLE), keypoint_at(keypoints, Landmark.RIGHT_ANKLE))
    if shoulders is not None and all_visible(ankles, min_visibility):
        shoulder_width = distance(left_shoulder, right_shoulder)
        if shoulder_width > 0:
            stance = distance(*ankles) / shoulder_width

    measurements = {
        "knee_angle": (left + right) / 2,
        "knee_angle_left": left,
        "knee_angle_right": right,
        "trunk_angle": trunk,
        "stance_width": stance,
    }
    reference = hips.y if hips is not None else math.nan
    return SquatFrame(reference, measurements)
