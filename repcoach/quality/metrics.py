"""Landmark accuracy metrics."""

from __future__ import annotations

import math
from typing import Sequence

from repcoach.vision.keypoints import Keypoint


def pck(
    predicted: Sequence[Keypoint],
    ground_truth: Sequence[Keypoint],
    bbox_diagonal: float,
    alpha: float = 0.1,
) -> float:
    """Percentage of Correct Keypoints, as a fraction in ``[0, 1]``.

    A prediction is correct when its 2D error is within ``alpha`` times the
    reference bounding-box diagonal. Pairs are matched by position; extra
    entries in the longer sequence are ignored.
    """

    n = min(len(predicted), len(ground_truth))
    if n == 0 or bbox_diagonal <= 0:
        return 0.0
    radius = alpha * bbox_diagonal
    correct = sum(
        1
        for pred, truth in zip(predicted, ground_truth)
        if math.hypot(pred.x - truth.x, pred.y - truth.y) <= radius
    )
    return correct / n
