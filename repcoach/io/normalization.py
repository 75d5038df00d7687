"""Letterbox mapping and pixel normalization for pose-model input.

Pose models take a square input; frames are scaled to fit and padded
symmetrically. :class:`LetterboxTransform` keeps the parameters needed to map
model-space landmarks back to source pixels, where the rest of the pipeline
works.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class LetterboxTransform:
    """Bidirectional mapping between source pixels and square model input.

    Attributes:
        source_width: Source frame width in pixels.
        source_height: Source frame height in pixels.
        input_size: Side of the square model input.
        scale: Factor applied to source coordinates before padding.
        pad_x: Left padding in model-input pixels.
        pad_y: Top padding in model-input pixels.
        resized_width: Width of the scaled frame inside the input.
        resized_height: Height of the scaled frame inside the input.
    """

    source_width: int
    source_height: int
    input_size: int
    scale: float
    pad_x: int
    pad_y: int
    resized_width: int
    resized_height: int

    @classmethod
    def fit(cls, source_width: int, source_height: int, input_size: int) -> "LetterboxTransform":
        """Center a ``source_width x source_height`` frame inside ``input_size``."""
        if source_width <= 0 or source_height <= 0 or input_size <= 0:
            raise ValueError("source and input sizes must be positive")
        scale = min(input_size / source_width, input_size / source_height)
        resized_width = _round_half_up(source_width * scale)
        resized_height = _round_half_up(source_height * scale)
        return cls(
            source_width=source_width,
            source_height=source_height,
            input_size=input_size,
            scale=scale,
            pad_x=(input_size - resized_width) // 2,
            pad_y=(input_size - resized_height) // 2,
            resized_width=resized_width,
            resized_height=resized_height,
        )

    def to_source(self, point: Point, *, normalized: bool = False) -> Point:
        """Map a model-input point to source pixels, clamped to the frame.

        Args:
            point: ``(x, y)`` in model-input space.
            normalized: Set when the model reports coordinates in ``[0, 1]``.
        """
        x, y = point
        if normalized:
            x, y = x * self.input_size, y * self.input_size
        sx = (x - self.pad_x) / self.scale
        sy = (y - self.pad_y) / self.scale
        return (
            max(0.0, min(float(self.source_width), sx)),
            max(0.0, min(float(self.source_height), sy)),
        )

    def to_input(self, point: Point) -> Point:
        """Map a source-pixel point into model-input space."""
        x, y = point
        return (x * self.scale + self.pad_x, y * self.scale + self.pad_y)

    def map_points_to_source(
        self, points: Iterable[Point], *, normalized: bool = False
    ) -> Tuple[Point, ...]:
        return tuple(self.to_source(p, normalized=normalized) for p in points)


def normalize_pixels(
    data: Sequence[int],
    mean: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    std: Tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> np.ndarray:
    """Convert packed RGB bytes to float32 ``(v / 255 - mean) / std`` per channel.

    The output keeps the input's flat layout.
    """

    pixels = np.asarray(data, dtype=np.float32)
    if pixels.size % 3:
        raise ValueError("pixel data length must be a multiple of 3 (packed RGB)")
    if any(s == 0 for s in std):
        raise ValueError("std values must be non-zero")
    channels = pixels.reshape(-1, 3) / 255.0
    out = (channels - np.asarray(mean, dtype=np.float32)) / np.asarray(std, dtype=np.float32)
    return out.astype(np.float32).reshape(-1)
