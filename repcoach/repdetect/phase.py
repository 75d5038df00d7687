"""Repetition phase detection from a single vertical reference coordinate.

The detector keeps a short window of the tracked coordinate (typically the
hip midpoint's y value in pixels, growing downwards) and estimates velocity
as the mean of the newest samples minus the mean of the older remainder.
That difference of two sub-window averages is much less jittery than a
frame-to-frame derivative while still reacting within a few frames.

Cycle: IDLE -> DESCENDING -> ASCENDING -> IDLE. A repetition is reported as
finished only when the ascent has settled close to where the window started,
so a brief pause mid-motion does not end the rep.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

from repcoach.config import Phase, PhaseDetectorConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseUpdate:
    """Result of feeding one frame to :class:`PhaseDetector`."""

    phase: Phase
    rep_finished: bool
    velocity: float


class PhaseDetector:
    """Cyclic IDLE/DESCENDING/ASCENDING state machine over a sliding window."""

    def __init__(self, config: Optional[PhaseDetectorConfig] = None) -> None:
        self.config = config or PhaseDetectorConfig()
        self._window: Deque[float] = deque(maxlen=self.config.history_size)
        self._phase = Phase.IDLE

    def get_state(self) -> Phase:
        return self._phase

    @property
    def window(self) -> tuple[float, ...]:
        """Snapshot of the reference-position window, oldest first."""
        return tuple(self._window)

    def reset(self) -> None:
        """Forget the window and return to IDLE; call when a set begins."""
        self._window.clear()
        self._phase = Phase.IDLE

    def detect(self, value: Optional[float]) -> PhaseUpdate:
        """Advance the state machine by one frame.

        Args:
            value: Reference coordinate for this frame. ``None`` and NaN mean
                the coordinate could not be measured; the sample is still
                pushed so the window stays aligned with the frame stream.
        """

        value = math.nan if value is None else float(value)
        self._window.append(value)

        if math.isnan(value) or len(self._window) < self.config.recent_frames:
            return PhaseUpdate(self._phase, False, 0.0)

        velocity = self._velocity()
        threshold = self.config.movement_threshold
        previous = self._phase
        rep_finished = False

        if self._phase is Phase.IDLE:
            if velocity > threshold:
                self._phase = Phase.DESCENDING
        elif self._phase is Phase.DESCENDING:
            if velocity < -threshold:
                self._phase = Phase.ASCENDING
        elif self._phase is Phase.ASCENDING:
            if velocity > threshold:
                # Re-descent before settling cancels the pending completion.
                self._phase = Phase.DESCENDING
            elif (
                abs(velocity) < self.config.settle_band
                and abs(value - self._window[0]) < self.config.return_band
            ):
                self._phase = Phase.IDLE
                rep_finished = True

        if self._phase is not previous:
            logger.debug(
                "Phase %s -> %s (velocity=%.2f)", previous.value, self._phase.value, velocity
            )
        if rep_finished:
            logger.debug("Repetition finished at reference %.2f", value)

        return PhaseUpdate(self._phase, rep_finished, velocity)

    def _velocity(self) -> float:
        samples = list(self._window)
        n = self.config.recent_frames
        recent = samples[-n:]
        # With exactly `n` samples there is no older part; use the oldest one.
        older = samples[:-n] or samples[:1]
        return sum(recent) / len(recent) - sum(older) / len(older)
