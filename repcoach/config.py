"""Shared configuration and data models used across the coaching pipeline."""

from dataclasses import dataclass
from enum import Enum


class Phase(str, Enum):
    """Direction of motion within a repetition."""

    IDLE = "IDLE"
    DESCENDING = "DESCENDING"
    ASCENDING = "ASCENDING"


PHASES = (Phase.IDLE, Phase.DESCENDING, Phase.ASCENDING)


class View(str, Enum):
    """Camera placement used to pick a rule's threshold variant."""

    FRONT = "front"
    SIDE = "side"


@dataclass(frozen=True)
class PhaseDetectorConfig:
    """Tuning for :class:`repcoach.repdetect.phase.PhaseDetector`.

    Attributes:
        movement_threshold: Minimum smoothed velocity (in reference-coordinate
            units, usually pixels) that counts as deliberate movement.
        history_size: Capacity of the reference-position window.
        recent_frames: Number of newest window entries averaged against the
            older remainder when estimating velocity.
    """

    movement_threshold: float = 7.0
    history_size: int = 10
    recent_frames: int = 3

    def __post_init__(self) -> None:
        if self.movement_threshold <= 0:
            raise ValueError("movement_threshold must be positive")
        if self.recent_frames < 1:
            raise ValueError("recent_frames must be at least 1")
        if self.history_size <= self.recent_frames:
            raise ValueError("history_size must exceed recent_frames")

    @property
    def settle_band(self) -> float:
        """Velocity magnitude below which movement is considered stopped."""
        return self.movement_threshold / 2

    @property
    def return_band(self) -> float:
        """Maximum distance from the window's oldest sample to count as returned."""
        return self.movement_threshold * 2


@dataclass(frozen=True)
class DebounceConfig:
    """Tuning for :class:`repcoach.quality.rules.RuleEngine`.

    Attributes:
        error_trigger_frames: Consecutive failing frames before an error shows.
        error_clear_frames: Consecutive passing frames before a shown error clears.
        mean_tolerance: Relative band around the threshold accepted by the
            ``mean`` comparator (0.2 accepts 80%-120%).
        stability_window: Number of frame samples a stability rule needs.
    """

    error_trigger_frames: int = 5
    error_clear_frames: int = 10
    mean_tolerance: float = 0.2
    stability_window: int = 10

    def __post_init__(self) -> None:
        if self.error_trigger_frames < 1 or self.error_clear_frames < 1:
            raise ValueError("debounce frame counts must be positive")
        if self.stability_window < 2:
            raise ValueError("stability_window must be at least 2")
        if not 0 <= self.mean_tolerance < 1:
            raise ValueError("mean_tolerance must be in [0, 1)")
