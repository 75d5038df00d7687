"""Rule evaluation with view-dependent thresholds and frame-level debouncing.

FRAME rules are checked every frame and their reported ``passed`` value is
debounced: an error becomes visible only after several consecutive failing
frames and clears only after a longer run of passing frames. PHASE and REP
rules are checked once per repetition against the aggregates produced by
:class:`repcoach.signals.aggregate.FeatureAggregator`.

Missing data never raises. A rule whose threshold, input value or aggregate
cannot be resolved is left out of the feedback for that call.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Deque, Dict, List, Mapping, Optional, Set, Tuple

import numpy as np

from repcoach.config import DebounceConfig, Phase, View
from repcoach.quality.schema import Comparator, ExerciseConfig, Granularity, RuleConfig, RuleKind
from repcoach.signals.aggregate import Aggregates, PhaseAggregates

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    LOW = "low"
    HIGH = "high"


@dataclass(frozen=True)
class Feedback:
    """Outcome of one rule for one evaluation call."""

    rule_id: str
    error_type: str
    passed: bool
    value: float
    threshold: float
    direction: Optional[Direction] = None


@dataclass
class DebounceState:
    """Consecutive fail/pass counters and the visible error flag for one rule."""

    fail_count: int = 0
    pass_count: int = 0
    active: bool = False

    def update(self, passed: bool, trigger_frames: int, clear_frames: int) -> bool:
        """Fold in one instantaneous result and return the debounced ``passed``."""
        if passed:
            self.fail_count = 0
            self.pass_count += 1
            if self.active and self.pass_count >= clear_frames:
                self.active = False
        else:
            self.pass_count = 0
            self.fail_count += 1
            if self.fail_count >= trigger_frames:
                self.active = True
        return not self.active


def compare(
    comparator: Comparator, value: float, threshold: float, mean_tolerance: float = 0.2
) -> Tuple[bool, Optional[Direction]]:
    """Apply ``comparator`` to ``value``.

    ``min``, ``max`` and ``std`` all pass when ``value <= threshold``; the tag
    only documents what the number means. ``mean`` passes inside
    ``threshold * (1 +/- mean_tolerance)`` and reports which side it missed.
    """

    if comparator is Comparator.MEAN:
        if value < threshold * (1 - mean_tolerance):
            return False, Direction.LOW
        if value > threshold * (1 + mean_tolerance):
            return False, Direction.HIGH
        return True, None
    return value <= threshold, None


def _lookup(values: Mapping[str, float], key: Optional[str]) -> Optional[float]:
    if key is None:
        return None
    value = values.get(key)
    if value is None or math.isnan(value):
        return None
    return float(value)


def resolve_aggregate_value(rule: RuleConfig, aggregates: Mapping[str, float]) -> Optional[float]:
    """Pick the aggregate a REP/PHASE rule is measured against.

    Symmetry rules return the signed ``left - right`` of the bare (mean)
    entries. Other kinds try ``<feature>_<comparator>`` and then the bare
    mean alias.
    """

    if rule.kind is RuleKind.SYMMETRY:
        left = _lookup(aggregates, rule.feature_left)
        right = _lookup(aggregates, rule.feature_right)
        if left is None or right is None:
            return None
        return left - right

    for key in (f"{rule.feature}_{rule.comparator.value}", rule.feature):
        value = _lookup(aggregates, key)
        if value is not None:
            return value
    return None


def _phase_matches(target: Optional[Phase], current: Phase) -> bool:
    # IDLE is the "any phase" marker for frame rules; no other wildcard exists.
    return target is None or target is Phase.IDLE or target == current


class RuleEngine:
    """Evaluates an exercise's rule set for one session.

    Args:
        config: Immutable rule set.
        view: Active camera view used for threshold selection.
        debounce: Debounce and comparator tuning.
    """

    def __init__(
        self,
        config: ExerciseConfig,
        *,
        view: View = View.FRONT,
        debounce: Optional[DebounceConfig] = None,
    ) -> None:
        self.config = config
        self.settings = debounce or DebounceConfig()
        self._rules: Tuple[RuleConfig, ...] = tuple(config.rules)
        self._view = View(view)
        # One slot per rule, indexed by rule position.
        self._debounce: List[DebounceState] = [DebounceState() for _ in self._rules]
        self._frame_buffers: Dict[str, Deque[float]] = {}
        self._frame_feedback: List[Feedback] = []

    @property
    def view(self) -> View:
        return self._view

    @view.setter
    def view(self, view: View) -> None:
        self._view = View(view)

    @property
    def rules(self) -> Tuple[RuleConfig, ...]:
        return self._rules

    @property
    def frame_feedback(self) -> List[Feedback]:
        """Feedback from the most recent :meth:`evaluate_frame` call."""
        return list(self._frame_feedback)

    def debounce_state(self, rule_id: str) -> DebounceState:
        """Copy of the debounce counters for ``rule_id``."""
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return replace(self._debounce[index])
        raise KeyError(rule_id)

    def evaluate_frame(
        self, measurements: Mapping[str, float], current_phase: Phase
    ) -> List[Feedback]:
        """Check every FRAME rule against this frame's measurements.

        Updates debounce state and caches the result for
        :meth:`evaluate_with_phases`.
        """

        current_phase = Phase(current_phase)
        feedback: List[Feedback] = []
        buffered: Set[str] = set()

        for index, rule in enumerate(self._rules):
            if rule.evaluation is not Granularity.FRAME:
                continue
            threshold = rule.threshold_for(self._view)
            if threshold is None:
                continue
            if not _phase_matches(rule.target_phase, current_phase):
                # Out-of-phase frames count as passes so stale errors clear.
                self._update_debounce(index, True)
                continue

            value = self._frame_value(rule, measurements, buffered)
            if value is None:
                continue

            passed, direction = compare(
                rule.comparator, value, threshold, self.settings.mean_tolerance
            )
            feedback.append(
                Feedback(
                    rule_id=rule.id,
                    error_type=rule.error_type,
                    passed=self._update_debounce(index, passed),
                    value=value,
                    threshold=threshold,
                    direction=direction,
                )
            )

        self._frame_feedback = feedback
        return list(feedback)

    def evaluate_with_phases(
        self,
        rep_aggregates: Aggregates,
        phase_aggregates: Optional[PhaseAggregates] = None,
    ) -> List[Feedback]:
        """Assemble end-of-rep feedback in rule order.

        FRAME rules contribute their cached result from the last frame, REP
        rules are checked against ``rep_aggregates`` and PHASE rules against
        the aggregate of their target phase (skipped if ``phase_aggregates``
        is not given).
        """

        cached = {fb.rule_id: fb for fb in self._frame_feedback}
        feedback: List[Feedback] = []

        for rule in self._rules:
            threshold = rule.threshold_for(self._view)
            if threshold is None:
                continue

            if rule.evaluation is Granularity.FRAME:
                if rule.id in cached:
                    feedback.append(cached[rule.id])
                continue

            if rule.evaluation is Granularity.PHASE:
                if phase_aggregates is None:
                    continue
                source = phase_aggregates.get(rule.target_phase)
                if source is None:
                    continue
            else:
                source = rep_aggregates

            value = resolve_aggregate_value(rule, source)
            if value is None:
                continue

            compared = abs(value) if rule.kind is RuleKind.SYMMETRY else value
            passed, direction = compare(
                rule.comparator, compared, threshold, self.settings.mean_tolerance
            )
            feedback.append(
                Feedback(
                    rule_id=rule.id,
                    error_type=rule.error_type,
                    passed=passed,
                    value=value,
                    threshold=threshold,
                    direction=direction,
                )
            )

        return feedback

    def reset(self) -> None:
        """Clear per-rep frame buffers; debounce state is kept."""
        logger.debug("Clearing frame buffers for %d features", len(self._frame_buffers))
        self._frame_buffers = {}
        self._frame_feedback = []

    def full_reset(self) -> None:
        """Clear everything including debounce state; call once per session."""
        self.reset()
        self._debounce = [DebounceState() for _ in self._rules]

    def _frame_value(
        self, rule: RuleConfig, measurements: Mapping[str, float], buffered: Set[str]
    ) -> Optional[float]:
        if rule.kind is RuleKind.SYMMETRY:
            left = _lookup(measurements, rule.feature_left)
            right = _lookup(measurements, rule.feature_right)
            if left is None or right is None:
                return None
            return abs(left - right)

        value = _lookup(measurements, rule.feature)
        if value is None:
            return None
        if rule.kind is RuleKind.RANGE:
            return value

        window = self.settings.stability_window
        buffer = self._frame_buffers.setdefault(rule.feature, deque(maxlen=window))
        if rule.feature not in buffered:
            buffer.append(value)
            buffered.add(rule.feature)
        if len(buffer) < window:
            return None
        return float(np.std(list(buffer)))

    def _update_debounce(self, index: int, passed: bool) -> bool:
        state = self._debounce[index]
        was_active = state.active
        debounced = state.update(
            passed, self.settings.error_trigger_frames, self.settings.error_clear_frames
        )
        if state.active != was_active:
            rule = self._rules[index]
            if state.active:
                logger.info("Rule %s (%s) error active", rule.id, rule.error_type)
            else:
                logger.info("Rule %s (%s) error cleared", rule.id, rule.error_type)
        return debounced
