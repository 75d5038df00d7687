"""Per-frame driver for one exercise session.

Each frame: update the phase detector with the reference coordinate, tag the
aggregator with the resulting phase, record the measurements and evaluate
frame-level rules. On the frame a repetition finishes, the rep and phase
aggregates are evaluated and the per-rep state is cleared while the rule
engine's debounce state carries over.

A session owns its components; run one session object per user/stream.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from repcoach.config import DebounceConfig, Phase, PhaseDetectorConfig, View
from repcoach.quality.rules import Feedback, RuleEngine
from repcoach.quality.schema import ExerciseConfig
from repcoach.repdetect.phase import PhaseDetector
from repcoach.signals.aggregate import Aggregates, FeatureAggregator, PhaseAggregates
from repcoach.signals.kinematics import squat_measurements
from repcoach.vision.keypoints import Keypoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepSummary:
    """End-of-repetition evaluation."""

    rep_index: int
    feedback: List[Feedback]
    rep_aggregates: Aggregates
    phase_aggregates: PhaseAggregates

    @property
    def passed(self) -> bool:
        return all(fb.passed for fb in self.feedback)

    @property
    def errors(self) -> List[str]:
        return [fb.error_type for fb in self.feedback if not fb.passed]


@dataclass(frozen=True)
class FrameResult:
    phase: Phase
    velocity: float
    rep_finished: bool
    frame_feedback: List[Feedback]
    rep: Optional[RepSummary] = None


class ExerciseSession:
    """Runs the detector, aggregator and rule engine for one exercise."""

    def __init__(
        self,
        config: ExerciseConfig,
        *,
        view: View = View.FRONT,
        phase_config: Optional[PhaseDetectorConfig] = None,
        debounce: Optional[DebounceConfig] = None,
    ) -> None:
        self.config = config
        self.detector = PhaseDetector(phase_config)
        self.aggregator = FeatureAggregator()
        self.engine = RuleEngine(config, view=view, debounce=debounce)
        self.rep_count = 0

    def start_set(self) -> None:
        """Prepare for a new set; debounce state is kept."""
        self.detector.reset()
        self.aggregator.reset()
        self.engine.reset()

    def end_session(self) -> None:
        self.start_set()
        self.engine.full_reset()
        self.rep_count = 0

    def process(self, reference: Optional[float], measurements: Mapping[str, float]) -> FrameResult:
        """Feed one frame.

        Args:
            reference: Vertical reference coordinate (NaN/None if unmeasured).
            measurements: Named feature values for this frame; NaN entries are
                ignored by both the aggregator and the rules.
        """

        update = self.detector.detect(reference)
        self.aggregator.set_phase(update.phase)
        self.aggregator.record_features(measurements)
        frame_feedback = self.engine.evaluate_frame(measurements, update.phase)

        rep = self._finish_rep() if update.rep_finished else None
        return FrameResult(
            phase=update.phase,
            velocity=update.velocity,
            rep_finished=update.rep_finished,
            frame_feedback=frame_feedback,
            rep=rep,
        )

    def process_keypoints(
        self, keypoints: Sequence[Optional[Keypoint]], *, min_visibility: float = 0.5
    ) -> FrameResult:
        """Derive squat measurements from landmarks and feed the frame."""
        frame = squat_measurements(keypoints, min_visibility=min_visibility)
        return self.process(frame.reference, frame.measurements)

    def _finish_rep(self) -> RepSummary:
        rep_aggregates = self.aggregator.get_rep_aggregates()
        phase_aggregates = self.aggregator.get_phase_aggregates()
        feedback = self.engine.evaluate_with_phases(rep_aggregates, phase_aggregates)

        self.rep_count += 1
        summary = RepSummary(
            rep_index=self.rep_count,
            feedback=feedback,
            rep_aggregates=rep_aggregates,
            phase_aggregates=phase_aggregates,
        )
        logger.info(
            "Rep %d finished: %s",
            summary.rep_index,
            "ok" if summary.passed else ", ".join(summary.errors),
        )

        self.aggregator.reset()
        self.engine.reset()
        return summary
