"""Per-repetition and per-phase accumulation of derived measurements.

Samples are tagged with the phase the caller last set, so every measurement
lands in two series: one spanning the whole repetition and one for the
active phase. Aggregates are computed on demand and are plain
``{name: value}`` mappings with ``<feature>_min``, ``_max``, ``_mean`` and
``_std`` (population) entries plus the bare feature name as a mean alias.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from repcoach.config import PHASES, Phase

logger = logging.getLogger(__name__)

Aggregates = Dict[str, float]
PhaseAggregates = Dict[Phase, Aggregates]


class UnknownFeatureError(KeyError):
    """Raised when a feature outside the configured vocabulary is recorded."""


def summarize(series: Mapping[str, Sequence[float]]) -> Aggregates:
    """Compute min/max/mean/std for every non-empty series.

    Empty series are left out entirely rather than reported as NaN.
    """

    result: Aggregates = {}
    for name, values in series.items():
        if not values:
            continue
        arr = np.asarray(values, dtype=float)
        mean = float(arr.mean())
        result[f"{name}_min"] = float(arr.min())
        result[f"{name}_max"] = float(arr.max())
        result[f"{name}_mean"] = mean
        result[f"{name}_std"] = float(arr.std())
        result[name] = mean
    return result


class FeatureAggregator:
    """Collects named scalar samples for one repetition.

    Args:
        features: Optional vocabulary of accepted feature names. When given,
            recording any other name raises :class:`UnknownFeatureError` so a
            typo cannot silently start an orphan series.
    """

    def __init__(self, features: Optional[Iterable[str]] = None) -> None:
        self._vocabulary = frozenset(features) if features is not None else None
        self._phase = Phase.IDLE
        self._rep: Dict[str, List[float]] = {}
        self._by_phase: Dict[Phase, Dict[str, List[float]]] = {p: {} for p in PHASES}

    @property
    def phase(self) -> Phase:
        return self._phase

    def set_phase(self, phase: Phase) -> None:
        """Tag subsequent samples with ``phase``."""
        self._phase = Phase(phase)

    def record_feature(self, name: str, value: Optional[float]) -> None:
        """Append one sample; NaN or ``None`` means "not computed" and is ignored."""
        if self._vocabulary is not None and name not in self._vocabulary:
            raise UnknownFeatureError(name)
        if value is None or math.isnan(value):
            return
        value = float(value)
        self._rep.setdefault(name, []).append(value)
        self._by_phase[self._phase].setdefault(name, []).append(value)

    def record_features(self, measurements: Mapping[str, Optional[float]]) -> None:
        for name, value in measurements.items():
            self.record_feature(name, value)

    def sample_count(self, name: str, phase: Optional[Phase] = None) -> int:
        """Number of accepted samples for ``name`` in the rep or in one phase."""
        source = self._rep if phase is None else self._by_phase[Phase(phase)]
        return len(source.get(name, ()))

    def get_rep_aggregates(self) -> Aggregates:
        return summarize(self._rep)

    def get_phase_aggregates(self) -> PhaseAggregates:
        """Aggregates per phase; all three phase keys are always present."""
        return {phase: summarize(self._by_phase[phase]) for phase in PHASES}

    def reset(self) -> None:
        """Drop every series and go back to IDLE; call once per finished rep."""
        logger.debug("Discarding %d feature series", len(self._rep))
        self._phase = Phase.IDLE
        self._rep = {}
        self._by_phase = {p: {} for p in PHASES}
