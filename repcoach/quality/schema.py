"""Rule definitions for one exercise, validated with pydantic.

Rule sets are authored as JSON (camelCase keys such as ``targetPhase`` and
``maxDiff`` are accepted alongside the snake_case field names) and are
immutable once loaded.
"""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from repcoach.config import Phase, View


class RuleKind(str, Enum):
    RANGE = "range"
    SYMMETRY = "symmetry"
    STABILITY = "stability"


class Comparator(str, Enum):
    MIN = "min"
    MAX = "max"
    MEAN = "mean"
    STD = "std"


class Granularity(str, Enum):
    FRAME = "FRAME"
    PHASE = "PHASE"
    REP = "REP"


class RuleConfigError(ValueError):
    """Raised when a rule set cannot be loaded or fails validation."""


ThresholdTable = Dict[View, float]


class RuleConfig(BaseModel):
    """A single movement-quality rule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Unique rule identifier.")
    error_type: str = Field(..., description="Error category reported with feedback.")
    kind: RuleKind = Field(..., alias="type")
    comparator: Comparator
    evaluation: Granularity
    target_phase: Optional[Phase] = Field(
        None,
        alias="targetPhase",
        description="Phase the rule applies to. IDLE or unset means any phase for FRAME rules.",
    )
    feature: Optional[str] = Field(None, description="Feature for range and stability rules.")
    feature_left: Optional[str] = None
    feature_right: Optional[str] = None
    thresholds: ThresholdTable = Field(default_factory=dict, description="Range thresholds per view.")
    max_diff: ThresholdTable = Field(
        default_factory=dict, alias="maxDiff", description="Allowed left/right difference per view."
    )
    max_std: ThresholdTable = Field(
        default_factory=dict, alias="maxStd", description="Allowed standard deviation per view."
    )

    @field_validator("thresholds", "max_diff", "max_std")
    @classmethod
    def thresholds_are_finite(cls, v: ThresholdTable) -> ThresholdTable:
        if any(math.isnan(x) or math.isinf(x) for x in v.values()):
            raise ValueError("thresholds must be finite numbers")
        return v

    @model_validator(mode="after")
    def features_match_kind(self) -> "RuleConfig":
        if self.kind is RuleKind.SYMMETRY:
            if not self.feature_left or not self.feature_right:
                raise ValueError(f"symmetry rule {self.id!r} needs feature_left and feature_right")
        elif not self.feature:
            raise ValueError(f"{self.kind.value} rule {self.id!r} needs a feature")
        if self.evaluation is Granularity.PHASE and self.target_phase is None:
            raise ValueError(f"PHASE rule {self.id!r} needs a targetPhase")
        return self

    def threshold_for(self, view: View) -> Optional[float]:
        """Threshold for ``view`` from the table matching this rule's kind."""
        if self.kind is RuleKind.RANGE:
            table = self.thresholds
        elif self.kind is RuleKind.SYMMETRY:
            table = self.max_diff
        else:
            table = self.max_std
        return table.get(View(view))

    @property
    def features(self) -> Tuple[str, ...]:
        """Feature names this rule reads."""
        if self.kind is RuleKind.SYMMETRY:
            return (self.feature_left, self.feature_right)  # type: ignore[return-value]
        return (self.feature,)  # type: ignore[return-value]


class ExerciseConfig(BaseModel):
    """Static rule set for one exercise."""

    model_config = ConfigDict(frozen=True)

    exercise: str = Field(..., min_length=1)
    rules: Tuple[RuleConfig, ...] = Field(default_factory=tuple)

    @field_validator("rules")
    @classmethod
    def rule_ids_unique(cls, v: Tuple[RuleConfig, ...]) -> Tuple[RuleConfig, ...]:
        seen = set()
        for rule in v:
            if rule.id in seen:
                raise ValueError(f"duplicate rule id: {rule.id}")
            seen.add(rule.id)
        return v

    def feature_names(self) -> FrozenSet[str]:
        return frozenset(name for rule in self.rules for name in rule.features)


def load_exercise_config(path: Union[str, Path]) -> ExerciseConfig:
    """Load and validate an exercise rule set from a JSON file.

    Raises:
        RuleConfigError: if the file content is not a valid rule set.
        FileNotFoundError: if ``path`` does not exist.
    """

    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise RuleConfigError(f"Exercise config {path} is not UTF-8 text: {exc}") from exc
    try:
        return ExerciseConfig.model_validate_json(text)
    except ValidationError as exc:
        raise RuleConfigError(f"Invalid exercise config {path}: {exc}") from exc
