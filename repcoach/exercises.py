"""Built-in rule sets.

Angles are in degrees, stance width is ankle spacing over shoulder width.
A view missing from a rule's table means the rule cannot be judged from
that camera position.
"""

from __future__ import annotations

from repcoach.quality.schema import ExerciseConfig

SQUAT_RULES = {
    "exercise": "squat",
    "rules": [
        {
            "id": "squat_depth",
            "error_type": "insufficient_depth",
            "type": "range",
            "comparator": "min",
            "evaluation": "REP",
            "feature": "knee_angle",
            # Deepest knee angle must reach this.
            "thresholds": {"front": 110.0, "side": 100.0},
        },
        {
            "id": "knee_symmetry",
            "error_type": "uneven_knees",
            "type": "symmetry",
            "comparator": "max",
            "evaluation": "PHASE",
            "targetPhase": "ASCENDING",
            "feature_left": "knee_angle_left",
            "feature_right": "knee_angle_right",
            "maxDiff": {"front": 15.0},
        },
        {
            "id": "knee_shift",
            "error_type": "knee_shift",
            "type": "symmetry",
            "comparator": "max",
            "evaluation": "FRAME",
            "feature_left": "knee_angle_left",
            "feature_right": "knee_angle_right",
            "maxDiff": {"front": 25.0},
        },
        {
            "id": "forward_lean",
            "error_type": "excessive_forward_lean",
            "type": "range",
            "comparator": "max",
            "evaluation": "FRAME",
            "feature": "trunk_angle",
            "thresholds": {"side": 45.0},
        },
        {
            "id": "descent_lean",
            "error_type": "excessive_forward_lean",
            "type": "range",
            "comparator": "max",
            "evaluation": "PHASE",
            "targetPhase": "DESCENDING",
            "feature": "trunk_angle",
            "thresholds": {"side": 50.0},
        },
        {
            "id": "trunk_stability",
            "error_type": "unstable_torso",
            "type": "stability",
            "comparator": "std",
            "evaluation": "FRAME",
            "targetPhase": "DESCENDING",
            "feature": "trunk_angle",
            "maxStd": {"side": 8.0},
        },
        {
            "id": "stance_width",
            "error_type": "stance_width",
            "type": "range",
            "comparator": "mean",
            "evaluation": "REP",
            "feature": "stance_width",
            "thresholds": {"front": 1.2},
        },
    ],
}


def default_squat_config() -> ExerciseConfig:
    return ExerciseConfig.model_validate(SQUAT_RULES)
