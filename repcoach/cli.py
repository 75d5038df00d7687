"""Command-line interface.

``repcoach replay frames.jsonl [--config rules.json] [--view side]`` feeds a
recorded landmark stream through an :class:`ExerciseSession` and prints the
end-of-rep feedback.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from repcoach.config import View
from repcoach.exercises import default_squat_config
from repcoach.logging_config import LOG_LEVELS, configure_logging
from repcoach.quality.schema import RuleConfigError, load_exercise_config
from repcoach.session import ExerciseSession, RepSummary
from repcoach.vision.frames import FrameFormatError, load_pose_frames


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="repcoach", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: $REPCOACH_LOG_LEVEL or WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", help="Replay a JSONL landmark recording.")
    replay.add_argument("frames", type=Path, help="JSONL file written by save_pose_frames.")
    replay.add_argument("--config", type=Path, default=None, help="Exercise rule set (JSON). Defaults to squat.")
    replay.add_argument(
        "--view",
        choices=[v.value for v in View],
        default=View.FRONT.value,
        help="Camera placement used to pick thresholds.",
    )
    replay.add_argument("--min-visibility", type=float, default=0.5)
    replay.add_argument("--json", action="store_true", help="Emit one JSON object per repetition.")
    return parser


def _format_rep(summary: RepSummary) -> str:
    if summary.passed:
        return f"rep {summary.rep_index}: ok"
    return f"rep {summary.rep_index}: " + ", ".join(summary.errors)


def _rep_to_json(summary: RepSummary) -> str:
    return json.dumps(
        {
            "rep": summary.rep_index,
            "passed": summary.passed,
            "feedback": [asdict(fb) for fb in summary.feedback],
        }
    )


def replay(args: argparse.Namespace) -> int:
    config = load_exercise_config(args.config) if args.config else default_squat_config()
    session = ExerciseSession(config, view=View(args.view))
    session.start_set()

    for frame in load_pose_frames(args.frames):
        result = session.process_keypoints(frame.keypoints, min_visibility=args.min_visibility)
        if result.rep is not None:
            print(_rep_to_json(result.rep) if args.json else _format_rep(result.rep))

    if not args.json:
        print(f"{session.rep_count} repetition(s)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        print(f"repcoach: error: {exc}", file=sys.stderr)
        return 2
    try:
        return replay(args)
    except (RuleConfigError, FrameFormatError, FileNotFoundError) as exc:
        print(f"repcoach: error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
