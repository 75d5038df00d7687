"""JSONL recording of landmark frames.

One JSON object per line keeps recordings easy to inspect and lets a
captured stream be replayed through a session without the pose model.
Every record carries the format version under ``"v"``; records written
before the field existed are read as version 1.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional

from repcoach.vision.keypoints import Keypoint

FORMAT_VERSION = 1


class FrameFormatError(ValueError):
    """Raised when a recording line cannot be parsed into a frame."""


@dataclass(frozen=True)
class PoseFrame:
    """Landmarks for a single frame."""

    frame_index: int
    timestamp: float
    keypoints: List[Optional[Keypoint]]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _record(frame: PoseFrame) -> dict:
    return {
        "v": FORMAT_VERSION,
        "frame_index": frame.frame_index,
        "timestamp": frame.timestamp,
        "keypoints": [None if kp is None else asdict(kp) for kp in frame.keypoints],
    }


def _parse_keypoint(obj: Any) -> Optional[Keypoint]:
    if obj is None:
        return None
    if not isinstance(obj, dict):
        raise FrameFormatError(f"keypoint must be an object or null, got {type(obj).__name__}")
    if not (_is_number(obj.get("x")) and _is_number(obj.get("y"))):
        raise FrameFormatError("keypoint needs numeric x and y")
    return Keypoint(**obj)


def _parse_record(obj: Any) -> PoseFrame:
    if not isinstance(obj, dict):
        raise FrameFormatError("record must be a JSON object")

    version = obj.get("v", 1)
    if version != FORMAT_VERSION:
        raise FrameFormatError(f"unsupported recording version {version!r}")

    index = obj["frame_index"]
    if not isinstance(index, int) or isinstance(index, bool) or index < 0:
        raise FrameFormatError(f"frame_index must be a non-negative integer, got {index!r}")

    timestamp = obj.get("timestamp", 0.0)
    if not _is_number(timestamp) or not math.isfinite(timestamp):
        raise FrameFormatError(f"timestamp must be a finite number, got {timestamp!r}")

    keypoints = obj["keypoints"]
    if not isinstance(keypoints, list):
        raise FrameFormatError("keypoints must be a list")

    return PoseFrame(
        frame_index=index,
        timestamp=float(timestamp),
        keypoints=[_parse_keypoint(kp) for kp in keypoints],
    )


def save_pose_frames(
    path: Path, frames: Iterable[PoseFrame], *, overwrite: bool = True
) -> int:
    """Write ``frames`` to ``path`` as JSONL and return how many were written.

    The file is written next to its destination and moved into place, so an
    interrupted write never leaves a truncated recording behind.
    """

    path = Path(path)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Recording already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)

    partial = path.with_name(path.name + ".partial")
    count = 0
    try:
        with partial.open("w", encoding="utf-8") as fh:
            for frame in frames:
                fh.write(json.dumps(_record(frame)))
                fh.write("\n")
                count += 1
        os.replace(partial, path)
    finally:
        if partial.exists():
            partial.unlink()
    return count


def load_pose_frames(path: Path) -> Iterator[PoseFrame]:
    """Yield the frames of a JSONL recording, skipping blank lines.

    Raises:
        FrameFormatError: on undecodable bytes, malformed JSON, an unknown
            format version or a record with missing or mistyped fields.
    """

    path = Path(path)
    line_no = 0
    with path.open("r", encoding="utf-8") as fh:
        try:
            for line_no, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                try:
                    frame = _parse_record(json.loads(line))
                except FrameFormatError as exc:
                    raise FrameFormatError(f"{path}:{line_no}: {exc}") from exc
                except (json.JSONDecodeError, KeyError, TypeError) as exc:
                    raise FrameFormatError(f"{path}:{line_no}: invalid frame record: {exc}") from exc
                yield frame
        except UnicodeDecodeError as exc:
            raise FrameFormatError(f"{path}:{line_no + 1}: recording is not UTF-8 text") from exc
