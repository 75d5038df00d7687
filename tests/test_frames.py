import json
import tempfile
import unittest
from pathlib import Path

from repcoach.vision import frames
from repcoach.vision.keypoints import Keypoint


class PoseFrameRecordingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.path = Path(tempfile.mkdtemp()) / "nested" / "session.jsonl"

    def test_roundtrip(self) -> None:
        recorded = [
            frames.PoseFrame(
                frame_index=0,
                timestamp=0.0,
                keypoints=[Keypoint(x=10.0, y=20.0, z=0.3, visibility=0.9, name="nose")],
            ),
            frames.PoseFrame(
                frame_index=1,
                timestamp=0.033,
                keypoints=[None, Keypoint(x=1.0, y=2.0)],
            ),
        ]

        frames.save_pose_frames(self.path, recorded)
        loaded = list(frames.load_pose_frames(self.path))
        self.assertEqual(recorded, loaded)

    def test_blank_lines_are_skipped(self) -> None:
        frames.save_pose_frames(self.path, [frames.PoseFrame(0, 0.0, [Keypoint(1.0, 1.0)])])
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write("\n\n")
        self.assertEqual(len(list(frames.load_pose_frames(self.path))), 1)

    def test_refuses_to_overwrite_when_asked(self) -> None:
        frames.save_pose_frames(self.path, [])
        with self.assertRaises(FileExistsError):
            frames.save_pose_frames(self.path, [], overwrite=False)

    def test_malformed_line_raises(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text('{"frame_index": 0, "keypoints": [{"x": 1}]}\n', encoding="utf-8")
        with self.assertRaises(frames.FrameFormatError):
            list(frames.load_pose_frames(self.path))

        self.path.write_text("not json\n", encoding="utf-8")
        with self.assertRaises(frames.FrameFormatError):
            list(frames.load_pose_frames(self.path))

    def test_save_reports_count_and_leaves_no_partial_file(self) -> None:
        written = frames.save_pose_frames(
            self.path, [frames.PoseFrame(i, i / 30.0, []) for i in range(3)]
        )
        self.assertEqual(written, 3)
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["session.jsonl"])

    def test_records_carry_format_version(self) -> None:
        frames.save_pose_frames(self.path, [frames.PoseFrame(0, 0.0, [])])
        record = json.loads(self.path.read_text(encoding="utf-8"))
        self.assertEqual(record["v"], frames.FORMAT_VERSION)

    def test_unversioned_records_are_read(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            '{"frame_index": 4, "timestamp": 0.5, "keypoints": [null, {"x": 1, "y": 2}]}\n',
            encoding="utf-8",
        )
        (frame,) = frames.load_pose_frames(self.path)
        self.assertEqual(frame.frame_index, 4)
        self.assertEqual(frame.keypoints, [None, Keypoint(x=1, y=2)])

    def test_invalid_records_are_rejected(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for line in (
            '{"v": 2, "frame_index": 0, "keypoints": []}',
            '{"frame_index": -1, "keypoints": []}',
            '{"frame_index": 0, "timestamp": "soon", "keypoints": []}',
            '{"frame_index": 0, "keypoints": {}}',
            '{"frame_index": 0, "keypoints": [[1, 2]]}',
            '[1, 2, 3]',
        ):
            self.path.write_text(line + "\n", encoding="utf-8")
            with self.assertRaises(frames.FrameFormatError, msg=line):
                list(frames.load_pose_frames(self.path))

    def test_non_utf8_recording_raises(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(b"\xff\xfe{\n")
        with self.assertRaises(frames.FrameFormatError):
            list(frames.load_pose_frames(self.path))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
