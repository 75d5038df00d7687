import io
import json
import logging
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

from repcoach import cli, logging_config
from repcoach.vision.frames import PoseFrame, save_pose_frames
from repcoach.vision.keypoints import Keypoint, Landmark

SQUAT_CYCLE = [100.0] * 5 + [120.0, 140.0, 160.0, 180.0, 200.0] + [180.0, 160.0, 140.0, 120.0, 100.0] + [100.0] * 12


def pose_at(hip_y: float) -> list:
    points = [None] * 33
    layout = {
        Landmark.LEFT_SHOULDER: (90.0, hip_y - 100),
        Landmark.RIGHT_SHOULDER: (110.0, hip_y - 100),
        Landmark.LEFT_HIP: (92.0, hip_y),
        Landmark.RIGHT_HIP: (108.0, hip_y),
        Landmark.LEFT_KNEE: (92.0, 300.0),
        Landmark.RIGHT_KNEE: (108.0, 300.0),
        Landmark.LEFT_ANKLE: (92.0, 400.0),
        Landmark.RIGHT_ANKLE: (108.0, 400.0),
    }
    for idx, (x, y) in layout.items():
        points[idx] = Keypoint(x, y, visibility=0.95)
    return points


class ReplayCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = Path(tempfile.mkdtemp())
        self.recording = self.tmp / "squat.jsonl"
        save_pose_frames(
            self.recording,
            [PoseFrame(i, i / 30.0, pose_at(y)) for i, y in enumerate(SQUAT_CYCLE)],
        )
        patcher = mock.patch.object(cli, "configure_logging")
        self.configure_logging = patcher.start()
        self.addCleanup(patcher.stop)

    def run_cli(self, *argv: str):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_replay_counts_repetitions(self) -> None:
        code, out, _ = self.run_cli("replay", str(self.recording))
        self.assertEqual(code, 0)
        lines = out.strip().splitlines()
        self.assertEqual(lines[-1], "1 repetition(s)")
        self.assertTrue(lines[0].startswith("rep 1: "))
        # The straight-legged recording never reaches depth.
        self.assertIn("insufficient_depth", lines[0])
        self.configure_logging.assert_called_once_with(None)

    def test_replay_json_output(self) -> None:
        code, out, _ = self.run_cli("--log-level", "debug", "replay", str(self.recording), "--json")
        self.assertEqual(code, 0)
        records = [json.loads(line) for line in out.strip().splitlines()]
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["rep"], 1)
        self.assertFalse(records[0]["passed"])
        self.assertIn("squat_depth", [fb["rule_id"] for fb in records[0]["feedback"]])
        self.configure_logging.assert_called_once_with("DEBUG")

    def test_side_view_uses_side_thresholds(self) -> None:
        code, out, _ = self.run_cli("replay", str(self.recording), "--view", "side", "--json")
        self.assertEqual(code, 0)
        feedback = json.loads(out.strip().splitlines()[0])["feedback"]
        ids = [fb["rule_id"] for fb in feedback]
        self.assertNotIn("knee_shift", ids)
        self.assertNotIn("stance_width", ids)
        depth = next(fb for fb in feedback if fb["rule_id"] == "squat_depth")
        self.assertEqual(depth["threshold"], 100.0)

    def test_missing_config_file_exits_with_error(self) -> None:
        code, _, err = self.run_cli(
            "replay", str(self.recording), "--config", str(self.tmp / "missing.json")
        )
        self.assertEqual(code, 2)
        self.assertIn("repcoach: error:", err)

    def test_invalid_config_exits_with_error(self) -> None:
        bad = self.tmp / "bad.json"
        bad.write_text(json.dumps({"exercise": "squat", "rules": [{"id": "x"}]}), encoding="utf-8")
        code, _, err = self.run_cli("replay", str(self.recording), "--config", str(bad))
        self.assertEqual(code, 2)
        self.assertIn("repcoach: error:", err)

    def test_malformed_recording_exits_with_error(self) -> None:
        self.recording.write_text("{not json}\n", encoding="utf-8")
        code, _, _ = self.run_cli("replay", str(self.recording))
        self.assertEqual(code, 2)

    def test_non_utf8_recording_exits_with_error(self) -> None:
        self.recording.write_bytes(b"\xff\xfe{\n")
        code, _, err = self.run_cli("replay", str(self.recording))
        self.assertEqual(code, 2)
        self.assertIn("not UTF-8", err)

    def test_non_utf8_config_exits_with_error(self) -> None:
        bad = self.tmp / "rules.json"
        bad.write_bytes(b"\xff\xfe{\n")
        code, _, err = self.run_cli("replay", str(self.recording), "--config", str(bad))
        self.assertEqual(code, 2)
        self.assertIn("not UTF-8", err)

    def test_unknown_log_level_is_rejected_by_parser(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            self.run_cli("--log-level", "bogus", "replay", str(self.recording))
        self.assertEqual(ctx.exception.code, 2)
        self.configure_logging.assert_not_called()

    def test_logging_setup_error_exits_with_error(self) -> None:
        self.configure_logging.side_effect = ValueError("unknown log level 'LOUD'")
        code, out, err = self.run_cli("replay", str(self.recording))
        self.assertEqual(code, 2)
        self.assertEqual(out, "")
        self.assertIn("LOUD", err)


class ConfigureLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        root = logging.getLogger()
        self._saved = (root.handlers[:], root.level)
        root.handlers = []

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers:
            handler.close()
        root.handlers, level = self._saved
        root.setLevel(level)

    def test_adds_stream_and_file_handlers(self) -> None:
        log_file = Path(tempfile.mkdtemp()) / "repcoach.log"
        logging_config.configure_logging("info", log_file)
        root = logging.getLogger()
        self.assertEqual(root.level, logging.INFO)
        self.assertEqual(len(root.handlers), 2)

    def test_is_idempotent(self) -> None:
        logging_config.configure_logging("warning")
        logging_config.configure_logging("debug")
        root = logging.getLogger()
        self.assertEqual(len(root.handlers), 1)
        self.assertEqual(root.level, logging.WARNING)

    def test_unknown_level_raises(self) -> None:
        with self.assertRaises(ValueError):
            logging_config.configure_logging("chatty")
        self.assertEqual(logging.getLogger().handlers, [])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
