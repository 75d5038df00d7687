import math
import unittest

from repcoach.signals.kinematics import SQUAT_FEATURES, squat_measurements
from repcoach.vision.keypoints import Keypoint, Landmark


def standing_pose(hip_y: float = 200.0, visibility: float = 0.9) -> list:
    points = [Keypoint(0.0, 0.0, visibility=0.0) for _ in range(33)]
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
        points[idx] = Keypoint(x, y, visibility=visibility)
    return points


class SquatMeasurementTests(unittest.TestCase):
    def test_standing_pose(self) -> None:
        frame = squat_measurements(standing_pose())
        m = frame.measurements

        self.assertEqual(set(m), set(SQUAT_FEATURES))
        self.assertEqual(frame.reference, 200.0)
        self.assertAlmostEqual(m["knee_angle_left"], 180.0)
        self.assertAlmostEqual(m["knee_angle_right"], 180.0)
        self.assertAlmostEqual(m["knee_angle"], 180.0)
        self.assertAlmostEqual(m["trunk_angle"], 0.0)
        self.assertAlmostEqual(m["stance_width"], 16.0 / 20.0)

    def test_low_visibility_landmark_yields_nan(self) -> None:
        points = standing_pose()
        knee = points[Landmark.LEFT_KNEE]
        points[Landmark.LEFT_KNEE] = Keypoint(knee.x, knee.y, visibility=0.1)

        m = squat_measurements(points).measurements
        self.assertTrue(math.isnan(m["knee_angle_left"]))
        self.assertTrue(math.isnan(m["knee_angle"]))
        self.assertAlmostEqual(m["knee_angle_right"], 180.0)

    def test_missing_landmarks(self) -> None:
        frame = squat_measurements([])
        self.assertTrue(math.isnan(frame.reference))
        self.assertTrue(all(math.isnan(v) for v in frame.measurements.values()))

    def test_visibility_threshold_is_configurable(self) -> None:
        frame = squat_measurements(standing_pose(visibility=0.4), min_visibility=0.3)
        self.assertEqual(frame.reference, 200.0)
        frame = squat_measurements(standing_pose(visibility=0.4))
        self.assertTrue(math.isnan(frame.reference))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
