"""
Feature extraction tests.

Uses synthetic landmarks with known geometry (tests/fixtures/synthetic_landmarks.py)
to check each feature ratio, scale/position invariance, and absent/malformed input.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import math
import unittest

import numpy as np


class TestGeometry(unittest.TestCase):
    """Test geometry helpers."""

    def test_distance_ignores_depth(self):
        """distance should use x, y only."""
        from nmf.geometry import distance
        self.assertAlmostEqual(distance((0, 0, 5), (3, 4, -2)), 5.0)

    def test_angle_degrees(self):
        """angle_degrees should measure from horizontal."""
        from nmf.geometry import angle_degrees
        self.assertAlmostEqual(angle_degrees((0, 0), (1, 0)), 0.0)
        self.assertAlmostEqual(angle_degrees((0, 0), (1, 1)), 45.0)
        self.assertAlmostEqual(angle_degrees((0, 0), (0, -1)), -90.0)

    def test_ratio_zero_denominator_is_finite(self):
        """Coincident landmarks should give a finite ratio, not a division fault."""
        from nmf.geometry import ratio
        value = ratio(0.01, 0.0)
        self.assertTrue(math.isfinite(value))
        self.assertAlmostEqual(ratio(0.0, 0.0), 0.0)

    def test_midpoint(self):
        """midpoint should average x and y."""
        from nmf.geometry import midpoint
        np.testing.assert_allclose(midpoint((0, 0, 1), (2, 4, 3)), [1.0, 2.0])


class TestLandmarkValidation(unittest.TestCase):
    """Test landmark set validation."""

    def test_absent_and_wrong_length(self):
        """None, wrong point counts and wrong shapes should be rejected as absent."""
        from nmf.landmarks import as_face_landmarks, as_pose_landmarks
        self.assertIsNone(as_face_landmarks(None))
        self.assertIsNone(as_face_landmarks(np.zeros((100, 3))))
        self.assertIsNone(as_face_landmarks(np.zeros(478)))
        self.assertIsNone(as_face_landmarks("not landmarks"))
        self.assertIsNone(as_pose_landmarks(np.zeros((32, 3))))

    def test_non_finite_rejected(self):
        """A face set containing NaN should be rejected."""
        from nmf.landmarks import as_face_landmarks
        from tests.fixtures.synthetic_landmarks import make_face
        face = make_face()
        face[10, 0] = np.nan
        self.assertIsNone(as_face_landmarks(face))

    def test_accepts_both_mesh_tiers_and_2d(self):
        """468 and 478 point sets, with or without depth, should be accepted."""
        from nmf.landmarks import as_face_landmarks, has_iris
        from tests.fixtures.synthetic_landmarks import make_face
        refined = as_face_landmarks(make_face())
        basic = as_face_landmarks(make_face(refined=False)[:, :2])
        self.assertIsNotNone(refined)
        self.assertIsNotNone(basic)
        self.assertTrue(has_iris(refined))
        self.assertFalse(has_iris(basic))


class TestFeatureExtractor(unittest.TestCase):
    """Test NMFFeatureExtractor against synthetic faces."""

    def setUp(self):
        from nmf.feature_extractor import NMFFeatureExtractor
        self.extractor = NMFFeatureExtractor()

    def test_absent_face_returns_none(self):
        """No face (or a malformed one) should yield no vector."""
        self.assertIsNone(self.extractor.extract(None))
        self.assertIsNone(self.extractor.extract([[0.1, 0.2]]))

    def test_vector_has_all_features_in_order(self):
        """Vector keys should be FEATURE_NAMES, all finite."""
        from nmf.feature_extractor import FEATURE_NAMES
        from tests.fixtures.synthetic_landmarks import make_face
        v = self.extractor.extract(make_face())
        self.assertEqual(list(v.keys()), FEATURE_NAMES)
        self.assertTrue(all(math.isfinite(x) for x in v.values()))

    def test_neutral_face_values(self):
        """Neutral synthetic face should reproduce its construction values."""
        from tests.fixtures.synthetic_landmarks import NEUTRAL, make_face
        v = self.extractor.extract(make_face())
        for name, expected in NEUTRAL.items():
            self.assertAlmostEqual(v[name], expected, delta=1e-4, msg=name)

    def test_each_feature_tracks_its_parameter(self):
        """Raising one construction parameter should move the matching feature."""
        from tests.fixtures.synthetic_landmarks import make_face
        cases = [
            ({"brow_raise": 0.15}, "browRaise", 0.15),
            ({"brow_asymmetry": 0.05}, "browAsymmetry", 0.05),
            ({"eye_openness": 0.02}, "eyeOpenness", 0.02),
            ({"mouth_open": 0.10}, "mouthOpen", 0.10),
            ({"smile": 0.65}, "smileMetric", 0.65),
            ({"nod": 0.9}, "headNod", 0.9),
            ({"yaw": -0.12}, "headYaw", -0.12),
            ({"gaze": 0.06}, "gazeMetric", 0.06),
            ({"roll": 12.0}, "headRoll", 12.0),
        ]
        for kwargs, name, expected in cases:
            v = self.extractor.extract(make_face(**kwargs))
            self.assertAlmostEqual(v[name], expected, delta=1e-4, msg=f"{name} {kwargs}")

    def test_scale_and_position_invariance(self):
        """Same expression at a different size/position should give the same vector."""
        from tests.fixtures.synthetic_landmarks import make_face
        base = self.extractor.extract(make_face(brow_raise=0.14, mouth_open=0.09, roll=5.0))
        for scale, offset in ((0.5, (0.1, -0.05)), (1.5, (-0.02, 0.03))):
            moved = self.extractor.extract(
                make_face(brow_raise=0.14, mouth_open=0.09, roll=5.0, scale=scale, offset=offset)
            )
            for name in base:
                self.assertAlmostEqual(base[name], moved[name], delta=1e-4, msg=f"{name} scale={scale}")

    def test_scale_invariance_at_tight_tolerance(self):
        """Scaling a face by k should leave every feature within 1e-6."""
        from tests.fixtures.synthetic_landmarks import make_face
        kwargs = dict(brow_raise=0.14, brow_asymmetry=0.03, mouth_open=0.09, gaze=0.04, yaw=0.05, roll=5.0)
        # IOD 0.4 and 0.6: large enough that the 1e-6 ratio floor stays below tolerance
        base = self.extractor.extract(make_face(scale=2.0, **kwargs))
        scaled = self.extractor.extract(make_face(scale=3.0, offset=(0.05, -0.02), **kwargs))
        for name in base:
            self.assertAlmostEqual(base[name], scaled[name], delta=1e-6, msg=name)

    def test_closing_upper_lid_keeps_brow_raise(self):
        """A blink (upper lid onto lower lid) should not change browRaise."""
        from tests.fixtures.synthetic_landmarks import NEUTRAL, make_face
        face = make_face()
        face[159, 1] = face[145, 1]
        face[386, 1] = face[374, 1]
        v = self.extractor.extract(face)
        self.assertAlmostEqual(v["eyeOpenness"], 0.0, delta=1e-9)
        self.assertAlmostEqual(v["browRaise"], NEUTRAL["browRaise"], delta=1e-6)
        self.assertAlmostEqual(v["browAsymmetry"], 0.0, delta=1e-9)

    def test_mirrored_frame_head_roll_folds(self):
        """A horizontally mirrored face should read a small roll, not one near 180 degrees."""
        from tests.fixtures.synthetic_landmarks import make_face
        face = make_face(roll=3.0)
        face[:, 0] = 1.0 - face[:, 0]
        v = self.extractor.extract(face)
        self.assertAlmostEqual(v["headRoll"], -3.0, delta=1e-6)
        level = make_face()
        level[:, 0] = 1.0 - level[:, 0]
        self.assertAlmostEqual(self.extractor.extract(level)["headRoll"], 0.0, delta=1e-9)

    def test_gaze_falls_back_without_iris(self):
        """Without iris points gazeMetric should come from the eye corners (0 for a symmetric face)."""
        from tests.fixtures.synthetic_landmarks import make_face
        v = self.extractor.extract(make_face(refined=False, gaze=0.2))
        self.assertAlmostEqual(v["gazeMetric"], 0.0, delta=1e-6)

    def test_pose_features_default_to_zero(self):
        """Without a pose set, torsoLean and shoulderTilt should be 0."""
        from tests.fixtures.synthetic_landmarks import make_face
        v = self.extractor.extract(make_face(), None)
        self.assertEqual(v["torsoLean"], 0.0)
        self.assertEqual(v["shoulderTilt"], 0.0)

    def test_pose_features(self):
        """Shoulder tilt in degrees and torso depth in face IOD units."""
        from tests.fixtures.synthetic_landmarks import make_face, make_pose
        v = self.extractor.extract(make_face(), make_pose(shoulder_tilt=12.0, torso=2.5))
        self.assertAlmostEqual(v["shoulderTilt"], 12.0, delta=1e-6)
        self.assertAlmostEqual(v["torsoLean"], 2.5, delta=1e-4)
        level = self.extractor.extract(make_face(), make_pose())
        self.assertAlmostEqual(level["shoulderTilt"], 0.0, delta=1e-9)

    def test_malformed_pose_is_ignored(self):
        """A malformed pose should be treated as absent, not fail the face."""
        from tests.fixtures.synthetic_landmarks import make_face
        v = self.extractor.extract(make_face(), np.zeros((5, 3)))
        self.assertIsNotNone(v)
        self.assertEqual(v["shoulderTilt"], 0.0)

    def test_module_shortcut(self):
        """extract_features should match the class."""
        from nmf.feature_extractor import extract_features
        from tests.fixtures.synthetic_landmarks import make_face
        face = make_face(mouth_open=0.07)
        self.assertEqual(extract_features(face), self.extractor.extract(face))


if __name__ == "__main__":
    unittest.main()
