"""
NMF Feature Extractor Module

Turns one face landmark set (and an optional pose landmark set) into a fixed
Feature Vector of dimensionless ratios used by the hysteresis classifier.

Every ratio is normalized by the inter-ocular distance (outer eye corner to
outer eye corner), so subject distance from the camera and face size do not move
the thresholds. Angles (head roll, shoulder tilt) are scale-free already.

Features extracted:
- eyeOpenness    vertical eyelid gap, both eyes averaged
- browRaise      brow height above the eye-corner midpoint (positive = brow above eye)
- mouthOpen      inner-lip gap
- headRoll       angle of the outer-eye line, degrees, folded into (-90, 90]
- headNod        chin below nose tip (grows as the chin drops)
- browAsymmetry  |left brow gap - right brow gap|
- smileMetric    mouth corner-to-corner width
- gazeMetric     iris offset from the eye-corner midpoint (negative = left)
- torsoLean      hip midpoint below shoulder midpoint (pose only, else 0)
- headYaw        nose tip offset from the mid-eye point (negative = left)
- shoulderTilt   angle of the shoulder line, degrees (pose only, else 0)
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from nmf import landmarks as lm
from nmf.geometry import angle_degrees, distance, midpoint, ratio

logger = logging.getLogger(__name__)

# Stable column order: Feature Vector keys, corpus header, JSON output.
FEATURE_NAMES: List[str] = [
    "eyeOpenness",
    "browRaise",
    "mouthOpen",
    "headRoll",
    "headNod",
    "browAsymmetry",
    "smileMetric",
    "gazeMetric",
    "torsoLean",
    "headYaw",
    "shoulderTilt",
]


def _fold_angle(deg: float) -> float:
    """Fold an angle into (-90, 90] so a left-to-right line reads near 0 either way round."""
    if deg > 90.0:
        return deg - 180.0
    if deg <= -90.0:
        return deg + 180.0
    return deg


class NMFFeatureExtractor:
    """
    Stateless extractor for non-manual feature ratios.

    Usage:
        extractor = NMFFeatureExtractor()
        vector = extractor.extract(face_landmarks, pose_landmarks)
        if vector is not None:
            print(vector["browRaise"])
    """

    def extract(
        self,
        face_landmarks,
        pose_landmarks=None,
    ) -> Optional[Dict[str, float]]:
        """
        Compute the Feature Vector.

        Args:
            face_landmarks: (468|478, 2|3) array-like in normalized coordinates, or None
            pose_landmarks: (33, 2|3) array-like, or None

        Returns:
            Dict keyed by FEATURE_NAMES, or None when the face set is absent or malformed.
        """
        face = lm.as_face_landmarks(face_landmarks)
        if face is None:
            return None
        pose = lm.as_pose_landmarks(pose_landmarks)

        iod = distance(face[lm.LEFT_EYE_OUTER], face[lm.RIGHT_EYE_OUTER])

        features: Dict[str, float] = {}
        features.update(self._extract_eye_features(face, iod))
        features.update(self._extract_brow_features(face, iod))
        features.update(self._extract_mouth_features(face, iod))
        features.update(self._extract_head_features(face, iod))
        features["gazeMetric"] = self._gaze_metric(face, iod)
        features.update(self._extract_pose_features(pose, iod))

        vector = {name: float(features.get(name, 0.0)) for name in FEATURE_NAMES}
        if not all(np.isfinite(v) for v in vector.values()):
            # Only reachable with pathological input; keep the finiteness contract.
            logger.warning("Non-finite feature values replaced with 0: %s", vector)
            vector = {k: (v if np.isfinite(v) else 0.0) for k, v in vector.items()}
        return vector

    def _extract_eye_features(self, face: np.ndarray, iod: float) -> Dict[str, float]:
        left_gap = face[lm.LEFT_EYE_BOTTOM, 1] - face[lm.LEFT_EYE_TOP, 1]
        right_gap = face[lm.RIGHT_EYE_BOTTOM, 1] - face[lm.RIGHT_EYE_TOP, 1]
        return {"eyeOpenness": ratio((left_gap + right_gap) / 2.0, iod)}

    def _brow_gaps(self, face: np.ndarray):
        # Eye corners, not eyelids: a blink must not move the reference.
        left_eye_center = midpoint(face[lm.LEFT_EYE_OUTER], face[lm.LEFT_EYE_INNER])
        right_eye_center = midpoint(face[lm.RIGHT_EYE_OUTER], face[lm.RIGHT_EYE_INNER])
        # Image y grows downward: brow above eye gives a positive gap.
        left = left_eye_center[1] - face[lm.LEFT_BROW, 1]
        right = right_eye_center[1] - face[lm.RIGHT_BROW, 1]
        return float(left), float(right)

    def _extract_brow_features(self, face: np.ndarray, iod: float) -> Dict[str, float]:
        left, right = self._brow_gaps(face)
        return {
            "browRaise": ratio((left + right) / 2.0, iod),
            "browAsymmetry": ratio(abs(left - right), iod),
        }

    def _extract_mouth_features(self, face: np.ndarray, iod: float) -> Dict[str, float]:
        gap = face[lm.LOWER_INNER_LIP, 1] - face[lm.UPPER_INNER_LIP, 1]
        width = distance(face[lm.MOUTH_LEFT], face[lm.MOUTH_RIGHT])
        return {
            "mouthOpen": ratio(gap, iod),
            "smileMetric": ratio(width, iod),
        }

    def _extract_head_features(self, face: np.ndarray, iod: float) -> Dict[str, float]:
        nose = face[lm.NOSE_TIP]
        return {
            "headRoll": _fold_angle(angle_degrees(face[lm.LEFT_EYE_OUTER], face[lm.RIGHT_EYE_OUTER])),
            "headNod": ratio(face[lm.CHIN, 1] - nose[1], iod),
            "headYaw": ratio(nose[0] - face[lm.MID_EYES, 0], iod),
        }

    def _gaze_metric(self, face: np.ndarray, iod: float) -> float:
        if lm.has_iris(face):
            left_iris, right_iris = face[lm.LEFT_IRIS], face[lm.RIGHT_IRIS]
        else:
            # No refined tier: the outer corner stands in for the iris centre.
            left_iris, right_iris = face[lm.LEFT_EYE_OUTER], face[lm.RIGHT_EYE_OUTER]
        left_mid = midpoint(face[lm.LEFT_EYE_OUTER], face[lm.LEFT_EYE_INNER])
        right_mid = midpoint(face[lm.RIGHT_EYE_OUTER], face[lm.RIGHT_EYE_INNER])
        offset = ((left_iris[0] - left_mid[0]) + (right_iris[0] - right_mid[0])) / 2.0
        return ratio(offset, iod)

    def _extract_pose_features(self, pose: Optional[np.ndarray], iod: float) -> Dict[str, float]:
        if pose is None:
            return {"torsoLean": 0.0, "shoulderTilt": 0.0}
        shoulder_mid = midpoint(pose[lm.LEFT_SHOULDER], pose[lm.RIGHT_SHOULDER])
        hip_mid = midpoint(pose[lm.LEFT_HIP], pose[lm.RIGHT_HIP])
        return {
            "torsoLean": ratio(hip_mid[1] - shoulder_mid[1], iod),
            "shoulderTilt": _fold_angle(angle_degrees(pose[lm.LEFT_SHOULDER], pose[lm.RIGHT_SHOULDER])),
        }


_default_extractor = NMFFeatureExtractor()


def extract_features(face_landmarks, pose_landmarks=None) -> Optional[Dict[str, float]]:
    """Module-level shortcut for NMFFeatureExtractor().extract()."""
    return _default_extractor.extract(face_landmarks, pose_landmarks)


__all__ = ["FEATURE_NAMES", "NMFFeatureExtractor", "extract_features"]
