"""
Landmark index map and landmark-set validation.

Face indices follow the MediaPipe face mesh (468 points, or 478 when the refined
iris tier is enabled). Pose indices follow the MediaPipe 33-point pose model.
"Left"/"right" are image-side names: LEFT_* is the eye that appears on the left
of a non-mirrored frame.

A landmark set is either fully present or absent. Anything that does not have a
supported length and shape is treated as absent, never as an error.
"""

import logging
from typing import Any, Optional

import numpy as np

logger = logging.getLogger(__name__)

FACE_MESH_POINTS = 468
FACE_MESH_REFINED_POINTS = 478
FACE_SET_LENGTHS = (FACE_MESH_POINTS, FACE_MESH_REFINED_POINTS)
POSE_SET_LENGTH = 33

# Face anchors
LEFT_EYE_OUTER, RIGHT_EYE_OUTER = 33, 263
LEFT_EYE_INNER, RIGHT_EYE_INNER = 133, 362
LEFT_EYE_TOP, LEFT_EYE_BOTTOM = 159, 145
RIGHT_EYE_TOP, RIGHT_EYE_BOTTOM = 386, 374
LEFT_BROW, RIGHT_BROW = 70, 300
UPPER_INNER_LIP, LOWER_INNER_LIP = 13, 14
MOUTH_LEFT, MOUTH_RIGHT = 61, 291
NOSE_TIP, CHIN = 1, 152
MID_EYES = 168
# Only present in the refined tier
LEFT_IRIS, RIGHT_IRIS = 468, 473

# Pose anchors (subject-side, as MediaPipe names them)
LEFT_SHOULDER, RIGHT_SHOULDER = 11, 12
LEFT_HIP, RIGHT_HIP = 23, 24


def _as_landmark_array(points: Any) -> Optional[np.ndarray]:
    if points is None:
        return None
    try:
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError):
        return None
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        return None
    if not np.all(np.isfinite(arr[:, :2])):
        return None
    return arr


def as_face_landmarks(points: Any) -> Optional[np.ndarray]:
    """Return a validated (N, 2|3) face landmark array, or None if absent/malformed."""
    arr = _as_landmark_array(points)
    if arr is None:
        if points is not None:
            logger.debug("Malformed face landmark set ignored")
        return None
    if arr.shape[0] not in FACE_SET_LENGTHS:
        logger.debug("Face landmark set has %d points, expected one of %s", arr.shape[0], FACE_SET_LENGTHS)
        return None
    return arr


def as_pose_landmarks(points: Any) -> Optional[np.ndarray]:
    """Return a validated (33, 2|3) pose landmark array, or None if absent/malformed."""
    arr = _as_landmark_array(points)
    if arr is None:
        if points is not None:
            logger.debug("Malformed pose landmark set ignored")
        return None
    if arr.shape[0] != POSE_SET_LENGTH:
        logger.debug("Pose landmark set has %d points, expected %d", arr.shape[0], POSE_SET_LENGTH)
        return None
    return arr


def has_iris(face: np.ndarray) -> bool:
    """True when the face set carries the refined iris landmarks."""
    return face.shape[0] >= FACE_MESH_REFINED_POINTS
