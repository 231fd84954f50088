"""
MediaPipe Landmark Source Implementation

MediaPipe-based implementation of LandmarkSourceInterface using the tasks API:
- FaceLandmarker: 478 face landmarks (face mesh + refined iris)
- PoseLandmarker: 33 body landmarks

Both run in VIDEO mode on the same frame; either may find nothing, and the two
results are reported independently. Model files (.task) are configured with
FACE_LANDMARKER_MODEL_PATH and POSE_LANDMARKER_MODEL_PATH. A missing pose model
disables the pose stream only.
"""

import logging
import os
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from nmf.landmark_source_interface import LandmarkResult, LandmarkSourceInterface

logger = logging.getLogger(__name__)


def _to_array(landmark_list) -> np.ndarray:
    return np.array([[p.x, p.y, p.z] for p in landmark_list], dtype=np.float64)


class MediaPipeLandmarkSource(LandmarkSourceInterface):
    """
    MediaPipe face + pose landmark source.

    Usage:
        source = MediaPipeLandmarkSource("models/face_landmarker.task", "models/pose_landmarker.task")
        result = source.detect(frame_bgr, timestamp_ms)
    """

    def __init__(
        self,
        face_model_path: str,
        pose_model_path: Optional[str] = None,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        """
        Args:
            face_model_path: Path to face_landmarker.task (required)
            pose_model_path: Path to pose_landmarker.task; None or missing file disables pose
            min_detection_confidence: Minimum detection confidence (0-1)
            min_tracking_confidence: Minimum tracking confidence (0-1)
        """
        self._det_conf = max(0.01, min(0.99, float(min_detection_confidence)))
        self._track_conf = max(0.01, min(0.99, float(min_tracking_confidence)))
        self._face_landmarker = None
        self._pose_landmarker = None
        self._last_timestamp_ms = -1

        if not face_model_path or not os.path.isfile(face_model_path):
            raise FileNotFoundError(f"Face landmarker model not found: {face_model_path}")

        face_options = vision.FaceLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=face_model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            min_face_detection_confidence=self._det_conf,
            min_tracking_confidence=self._track_conf,
        )
        self._face_landmarker = vision.FaceLandmarker.create_from_options(face_options)

        if pose_model_path and os.path.isfile(pose_model_path):
            pose_options = vision.PoseLandmarkerOptions(
                base_options=python.BaseOptions(model_asset_path=pose_model_path),
                running_mode=vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=self._det_conf,
                min_tracking_confidence=self._track_conf,
            )
            self._pose_landmarker = vision.PoseLandmarker.create_from_options(pose_options)
        else:
            print(f"Pose model not found ({pose_model_path}); pose features disabled")

    def detect(self, image: np.ndarray, timestamp_ms: int) -> LandmarkResult:
        if image is None or image.size == 0:
            return LandmarkResult(timestamp_ms=timestamp_ms)
        # VIDEO mode requires strictly increasing timestamps
        if timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)

        face = None
        face_result = self._face_landmarker.detect_for_video(mp_image, timestamp_ms)
        if face_result.face_landmarks:
            face = _to_array(face_result.face_landmarks[0])

        pose = None
        if self._pose_landmarker is not None:
            pose_result = self._pose_landmarker.detect_for_video(mp_image, timestamp_ms)
            if pose_result.pose_landmarks:
                pose = _to_array(pose_result.pose_landmarks[0])

        return LandmarkResult(face=face, pose=pose, timestamp_ms=timestamp_ms)

    def is_available(self) -> bool:
        return self._face_landmarker is not None

    def get_name(self) -> str:
        return "mediapipe"

    def close(self) -> None:
        """Release MediaPipe resources."""
        for name in ("_face_landmarker", "_pose_landmarker"):
            landmarker = getattr(self, name, None)
            if landmarker is not None:
                try:
                    landmarker.close()
                except Exception as e:
                    logger.debug("Closing %s failed: %s", name, e)
                setattr(self, name, None)

