"""
NMF Pipeline.

Joins the two independently-clocked landmark streams (face, pose) and runs
extraction -> smoothing -> hysteresis classification -> transcript on every
update from either stream.

Face updates also feed a HeadMotionTracker, whose nod/shake swing values join
the Feature Vector before smoothing.

The join is "latest known value": when a face update arrives the most recent
pose is reused and vice versa; there is no waiting for both streams to agree on
a frame. Everything runs synchronously inside the caller's callback, and all
state (smoothing buffer, label flags, transcript) belongs to this instance.
Callers that deliver updates from more than one thread must serialize them
(see nmf_detector.NMFDetector).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

import config
from nmf.feature_extractor import NMFFeatureExtractor
from nmf.head_motion import HeadMotionTracker
from nmf.hysteresis_classifier import HysteresisClassifier
from nmf.landmarks import as_face_landmarks, as_pose_landmarks
from nmf.temporal_smoother import TemporalSmoother
from nmf.transcript_recorder import TranscriptEntry, TranscriptRecorder

logger = logging.getLogger(__name__)


@dataclass
class NMFState:
    """Snapshot of the pipeline after one update, for display and polling."""
    timestamp: float
    face_detected: bool
    pose_detected: bool
    features: Optional[Dict[str, float]] = None  # raw Feature Vector this update
    smoothed: Optional[Dict[str, float]] = None  # mean of the last W vectors
    labels: List[str] = field(default_factory=list)  # active labels, priority order
    text: str = ""  # display text; "" while no face is detected
    summary: List[str] = field(default_factory=list)  # per-feature status lines

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "faceDetected": self.face_detected,
            "poseDetected": self.pose_detected,
            "features": self.features,
            "smoothed": self.smoothed,
            "labels": list(self.labels),
            "text": self.text,
            "summary": list(self.summary),
        }


def describe_features(labels: List[str]) -> List[str]:
    """
    Status line per feature group, e.g. "Eyebrow Raise:   RAISED".
    Built from the active labels so the panel agrees with the display text.
    """
    active = set(labels)

    def pick(pairs, default):
        for label, text in pairs:
            if label in active:
                return text
        return default

    return [
        "Eyebrow Raise:   " + pick([("eyebrows-raised", "RAISED")], "neutral"),
        "Brow Furrow:     " + pick([("brow-furrow", "FURROWED")], "neutral"),
        "Eyes:            " + pick([("eyes-closed", "CLOSED")], "open"),
        "Mouth Open:      " + pick([("mouth-open", "OPEN")], "closed"),
        "Smile:           " + pick([("smile", "SMILING")], "neutral"),
        "Head Tilt:       " + pick([("head-tilt-right", "RIGHT"), ("head-tilt-left", "LEFT")], "center"),
        "Head Nod:        " + pick([("head-nod-down", "DOWN"), ("head-nod-up", "UP")], "neutral"),
        "Head Turn:       " + pick([("head-turn-right", "RIGHT"), ("head-turn-left", "LEFT")], "center"),
        "Head Motion:     " + pick([("head-nodding", "NODDING"), ("head-shaking", "SHAKING")], "still"),
        "Gaze:            " + pick([("gaze-right", "RIGHT"), ("gaze-left", "LEFT")], "center"),
        "Shoulder Lean:   " + pick([("shoulder-lean-right", "RIGHT"), ("shoulder-lean-left", "LEFT")], "neutral"),
    ]


class NMFPipeline:
    """
    Face/pose landmark streams -> labels and transcript.

    Usage:
        pipeline = NMFPipeline()
        pipeline.on_pose_results(pose_landmarks)
        state = pipeline.on_face_results(face_landmarks)
        print(state.text)
    """

    def __init__(
        self,
        extractor: Optional[NMFFeatureExtractor] = None,
        smoother: Optional[TemporalSmoother] = None,
        classifier: Optional[HysteresisClassifier] = None,
        recorder: Optional[TranscriptRecorder] = None,
        clock: Callable[[], float] = time.time,
        pose_max_age_sec: Optional[float] = None,
        motion_tracker: Optional[HeadMotionTracker] = None,
    ):
        """
        Args:
            extractor: Feature extractor (default NMFFeatureExtractor)
            smoother: Temporal smoother (default window from config)
            classifier: Hysteresis classifier (default: current label rules)
            recorder: Transcript recorder (default dwell/size from config)
            clock: Time source in seconds, used when callers pass no `now`
            pose_max_age_sec: Discard a pose older than this when joining with a face
                update. 0 reuses the last pose indefinitely. None uses config.
            motion_tracker: Head nod/shake history (default sizes from config)
        """
        self.extractor = extractor or NMFFeatureExtractor()
        self.smoother = smoother or TemporalSmoother(
            window=config.NMF_SMOOTHING_WINDOW,
            clear_after_absent=config.NMF_SMOOTHER_CLEAR_AFTER_ABSENT,
        )
        self.classifier = classifier or HysteresisClassifier(delimiter=config.NMF_LABEL_DELIMITER)
        self.recorder = recorder or TranscriptRecorder(
            dwell_sec=config.NMF_TRANSCRIPT_DWELL_SEC,
            max_entries=config.NMF_TRANSCRIPT_MAX_ENTRIES,
        )
        self._clock = clock
        if pose_max_age_sec is None:
            pose_max_age_sec = config.NMF_POSE_MAX_AGE_SEC
        self.pose_max_age_sec = max(0.0, float(pose_max_age_sec))
        self.motion_tracker = motion_tracker or HeadMotionTracker(
            history=config.NMF_HEAD_MOTION_HISTORY,
            span=config.NMF_HEAD_MOTION_SPAN,
        )

        self._face: Optional[np.ndarray] = None
        self._pose: Optional[np.ndarray] = None
        self._pose_time: Optional[float] = None
        self._current_state: Optional[NMFState] = None
        self._update_count: int = 0

    def on_face_results(self, face_landmarks, now: Optional[float] = None) -> NMFState:
        """Face stream callback: store the latest face set (or absence) and recompute."""
        now = self._clock() if now is None else float(now)
        self._face = as_face_landmarks(face_landmarks)
        self.motion_tracker.push(self._face)
        return self._recompute(now, face_update=True)

    def on_pose_results(self, pose_landmarks, now: Optional[float] = None) -> NMFState:
        """Pose stream callback: store the latest pose set (or absence) and recompute."""
        now = self._clock() if now is None else float(now)
        self._pose = as_pose_landmarks(pose_landmarks)
        self._pose_time = now if self._pose is not None else None
        return self._recompute(now, face_update=False)

    def _joined_pose(self, now: float) -> Optional[np.ndarray]:
        if self._pose is None:
            return None
        if self.pose_max_age_sec > 0 and self._pose_time is not None:
            if now - self._pose_time > self.pose_max_age_sec:
                return None
        return self._pose

    def _recompute(self, now: float, face_update: bool) -> NMFState:
        pose = self._joined_pose(now)
        features = self.extractor.extract(self._face, pose)
        if features is not None:
            features.update(self.motion_tracker.current())
        if features is None and not face_update:
            # The face stream already counted this absence.
            smoothed = self.smoother.latest
        else:
            smoothed = self.smoother.push(features)
        if features is None:
            # Detection lost: flags and transcript hold their last values.
            _, text = self.classifier.classify(None)
            labels: List[str] = []
        else:
            _, text = self.classifier.classify(smoothed)
            labels = self.classifier.active_labels()
            if self.recorder.record(text, now):
                logger.debug("Transcript: %s", text)

        state = NMFState(
            timestamp=now,
            face_detected=features is not None,
            pose_detected=pose is not None,
            features=features,
            smoothed=smoothed,
            labels=labels,
            text=text,
            summary=describe_features(labels) if features is not None else [],
        )
        self._current_state = state
        self._update_count += 1
        if config.NMF_DIAGNOSTIC_LOGGING and self._update_count % config.NMF_DIAGNOSTIC_LOG_INTERVAL == 0:
            logger.info("nmf_diagnostic smoothed=%s labels=%s", smoothed, labels)
        return state

    def get_current_state(self) -> Optional[NMFState]:
        return self._current_state

    @property
    def latest_smoothed(self) -> Optional[Dict[str, float]]:
        return self.smoother.latest

    def get_transcript(self, newest_first: bool = False) -> List[TranscriptEntry]:
        return self.recorder.entries(newest_first=newest_first)

    def reset(self) -> None:
        """Drop stream values, smoothing history, label flags and transcript."""
        self._face = None
        self._pose = None
        self._pose_time = None
        self._current_state = None
        self._update_count = 0
        self.smoother.reset()
        self.motion_tracker.clear()
        self.classifier.reset()
        self.recorder.clear()
