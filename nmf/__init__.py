"""
NMF core package.

Landmark geometry, feature extraction, temporal smoothing, hysteresis label
classification and the debounced transcript. The MediaPipe and video capture
modules are imported on demand (they pull in mediapipe and cv2).
"""

from .feature_extractor import FEATURE_NAMES, NMFFeatureExtractor, extract_features
from .temporal_smoother import TemporalSmoother
from .head_motion import MOTION_FEATURE_NAMES, HeadMotionTracker
from .hysteresis_classifier import ClassifierState, HysteresisClassifier, LabelState
from .transcript_recorder import TranscriptEntry, TranscriptRecorder
from .pipeline import NMFPipeline, NMFState

__all__ = [
    'FEATURE_NAMES',
    'NMFFeatureExtractor',
    'extract_features',
    'TemporalSmoother',
    'MOTION_FEATURE_NAMES',
    'HeadMotionTracker',
    'ClassifierState',
    'HysteresisClassifier',
    'LabelState',
    'TranscriptEntry',
    'TranscriptRecorder',
    'NMFPipeline',
    'NMFState',
]
