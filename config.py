"""
=============================================================================
CONFIGURATION FOR NMF LIVE (config.py)
=============================================================================

WHAT THIS FILE DOES (in plain language):
----------------------------------------
This file holds ALL configurable settings for the project in one place. Other
files read from here. Values come from the environment (your .env file or
system variables), so you can tune thresholds or switch models without
changing code.

MAIN GROUPS OF SETTINGS:
------------------------
  1. Pipeline      - Smoothing window, transcript dwell time and size, label text.
  2. Thresholds    - Where the label threshold table is loaded from.
  3. Landmarks     - MediaPipe model files, detection confidence, capture rate.
  4. Dataset       - Where labeled feature snapshots are written.
  5. Diagnostics   - Log level and periodic feature dumps.
  6. Server        - Host, port, and debug mode for the web server.

HOW VALUES ARE CHOSEN:
---------------------
  - Environment variables (e.g. NMF_SMOOTHING_WINDOW) override everything.
  - If an env var is not set, a safe default is used (e.g. port 5000).
=============================================================================
"""

import os
import sys
from typing import Optional


# ============================================================================
# PIPELINE (smoothing, transcript, display text)
# ============================================================================
# Number of feature vectors averaged by the temporal smoother (W).
NMF_SMOOTHING_WINDOW: int = max(1, int(os.getenv("NMF_SMOOTHING_WINDOW", "5")))
# When > 0, this many consecutive face updates without a face clear the smoothing
# buffer (pose updates do not count).
# 0 keeps the last average across any detection gap.
NMF_SMOOTHER_CLEAR_AFTER_ABSENT: int = max(0, int(os.getenv("NMF_SMOOTHER_CLEAR_AFTER_ABSENT", "0")))
# Minimum time (seconds) between two transcript entries.
NMF_TRANSCRIPT_DWELL_SEC: float = float(os.getenv("NMF_TRANSCRIPT_DWELL_SEC", "0.5"))
# Transcript length; the oldest entry is dropped beyond this.
NMF_TRANSCRIPT_MAX_ENTRIES: int = max(1, int(os.getenv("NMF_TRANSCRIPT_MAX_ENTRIES", "50")))
# Joins active label descriptions in the display text.
NMF_LABEL_DELIMITER: str = os.getenv("NMF_LABEL_DELIMITER", ", ")
# A pose older than this (seconds) is not joined with a new face update. 0 = no limit.
NMF_POSE_MAX_AGE_SEC: float = max(0.0, float(os.getenv("NMF_POSE_MAX_AGE_SEC", "0")))
# Face samples kept for head nod/shake motion, and how many of the latest the
# swing is measured over.
NMF_HEAD_MOTION_HISTORY: int = max(2, int(os.getenv("NMF_HEAD_MOTION_HISTORY", "15")))
NMF_HEAD_MOTION_SPAN: int = max(2, int(os.getenv("NMF_HEAD_MOTION_SPAN", "10")))

# ============================================================================
# LABEL THRESHOLDS (see nmf/label_rules.py for the JSON format)
# ============================================================================
NMF_THRESHOLDS_URL: Optional[str] = os.getenv("NMF_THRESHOLDS_URL") or None
NMF_THRESHOLDS_PATH: str = os.getenv("NMF_THRESHOLDS_PATH", "weights/nmf_thresholds.json")

# ============================================================================
# LANDMARK SOURCE (local MediaPipe capture)
# ============================================================================
#   Model bundles for the MediaPipe tasks API. Download face_landmarker.task and
#   pose_landmarker_lite.task (or _full/_heavy) from the MediaPipe model pages.
#   Not needed when landmarks are pushed from the browser (sourceType "push").
# ----------------------------------------------------------------------------
FACE_LANDMARKER_MODEL_PATH: str = os.getenv("FACE_LANDMARKER_MODEL_PATH", "models/face_landmarker.task")
POSE_LANDMARKER_MODEL_PATH: str = os.getenv("POSE_LANDMARKER_MODEL_PATH", "models/pose_landmarker_lite.task")
# Minimum confidence for face/pose detection (0.01-0.99).
MIN_FACE_CONFIDENCE: float = float(os.getenv("MIN_FACE_CONFIDENCE", "0.5"))
# Capture loop rate cap.
TARGET_FPS: float = max(1.0, float(os.getenv("TARGET_FPS", "30")))
# Lightweight mode: lower webcam resolution and skip every 2nd frame.
LIGHTWEIGHT_MODE: bool = os.getenv("LIGHTWEIGHT_MODE", "false").lower() == "true"
# Seconds without a /nmf/state poll after which capture slows down.
IDLE_THRESHOLD_SEC: float = float(os.getenv("IDLE_THRESHOLD_SEC", "60"))

# ============================================================================
# DATASET (labeled feature snapshots, CSV)
# ============================================================================
NMF_CORPUS_PATH: str = os.getenv("NMF_CORPUS_PATH", "data/nmf_corpus.csv")

# ============================================================================
# DIAGNOSTICS
# ============================================================================
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
# When True, log the smoothed vector and labels every N pipeline updates (for threshold tuning).
NMF_DIAGNOSTIC_LOGGING: bool = os.getenv("NMF_DIAGNOSTIC_LOGGING", "false").lower() == "true"
NMF_DIAGNOSTIC_LOG_INTERVAL: int = max(1, int(os.getenv("NMF_DIAGNOSTIC_LOG_INTERVAL", "30")))

# ============================================================================
# Application Configuration
# ============================================================================
FLASK_PORT: int = int(os.getenv("FLASK_PORT", "5000"))
FLASK_DEBUG: bool = os.getenv("FLASK_DEBUG", "false").lower() == "true"
FLASK_HOST: str = os.getenv("FLASK_HOST", "0.0.0.0")

# ============================================================================
# Helper Functions
# ============================================================================

def warn_missing_config() -> None:
    """
    Print warnings when optional files are missing. Call from app startup.
    Does not raise: browser-pushed landmarks work without any model files.
    """
    missing = []
    if not os.path.isfile(FACE_LANDMARKER_MODEL_PATH):
        missing.append(f"FACE_LANDMARKER_MODEL_PATH ({FACE_LANDMARKER_MODEL_PATH})")
    if not os.path.isfile(POSE_LANDMARKER_MODEL_PATH):
        missing.append(f"POSE_LANDMARKER_MODEL_PATH ({POSE_LANDMARKER_MODEL_PATH})")
    if missing:
        print(
            "Config warning: model files not found; local capture is limited. Missing:",
            ", ".join(missing),
            file=sys.stderr,
        )


def get_pipeline_config() -> dict:
    return {
        "smoothingWindow": NMF_SMOOTHING_WINDOW,
        "smootherClearAfterAbsent": NMF_SMOOTHER_CLEAR_AFTER_ABSENT,
        "transcriptDwellSec": NMF_TRANSCRIPT_DWELL_SEC,
        "transcriptMaxEntries": NMF_TRANSCRIPT_MAX_ENTRIES,
        "labelDelimiter": NMF_LABEL_DELIMITER,
        "poseMaxAgeSec": NMF_POSE_MAX_AGE_SEC,
        "headMotionHistory": NMF_HEAD_MOTION_HISTORY,
        "headMotionSpan": NMF_HEAD_MOTION_SPAN,
    }


def get_landmark_source_config() -> dict:
    return {
        "faceModelPath": FACE_LANDMARKER_MODEL_PATH,
        "faceModelAvailable": os.path.isfile(FACE_LANDMARKER_MODEL_PATH),
        "poseModelPath": POSE_LANDMARKER_MODEL_PATH,
        "poseModelAvailable": os.path.isfile(POSE_LANDMARKER_MODEL_PATH),
        "minConfidence": MIN_FACE_CONFIDENCE,
        "targetFps": TARGET_FPS,
        "lightweightMode": LIGHTWEIGHT_MODE,
    }
