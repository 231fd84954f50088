"""
NMF Detector.

Owns one NMFPipeline and feeds it from a landmark source:

- Local capture (webcam / file / stream): a background thread reads frames,
  runs the MediaPipe landmark source, then delivers the face result and the pose
  result to the pipeline as two separate updates.
- Push (browser-side MediaPipe): no capture thread; face and pose updates arrive
  independently through POST /nmf/landmarks and are delivered as they come.

Pipeline calls are serialized with a lock so updates reach it one at a time,
whichever thread they come from; readers (HTTP polling) take the same lock.
"""

import logging
import threading
import time
from collections import deque
from typing import Callable, List, Optional

import numpy as np

import config
from nmf.pipeline import NMFPipeline, NMFState
from nmf.transcript_recorder import TranscriptEntry
from nmf.video_source_handler import VideoSourceHandler, VideoSourceType
from services.corpus_store import CorpusStore
from services.request_tracker import is_idle

logger = logging.getLogger(__name__)

FACE_STREAM = "face"
POSE_STREAM = "pose"


class NMFDetector:
    """
    Main NMF detector class.

    Usage:
        detector = NMFDetector()
        detector.start_detection(source_type=VideoSourceType.WEBCAM)

        # In a loop or callback:
        state = detector.get_current_state()
        print(state.text if state else "waiting")
    """

    def __init__(
        self,
        pipeline: Optional[NMFPipeline] = None,
        landmark_source=None,
        update_callback: Optional[Callable[[NMFState], None]] = None,
        lightweight_mode: bool = False,
    ):
        """
        Args:
            pipeline: Pipeline to feed (default NMFPipeline())
            landmark_source: LandmarkSourceInterface for local capture; created from
                config on first local start when None
            update_callback: Called with every new NMFState (from the updating thread)
            lightweight_mode: Lower capture resolution and process every 2nd frame
        """
        self.pipeline = pipeline or NMFPipeline()
        self.landmark_source = landmark_source
        self.update_callback = update_callback
        self.lightweight_mode = bool(lightweight_mode)

        self.video_handler = VideoSourceHandler()
        self.source_type: Optional[VideoSourceType] = None
        self.is_running = False
        self.detection_thread: Optional[threading.Thread] = None
        self.lock = threading.Lock()

        self._target_fps = config.TARGET_FPS
        self.fps_counter: deque = deque(maxlen=30)
        self.last_frame_time = time.time()
        self._frame_count = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_detection(
        self,
        source_type: VideoSourceType = VideoSourceType.WEBCAM,
        source_path: Optional[str] = None,
    ) -> bool:
        """
        Start detection from a source.

        Args:
            source_type: WEBCAM, FILE, STREAM, or PUSH (landmarks arrive via push_landmarks)
            source_path: Path to video file or stream URL (required for FILE/STREAM)

        Returns:
            bool: True if detection started successfully, False otherwise
        """
        if self.is_running:
            self.stop_detection()

        with self.lock:
            self.pipeline.reset()
        self._frame_count = 0
        self.fps_counter.clear()
        self.source_type = source_type

        if source_type == VideoSourceType.PUSH:
            self.is_running = True
            print("NMF detection started: source_type=push")
            return True

        if self.landmark_source is None:
            try:
                self.landmark_source = self._create_landmark_source()
            except (FileNotFoundError, ImportError, RuntimeError) as e:
                print(f"Error: landmark source unavailable: {e}")
                return False

        if not self.video_handler.initialize_source(source_type, source_path, lightweight=self.lightweight_mode):
            print(f"Error: Failed to initialize video source type {source_type}")
            if source_path:
                print(f"  Source path: {source_path}")
            return False

        print(f"NMF detection started: source_type={source_type}, source_path={source_path}")
        logger.info("Video source properties: %s", self.video_handler.get_properties())
        self.is_running = True
        self.detection_thread = threading.Thread(target=self._detection_loop, daemon=True)
        self.detection_thread.start()
        return True

    def stop_detection(self) -> None:
        """Stop detection and release resources. Pipeline state is kept for inspection."""
        self.is_running = False
        if self.detection_thread and self.detection_thread.is_alive():
            self.detection_thread.join(timeout=2.0)
        self.detection_thread = None
        self.video_handler.release()
        if self.landmark_source is not None:
            self.landmark_source.close()
            self.landmark_source = None

    @staticmethod
    def _create_landmark_source():
        # Deferred: mediapipe is only needed for local capture
        from nmf.mediapipe_landmark_source import MediaPipeLandmarkSource
        return MediaPipeLandmarkSource(
            config.FACE_LANDMARKER_MODEL_PATH,
            config.POSE_LANDMARKER_MODEL_PATH,
            min_detection_confidence=config.MIN_FACE_CONFIDENCE,
            min_tracking_confidence=config.MIN_FACE_CONFIDENCE,
        )

    # ------------------------------------------------------------------
    # Stream updates
    # ------------------------------------------------------------------

    def push_landmarks(self, stream: str, landmarks, now: Optional[float] = None) -> NMFState:
        """
        Deliver one face or pose update (absent = None) to the pipeline.

        Raises:
            ValueError: unknown stream name
        """
        if stream == FACE_STREAM:
            with self.lock:
                state = self.pipeline.on_face_results(landmarks, now)
        elif stream == POSE_STREAM:
            with self.lock:
                state = self.pipeline.on_pose_results(landmarks, now)
        else:
            raise ValueError(f"stream must be '{FACE_STREAM}' or '{POSE_STREAM}'")
        self._notify(state)
        return state

    def _notify(self, state: NMFState) -> None:
        if self.update_callback:
            try:
                self.update_callback(state)
            except Exception as e:
                logger.warning("Error in update callback: %s", e)

    def _detection_loop(self) -> None:
        """Capture thread: frame -> landmark source -> face update, pose update."""
        consecutive_read_failures = 0
        while self.is_running:
            try:
                ret, frame = self.video_handler.read_frame()
                if not ret:
                    consecutive_read_failures += 1
                    if self.video_handler.source_type == VideoSourceType.FILE:
                        print("Video file finished")
                        self.is_running = False
                        break
                    if consecutive_read_failures > int(self._target_fps * 2):
                        print("Warning: Video source not providing frames, checking connection...")
                        self.video_handler.initialize_source(
                            self.video_handler.source_type,
                            self.video_handler.source_path,
                            lightweight=self.lightweight_mode,
                        )
                        consecutive_read_failures = 0
                    time.sleep(1.0 / self._target_fps)
                    continue
                consecutive_read_failures = 0

                self._frame_count += 1
                if self.lightweight_mode and self._frame_count % 2 != 0:
                    continue
                if is_idle() and self._frame_count % 4 != 0:
                    time.sleep(1.0 / self._target_fps)
                    continue

                self._process_frame(frame)

                current_time = time.time()
                frame_time = current_time - self.last_frame_time
                self.last_frame_time = current_time
                if frame_time > 0:
                    self.fps_counter.append(1.0 / frame_time)
                frame_budget = 1.0 / self._target_fps
                if 0 < frame_time < frame_budget:
                    time.sleep(frame_budget - frame_time)

            except Exception as e:
                logger.exception("Error in detection loop: %s", e)
                time.sleep(0.1)

    def _process_frame(self, frame: np.ndarray) -> Optional[NMFState]:
        if frame is None or not isinstance(frame, np.ndarray) or frame.size == 0:
            return None
        result = self.landmark_source.detect(frame, int(time.monotonic() * 1000))
        now = time.time()
        # Two independent updates, as a browser-side detector would deliver them.
        self.push_landmarks(POSE_STREAM, result.pose, now)
        return self.push_landmarks(FACE_STREAM, result.face, now)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_current_state(self) -> Optional[NMFState]:
        with self.lock:
            return self.pipeline.get_current_state()

    def get_transcript(self, newest_first: bool = False) -> List[TranscriptEntry]:
        with self.lock:
            return self.pipeline.get_transcript(newest_first=newest_first)

    def save_snapshot(self, label: str, store: CorpusStore) -> int:
        """
        Append the latest smoothed vector to the corpus.

        Raises:
            NothingToSaveError: no feature history yet
            ValueError: empty label
        """
        with self.lock:
            smoothed = self.pipeline.latest_smoothed
        return store.append(label, smoothed)

    def reset(self) -> None:
        with self.lock:
            self.pipeline.reset()

    def get_fps(self) -> float:
        if not self.fps_counter:
            return 0.0
        return float(np.mean(self.fps_counter))
