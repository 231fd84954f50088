"""
Video Source Handler Module

Unified frame reader for the local capture path:
- Webcam (default camera)
- Local video files
- Network streams (RTSP, HTTP, ...)

Landmarks pushed from a browser do not go through this module; see
VideoSourceType.PUSH and POST /nmf/landmarks.
"""

import logging
import sys
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class VideoSourceType(Enum):
    """Enumeration of supported source types."""
    WEBCAM = "webcam"
    FILE = "file"
    STREAM = "stream"
    PUSH = "push"  # no capture; landmarks arrive over HTTP


def _open_first_camera(indices=(0, 1, 2)) -> Optional[cv2.VideoCapture]:
    apis = [cv2.CAP_DSHOW, cv2.CAP_MSMF, cv2.CAP_ANY] if sys.platform == "win32" else [cv2.CAP_ANY]
    for api in apis:
        for index in indices:
            try:
                cap = cv2.VideoCapture(index, api)
            except cv2.error as e:
                logger.debug("Camera %s (api %s) failed: %s", index, api, e)
                continue
            if cap.isOpened() and cap.read()[0]:
                return cap
            cap.release()
    return None


class VideoSourceHandler:
    """
    Handler for reading frames from a webcam, file or stream.

    Usage:
        handler = VideoSourceHandler()
        handler.initialize_source(VideoSourceType.WEBCAM)

        while True:
            ret, frame = handler.read_frame()
            if not ret:
                break
            # Process frame
    """

    def __init__(self):
        self.cap: Optional[cv2.VideoCapture] = None
        self.source_type: Optional[VideoSourceType] = None
        self.source_path: Optional[str] = None

    def initialize_source(
        self,
        source_type: VideoSourceType,
        source_path: Optional[str] = None,
        lightweight: bool = False,
    ) -> bool:
        """
        Initialize a video source.

        Args:
            source_type: WEBCAM, FILE or STREAM
            source_path: Path to video file or stream URL (required for FILE and STREAM)
            lightweight: If True, use lower webcam resolution (640x360) for faster processing

        Returns:
            True if the source opened
        """
        self.release()
        self.source_type = source_type
        self.source_path = source_path

        try:
            if source_type == VideoSourceType.WEBCAM:
                self.cap = _open_first_camera() or cv2.VideoCapture(0)
                if self.cap.isOpened():
                    w, h = (640, 360) if lightweight else (1280, 720)
                    self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                    self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
                    self.cap.set(cv2.CAP_PROP_FPS, 30)
                    self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

            elif source_type in (VideoSourceType.FILE, VideoSourceType.STREAM):
                if not source_path:
                    raise ValueError(f"source_path is required for {source_type.value} source type")
                self.cap = cv2.VideoCapture(source_path)
                if source_type == VideoSourceType.STREAM:
                    self.cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

            else:
                raise ValueError(f"Unsupported source type: {source_type}")

            return self.cap is not None and self.cap.isOpened()

        except (ValueError, cv2.error) as e:
            print(f"Error initializing video source: {e}")
            self.release()
            return False

    def read_frame(self) -> Tuple[bool, Optional[np.ndarray]]:
        """
        Read a frame from the video source.

        Returns:
            (success, BGR frame or None)
        """
        if not self.cap or not self.cap.isOpened():
            return False, None
        ret, frame = self.cap.read()
        if not ret or frame is None:
            return False, None
        return True, frame

    def get_properties(self) -> dict:
        """Width, height, fps and frame_count (-1 for live sources) of the open source."""
        if not self.cap or not self.cap.isOpened():
            return {}
        return {
            "width": int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": self.cap.get(cv2.CAP_PROP_FPS),
            "frame_count": int(self.cap.get(cv2.CAP_PROP_FRAME_COUNT))
            if self.source_type == VideoSourceType.FILE else -1,
        }

    def release(self) -> None:
        """Release the current video source."""
        if self.cap:
            self.cap.release()
            self.cap = None
        self.source_type = None
        self.source_path = None

    def __del__(self):
        self.release()
