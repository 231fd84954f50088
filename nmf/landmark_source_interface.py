"""
Landmark Source Interface Module

Abstract interface for landmark backends, so the NMF detector can take face and
pose landmarks from any detector (local MediaPipe, landmarks pushed from a
browser, recorded sessions) interchangeably.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class LandmarkResult:
    """
    Landmarks found in one frame.

    Either set may be absent independently. Coordinates are normalized to the
    frame ([0, 1] for x and y), never pixels.
    """
    face: Optional[np.ndarray] = None  # (468|478, 3)
    pose: Optional[np.ndarray] = None  # (33, 3)
    timestamp_ms: int = 0


class LandmarkSourceInterface(ABC):
    """
    Abstract interface for landmark sources.

    All backends must implement this interface to feed the NMF detector.
    """

    @abstractmethod
    def detect(self, image: np.ndarray, timestamp_ms: int) -> LandmarkResult:
        """
        Detect face and pose landmarks in one frame.

        Args:
            image: BGR image array (OpenCV format)
            timestamp_ms: Monotonic frame timestamp in milliseconds

        Returns:
            LandmarkResult with absent sets as None
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """True if the backend can be used (models loaded, dependencies present)."""
        pass

    @abstractmethod
    def get_name(self) -> str:
        pass

    def close(self) -> None:
        """Clean up resources. Default implementation does nothing."""
        pass
