"""
Head movement features (nod / shake gestures).

The feature extractor only sees one frame, so it can report where the head is
pointing but not that it is moving. HeadMotionTracker keeps a short history of
the nose tip relative to the mid-eye point (in inter-ocular units, so camera
distance and head translation cancel out) and reports how far that offset
swung over the most recent frames:

- headNodMotion    vertical swing (pitch: nodding "yes")
- headShakeMotion  horizontal swing (yaw: shaking "no")

One tracker belongs to one pipeline; it is stateful and not thread-safe.
"""

from collections import deque
from typing import Dict, List, Optional

import numpy as np

from nmf import landmarks as lm
from nmf.geometry import distance, ratio

MOTION_FEATURE_NAMES: List[str] = ["headNodMotion", "headShakeMotion"]


class HeadMotionTracker:
    """
    Bounded history of nose offsets -> swing over the last `span` faces.

    Usage:
        tracker = HeadMotionTracker()
        motion = tracker.push(face_landmarks)   # {"headNodMotion": .., "headShakeMotion": ..}
    """

    def __init__(self, history: int = 15, span: int = 10):
        """
        Args:
            history: Number of face samples kept.
            span: Samples the swing is measured over; motion reads 0 until this many
                have arrived. Clamped to history.
        """
        if int(history) < 2:
            raise ValueError("history must be >= 2")
        self.history = int(history)
        self.span = max(2, min(int(span), self.history))
        self._offsets: deque = deque(maxlen=self.history)

    def __len__(self) -> int:
        return len(self._offsets)

    def push(self, face: Optional[np.ndarray]) -> Dict[str, float]:
        """
        Record one validated face set (see landmarks.as_face_landmarks) and return
        the current motion values. None (face lost) clears the history, so a swing
        is never measured across a detection gap.
        """
        if face is None:
            self.clear()
            return self.current()
        iod = distance(face[lm.LEFT_EYE_OUTER], face[lm.RIGHT_EYE_OUTER])
        nose, mid = face[lm.NOSE_TIP], face[lm.MID_EYES]
        self._offsets.append((ratio(nose[0] - mid[0], iod), ratio(nose[1] - mid[1], iod)))
        return self.current()

    def current(self) -> Dict[str, float]:
        """Motion values from the stored history without adding a sample."""
        if len(self._offsets) < self.span:
            return {name: 0.0 for name in MOTION_FEATURE_NAMES}
        recent = np.array(list(self._offsets)[-self.span:], dtype=np.float64)
        swing = recent.max(axis=0) - recent.min(axis=0)
        return {"headNodMotion": float(swing[1]), "headShakeMotion": float(swing[0])}

    def clear(self) -> None:
        self._offsets.clear()
