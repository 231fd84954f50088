"""
Temporal smoothing of Feature Vectors.

A simple moving average over the last W vectors (not exponential), so output is
deterministic. Absent vectors (face lost for a frame) leave the buffer alone,
which keeps the average continuous across single-frame detection dropouts.
"""

from collections import deque
from typing import Dict, Optional

import numpy as np


class TemporalSmoother:
    """
    Rolling-window mean of Feature Vectors.

    Usage:
        smoother = TemporalSmoother(window=5)
        smoothed = smoother.push(vector)   # None until the first vector arrives
    """

    def __init__(self, window: int = 5, clear_after_absent: int = 0):
        """
        Args:
            window: Number of vectors averaged (W).
            clear_after_absent: When > 0, that many consecutive absent pushes clear the
                buffer so a long detection gap starts fresh. 0 keeps stale data indefinitely.
        """
        if int(window) < 1:
            raise ValueError("window must be >= 1")
        self.window = int(window)
        self.clear_after_absent = max(0, int(clear_after_absent))
        self._buf: deque = deque(maxlen=self.window)
        self._absent_run: int = 0
        self._latest: Optional[Dict[str, float]] = None

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def latest(self) -> Optional[Dict[str, float]]:
        """Most recent smoothed output (None if the buffer is empty)."""
        return dict(self._latest) if self._latest is not None else None

    def push(self, vector: Optional[Dict[str, float]]) -> Optional[Dict[str, float]]:
        """Add a vector (or an absent marker) and return the current mean."""
        if vector is None:
            self._absent_run += 1
            if self.clear_after_absent and self._absent_run >= self.clear_after_absent and self._buf:
                self.reset()
            return self.latest

        self._absent_run = 0
        self._buf.append(dict(vector))
        self._latest = self._mean()
        return self.latest

    def _mean(self) -> Optional[Dict[str, float]]:
        if not self._buf:
            return None
        keys = list(self._buf[-1].keys())
        values = np.array([[frame.get(k, 0.0) for k in keys] for frame in self._buf], dtype=np.float64)
        means = values.mean(axis=0)
        return {k: float(v) for k, v in zip(keys, means)}

    def reset(self) -> None:
        """Clear the buffer (e.g. on detection start)."""
        self._buf.clear()
        self._absent_run = 0
        self._latest = None
