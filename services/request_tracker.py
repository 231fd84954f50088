"""
Client activity tracking for the capture loop.

Routes record a poll per kind of request ("state", "transcript", "landmarks",
...). When no kind has been seen for IDLE_THRESHOLD_SEC the local capture loop
processes only every 4th frame; nobody is watching the labels.
"""

import threading
import time
from typing import Dict, Optional

import config


class PollTracker:
    """Last-seen time per request kind. Thread-safe."""

    def __init__(self):
        self._seen: Dict[str, float] = {}
        self._lock = threading.Lock()

    def record(self, kind: str) -> None:
        with self._lock:
            self._seen[kind] = time.time()

    def last_seen(self, kind: Optional[str] = None) -> float:
        """Time of the latest poll of `kind` (any kind when None); 0.0 if never."""
        with self._lock:
            if kind is not None:
                return self._seen.get(kind, 0.0)
            return max(self._seen.values(), default=0.0)

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._seen)

    def is_idle(self, threshold_sec: Optional[float] = None) -> bool:
        """
        True when no request of any kind arrived in the last threshold_sec.
        A tracker that has never seen a request is not idle, so capture runs at
        full rate until the first client shows up and then goes quiet.
        """
        if threshold_sec is None:
            threshold_sec = config.IDLE_THRESHOLD_SEC
        last = self.last_seen()
        if last == 0.0:
            return False
        return (time.time() - last) > threshold_sec

    def clear(self) -> None:
        with self._lock:
            self._seen.clear()


_tracker = PollTracker()


def record_poll(kind: str = "state") -> None:
    _tracker.record(kind)


def get_last_request_time(kind: Optional[str] = None) -> float:
    return _tracker.last_seen(kind)


def get_poll_times() -> Dict[str, float]:
    return _tracker.snapshot()


def is_idle(threshold_sec: Optional[float] = None) -> bool:
    return _tracker.is_idle(threshold_sec)


def reset() -> None:
    _tracker.clear()
