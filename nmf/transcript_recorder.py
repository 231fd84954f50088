"""
Debounced transcript of label-set changes.

An entry is appended only when the label text differs from the last recorded
text AND more than `dwell_sec` has passed since the last recorded change. The
history is a bounded FIFO: the oldest entry is evicted on overflow.
"""

from collections import deque
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class TranscriptEntry:
    timestamp: float  # seconds (same clock as the caller's `now`)
    text: str

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp, "text": self.text}


class TranscriptRecorder:
    def __init__(self, dwell_sec: float = 0.5, max_entries: int = 50):
        if int(max_entries) < 1:
            raise ValueError("max_entries must be >= 1")
        self.dwell_sec = max(0.0, float(dwell_sec))
        self.max_entries = int(max_entries)
        self._entries: deque = deque(maxlen=self.max_entries)
        self.last_text: str = ""
        self.last_change_time: Optional[float] = None

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, text: str, now: float) -> Optional[TranscriptEntry]:
        """Append `text` if it is a new label set held past the dwell time; return the entry or None."""
        if not text or text == self.last_text:
            return None
        if self.last_change_time is not None and (now - self.last_change_time) <= self.dwell_sec:
            return None
        entry = TranscriptEntry(float(now), text)
        self._entries.append(entry)
        self.last_text = text
        self.last_change_time = float(now)
        return entry

    def entries(self, newest_first: bool = False) -> List[TranscriptEntry]:
        out = list(self._entries)
        if newest_first:
            out.reverse()
        return out

    def clear(self) -> None:
        self._entries.clear()
        self.last_text = ""
        self.last_change_time = None
