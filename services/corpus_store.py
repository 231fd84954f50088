"""
Labeled feature corpus (dataset sink).

Appends the most recent smoothed Feature Vector, tagged with a caller-supplied
label, as one CSV row. The first write to a new or empty file adds the header
`label,<feature1>,<feature2>,...` in COLUMNS order (the extracted features,
then the head motion features).
"""

import csv
import logging
import os
import threading
from typing import Dict, List, Optional

from nmf.feature_extractor import FEATURE_NAMES
from nmf.head_motion import MOTION_FEATURE_NAMES

logger = logging.getLogger(__name__)

DECIMALS = 4
COLUMNS: List[str] = list(FEATURE_NAMES) + list(MOTION_FEATURE_NAMES)


class NothingToSaveError(ValueError):
    """Raised when a snapshot is requested before any feature vector exists."""


def header_row() -> List[str]:
    return ["label"] + list(COLUMNS)


def format_row(label: str, smoothed: Optional[Dict[str, float]]) -> List[str]:
    """
    Build one corpus row: label, then every feature in COLUMNS order
    fixed to DECIMALS places. Raises NothingToSaveError when `smoothed` is None.
    """
    if smoothed is None:
        raise NothingToSaveError("nothing to save: no feature history yet")
    label = (label or "").strip()
    if not label:
        raise ValueError("label must be a non-empty string")
    return [label] + [f"{float(smoothed.get(name, 0.0)):.{DECIMALS}f}" for name in COLUMNS]


class CorpusStore:
    """
    Append-only CSV corpus.

    Usage:
        store = CorpusStore("data/nmf_corpus.csv")
        store.append("question", pipeline.latest_smoothed)
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def append(self, label: str, smoothed: Optional[Dict[str, float]]) -> int:
        """
        Append one labeled row. Returns the number of rows written (2 on the first
        write, counting the header; 1 afterwards). Nothing is written on error.
        """
        row = format_row(label, smoothed)
        with self._lock:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            new_file = not os.path.isfile(self.path) or os.path.getsize(self.path) == 0
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if new_file:
                    writer.writerow(header_row())
                writer.writerow(row)
        logger.info("Saved corpus row label=%s to %s", row[0], self.path)
        return 2 if new_file else 1

    def count_rows(self) -> int:
        """Number of data rows (header excluded)."""
        if not os.path.isfile(self.path):
            return 0
        with self._lock, open(self.path, "r", newline="", encoding="utf-8") as f:
            return max(0, sum(1 for _ in csv.reader(f)) - 1)


_corpus_store: Optional[CorpusStore] = None


def get_corpus_store() -> CorpusStore:
    """Return the shared store for NMF_CORPUS_PATH (created on first use)."""
    global _corpus_store
    if _corpus_store is None:
        import config
        _corpus_store = CorpusStore(config.NMF_CORPUS_PATH)
    return _corpus_store
