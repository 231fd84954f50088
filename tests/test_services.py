"""
Service layer tests.

Tests the corpus store (CSV dataset sink) and the request tracker.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import csv
import shutil
import tempfile
import unittest
from unittest.mock import patch


def _smoothed(**overrides):
    from services.corpus_store import COLUMNS
    v = {name: 0.0 for name in COLUMNS}
    v.update(overrides)
    return v


class TestCorpusStore(unittest.TestCase):
    """Test CSV corpus writes."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp, "nested", "corpus.csv")

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _read(self):
        with open(self.path, newline="", encoding="utf-8") as f:
            return list(csv.reader(f))

    def test_header_then_rows(self):
        """First append writes the header; later appends only the row."""
        from services.corpus_store import COLUMNS, CorpusStore
        store = CorpusStore(self.path)
        self.assertEqual(store.append("question", _smoothed(browRaise=0.1234567)), 2)
        self.assertEqual(store.append("statement", _smoothed()), 1)
        rows = self._read()
        self.assertEqual(rows[0], ["label"] + COLUMNS)
        self.assertEqual(rows[0][-2:], ["headNodMotion", "headShakeMotion"])
        self.assertEqual(rows[1][0], "question")
        self.assertEqual(rows[1][1 + COLUMNS.index("browRaise")], "0.1235")
        self.assertEqual(len(rows[2]), len(COLUMNS) + 1)
        self.assertEqual(store.count_rows(), 2)

    def test_nothing_to_save(self):
        """No smoothed vector should raise NothingToSaveError and write nothing."""
        from services.corpus_store import CorpusStore, NothingToSaveError
        store = CorpusStore(self.path)
        with self.assertRaises(NothingToSaveError):
            store.append("question", None)
        self.assertFalse(os.path.exists(self.path))
        self.assertEqual(store.count_rows(), 0)

    def test_blank_label_rejected(self):
        """A blank label should raise ValueError."""
        from services.corpus_store import format_row
        with self.assertRaises(ValueError):
            format_row("   ", _smoothed())

    def test_format_row_fixed_decimals(self):
        """Every value should have 4 decimals, in COLUMNS order."""
        from services.corpus_store import format_row
        row = format_row(" nod ", _smoothed(headRoll=-12.5))
        self.assertEqual(row[0], "nod")
        self.assertIn("-12.5000", row)
        self.assertTrue(all(len(v.split(".")[1]) == 4 for v in row[1:]))

    def test_empty_existing_file_gets_header(self):
        """An existing empty file should still get a header."""
        from services.corpus_store import CorpusStore
        os.makedirs(os.path.dirname(self.path))
        open(self.path, "w").close()
        self.assertEqual(CorpusStore(self.path).append("x", _smoothed()), 2)
        self.assertEqual(self._read()[0][0], "label")

    def test_get_corpus_store_singleton(self):
        """get_corpus_store should return the same instance on repeated calls."""
        import services.corpus_store as mod
        mod._corpus_store = None
        with patch("config.NMF_CORPUS_PATH", self.path):
            a = mod.get_corpus_store()
            b = mod.get_corpus_store()
        self.assertIs(a, b)
        self.assertEqual(a.path, self.path)
        mod._corpus_store = None


class TestRequestTracker(unittest.TestCase):
    """Test poll tracking and idle detection."""

    def setUp(self):
        from services import request_tracker
        request_tracker.reset()

    def tearDown(self):
        from services import request_tracker
        request_tracker.reset()

    def test_never_requested_is_not_idle(self):
        """Before any request the capture loop should not throttle."""
        from services.request_tracker import get_last_request_time, is_idle
        self.assertEqual(get_last_request_time(), 0.0)
        self.assertFalse(is_idle(1.0))

    def test_recent_request_not_idle(self):
        """A request just now should not be idle."""
        from services.request_tracker import is_idle, record_poll
        record_poll("state")
        self.assertFalse(is_idle(60.0))

    def test_old_request_idle(self):
        """A request older than the threshold should be idle."""
        from services import request_tracker
        with patch("services.request_tracker.time.time", return_value=1000.0):
            request_tracker.record_poll("state")
        with patch("services.request_tracker.time.time", return_value=1100.0):
            self.assertTrue(request_tracker.is_idle(60.0))

    def test_kinds_tracked_separately(self):
        """Each kind keeps its own time; any recent kind keeps capture busy."""
        from services import request_tracker
        with patch("services.request_tracker.time.time", return_value=1000.0):
            request_tracker.record_poll("state")
        with patch("services.request_tracker.time.time", return_value=1090.0):
            request_tracker.record_poll("landmarks")
        self.assertEqual(request_tracker.get_poll_times(), {"state": 1000.0, "landmarks": 1090.0})
        self.assertEqual(request_tracker.get_last_request_time("state"), 1000.0)
        self.assertEqual(request_tracker.get_last_request_time(), 1090.0)
        self.assertEqual(request_tracker.get_last_request_time("transcript"), 0.0)
        with patch("services.request_tracker.time.time", return_value=1100.0):
            self.assertFalse(request_tracker.is_idle(60.0))

    def test_separate_trackers_are_independent(self):
        """PollTracker instances should not share state."""
        from services.request_tracker import PollTracker
        a, b = PollTracker(), PollTracker()
        a.record("state")
        self.assertGreater(a.last_seen(), 0.0)
        self.assertEqual(b.last_seen(), 0.0)


if __name__ == "__main__":
    unittest.main()
