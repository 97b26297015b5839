import io
import logging
import threading
import pytest
from tqdm import tqdm
from photo_importer.importing.progress import LoggingProgressSink, ProgressAccounter, TqdmProgressSink
from photo_importer.models import ProgressSnapshot

class RecordingSink:
    def __init__(self):
        self.snapshots = []
        self._lock = threading.Lock()

    def notify(self, snapshot):
        with self._lock:
            self.snapshots.append(snapshot)

class BrokenSink:
    def notify(self, snapshot):
        raise RuntimeError("window closed")

def test_counts_and_snapshots():
    sink = RecordingSink()
    progress = ProgressAccounter("/photos", sink)

    progress.set_total(2)
    progress.increment()
    snap = progress.increment()

    assert snap == ProgressSnapshot(processed=2, total=2, root_path="/photos")
    assert [s.processed for s in sink.snapshots] == [0, 1, 2]

def test_total_is_set_once():
    progress = ProgressAccounter("/photos")
    progress.set_total(3)
    with pytest.raises(RuntimeError):
        progress.set_total(4)

def test_never_exceeds_total():
    progress = ProgressAccounter("/photos")
    progress.set_total(1)
    progress.increment()
    with pytest.raises(RuntimeError):
        progress.increment()
    assert progress.snapshot().processed == 1

def test_concurrent_increments_are_monotonic():
    sink = RecordingSink()
    progress = ProgressAccounter("/photos", sink)
    progress.set_total(400)

    def worker():
        for _ in range(50):
            progress.increment()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert progress.snapshot().processed == 400
    seen = sorted(s.processed for s in sink.snapshots)
    assert seen == list(range(0, 401))

def test_broken_sink_does_not_raise(caplog):
    progress = ProgressAccounter("/photos", BrokenSink())
    progress.set_total(1)
    with caplog.at_level(logging.WARNING):
        snap = progress.increment()
    assert snap.processed == 1
    assert "window closed" in caplog.text

def test_logging_sink_reports_completion(caplog):
    sink = LoggingProgressSink(every=10)
    with caplog.at_level(logging.INFO):
        sink.notify(ProgressSnapshot(3, 5, "/photos"))
        sink.notify(ProgressSnapshot(5, 5, "/photos"))
    assert "5/5" in caplog.text
    assert "3/5" not in caplog.text

def test_tqdm_sink_only_moves_forward():
    bar = tqdm(total=0, file=io.StringIO())
    sink = TqdmProgressSink(bar=bar)

    sink.notify(ProgressSnapshot(0, 4, "/photos"))
    sink.notify(ProgressSnapshot(2, 4, "/photos"))
    sink.notify(ProgressSnapshot(1, 4, "/photos"))

    assert bar.total == 4
    assert bar.n == 2
    sink.close()
