import logging
import threading
from typing import Optional

from tqdm import tqdm

from .. import config
from ..models import ProgressSnapshot

class ProgressAccounter:
    """
    Processed/total counters for one scan, shared by all import workers.

    total is fixed once, after dedup filtering; processed only goes up.
    Every change is pushed to the sink as a snapshot.
    """
    def __init__(self, root_path: str, sink=None):
        self.root_path = str(root_path)
        self.sink = sink or NullProgressSink()
        self._lock = threading.Lock()
        self._processed = 0
        self._total = 0
        self._total_set = False

    def set_total(self, total: int):
        with self._lock:
            if self._total_set:
                raise RuntimeError("Progress total is already set for this scan")
            if total < 0:
                raise ValueError(f"total must be >= 0, got {total}")
            self._total = total
            self._total_set = True
            snap = self._snapshot()
        self._push(snap)

    def increment(self) -> ProgressSnapshot:
        with self._lock:
            if self._processed >= self._total:
                # More completions than scheduled units means a caller bug
                raise RuntimeError(
                    f"Progress overflow: {self._processed + 1} processed of {self._total}"
                )
            self._processed += 1
            snap = self._snapshot()
        self._push(snap)
        return snap

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(processed=self._processed, total=self._total, root_path=self.root_path)

    def _push(self, snap: ProgressSnapshot):
        # Fire-and-forget: a broken observer must not fail the unit
        try:
            self.sink.notify(snap)
        except Exception as e:
            logging.warning(f"Progress sink {type(self.sink).__name__} failed: {e}")


class NullProgressSink:
    def notify(self, snapshot: ProgressSnapshot):
        pass


class LoggingProgressSink:
    """Logs a progress line every `every` units and when the scan completes."""
    def __init__(self, every: int = config.PROGRESS_LOG_EVERY):
        self.every = max(1, every)

    def notify(self, snapshot: ProgressSnapshot):
        done = snapshot.processed == snapshot.total
        if snapshot.processed and (done or snapshot.processed % self.every == 0):
            logging.info(f"Imported {snapshot.processed}/{snapshot.total} from {snapshot.root_path}")


class TqdmProgressSink:
    """Drives a tqdm bar from snapshots; safe to notify from worker threads."""
    def __init__(self, desc: str = "Importing", bar: Optional[tqdm] = None):
        self._bar = bar or tqdm(total=0, desc=desc, unit="photo")
        self._lock = threading.Lock()

    def notify(self, snapshot: ProgressSnapshot):
        with self._lock:
            if self._bar.total != snapshot.total:
                self._bar.total = snapshot.total
                self._bar.refresh()
            # Snapshots can arrive out of order; only move forward
            delta = snapshot.processed - self._bar.n
            if delta > 0:
                self._bar.update(delta)

    def close(self):
        self._bar.close()
