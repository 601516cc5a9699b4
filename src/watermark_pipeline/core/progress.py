"""Progress accounting shared by every worker of a run."""

import threading
from typing import Optional, Protocol

from tqdm import tqdm

# Above this many entries, publish only every PUBLISH_INTERVAL increments
LARGE_RUN_THRESHOLD = 1000
PUBLISH_INTERVAL = 100


class ProgressSink(Protocol):
    """Receiver of progress counts; rendering is its own business."""

    def set_total(self, total: int) -> None:
        """Set the number of entries the run will process."""
        ...

    def set_position(self, position: int) -> None:
        """Set the number of entries processed so far."""
        ...


class ProgressTracker:
    """
    Thread-safe counter of processed entries.

    The count only grows and is published to the sink in increment order,
    so the sink never sees a position go backwards.
    """

    def __init__(self, total: int, sink: Optional[ProgressSink] = None):
        self.total = total
        self._sink = sink
        self._count = 0
        self._lock = threading.Lock()
        if sink is not None:
            sink.set_total(total)

    @property
    def count(self) -> int:
        return self._count

    def _should_publish(self, count: int) -> bool:
        if self.total < LARGE_RUN_THRESHOLD:
            return True
        return count % PUBLISH_INTERVAL == 0 or count == self.total

    def advance(self) -> int:
        """Record one processed entry and return the new count."""
        with self._lock:
            self._count += 1
            count = self._count
            if self._sink is not None and self._should_publish(count):
                self._sink.set_position(count)
        return count


class TqdmProgressSink:
    """ProgressSink rendering a tqdm progress bar."""

    def __init__(self, bar: Optional[tqdm] = None, **tqdm_kwargs):
        self.bar = bar if bar is not None else tqdm(total=0, **tqdm_kwargs)

    def set_total(self, total: int) -> None:
        self.bar.total = total
        self.bar.refresh()

    def set_position(self, position: int) -> None:
        self.bar.update(position - self.bar.n)

    def close(self) -> None:
        self.bar.close()

    def __enter__(self) -> "TqdmProgressSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
