"""
mediabatch Log/Progress Channel

The only state shared between the worker thread and the consumer: a
line queue the worker appends to and the consumer drains on a timer, plus
a progress record read through immutable snapshots.
"""

import queue
import threading
from dataclasses import dataclass
from typing import List, Optional


class LogChannel:
    """Unbounded, thread-safe, order-preserving queue of log lines."""

    def __init__(self):
        self._queue: "queue.Queue[str]" = queue.Queue()

    def put(self, line: str) -> None:
        """Append one line. Safe to call from any thread."""
        self._queue.put(line)

    def drain(self) -> List[str]:
        """Remove and return every line queued so far, oldest first."""
        lines = []
        while True:
            try:
                lines.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return lines

    def __len__(self) -> int:
        return self._queue.qsize()


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time copy of BatchProgress for the consumer."""
    total: int
    completed: int
    failed: int
    current_file: Optional[str]
    status_text: str

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 0.0


class BatchProgress:
    """
    Progress of one run.

    Mutated only by the batch runner; everyone else calls `snapshot()`.
    """

    def __init__(self, total: int = 0):
        self._lock = threading.Lock()
        self._total = total
        self._completed = 0
        self._failed = 0
        self._current_file: Optional[str] = None
        self._status_text = "Ready"

    def reset(self, total: int) -> None:
        with self._lock:
            self._total = total
            self._completed = 0
            self._failed = 0
            self._current_file = None
            self._status_text = "Starting"

    def begin_file(self, name: str) -> None:
        with self._lock:
            self._current_file = name
            self._status_text = f"Processing: {name} ({self._completed + 1}/{self._total})"

    def set_status(self, text: str) -> None:
        with self._lock:
            self._status_text = text

    def finish_file(self, success: bool) -> None:
        """Advance the counter; called once per file whatever the outcome."""
        with self._lock:
            self._completed += 1
            if not success:
                self._failed += 1
                self._status_text = f"Error: {self._current_file}"

    def finish_run(self) -> None:
        with self._lock:
            self._current_file = None
            self._status_text = (
                f"Completed {self._completed}/{self._total}"
                + (f" ({self._failed} failed)" if self._failed else "")
            )

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                total=self._total,
                completed=self._completed,
                failed=self._failed,
                current_file=self._current_file,
                status_text=self._status_text,
            )
