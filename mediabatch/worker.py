"""
mediabatch Worker

Runs one batch on a dedicated background thread so the front end can keep
draining the log channel. Only one run may be active at a time.
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .batch import BatchPlan, BatchReport, BatchRunner
from .errors import BatchAlreadyRunning
from .jobs import JobParameters, OperationMode

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of the worker's current (or last) run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CRASHED = "crashed"


class BatchWorker:
    """
    Owns the single worker thread of a BatchRunner.

    Validation happens synchronously in `start`, so precondition errors
    reach the caller immediately; file processing happens on the thread.
    """

    def __init__(
        self,
        batch_runner: BatchRunner,
        on_complete_callback: Optional[Callable[[BatchReport], None]] = None,
        on_crash_callback: Optional[Callable[[Exception], None]] = None
    ):
        """
        Initialize the worker.

        Args:
            batch_runner: Runner that validates and executes batches
            on_complete_callback: Optional callback with the final report
            on_crash_callback: Optional callback if the run dies unexpectedly
        """
        self.batch_runner = batch_runner
        self.on_complete_callback = on_complete_callback
        self.on_crash_callback = on_crash_callback

        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._state = RunState.IDLE
        self._report: Optional[BatchReport] = None
        self._error: Optional[Exception] = None

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    @property
    def report(self) -> Optional[BatchReport]:
        with self._lock:
            return self._report

    @property
    def error(self) -> Optional[Exception]:
        with self._lock:
            return self._error

    def start(self, folder: Path, mode: OperationMode, params: JobParameters) -> BatchPlan:
        """
        Validate and start a run in the background.

        Raises BatchAlreadyRunning if a run is active, or the run's
        PreconditionError if validation fails; no thread is started then.
        """
        with self._lock:
            if self._state is RunState.RUNNING:
                raise BatchAlreadyRunning("A batch is already running")

            plan = self.batch_runner.prepare(folder, mode, params)

            self._state = RunState.RUNNING
            self._report = None
            self._error = None
            self._thread = threading.Thread(
                target=self._worker_loop,
                args=(plan,),
                name="BatchWorker",
                daemon=True
            )
            self._thread.start()

        logger.info(f"Started batch worker: {plan.total} file(s), mode {mode.value}")
        return plan

    def _worker_loop(self, plan: BatchPlan) -> None:
        """Worker thread body: execute the whole plan."""
        try:
            report = self.batch_runner.execute(plan)
        except Exception as e:
            logger.exception("Batch worker crashed")
            self.batch_runner.channel.put(f"Batch aborted: {e}")
            with self._lock:
                self._error = e
                self._state = RunState.CRASHED
            if self.on_crash_callback:
                self.on_crash_callback(e)
            return

        with self._lock:
            self._report = report
            self._state = RunState.COMPLETED

        if self.on_complete_callback:
            self.on_complete_callback(report)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the current run to finish.

        Returns True if finished (or nothing running), False if timed out.
        """
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
