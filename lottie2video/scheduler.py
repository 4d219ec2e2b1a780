"""Memory-aware, fail-fast scheduler for parallel render workers"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional

import psutil

from .config import MEMORY_PAUSE_PERCENT, TASK_STAGGER_DELAY
from .exceptions import PipelineTimeoutError, WorkerCancelledError
from .utils import Deadline

log = logging.getLogger(__name__)

POLL_INTERVAL = 0.1

class WorkerScheduler:
    """
    Runs render workers on a fixed-size thread pool.

    Submissions are staggered so browser contexts do not all start at once,
    and held back while system memory usage is above ``memory_pause_percent``
    and at least one worker is already running.
    The first failure sets ``cancel_event`` so running workers stop at their
    next frame, drops workers that have not started, and is re-raised once
    every running worker has returned.
    """
    def __init__(self, max_workers: int, cancel_event: Optional[threading.Event] = None,
                 deadline: Optional[Deadline] = None,
                 task_stagger_delay: Optional[float] = None,
                 memory_pause_percent: Optional[float] = None):
        self.max_workers = max(1, max_workers)
        self.cancel_event = cancel_event or threading.Event()
        self.deadline = deadline or Deadline()
        self.task_stagger_delay = TASK_STAGGER_DELAY if task_stagger_delay is None else task_stagger_delay
        self.memory_pause_percent = MEMORY_PAUSE_PERCENT if memory_pause_percent is None else memory_pause_percent
        self.running_tasks: Dict[int, Future] = {}
        self.first_error: Optional[BaseException] = None

    def memory_available(self) -> bool:
        """Return False while system memory usage is above the pause threshold."""
        percent = psutil.virtual_memory().percent
        if percent >= self.memory_pause_percent:
            log.info("High memory usage (%d%%); pausing worker submissions...", percent)
            return False
        return True

    def run(self, workers: list) -> List:
        """
        Run every worker and return their results ordered by worker index.

        Raises:
            The first worker failure, PipelineTimeoutError, or
            WorkerCancelledError when cancelled from outside
        """
        pending = list(workers)
        results = {}
        self.first_error = None

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="render") as executor:
            try:
                self._drive(executor, pending, results)
            except BaseException:
                # Stop the workers before the pool joins them
                self._cancel(pending)
                raise

        if self.first_error is not None:
            raise self.first_error
        if len(results) != len(workers):
            raise WorkerCancelledError("Rendering was cancelled", module="scheduler")
        return [results[i] for i in sorted(results)]

    def _drive(self, executor: ThreadPoolExecutor, pending: list, results: dict) -> None:
        while pending or self.running_tasks:
            if pending and self.first_error is None and self.cancel_event.is_set():
                log.info("Cancelled from outside; dropping %d workers that had not started", len(pending))
                pending.clear()
                continue

            if self.first_error is None and self.deadline.expired():
                self._fail(PipelineTimeoutError(
                    f"Pipeline exceeded {self.deadline.seconds:.1f}s while rendering",
                    module="scheduler"
                ), pending)

            while (pending and self.first_error is None and not self.cancel_event.is_set()
                   and len(self.running_tasks) < self.max_workers):
                # With nothing running, submit regardless of memory
                if self.running_tasks and not self.memory_available():
                    break
                worker = pending.pop(0)
                self.running_tasks[worker.frame_range.index] = executor.submit(worker.run)
                if pending:
                    self.cancel_event.wait(self.task_stagger_delay)

            if not self.running_tasks:
                if pending:
                    self.cancel_event.wait(1)
                continue

            done, _ = wait(list(self.running_tasks.values()), timeout=POLL_INTERVAL,
                           return_when=FIRST_COMPLETED)
            for index, future in list(self.running_tasks.items()):
                if future not in done:
                    continue
                self.running_tasks.pop(index)
                try:
                    results[index] = future.result()
                except WorkerCancelledError:
                    log.debug("Worker %d stopped after cancellation", index)
                except Exception as e:
                    if self.first_error is None:
                        log.error("Worker %d failed, cancelling remaining workers: %s", index, e)
                        self._fail(e, pending)

    def _fail(self, error: BaseException, pending: list) -> None:
        self.first_error = error
        self._cancel(pending)

    def _cancel(self, pending: list) -> None:
        self.cancel_event.set()
        if pending:
            log.info("Dropping %d workers that had not started", len(pending))
            pending.clear()
