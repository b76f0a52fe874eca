"""Bounded worker pool that runs one external process per task."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Iterable

from devflow.fanout.executor import TaskExecutor
from devflow.fanout.models import FanOutSummary, FanOutTask, TaskOutcome, TaskStatus

logger = logging.getLogger(__name__)

_SENTINEL = object()
INTERNAL_ERROR_EXIT_CODE = 1


class BoundedFanOutRunner:
    """Run tasks through at most ``concurrency`` workers.

    Tasks are admitted in the order given and reported in completion order. A worker
    only takes the next task after its previous child process has exited, so the
    number of live children never exceeds the worker count.
    """

    def __init__(self, *, executor: TaskExecutor, concurrency: int) -> None:
        if concurrency <= 0:
            raise ValueError("Concurrency limit must be a positive integer.")
        self.executor = executor
        self.concurrency = concurrency
        self._lock = threading.Lock()
        self._in_flight = 0
        self._max_in_flight = 0

    def run(
        self,
        tasks: Iterable[FanOutTask],
        *,
        on_complete: Callable[[FanOutTask], None] | None = None,
    ) -> FanOutSummary:
        """Execute all tasks and block until every one reached a terminal status."""

        summary = FanOutSummary(tasks=list(tasks))
        if not summary.tasks:
            return summary

        self._in_flight = 0
        self._max_in_flight = 0
        pending: queue.Queue[FanOutTask | object] = queue.Queue()
        completed: queue.Queue[FanOutTask] = queue.Queue()
        for task in summary.tasks:
            pending.put(task)

        worker_count = min(self.concurrency, len(summary.tasks))
        for _ in range(worker_count):
            pending.put(_SENTINEL)

        workers = [
            threading.Thread(
                target=self._work,
                args=(pending, completed),
                name=f"fanout-worker-{index}",
                daemon=True,
            )
            for index in range(worker_count)
        ]
        logger.info("Fan-out started: tasks=%d workers=%d", len(summary.tasks), worker_count)
        for worker in workers:
            worker.start()

        for _ in range(len(summary.tasks)):
            finished = completed.get()
            if on_complete is not None:
                on_complete(finished)

        for worker in workers:
            worker.join()

        summary.max_in_flight = self._max_in_flight
        logger.info(
            "Fan-out finished: total=%d succeeded=%d failed=%d",
            summary.total,
            summary.succeeded,
            summary.failed,
        )
        return summary

    def retry_failed(
        self,
        summary: FanOutSummary,
        *,
        on_complete: Callable[[FanOutTask], None] | None = None,
    ) -> FanOutSummary:
        """Re-run only the failed tasks of ``summary`` as fresh pending tasks."""

        return self.run(
            [task.reset() for task in summary.failed_tasks],
            on_complete=on_complete,
        )

    def _work(
        self,
        pending: queue.Queue[FanOutTask | object],
        completed: queue.Queue[FanOutTask],
    ) -> None:
        while True:
            item = pending.get()
            if item is _SENTINEL:
                return
            assert isinstance(item, FanOutTask)
            self._execute(item)
            completed.put(item)

    def _execute(self, task: FanOutTask) -> None:
        with self._lock:
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)
        task.status = TaskStatus.RUNNING
        started = time.monotonic()
        try:
            outcome = self.executor.execute(task)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Executor crashed for %s", task.file_path)
            outcome = TaskOutcome(
                exit_code=INTERNAL_ERROR_EXIT_CODE,
                output="",
                error=f"Executor error: {exc}",
                elapsed_seconds=time.monotonic() - started,
            )
        finally:
            with self._lock:
                self._in_flight -= 1

        task.exit_code = outcome.exit_code
        task.output = outcome.output
        task.error = outcome.error
        task.elapsed_seconds = outcome.elapsed_seconds
        task.status = TaskStatus.SUCCEEDED if outcome.succeeded else TaskStatus.FAILED
        if task.status == TaskStatus.FAILED and not task.error:
            task.error = f"exit code={outcome.exit_code}"
