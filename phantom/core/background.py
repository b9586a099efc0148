"""Fire-and-forget background work.

Artwork downloads started during a scan are pushed onto a BackgroundQueue
and never awaited by the scan itself. Failures are reported through the
queue's logger instead of propagating to the submitter.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

logger = logging.getLogger("phantom.background")

__all__ = ["BackgroundQueue"]


class BackgroundQueue:
    """Named work queue backed by a thread pool.

    Each submitted task gets a name used in log output. A failing task is
    logged (and counted in ``failures``) before its Future completes; callers
    only ever receive the Future if they want to inspect it.
    """

    def __init__(self, max_workers: int = 4, name: str = "phantom-bg") -> None:
        """Initializes the queue.

        Args:
            max_workers: Size of the underlying thread pool.
            name: Thread name prefix for the workers.
        """
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._futures: set[Future] = set()
        self._pending = 0
        self._lock = threading.Lock()
        self.failures = 0

    def submit(self, task_name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Schedule a task without waiting for it.

        Args:
            task_name: Human-readable label for logging.
            fn: Callable to run on a worker thread.
            *args: Positional arguments for fn.
            **kwargs: Keyword arguments for fn.

        Returns:
            The Future of the task.
        """
        with self._lock:
            self._pending += 1
        future = self._executor.submit(self._run, task_name, fn, args, kwargs)
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _run(self, task_name: str, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            with self._lock:
                self.failures += 1
            logger.warning("Background task %s failed: %s", task_name, e)
            raise
        finally:
            with self._lock:
                self._pending -= 1

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)
            if future.cancelled():
                self._pending -= 1

    def pending_count(self) -> int:
        """Number of tasks queued or running."""
        with self._lock:
            return self._pending

    def wait(self, timeout: float | None = None) -> None:
        """Block until every currently queued task has finished."""
        with self._lock:
            futures = list(self._futures)
        if futures:
            wait(futures, timeout=timeout)

    def shutdown(self, wait_for_tasks: bool = True) -> None:
        """Stop accepting work and release the worker threads."""
        self._executor.shutdown(wait=wait_for_tasks, cancel_futures=not wait_for_tasks)
