"""
Bounded worker pool used to delete many instances at once.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ThreadPool:
    """
    Run work items on at most ``max_threads`` threads.

    Used as a context manager: ``process`` schedules work, leaving the block
    waits for all of it. Once any work item raises, items still waiting in
    the queue are skipped; items already running finish on their own. The
    first error is re-raised when the block exits.
    """

    def __init__(self, max_threads: int, name: str = "worker"):
        """
        Initialize the pool.

        Args:
            max_threads: Maximum number of concurrently running work items
            name: Thread name prefix

        Raises:
            ValueError: If max_threads is lower than 1
        """
        if max_threads < 1:
            raise ValueError(f"max_threads must be at least 1, got {max_threads}")
        self.max_threads = max_threads
        self.name = name

        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._error: Optional[Exception] = None
        self._skipped = 0

    @property
    def failed(self) -> bool:
        with self._lock:
            return self._error is not None

    @property
    def skipped(self) -> int:
        """Number of queued work items dropped after a failure."""
        with self._lock:
            return self._skipped

    def __enter__(self) -> "ThreadPool":
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_threads, thread_name_prefix=self.name
        )
        logger.debug(f"Started pool '{self.name}' with {self.max_threads} thread(s)")
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        executor, self._executor = self._executor, None
        if exc_type is not None:
            executor.shutdown(wait=True, cancel_futures=True)
            return False

        executor.shutdown(wait=True)
        if self._error is not None:
            if self._skipped:
                logger.warning(
                    f"Pool '{self.name}': {self._skipped} queued item(s) not started after failure"
                )
            raise self._error
        return False

    def process(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """
        Schedule a work item.

        Raises:
            RuntimeError: If called outside the ``with`` block
        """
        if self._executor is None:
            raise RuntimeError("ThreadPool.process called outside of its context")
        return self._executor.submit(self._run, fn, args, kwargs)

    def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        with self._lock:
            if self._error is not None:
                self._skipped += 1
                return None

        try:
            return fn(*args, **kwargs)
        except Exception as e:
            with self._lock:
                if self._error is None:
                    self._error = e
            logger.error(f"Pool '{self.name}' work item failed: {e}")
            raise
