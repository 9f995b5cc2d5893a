"""
Progress reporting for long-running deletions.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)


class EventLog:
    """Collects stage events; shared by all stages of a task."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[Dict] = []

    def begin_stage(self, name: str, total: int) -> "EventLogStage":
        return EventLogStage(self, name, total)

    def record(self, event: Dict) -> None:
        with self._lock:
            self.events.append(event)


class EventLogStage:
    """A named stage with a known number of tasks."""

    def __init__(self, event_log: Optional[EventLog], name: str, total: int):
        self.event_log = event_log or EventLog()
        self.name = name
        self.total = total
        self._lock = threading.Lock()
        self._index = 0
        self._finished = 0

    @property
    def finished(self) -> int:
        with self._lock:
            return self._finished

    @contextmanager
    def advance_and_track(self, task: str) -> Iterator[None]:
        """
        Track one task of the stage; the stage advances when the block exits.

        Args:
            task: Task name, e.g. "<job-name>/<index>"
        """
        with self._lock:
            self._index += 1
            index = self._index

        self._emit(task, index, "started")
        try:
            yield
        except Exception as e:
            self._emit(task, index, "failed", error=str(e))
            logger.error(f"{self.name}: {task} ({index}/{self.total}) failed: {e}")
            raise

        with self._lock:
            self._finished += 1
        self._emit(task, index, "finished")
        logger.info(f"{self.name}: {task} ({index}/{self.total}) done")

    def _emit(self, task: str, index: int, state: str, error: Optional[str] = None) -> None:
        event = {
            "time": int(time.time()),
            "stage": self.name,
            "task": task,
            "index": index,
            "total": self.total,
            "state": state,
        }
        if error is not None:
            event["data"] = {"error": error}
        self.event_log.record(event)
