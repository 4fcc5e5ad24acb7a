"""Test/production mode flag, read by the controller at batch start."""

from __future__ import annotations

import threading

from dashboard.core.errors import ModeChangeRejected
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import QueryMode

log = get_logger("worker.mode")


class ModeState:
    """Holds the current mode; locked for the duration of a batch."""

    def __init__(self, mode: QueryMode = QueryMode.TEST):
        self._mode = QueryMode(mode)
        self._locked = False
        self._lock = threading.Lock()

    @property
    def mode(self) -> QueryMode:
        return self._mode

    @property
    def locked(self) -> bool:
        return self._locked

    def set_mode(self, mode: QueryMode) -> QueryMode:
        with self._lock:
            if self._locked:
                raise ModeChangeRejected("Query mode cannot change while a batch is running")
            previous, self._mode = self._mode, QueryMode(mode)
        if previous is not self._mode:
            log.info(f"Query mode changed: {previous.value} -> {self._mode.value}")
        return self._mode

    def lock(self) -> QueryMode:
        """Freeze the mode and return the snapshot the batch will use."""
        with self._lock:
            self._locked = True
            return self._mode

    def unlock(self) -> None:
        with self._lock:
            self._locked = False
