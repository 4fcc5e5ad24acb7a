"""UI-facing status store mirroring the current run."""

from __future__ import annotations

import threading
from typing import Any, Callable, List

from dashboard.core.logging import get_logger
from dashboard.schemas.worker import RunStatus

log = get_logger("worker.status")

Subscriber = Callable[[RunStatus], None]


class StatusStore:
    """Thread-safe ``RunStatus`` holder with change subscriptions.

    Only the worker controller writes here; everything else reads snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = RunStatus()
        self._subscribers: List[Subscriber] = []

    def snapshot(self) -> RunStatus:
        with self._lock:
            return self._status.model_copy()

    def update(self, **fields: Any) -> RunStatus:
        with self._lock:
            self._status = self._status.model_copy(update=fields)
            snapshot = self._status.model_copy()
        self._notify(snapshot)
        return snapshot

    def increment(self, **deltas: int) -> RunStatus:
        with self._lock:
            fields = {name: getattr(self._status, name) + delta for name, delta in deltas.items()}
            self._status = self._status.model_copy(update=fields)
            snapshot = self._status.model_copy()
        self._notify(snapshot)
        return snapshot

    def reset(self, **fields: Any) -> RunStatus:
        with self._lock:
            self._status = RunStatus(**fields)
            snapshot = self._status.model_copy()
        self._notify(snapshot)
        return snapshot

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, snapshot: RunStatus) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as exc:  # noqa: BLE001
                log.error(f"Status subscriber failed: {exc}")
