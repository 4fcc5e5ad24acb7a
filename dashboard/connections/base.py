"""Abstract backend interface for query execution."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from dashboard.connections.errors import ErrorKind, ExecutionError
from dashboard.models.metric_rows import ServerType


class BaseBackend(ABC):
    """One query target. Handles are opened per query and never leave the adapter."""

    server_type: ServerType
    label: str
    probe_sql: str = "SELECT 1 AS value"

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        """Whether connection parameters are present (not validated)."""
        return True

    def prepare(self, sql: str) -> str:
        """Backend-specific rewrite applied before execution."""
        return sql

    def _run(self, sql: str, deadline: float) -> List[Dict[str, Any]]:
        """Thread entry point; ``deadline`` is the caller's monotonic give-up time."""
        return self._execute(sql)

    @abstractmethod
    def _execute(self, sql: str) -> List[Dict[str, Any]]:
        """Run ``sql`` on a backend handle and return rows as dicts (blocking)."""

    async def fetch(self, sql: str) -> List[Dict[str, Any]]:
        """Run ``sql`` off the event loop, bounded by ``timeout``."""
        if not self.configured:
            raise ExecutionError(ErrorKind.CONNECTION, f"{self.label} connection is not configured")

        statement = self.prepare(sql)
        deadline = time.monotonic() + self.timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._run, statement, deadline), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise ExecutionError(
                ErrorKind.TIMEOUT, f"{self.label} query exceeded {self.timeout:g}s timeout"
            ) from exc

    def dispose(self) -> None:
        """Release pooled resources, if any."""
