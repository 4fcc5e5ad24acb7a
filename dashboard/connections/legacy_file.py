"""LEGACY_FILE backend: a shared desktop-format database file over ODBC.

The file format tolerates a single writer only, so every query in the process
goes through one lock: at most one open handle at any time.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from dashboard.connections.errors import ErrorKind, ExecutionError
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import ServerType
from .base import BaseBackend

log = get_logger("connections.legacy_file")

_FILE_LOCK = threading.Lock()


def _odbc_connect(connection_string: str, **kwargs: Any):
    import pyodbc

    return pyodbc.connect(connection_string, **kwargs)


class LegacyFileBackend(BaseBackend):
    """Desktop database file, one fresh connection per query."""

    server_type = ServerType.LEGACY_FILE
    label = "Legacy file"

    def __init__(
        self,
        file_path: Optional[str],
        driver: str = "Microsoft Access Driver (*.mdb, *.accdb)",
        timeout: float = 30.0,
        connect: Optional[Callable[..., Any]] = None,
    ):
        super().__init__(timeout=timeout)
        self.file_path = file_path
        self.driver = driver
        self._connect = connect or _odbc_connect

    @property
    def configured(self) -> bool:
        return bool(self.file_path)

    @property
    def connection_string(self) -> str:
        return f"DRIVER={{{self.driver}}};DBQ={self.file_path};"

    def _run(self, sql: str, deadline: float) -> List[Dict[str, Any]]:
        # A caller that has already timed out must never open the file.
        remaining = deadline - time.monotonic()
        if remaining <= 0 or not _FILE_LOCK.acquire(timeout=remaining):
            raise ExecutionError(ErrorKind.TIMEOUT, f"{self.label} file is busy; query not started")
        try:
            if time.monotonic() >= deadline:
                raise ExecutionError(ErrorKind.TIMEOUT, f"{self.label} file is busy; query not started")
            return self._execute(sql)
        finally:
            _FILE_LOCK.release()

    def _execute(self, sql: str) -> List[Dict[str, Any]]:
        """Open, query and close; callers hold the file lock."""
        conn = self._connect(self.connection_string, timeout=int(self.timeout), autocommit=True)
        try:
            conn.timeout = int(self.timeout)
            cursor = conn.cursor()
            cursor.execute(sql)
            if cursor.description is None:
                return []
            columns = [col[0] for col in cursor.description]
            rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            conn.close()
        log.debug(f"Legacy file query returned {len(rows)} rows")
        return rows
