"""Dispatch of SQL expressions to the backend named on a row."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Union

from sqlalchemy.engine import Engine

from dashboard.core.config import Settings
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import ServerType
from .base import BaseBackend
from .erp import ErpBackend
from .errors import ErrorKind, ExecutionError, to_execution_error
from .legacy_file import LegacyFileBackend
from .local import LocalBackend

log = get_logger("connections.provider")


@dataclass
class QueryResult:
    """Outcome of one ``execute`` call: a scalar, a row set, or a tagged error."""

    server_type: Optional[ServerType]
    value: Optional[float] = None
    rows: Optional[List[Dict[str, Any]]] = None
    error: Optional[ExecutionError] = None
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def _to_number(raw: Any) -> Optional[float]:
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, (int, float, Decimal)):
        number = float(raw)
        return None if math.isnan(number) else number
    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        try:
            number = float(Decimal(text.strip().replace(",", "")))
        except (InvalidOperation, ValueError):
            return None
        return None if math.isnan(number) else number
    return None


def extract_scalar(rows: List[Dict[str, Any]]) -> float:
    """First row; the ``value`` column when present, otherwise the first column."""
    if not rows:
        raise ExecutionError(ErrorKind.EXECUTION, "Query returned no rows")

    first = rows[0]
    if not first:
        raise ExecutionError(ErrorKind.EXECUTION, "Query returned an empty row")

    key = next((k for k in first if str(k).lower() == "value"), next(iter(first)))
    raw = first[key]
    if raw is None:
        raise ExecutionError(ErrorKind.EXECUTION, f"Query returned a null value in column '{key}'")

    number = _to_number(raw)
    if number is None:
        raise ExecutionError(ErrorKind.EXECUTION, f"Query returned a non-numeric value {raw!r} in column '{key}'")
    return number


class ConnectionProvider:
    """Executes SQL against LOCAL, ERP or LEGACY_FILE backends.

    Backend failures are never raised: ``execute`` always returns a
    ``QueryResult`` and puts the classified failure on ``error``.
    """

    def __init__(self, backends: Iterable[BaseBackend] = ()):
        self._backends: Dict[ServerType, BaseBackend] = {}
        for backend in backends:
            self.register(backend)

    @classmethod
    def from_settings(cls, cfg: Settings, engine: Engine) -> "ConnectionProvider":
        timeout = cfg.QUERY_TIMEOUT_SECONDS
        return cls(
            [
                LocalBackend(engine, timeout=timeout),
                ErpBackend(
                    connection_string=cfg.ERP_ODBC_CONNECTION_STRING,
                    dsn=cfg.ERP_DSN,
                    timeout=timeout,
                    retry_attempts=cfg.ERP_RETRY_ATTEMPTS,
                    qualify_tables=cfg.ERP_QUALIFY_TABLES,
                ),
                LegacyFileBackend(
                    file_path=cfg.LEGACY_FILE_PATH,
                    driver=cfg.LEGACY_ODBC_DRIVER,
                    timeout=timeout,
                ),
            ]
        )

    def register(self, backend: BaseBackend) -> None:
        self._backends[backend.server_type] = backend

    def backend(self, server_type: ServerType) -> Optional[BaseBackend]:
        return self._backends.get(server_type)

    @property
    def server_types(self) -> List[ServerType]:
        return list(self._backends)

    async def execute(
        self,
        server_type: Union[ServerType, str],
        sql: Optional[str],
        rows: bool = False,
    ) -> QueryResult:
        start = time.perf_counter()

        try:
            kind = ServerType(server_type)
        except ValueError:
            return QueryResult(
                server_type=None,
                error=ExecutionError(ErrorKind.CONNECTION, f"Unknown server type: {server_type}"),
            )

        backend = self._backends.get(kind)
        if backend is None:
            return QueryResult(
                server_type=kind,
                error=ExecutionError(ErrorKind.CONNECTION, f"No backend registered for {kind.value}"),
            )

        if not sql or not sql.strip():
            return QueryResult(
                server_type=kind,
                error=ExecutionError(ErrorKind.EXECUTION, "No SQL expression defined"),
            )

        try:
            fetched = await backend.fetch(sql.strip())
            result = QueryResult(server_type=kind)
            if rows:
                result.rows = fetched
            else:
                result.value = extract_scalar(fetched)
        except Exception as exc:  # noqa: BLE001
            error = to_execution_error(exc)
            log.warning(f"{backend.label} query failed ({error.kind.value}): {error.message}")
            result = QueryResult(server_type=kind, error=error)

        result.elapsed_ms = int((time.perf_counter() - start) * 1000)
        return result

    async def check(self, server_type: Union[ServerType, str]) -> QueryResult:
        """Probe a backend with a trivial query."""
        try:
            backend = self._backends.get(ServerType(server_type))
        except ValueError:
            backend = None
        probe = backend.probe_sql if backend else "SELECT 1 AS value"
        return await self.execute(server_type, probe)

    def dispose(self) -> None:
        for backend in self._backends.values():
            backend.dispose()
