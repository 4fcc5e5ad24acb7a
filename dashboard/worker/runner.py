"""Sequential execution of one batch of metric rows."""

from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional, Sequence, Tuple

from dashboard.connections.provider import ConnectionProvider
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import MetricRow, QueryMode, ServerType
from dashboard.services.row_store import RowStore
from dashboard.worker.events import BatchResult, RowOutcome, RunListener

log = get_logger("worker.runner")


def resolve_query(row: MetricRow, mode: QueryMode) -> Tuple[ServerType, Optional[str]]:
    """Pick the backend and the active SQL text for ``row`` under ``mode``.

    Test mode always runs ``sql_expression`` on the local store. Production
    runs ``production_sql_expression`` on the row's own backend; LOCAL rows
    without one fall back to ``sql_expression``.
    """
    if mode is QueryMode.TEST:
        return ServerType.LOCAL, row.sql_expression

    server_type = ServerType(row.server_type)
    sql = row.production_sql_expression
    if server_type is ServerType.LOCAL and not (sql and sql.strip()):
        sql = row.sql_expression
    return server_type, sql


class QueryRunner:
    """Runs rows one at a time, in the given order, writing results back.

    Row failures stay on the row: they are written to ``last_error`` and the
    batch moves on. Cancellation is checked between rows and during the
    pacing wait, never in the middle of a query.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        store: RowStore,
        listeners: Iterable[RunListener] = (),
    ):
        self.provider = provider
        self.store = store
        self.listeners: List[RunListener] = list(listeners)

    def add_listener(self, listener: RunListener) -> None:
        self.listeners.append(listener)

    async def run(
        self,
        rows: Sequence[MetricRow],
        mode: QueryMode,
        cancel: Optional[asyncio.Event] = None,
        pacing_seconds: float = 0.0,
    ) -> BatchResult:
        cancel = cancel or asyncio.Event()
        result = BatchResult(total_rows=len(rows))
        log.info(f"Batch started | rows={len(rows)} mode={mode.value} pacing={pacing_seconds}s")

        for index, row in enumerate(rows):
            if cancel.is_set():
                result.cancelled = True
                break

            self._emit("on_row_start", row, index)
            outcome = await self.run_row(row, mode, index)
            result.outcomes.append(outcome)
            self._emit("on_row_complete", outcome)

            is_last = index == len(rows) - 1
            if not is_last and await self._pause(cancel, pacing_seconds):
                result.cancelled = True
                break

        if result.cancelled:
            log.info(f"Batch cancelled after {result.processed}/{result.total_rows} rows")
        else:
            log.info(
                f"Batch finished | processed={result.processed} "
                f"succeeded={result.succeeded} failed={result.failed}"
            )
        self._emit("on_batch_complete", result)
        return result

    async def run_row(self, row: MetricRow, mode: QueryMode, index: int = 0) -> RowOutcome:
        """Execute one row and persist its value or error."""
        server_type, sql = resolve_query(row, mode)
        log.info(
            f"Row {row.id} [{index + 1}] {row.chart_group} / {row.variable_name} -> {server_type.value}"
        )

        query = await self.provider.execute(server_type, sql)
        outcome = RowOutcome(
            row_id=row.id,
            index=index,
            server_type=server_type,
            success=query.ok,
            elapsed_ms=query.elapsed_ms,
        )

        if query.ok:
            outcome.value = query.value
            try:
                await asyncio.to_thread(self.store.update_row_value, row.id, query.value)
            except Exception as exc:  # noqa: BLE001
                log.exception(f"Row {row.id}: failed to save value {query.value}")
                outcome.success = False
                outcome.error = f"Failed to save result: {exc}"
            else:
                log.info(f"Row {row.id} ok | value={query.value} ({query.elapsed_ms} ms)")
            return outcome

        outcome.error = query.error.message
        outcome.error_kind = query.error.kind
        log.warning(f"Row {row.id} failed ({query.error.kind.value}): {query.error.message}")
        try:
            await asyncio.to_thread(self.store.update_row_error, row.id, query.error.message)
        except Exception:  # noqa: BLE001
            log.exception(f"Row {row.id}: failed to save error")
        return outcome

    @staticmethod
    async def _pause(cancel: asyncio.Event, seconds: float) -> bool:
        """Wait between rows; returns True when a stop arrived meanwhile."""
        if seconds <= 0:
            return cancel.is_set()
        try:
            await asyncio.wait_for(cancel.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def _emit(self, event: str, *args) -> None:
        for listener in self.listeners:
            try:
                getattr(listener, event)(*args)
            except Exception:  # noqa: BLE001
                log.exception(f"Listener {listener.__class__.__name__}.{event} failed")
