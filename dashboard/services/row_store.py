"""Row Store - ordered metric rows in the embedded store."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dashboard.core.errors import RowNotFoundError
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import MetricRow

log = get_logger("row_store")

EDITABLE_FIELDS = frozenset(
    {
        "chart_group",
        "variable_name",
        "server_type",
        "table_name",
        "sql_expression",
        "production_sql_expression",
        "value",
        "last_error",
    }
)


class RowStore:
    """Reads and keyed writes of metric rows.

    Every write is one ``UPDATE ... WHERE id = :id`` under a store-wide lock,
    so the runner and manual admin edits never overwrite each other from a
    stale snapshot. Last writer wins per field.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def get_all_rows(self) -> List[MetricRow]:
        with self.session_factory() as db:
            stmt = select(MetricRow).order_by(MetricRow.id.asc())
            rows = list(db.execute(stmt).scalars().all())
            db.expunge_all()
            return rows

    def get_row(self, row_id: int) -> Optional[MetricRow]:
        with self.session_factory() as db:
            row = db.get(MetricRow, row_id)
            if row is not None:
                db.expunge(row)
            return row

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    def update_row_value(self, row_id: int, value: float) -> None:
        """Store a fresh result and clear the previous error."""
        self._write(row_id, {"value": value, "last_error": ""})

    def update_row_error(self, row_id: int, message: str) -> None:
        """Record a failure; the last known good value is left alone."""
        self._write(row_id, {"last_error": message or "Unknown error"})

    def update_row(self, row_id: int, **fields: Any) -> MetricRow:
        """Manual admin edit of a subset of fields."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if fields.get("last_error") is None and "last_error" in fields:
            fields["last_error"] = ""
        self._write(row_id, fields)
        row = self.get_row(row_id)
        if row is None:
            raise RowNotFoundError(row_id)
        return row

    def add_rows(self, rows: Iterable[Dict[str, Any]]) -> List[MetricRow]:
        with self._write_lock, self.session_factory() as db:
            created = [MetricRow(**payload) for payload in rows]
            db.add_all(created)
            db.commit()
            for row in created:
                db.refresh(row)
            db.expunge_all()
        log.info(f"Added {len(created)} metric rows")
        return created

    def _write(self, row_id: int, values: Dict[str, Any]) -> None:
        values = {**values, "last_updated": datetime.now(timezone.utc)}
        with self._write_lock, self.session_factory() as db:
            stmt = update(MetricRow).where(MetricRow.id == row_id).values(**values)
            result = db.execute(stmt)
            if result.rowcount == 0:
                db.rollback()
                raise RowNotFoundError(row_id)
            db.commit()
