"""LOCAL backend: the embedded store itself."""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.engine import Engine

from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import ServerType
from .base import BaseBackend

log = get_logger("connections.local")


class LocalBackend(BaseBackend):
    """Runs native SQL against the embedded store engine."""

    server_type = ServerType.LOCAL
    label = "Local store"

    def __init__(self, engine: Engine, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.engine = engine

    def _execute(self, sql: str) -> List[Dict[str, Any]]:
        # exec_driver_sql: the text is opaque, so no bind-parameter parsing of ':' tokens
        with self.engine.begin() as conn:
            result = conn.exec_driver_sql(sql)
            if not result.returns_rows:
                return []
            rows = [dict(row) for row in result.mappings().all()]
        log.debug(f"Local query returned {len(rows)} rows")
        return rows
