"""ERP backend: SQL Server reached over ODBC."""

from __future__ import annotations

import re
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import ServerType
from .base import BaseBackend
from .errors import ErrorKind, classify_error

log = get_logger("connections.erp")

# Tables the ERP keeps in the dbo schema; bare references get qualified.
ERP_SCHEMA = "dbo"
ERP_TABLES = (
    "oe_hdr",
    "oe_line",
    "invoice_hdr",
    "invoice_line",
    "customer",
    "inv_mast",
    "ar_open_items",
    "ap_open_items",
)


def qualify_erp_tables(sql: str, schema: str = ERP_SCHEMA, tables=ERP_TABLES) -> str:
    """Prefix well-known ERP tables with their schema unless the query already does."""
    if f"{schema}." in sql:
        return sql
    qualified = sql
    for table in tables:
        qualified = re.sub(rf"(?<![.\w]){re.escape(table)}\b", f"{schema}.{table}", qualified)
    return qualified


def create_mssql_engine(odbc_connect: str, login_timeout: int = 15, query_timeout: int = 30) -> Engine:
    """Create a pooled SQL Server engine from a raw ODBC connection string."""
    connection_url = f"mssql+pyodbc:///?odbc_connect={quote_plus(odbc_connect)}"
    engine = create_engine(
        connection_url,
        pool_pre_ping=True,
        connect_args={"timeout": login_timeout},
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _set_query_timeout(dbapi_conn, _record):  # noqa: ANN001
        # pyodbc: per-connection statement timeout in seconds
        dbapi_conn.timeout = query_timeout

    return engine


def _is_transient(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.CONNECTION


class ErpBackend(BaseBackend):
    """Networked relational server; transient connection failures are retried."""

    server_type = ServerType.ERP
    label = "ERP"

    def __init__(
        self,
        connection_string: Optional[str] = None,
        dsn: Optional[str] = None,
        timeout: float = 30.0,
        retry_attempts: int = 3,
        qualify_tables: bool = True,
        engine: Optional[Engine] = None,
    ):
        super().__init__(timeout=timeout)
        self.connection_string = connection_string
        self.dsn = dsn
        self.retry_attempts = max(1, retry_attempts)
        self.qualify_tables = qualify_tables
        self._engine = engine
        self._engine_lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self._engine is not None or self.connection_string or self.dsn)

    @property
    def odbc_connect(self) -> str:
        if self.connection_string:
            return self.connection_string
        return f"DSN={self.dsn};Trusted_Connection=Yes;"

    def prepare(self, sql: str) -> str:
        if not self.qualify_tables:
            return sql
        qualified = qualify_erp_tables(sql)
        if qualified != sql:
            log.debug(f"Qualified ERP tables: {qualified}")
        return qualified

    def _get_engine(self) -> Engine:
        with self._engine_lock:
            if self._engine is None:
                log.info("Creating ERP engine")
                self._engine = create_mssql_engine(self.odbc_connect, query_timeout=int(self.timeout))
            return self._engine

    def _execute(self, sql: str) -> List[Dict[str, Any]]:
        @retry(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        def _run() -> List[Dict[str, Any]]:
            with self._get_engine().connect() as conn:
                result = conn.exec_driver_sql(sql)
                if not result.returns_rows:
                    conn.commit()
                    return []
                return [dict(row) for row in result.mappings().all()]

        return _run()

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            log.info("ERP engine disposed")
