"""Metric rows: one scheduled SQL-backed dashboard value per row."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dashboard.models.base import Base


class ServerType(str, enum.Enum):
    """Backend a row's query is dispatched to."""

    LOCAL = "LOCAL"
    ERP = "ERP"
    LEGACY_FILE = "LEGACY_FILE"


class QueryMode(str, enum.Enum):
    """Which SQL expression on a row is active."""

    TEST = "test"
    PRODUCTION = "production"


class MetricRow(Base):
    """Canonical metric row.

    The runner writes ``value``/``last_error``/``last_updated``; the admin UI
    may edit any field. Writes are always keyed by ``id``.
    """

    __tablename__ = "metric_rows"
    # AUTOINCREMENT keeps SQLite from reusing ids of deleted rows
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    chart_group: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    variable_name: Mapped[str] = mapped_column(String(200), nullable=False)

    server_type: Mapped[ServerType] = mapped_column(
        Enum(ServerType, native_enum=False, length=20),
        nullable=False,
        default=ServerType.LOCAL,
    )

    # Diagnostic only, never used for dispatch
    table_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    sql_expression: Mapped[str | None] = mapped_column(Text, nullable=True)
    production_sql_expression: Mapped[str | None] = mapped_column(Text, nullable=True)

    value: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_error: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
