"""create metric_rows table

Revision ID: 0001_metric_rows
Revises:
Create Date: 2026-10-12 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_metric_rows"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "metric_rows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("chart_group", sa.String(200), nullable=False),
        sa.Column("variable_name", sa.String(200), nullable=False),
        sa.Column(
            "server_type",
            sa.Enum("LOCAL", "ERP", "LEGACY_FILE", name="servertype", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("table_name", sa.String(200), nullable=True),
        sa.Column("sql_expression", sa.Text(), nullable=True),
        sa.Column("production_sql_expression", sa.Text(), nullable=True),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=False, server_default=""),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_metric_rows_chart_group", "metric_rows", ["chart_group"])


def downgrade() -> None:
    op.drop_index("ix_metric_rows_chart_group", table_name="metric_rows")
    op.drop_table("metric_rows")
