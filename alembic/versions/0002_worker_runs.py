"""Add worker_runs history table

Revision ID: 0002_worker_runs
Revises: 0001_metric_rows
Create Date: 2026-10-14

One row per batch. Rows left in 'running' by a crashed process are
marked 'interrupted' at the next startup.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0002_worker_runs'
down_revision = '0001_metric_rows'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'worker_runs',
        sa.Column('run_id', sa.String(36), primary_key=True),
        sa.Column('mode', sa.String(20), nullable=False, comment='test or production'),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('total_rows', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rows_succeeded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rows_failed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.String(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_index('ix_worker_runs_status', 'worker_runs', ['status'])
    op.create_index('ix_worker_runs_started_at', 'worker_runs', ['started_at'])


def downgrade() -> None:
    op.drop_index('ix_worker_runs_started_at', table_name='worker_runs')
    op.drop_index('ix_worker_runs_status', table_name='worker_runs')
    op.drop_table('worker_runs')
