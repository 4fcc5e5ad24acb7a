"""Run history - one WorkerRun record per batch."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from dashboard.core.logging import get_logger
from dashboard.models.runs import WorkerRun

log = get_logger("run_history")


class RunHistory:
    """Records batch start/finish; never used to resume a batch."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def start(self, mode: str, total_rows: int) -> str:
        with self.session_factory() as db:
            run = WorkerRun(mode=mode, status="running", total_rows=total_rows)
            db.add(run)
            db.commit()
            db.refresh(run)
            return run.run_id

    def finish(
        self,
        run_id: str,
        status: str,
        succeeded: int,
        failed: int,
        error: Optional[str] = None,
    ) -> None:
        with self.session_factory() as db:
            run = db.get(WorkerRun, run_id)
            if run is None:
                log.warning(f"Run {run_id} not found; history not updated")
                return
            run.status = status
            run.rows_succeeded = succeeded
            run.rows_failed = failed
            run.error_message = error
            run.ended_at = datetime.now(timezone.utc)
            db.commit()

    def mark_interrupted(self) -> int:
        """Close out runs a previous process left in ``running``."""
        with self.session_factory() as db:
            stmt = (
                update(WorkerRun)
                .where(WorkerRun.status == "running")
                .values(status="interrupted", ended_at=datetime.now(timezone.utc))
            )
            count = db.execute(stmt).rowcount or 0
            db.commit()
        if count:
            log.warning(f"Marked {count} stale run(s) as interrupted")
        return count

    def recent(self, status: Optional[str] = None, limit: int = 10) -> List[WorkerRun]:
        with self.session_factory() as db:
            stmt = select(WorkerRun)
            if status:
                stmt = stmt.where(WorkerRun.status == status)
            stmt = stmt.order_by(WorkerRun.started_at.desc()).limit(limit)
            runs = list(db.execute(stmt).scalars().all())
            db.expunge_all()
            return runs

    def latest(self) -> Optional[WorkerRun]:
        runs = self.recent(limit=1)
        return runs[0] if runs else None
