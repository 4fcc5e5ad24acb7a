"""Health routes - System health and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from sqlalchemy import select, text
from sqlalchemy.orm import Session

from dashboard.api.deps import get_db
from dashboard.models.runs import WorkerRun
from dashboard.schemas.api import HealthResponse
from dashboard.services.worker_service import get_worker

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(response: Response, db: Session = Depends(get_db)):
    """
    Health check endpoint for load balancer and Docker health checks.

    Checks store connectivity, the worker state and the last batch status.
    Returns 503 if the store is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        response.status_code = 503
        return HealthResponse(database=f"down: {e}", worker_state=None, last_run_status=None)

    stmt = select(WorkerRun).order_by(WorkerRun.started_at.desc()).limit(1)
    last_run = db.execute(stmt).scalar_one_or_none()
    worker = get_worker()

    return HealthResponse(
        database=db_status,
        worker_state=worker.state.value if worker else None,
        last_run_status=last_run.status if last_run else None,
    )


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)):
    """
    Readiness probe - checks the store is reachable and the worker is wired.

    Returns 200 if ready, 503 otherwise.
    """
    now = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e), "timestamp": now}

    if get_worker() is None:
        response.status_code = 503
        return {"status": "not_ready", "error": "worker not initialized", "timestamp": now}
    return {"status": "ready", "timestamp": now}
