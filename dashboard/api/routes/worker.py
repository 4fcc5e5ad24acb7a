"""Worker routes - Start, stop and observe the background batch."""

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.api.deps import get_controller, get_history
from dashboard.core.errors import ModeChangeRejected
from dashboard.core.logging import get_logger
from dashboard.schemas.worker import ControlResponse, ModeOut, ModeUpdate, RunStatus, WorkerRunOut
from dashboard.services.run_history import RunHistory
from dashboard.worker.controller import WorkerController

router = APIRouter(prefix="/worker", tags=["worker"])
log = get_logger("worker_routes")


@router.post("/start", response_model=ControlResponse)
async def start_worker(worker: WorkerController = Depends(get_controller)):
    """
    Start a batch over all metric rows.

    Returns immediately; the batch runs in the background. A second start
    while a batch is active is not an error: ``accepted`` is false and
    nothing else happens.
    """
    response = await worker.start()
    log.info(f"Start requested: {response.message}")
    return response


@router.post("/stop", response_model=ControlResponse)
async def stop_worker(worker: WorkerController = Depends(get_controller)):
    """
    Request a stop.

    The row currently executing finishes; no further row starts.
    """
    response = await worker.stop()
    log.info(f"Stop requested: {response.message}")
    return response


@router.get("/status", response_model=RunStatus)
def worker_status(worker: WorkerController = Depends(get_controller)):
    return worker.status()


@router.get("/mode", response_model=ModeOut)
def get_mode(worker: WorkerController = Depends(get_controller)):
    return ModeOut(mode=worker.mode_state.mode, locked=worker.mode_state.locked)


@router.put("/mode", response_model=ModeOut)
def set_mode(payload: ModeUpdate, worker: WorkerController = Depends(get_controller)):
    """Switch between test and production SQL. Rejected while a batch runs."""
    try:
        mode = worker.mode_state.set_mode(payload.mode)
    except ModeChangeRejected as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ModeOut(mode=mode, locked=worker.mode_state.locked)


@router.get("/runs", response_model=List[WorkerRunOut])
def list_runs(
    status: Optional[Literal["running", "completed", "stopped", "errored", "interrupted"]] = None,
    limit: int = Query(10, ge=1, le=100),
    history: RunHistory = Depends(get_history),
):
    """Recent batch runs, newest first."""
    return history.recent(status=status, limit=limit)
