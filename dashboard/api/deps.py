"""API dependencies"""

from typing import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from dashboard.connections.provider import ConnectionProvider
from dashboard.core.db import get_session
from dashboard.services.row_store import RowStore
from dashboard.services.run_history import RunHistory
from dashboard.services.worker_service import get_worker
from dashboard.worker.controller import WorkerController


def get_db() -> Generator[Session, None, None]:
    """Database dependency"""
    yield from get_session()


def get_controller() -> WorkerController:
    worker = get_worker()
    if worker is None:
        raise HTTPException(status_code=503, detail="Worker is not initialized")
    return worker


def get_row_store(worker: WorkerController = Depends(get_controller)) -> RowStore:
    return worker.store


def get_provider(worker: WorkerController = Depends(get_controller)) -> ConnectionProvider:
    return worker.provider


def get_history(worker: WorkerController = Depends(get_controller)) -> RunHistory:
    history = worker.history
    if history is None:
        raise HTTPException(status_code=503, detail="Run history is not available")
    return history
