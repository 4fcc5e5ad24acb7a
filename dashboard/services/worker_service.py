"""Process-wide worker wiring.

One ``WorkerController`` per process, built from settings at startup and
shared by the API routes and the standalone entrypoint.
"""

from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from dashboard.connections.provider import ConnectionProvider
from dashboard.core.config import Settings, settings
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import QueryMode
from dashboard.services.row_store import RowStore
from dashboard.services.run_history import RunHistory
from dashboard.worker.controller import WorkerController
from dashboard.worker.mode import ModeState

log = get_logger("worker_service")


def build_worker(
    engine: Engine,
    session_factory: Callable[[], Session],
    cfg: Settings = settings,
    provider: Optional[ConnectionProvider] = None,
) -> WorkerController:
    """Assemble a controller with its store, provider and mode from ``cfg``."""
    provider = provider or ConnectionProvider.from_settings(cfg, engine)
    return WorkerController(
        store=RowStore(session_factory),
        provider=provider,
        mode_state=ModeState(QueryMode(cfg.QUERY_MODE)),
        history=RunHistory(session_factory),
        pacing_seconds=cfg.WORKER_PACING_SECONDS,
        escalation_threshold=cfg.WORKER_ESCALATION_THRESHOLD,
    )


# Global instance holder for the worker
_worker: Optional[WorkerController] = None


def init_worker(
    engine: Engine,
    session_factory: Callable[[], Session],
    cfg: Settings = settings,
) -> WorkerController:
    """Initialize the global worker controller at application startup."""
    global _worker
    _worker = build_worker(engine, session_factory, cfg)
    log.info(
        f"Worker ready | mode={_worker.mode_state.mode.value} "
        f"pacing={cfg.WORKER_PACING_SECONDS}s "
        f"erp={'on' if cfg.erp_configured else 'off'} "
        f"legacy={'on' if cfg.legacy_configured else 'off'}"
    )
    return _worker


def set_worker(worker: Optional[WorkerController]) -> None:
    global _worker
    _worker = worker


def get_worker() -> Optional[WorkerController]:
    """Get the global worker controller instance."""
    return _worker


async def shutdown_worker() -> None:
    """Stop any running batch and release backend connections."""
    global _worker
    if _worker:
        await _worker.shutdown()
        _worker.provider.dispose()
        _worker = None
