# Worker package
from dashboard.worker.controller import RunConfig, WorkerController, WorkerState
from dashboard.worker.escalation import EscalationPolicy
from dashboard.worker.events import BatchResult, RowOutcome, RunListener
from dashboard.worker.mode import ModeState
from dashboard.worker.runner import QueryRunner, resolve_query
from dashboard.worker.status import StatusStore

__all__ = [
    "BatchResult",
    "EscalationPolicy",
    "ModeState",
    "QueryRunner",
    "RowOutcome",
    "RunConfig",
    "RunListener",
    "StatusStore",
    "WorkerController",
    "WorkerState",
    "resolve_query",
]
