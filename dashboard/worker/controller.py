"""Worker controller: background batch task with start/stop/status controls."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from dashboard.connections.provider import ConnectionProvider
from dashboard.core.logging import get_logger, run_context
from dashboard.models.metric_rows import MetricRow, QueryMode
from dashboard.schemas.worker import ControlResponse, RunStatus
from dashboard.services.row_store import RowStore
from dashboard.services.run_history import RunHistory
from dashboard.worker.escalation import EscalationPolicy
from dashboard.worker.events import BatchResult, RowOutcome, RunListener
from dashboard.worker.mode import ModeState
from dashboard.worker.runner import QueryRunner
from dashboard.worker.status import StatusStore

log = get_logger("worker.controller")


class WorkerState(str, enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    COMPLETED = "completed"
    ERRORED = "errored"


_TRANSITIONS = {
    WorkerState.IDLE: {WorkerState.STARTING},
    WorkerState.STARTING: {WorkerState.RUNNING, WorkerState.STOPPING, WorkerState.ERRORED},
    WorkerState.RUNNING: {WorkerState.STOPPING, WorkerState.COMPLETED, WorkerState.ERRORED},
    WorkerState.STOPPING: {WorkerState.IDLE, WorkerState.ERRORED},
    WorkerState.COMPLETED: {WorkerState.IDLE},
    WorkerState.ERRORED: {WorkerState.IDLE},
}

_ACTIVE_STATES = {WorkerState.STARTING, WorkerState.RUNNING, WorkerState.STOPPING}


@dataclass(frozen=True)
class RunConfig:
    """Settings snapshotted when a batch starts and held for its whole duration."""

    mode: QueryMode
    pacing_seconds: float = 2.0
    escalation_threshold: int = 3


class _StatusListener(RunListener):
    """Mirrors runner events into the status store and applies escalation."""

    def __init__(self, controller: "WorkerController", escalation: EscalationPolicy):
        self.controller = controller
        self.escalation = escalation

    def on_row_start(self, row: MetricRow, index: int) -> None:
        self.controller.status_store.update(current_row_id=row.id)

    def on_row_complete(self, outcome: RowOutcome) -> None:
        self.controller.status_store.increment(
            completed_rows=1,
            failed_rows=0 if outcome.success else 1,
        )
        fatal = self.escalation.record(outcome)
        if fatal:
            self.controller._escalate(fatal)

    def on_batch_complete(self, result: BatchResult) -> None:
        self.controller.status_store.update(current_row_id=None)


class WorkerController:
    """Owns the single background batch task.

    ``start``/``stop``/``status`` only read or flip state; they never run a
    query themselves. State changes go IDLE -> STARTING -> RUNNING and end in
    STOPPING, COMPLETED or ERRORED before settling back to IDLE.
    """

    def __init__(
        self,
        store: RowStore,
        provider: ConnectionProvider,
        mode_state: Optional[ModeState] = None,
        status_store: Optional[StatusStore] = None,
        history: Optional[RunHistory] = None,
        pacing_seconds: float = 2.0,
        escalation_threshold: int = 3,
    ):
        self.store = store
        self.provider = provider
        self.mode_state = mode_state or ModeState()
        self.status_store = status_store or StatusStore()
        self.history = history
        self.pacing_seconds = pacing_seconds
        self.escalation_threshold = escalation_threshold

        self._state = WorkerState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._cancel = asyncio.Event()
        self._fatal_error: Optional[str] = None
        self._listeners: List[RunListener] = []

    # -------------------------------------------------------------------------
    # Control surface
    # -------------------------------------------------------------------------
    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state in _ACTIVE_STATES

    def add_listener(self, listener: RunListener) -> None:
        self._listeners.append(listener)

    def snapshot_config(self) -> RunConfig:
        return RunConfig(
            mode=self.mode_state.mode,
            pacing_seconds=self.pacing_seconds,
            escalation_threshold=self.escalation_threshold,
        )

    async def start(self, config: Optional[RunConfig] = None) -> ControlResponse:
        if self._state is WorkerState.STOPPING:
            return ControlResponse(accepted=False, message="Worker is stopping; start again once it is idle")
        if self._state is not WorkerState.IDLE:
            log.info("Start ignored: worker is already running")
            return ControlResponse(accepted=False, message="Worker is already running")

        mode = self.mode_state.lock()
        config = config or self.snapshot_config()
        if config.mode is not mode:
            config = RunConfig(
                mode=mode,
                pacing_seconds=config.pacing_seconds,
                escalation_threshold=config.escalation_threshold,
            )

        self._cancel = asyncio.Event()
        self._fatal_error = None
        self.status_store.reset(
            is_running=True,
            state=WorkerState.STARTING.value,
            mode=config.mode,
            started_at=datetime.now(timezone.utc),
        )
        self._transition(WorkerState.STARTING)
        self._task = asyncio.create_task(self._run_batch(config), name="metric-worker")
        return ControlResponse(accepted=True, message=f"Worker started in {config.mode.value} mode")

    async def stop(self) -> ControlResponse:
        if self._state is WorkerState.STOPPING:
            return ControlResponse(accepted=True, message="Stop already requested")
        if not self.is_running:
            return ControlResponse(accepted=False, message="Worker is already stopped")

        self._cancel.set()
        self._transition(WorkerState.STOPPING)
        return ControlResponse(accepted=True, message="Stop requested; the worker halts after the current row")

    def status(self) -> RunStatus:
        return self.status_store.snapshot()

    async def wait(self) -> None:
        """Wait for the current batch task, if any, to settle."""
        task = self._task
        if task is not None:
            await asyncio.shield(task)

    async def shutdown(self) -> None:
        await self.stop()
        task = self._task
        if task is None:
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=max(self.provider_timeout, 1.0))
        except asyncio.TimeoutError:
            log.warning("Worker did not stop in time; cancelling the batch task")
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def provider_timeout(self) -> float:
        timeouts = [b.timeout for b in (self.provider.backend(t) for t in self.provider.server_types) if b]
        return max(timeouts, default=30.0)

    # -------------------------------------------------------------------------
    # Background task
    # -------------------------------------------------------------------------
    async def _run_batch(self, config: RunConfig) -> None:
        escalation = EscalationPolicy(config.escalation_threshold)
        run_id: Optional[str] = None
        result: Optional[BatchResult] = None
        interrupted = False

        try:
            rows = await asyncio.to_thread(self.store.get_all_rows)
            self.status_store.update(total_rows=len(rows))

            if self._cancel.is_set():
                log.info("Stop requested before the first row; nothing executed")
                return

            if self.history is not None:
                run_id = await asyncio.to_thread(self.history.start, config.mode.value, len(rows))
                if self._cancel.is_set():
                    log.info(f"Stop requested while opening run {run_id}; nothing executed")
                    return

            with run_context(run_id or "-"):
                self._transition(WorkerState.RUNNING)
                runner = QueryRunner(
                    self.provider,
                    self.store,
                    listeners=[_StatusListener(self, escalation), *self._listeners],
                )
                result = await runner.run(rows, config.mode, self._cancel, pacing_seconds=config.pacing_seconds)
        except asyncio.CancelledError:
            interrupted = True
            raise
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Worker batch failed: {exc}")
            self._fatal_error = str(exc) or exc.__class__.__name__
            for listener in self._listeners:
                listener.on_error(self._fatal_error)
        finally:
            await self._settle(run_id, result, interrupted)

    def _escalate(self, message: str) -> None:
        if self._fatal_error is None:
            log.error(message)
            self._fatal_error = message
            for listener in self._listeners:
                listener.on_error(message)
        self._cancel.set()

    async def _settle(self, run_id: Optional[str], result: Optional[BatchResult], interrupted: bool) -> None:
        if self._fatal_error is not None:
            self._transition(WorkerState.ERRORED)
            history_status = "errored"
        elif self._cancel.is_set() or interrupted:
            if self._state is not WorkerState.STOPPING:
                self._transition(WorkerState.STOPPING)
            history_status = "stopped"
        else:
            self._transition(WorkerState.COMPLETED)
            history_status = "completed"

        if self.history is not None and run_id is not None:
            try:
                await asyncio.to_thread(
                    self.history.finish,
                    run_id,
                    history_status,
                    result.succeeded if result else 0,
                    result.failed if result else 0,
                    self._fatal_error,
                )
            except Exception:  # noqa: BLE001
                log.exception(f"Failed to record run {run_id}")

        self.status_store.update(
            is_running=False,
            current_row_id=None,
            error=self._fatal_error,
            finished_at=datetime.now(timezone.utc),
        )
        self.mode_state.unlock()
        self._transition(WorkerState.IDLE)
        log.info(f"Worker settled ({history_status})")

    def _transition(self, new_state: WorkerState) -> None:
        allowed = _TRANSITIONS[self._state]
        if new_state not in allowed:
            raise RuntimeError(f"Invalid worker transition {self._state.value} -> {new_state.value}")
        log.info(f"Worker state: {self._state.value} -> {new_state.value}")
        self._state = new_state
        self.status_store.update(state=new_state.value, is_running=new_state in _ACTIVE_STATES)
