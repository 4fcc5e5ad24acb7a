from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from dashboard.models.metric_rows import QueryMode


class RunStatus(BaseModel):
    """Ephemeral view of the current run; reset to idle on every process start."""

    is_running: bool = False
    state: str = "idle"
    current_row_id: Optional[int] = None
    total_rows: int = 0
    completed_rows: int = 0
    failed_rows: int = 0
    error: Optional[str] = None
    mode: Optional[QueryMode] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class ControlResponse(BaseModel):
    accepted: bool
    message: str


class ModeOut(BaseModel):
    mode: QueryMode
    locked: bool


class ModeUpdate(BaseModel):
    mode: QueryMode


class WorkerRunOut(BaseModel):
    run_id: str
    mode: str
    status: str
    total_rows: int
    rows_succeeded: int
    rows_failed: int
    error_message: str | None = None
    started_at: datetime
    ended_at: datetime | None

    class Config:
        from_attributes = True
