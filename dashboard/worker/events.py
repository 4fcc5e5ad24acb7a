"""Typed run events and the listener interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from dashboard.connections.errors import ErrorKind
from dashboard.models.metric_rows import MetricRow, ServerType


@dataclass
class RowOutcome:
    row_id: int
    index: int
    server_type: Optional[ServerType]
    success: bool
    value: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    elapsed_ms: int = 0


@dataclass
class BatchResult:
    total_rows: int
    outcomes: List[RowOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def processed(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


class RunListener:
    """Receives run events in order. Override only what you need."""

    def on_row_start(self, row: MetricRow, index: int) -> None:
        pass

    def on_row_complete(self, outcome: RowOutcome) -> None:
        pass

    def on_batch_complete(self, result: BatchResult) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass
