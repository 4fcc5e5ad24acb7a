"""Promotion of repeated connection failures to a batch-aborting error."""

from __future__ import annotations

from typing import Optional

from dashboard.worker.events import RowOutcome


class EscalationPolicy:
    """Aborts a batch after ``threshold`` consecutive connection/timeout failures.

    Execution errors and successes reset the streak. ``threshold <= 0``
    disables escalation entirely.
    """

    def __init__(self, threshold: int = 3):
        self.threshold = threshold
        self.streak = 0

    @property
    def enabled(self) -> bool:
        return self.threshold > 0

    def record(self, outcome: RowOutcome) -> Optional[str]:
        """Return the fatal error message once the threshold is reached."""
        if not self.enabled:
            return None

        if outcome.success or outcome.error_kind is None or not outcome.error_kind.escalatable:
            self.streak = 0
            return None

        self.streak += 1
        if self.streak >= self.threshold:
            return f"Aborted after {self.streak} consecutive connection failures: {outcome.error}"
        return None
