"""Domain errors."""


class DashboardError(Exception):
    """Base dashboard error."""


class RowNotFoundError(DashboardError):
    """No metric row with the requested id."""

    def __init__(self, row_id: int):
        super().__init__(f"Metric row {row_id} not found")
        self.row_id = row_id


class ModeChangeRejected(DashboardError):
    """Query mode cannot change while a batch is running."""
