from dashboard.models.base import Base
from dashboard.models.metric_rows import MetricRow, ServerType
from dashboard.models.runs import WorkerRun

__all__ = [
    "Base",
    "MetricRow",
    "ServerType",
    "WorkerRun",
]
