# Services package
from dashboard.services.row_store import RowStore
from dashboard.services.run_history import RunHistory

__all__ = ["RowStore", "RunHistory"]
