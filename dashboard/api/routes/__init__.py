from dashboard.api.routes.connections import router as connections_router
from dashboard.api.routes.health import router as health_router
from dashboard.api.routes.rows import router as rows_router
from dashboard.api.routes.worker import router as worker_router

__all__ = ["connections_router", "health_router", "rows_router", "worker_router"]
