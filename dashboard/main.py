from pathlib import Path
from contextlib import asynccontextmanager

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dashboard.api.routes import connections, health, rows, worker
from dashboard.core.config import settings
from dashboard.core.db import SessionLocal, engine
from dashboard.core.errors import DashboardError
from dashboard.core.logging import get_logger
from dashboard.services.run_history import RunHistory
from dashboard.services.worker_service import init_worker, shutdown_worker


log = get_logger("app")

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def run_migrations() -> None:
    """Execute Alembic migrations programmatically on startup."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    log.info("Running Alembic migrations to head")
    command.upgrade(alembic_cfg, "head")
    log.info("Alembic migrations applied")


def recover_store() -> None:
    """Bring the store to head and close out batches a dead process left open.

    Run status is never resumed: a new process always starts idle.
    """
    run_migrations()
    RunHistory(SessionLocal).mark_interrupted()


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(
        f"Starting in {settings.ENV.upper()} mode | query mode={settings.QUERY_MODE} "
        f"docs={'on' if settings.docs_enabled else 'off'}"
    )

    try:
        recover_store()
    except Exception:
        log.exception("Failed to prepare the store on startup")
        raise

    controller = init_worker(engine, SessionLocal)
    if settings.WORKER_AUTOSTART:
        response = await controller.start()
        log.info(f"Autostart: {response.message}")
    else:
        log.info("Worker idle until POST /worker/start")

    yield

    log.info("Shutting down worker...")
    await shutdown_worker()
    engine.dispose()
    log.info("Application shutdown complete")


app = FastAPI(
    title="Metrics Dashboard Worker",
    description="Background runner that refreshes SQL-backed dashboard metrics",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


@app.exception_handler(DashboardError)
async def dashboard_error_handler(request: Request, exc: DashboardError):
    """Domain errors a route did not translate itself."""
    log.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


app.include_router(worker.router)
app.include_router(rows.router)
app.include_router(connections.router)
app.include_router(health.router)
