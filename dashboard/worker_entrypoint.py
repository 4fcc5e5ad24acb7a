"""Worker entrypoint - Standalone script for running one batch.

Usage:
    python -m dashboard.worker_entrypoint                # Mode from QUERY_MODE
    python -m dashboard.worker_entrypoint test           # Force test SQL
    python -m dashboard.worker_entrypoint production     # Force production SQL
"""

import asyncio
import sys
from typing import Optional

from dashboard.core.config import settings
from dashboard.core.db import SessionLocal, engine
from dashboard.core.logging import get_logger
from dashboard.models.metric_rows import QueryMode
from dashboard.schemas.worker import RunStatus
from dashboard.services.worker_service import build_worker

logger = get_logger("worker_entrypoint")


async def run_batch(mode: Optional[QueryMode] = None) -> RunStatus:
    """Run one batch in-process and return the final status."""
    worker = build_worker(engine, SessionLocal)
    if mode is not None:
        worker.mode_state.set_mode(mode)
    try:
        response = await worker.start()
        logger.info(response.message)
        await worker.wait()
        return worker.status()
    finally:
        worker.provider.dispose()


def main():
    """Main entry point for a single batch."""
    logger.info(f"Worker batch starting (pacing {settings.WORKER_PACING_SECONDS}s)...")

    mode = None
    if len(sys.argv) > 1:
        try:
            mode = QueryMode(sys.argv[1])
        except ValueError:
            logger.error(f"Invalid mode: {sys.argv[1]}. Must be one of: test, production")
            sys.exit(1)

    status = asyncio.run(run_batch(mode))
    logger.info(
        f"Worker batch completed: {status.completed_rows}/{status.total_rows} rows, "
        f"{status.failed_rows} failed"
    )

    # Exit with error code if the batch errored or any row failed
    if status.error:
        logger.error(f"Batch aborted: {status.error}")
        sys.exit(1)
    if status.failed_rows:
        sys.exit(1)

    return status


if __name__ == "__main__":
    main()
