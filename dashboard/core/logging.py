"""Application logging with Loguru + Slack notifications.

Every record carries ``name`` (the component) and ``run_id`` (the batch it
belongs to, ``-`` outside a batch). Worker records also go to a separate
``worker.log`` so one batch can be followed row by row.
"""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import httpx
from loguru import logger

from dashboard.core.config import settings

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | run={extra[run_id]} | "
    "{extra[name]}:{function}:{line} | {message}"
)

_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}

_logging_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _is_worker_record(record: dict) -> bool:
    name = record["extra"].get("name", "")
    return name.startswith("worker") or name.startswith("connections")


def _slack_sink(message: Any) -> None:
    record = message.record
    extra = record["extra"]
    text = (
        f"[{record['level'].name}] {extra.get('name', 'dashboard')} "
        f"(run {extra.get('run_id', '-')})\n{record['message']}"
    )
    try:
        httpx.post(settings.SLACK_WEBHOOK_URL, json={"text": text}, timeout=5.0)
    except httpx.HTTPError:
        # Logging here would loop back into this sink
        pass


def _normalize_level(raw: str | None) -> str:
    level = (raw or "INFO").strip().upper()
    level = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(level, level)
    return level if level in _LEVELS else "INFO"


def configure_logging() -> None:
    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = _normalize_level(settings.effective_log_level)

    logger.remove()
    logger.configure(extra={"name": "dashboard", "run_id": "-"})
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)
    logger.add(
        log_dir / "app.log",
        level=level,
        format=LOG_FORMAT,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )
    logger.add(
        log_dir / "worker.log",
        level="INFO",
        format=LOG_FORMAT,
        filter=_is_worker_record,
        rotation="00:00",
        retention="30 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    if settings.SLACK_WEBHOOK_URL:
        logger.add(_slack_sink, level="ERROR", enqueue=True)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # uvicorn installs its own handlers; route them through loguru only once
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine", "alembic"]:
        logging.getLogger(logger_name).handlers = [InterceptHandler()]
        logging.getLogger(logger_name).propagate = False


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


@contextmanager
def run_context(run_id: str) -> Iterator[None]:
    """Tag every record emitted inside the block (and its tasks) with ``run_id``."""
    with logger.contextualize(run_id=run_id):
        yield


configure_logging()
