"""Backend error taxonomy and classification."""

from __future__ import annotations

import asyncio
import enum
from typing import Optional

from sqlalchemy import exc as sa_exc


class ErrorKind(str, enum.Enum):
    CONNECTION = "connection"
    EXECUTION = "execution"
    TIMEOUT = "timeout"

    @property
    def escalatable(self) -> bool:
        """Timeouts count as connection trouble for escalation."""
        return self in (ErrorKind.CONNECTION, ErrorKind.TIMEOUT)


class ExecutionError(Exception):
    """Tagged backend failure returned (not raised) across the runner boundary."""

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"ExecutionError(kind={self.kind.value!r}, message={self.message!r})"


_TIMEOUT_SQLSTATES = {"HYT00", "HYT01"}

_CONNECTION_MARKERS = (
    "unable to open database",
    "database is locked",
    "login failed",
    "login timeout",
    "connection refused",
    "could not connect",
    "communication link failure",
    "server does not exist",
    "network-related",
    "tcp provider",
    "data source name not found",
    "could not find file",
    "not a valid path",
)

_TIMEOUT_MARKERS = ("timeout expired", "query timeout", "timed out")


def _sqlstate(error: BaseException) -> Optional[str]:
    """ODBC drivers put the SQLSTATE in args[0] (pyodbc convention)."""
    args = getattr(error, "args", ())
    if args and isinstance(args[0], str) and len(args[0]) == 5 and args[0].isalnum():
        return args[0].upper()
    return None


def classify_error(error: BaseException) -> ErrorKind:
    """Map a raised backend exception onto the error taxonomy."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT

    if isinstance(error, ExecutionError):
        return error.kind

    if isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated:
        return ErrorKind.CONNECTION
    if isinstance(error, (sa_exc.InterfaceError, sa_exc.DisconnectionError)):
        return ErrorKind.CONNECTION

    # SQLAlchemy wraps the driver error; inspect the original too
    candidates = [error]
    orig = getattr(error, "orig", None)
    if isinstance(orig, BaseException):
        candidates.append(orig)

    for candidate in candidates:
        state = _sqlstate(candidate)
        if state in _TIMEOUT_SQLSTATES:
            return ErrorKind.TIMEOUT
        if state and state.startswith("08"):
            return ErrorKind.CONNECTION

    message = str(error).lower()
    if any(marker in message for marker in _TIMEOUT_MARKERS):
        return ErrorKind.TIMEOUT
    if any(marker in message for marker in _CONNECTION_MARKERS):
        return ErrorKind.CONNECTION
    return ErrorKind.EXECUTION


def describe_error(error: BaseException) -> str:
    """Human-readable message for a row's ``last_error``."""
    if isinstance(error, ExecutionError):
        return error.message
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return str(error) or "Query timed out"
    orig = getattr(error, "orig", None)
    if isinstance(error, sa_exc.DBAPIError) and orig is not None:
        return str(orig)
    return str(error) or error.__class__.__name__


def to_execution_error(error: BaseException) -> ExecutionError:
    if isinstance(error, ExecutionError):
        return error
    return ExecutionError(classify_error(error), describe_error(error))
