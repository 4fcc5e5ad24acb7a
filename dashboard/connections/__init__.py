from dashboard.connections.base import BaseBackend
from dashboard.connections.erp import ErpBackend, qualify_erp_tables
from dashboard.connections.errors import ErrorKind, ExecutionError, classify_error
from dashboard.connections.legacy_file import LegacyFileBackend
from dashboard.connections.local import LocalBackend
from dashboard.connections.provider import ConnectionProvider, QueryResult, extract_scalar

__all__ = [
    "BaseBackend",
    "ConnectionProvider",
    "ErpBackend",
    "ErrorKind",
    "ExecutionError",
    "LegacyFileBackend",
    "LocalBackend",
    "QueryResult",
    "classify_error",
    "extract_scalar",
    "qualify_erp_tables",
]
