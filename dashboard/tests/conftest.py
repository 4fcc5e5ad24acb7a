"""Shared fixtures: a throwaway SQLite store and scriptable fake backends."""

import os
import tempfile
import threading
import time

# Keep imports of dashboard.core.* away from ./data and ./logs
_TMP = tempfile.mkdtemp(prefix="dashboard-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TMP}/dashboard.db")
os.environ.setdefault("LOG_DIR", os.path.join(_TMP, "logs"))

import pytest  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from dashboard.connections.base import BaseBackend  # noqa: E402
from dashboard.connections.local import LocalBackend  # noqa: E402
from dashboard.connections.provider import ConnectionProvider  # noqa: E402
from dashboard.core.db import create_store_engine  # noqa: E402
from dashboard.models import Base, ServerType  # noqa: E402
from dashboard.services.row_store import RowStore  # noqa: E402
from dashboard.services.run_history import RunHistory  # noqa: E402
from dashboard.worker.controller import WorkerController  # noqa: E402
from dashboard.worker.mode import ModeState  # noqa: E402


class FakeBackend(BaseBackend):
    """Backend driven by a ``handler(sql)`` that returns rows or raises.

    Records every executed statement and the peak number of concurrent calls.
    """

    label = "Fake"

    def __init__(self, server_type=ServerType.ERP, handler=None, delay=0.0, timeout=5.0, configured=True):
        super().__init__(timeout=timeout)
        self.server_type = server_type
        self.label = f"Fake {server_type.value}"
        self.handler = handler or (lambda sql: [{"value": 1}])
        self.delay = delay
        self._configured = configured
        self.calls = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._lock = threading.Lock()

    @property
    def configured(self):
        return self._configured

    def _execute(self, sql):
        with self._lock:
            self.calls.append(sql)
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            return self.handler(sql)
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def engine(tmp_path):
    engine = create_store_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def store(session_factory):
    return RowStore(session_factory)


@pytest.fixture
def history(session_factory):
    return RunHistory(session_factory)


@pytest.fixture
def local_backend(engine):
    return LocalBackend(engine, timeout=5.0)


@pytest.fixture
def erp_backend():
    return FakeBackend(ServerType.ERP)


@pytest.fixture
def legacy_backend():
    return FakeBackend(ServerType.LEGACY_FILE)


@pytest.fixture
def provider(local_backend, erp_backend, legacy_backend):
    return ConnectionProvider([local_backend, erp_backend, legacy_backend])


@pytest.fixture
def make_controller(store, provider, history):
    """Factory so each test picks its own pacing and escalation threshold."""

    def _make(pacing_seconds=0.0, escalation_threshold=3, provider_=None, store_=None, mode_state=None):
        return WorkerController(
            store=store_ or store,
            provider=provider_ or provider,
            mode_state=mode_state or ModeState(),
            history=history,
            pacing_seconds=pacing_seconds,
            escalation_threshold=escalation_threshold,
        )

    return _make


@pytest.fixture
def local_row():
    """Builds payloads for ``RowStore.add_rows``."""

    def _row(name, sql, **extra):
        return {
            "chart_group": extra.pop("chart_group", "Sales"),
            "variable_name": name,
            "server_type": extra.pop("server_type", ServerType.LOCAL),
            "sql_expression": sql,
            **extra,
        }

    return _row
