"""Standalone entrypoint and worker wiring tests"""

import sys

import pytest

from dashboard import worker_entrypoint
from dashboard.connections.erp import ErpBackend
from dashboard.connections.legacy_file import LegacyFileBackend
from dashboard.core.config import Settings
from dashboard.models.metric_rows import QueryMode, ServerType
from dashboard.services import worker_service


class TestWorkerEntrypoint:
    def _patch_worker(self, monkeypatch, controller, argv=()):
        monkeypatch.setattr(worker_entrypoint, "build_worker", lambda engine, session_factory: controller)
        monkeypatch.setattr(sys, "argv", ["worker_entrypoint", *argv])

    def test_clean_batch_exits_normally(self, monkeypatch, make_controller, store, local_row):
        store.add_rows([local_row("a", "SELECT 1"), local_row("b", "SELECT 2")])
        self._patch_worker(monkeypatch, make_controller())

        status = worker_entrypoint.main()

        assert status.total_rows == 2
        assert status.failed_rows == 0
        assert [r.value for r in store.get_all_rows()] == [1.0, 2.0]

    def test_failed_row_exits_nonzero(self, monkeypatch, make_controller, store, local_row):
        store.add_rows([local_row("a", "SELECT 1"), local_row("b", "SELECT nope FROM nowhere")])
        self._patch_worker(monkeypatch, make_controller())

        with pytest.raises(SystemExit) as info:
            worker_entrypoint.main()
        assert info.value.code == 1

    def test_mode_argument(self, monkeypatch, make_controller, store, local_row, erp_backend):
        store.add_rows(
            [local_row("a", "SELECT 1", server_type=ServerType.ERP, production_sql_expression="SELECT 9")]
        )
        erp_backend.handler = lambda sql: [{"value": 9}]
        controller = make_controller()
        self._patch_worker(monkeypatch, controller, argv=["production"])

        worker_entrypoint.main()

        assert controller.mode_state.mode is QueryMode.PRODUCTION
        assert erp_backend.calls == ["SELECT 9"]

    def test_invalid_mode(self, monkeypatch, make_controller):
        self._patch_worker(monkeypatch, make_controller(), argv=["staging"])
        with pytest.raises(SystemExit) as info:
            worker_entrypoint.main()
        assert info.value.code == 1


class TestWorkerService:
    def test_build_worker_from_settings(self, engine, session_factory):
        cfg = Settings(
            QUERY_MODE="production",
            WORKER_PACING_SECONDS=0.5,
            WORKER_ESCALATION_THRESHOLD=5,
            ERP_DSN="ERP_PROD",
            LEGACY_FILE_PATH="C:/data/metrics.accdb",
        )
        controller = worker_service.build_worker(engine, session_factory, cfg)

        assert controller.mode_state.mode is QueryMode.PRODUCTION
        assert controller.pacing_seconds == 0.5
        assert controller.escalation_threshold == 5
        erp = controller.provider.backend(ServerType.ERP)
        legacy = controller.provider.backend(ServerType.LEGACY_FILE)
        assert isinstance(erp, ErpBackend) and erp.odbc_connect == "DSN=ERP_PROD;Trusted_Connection=Yes;"
        assert isinstance(legacy, LegacyFileBackend) and legacy.configured

    @pytest.mark.asyncio
    async def test_init_get_shutdown(self, engine, session_factory):
        controller = worker_service.init_worker(engine, session_factory, Settings())
        assert worker_service.get_worker() is controller

        await worker_service.shutdown_worker()
        assert worker_service.get_worker() is None
