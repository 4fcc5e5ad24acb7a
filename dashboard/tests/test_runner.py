"""Query runner tests"""

import asyncio
import time

import pytest

from dashboard.connections.errors import ErrorKind
from dashboard.models.metric_rows import MetricRow, QueryMode, ServerType
from dashboard.worker.events import RunListener
from dashboard.worker.runner import QueryRunner, resolve_query


class RecordingListener(RunListener):
    def __init__(self):
        self.events = []

    def on_row_start(self, row, index):
        self.events.append(("start", row.id))

    def on_row_complete(self, outcome):
        self.events.append(("complete", outcome.row_id, outcome.success))

    def on_batch_complete(self, result):
        self.events.append(("batch", result.processed, result.cancelled))


class TestResolveQuery:
    def _row(self, server_type, sql="SELECT 1", production_sql=None):
        return MetricRow(
            id=1,
            chart_group="Sales",
            variable_name="orders",
            server_type=server_type,
            sql_expression=sql,
            production_sql_expression=production_sql,
        )

    def test_test_mode_always_runs_locally(self):
        row = self._row(ServerType.ERP, sql="SELECT 3", production_sql="SELECT COUNT(*) FROM oe_hdr")
        assert resolve_query(row, QueryMode.TEST) == (ServerType.LOCAL, "SELECT 3")

    def test_production_uses_row_backend(self):
        row = self._row(ServerType.ERP, production_sql="SELECT COUNT(*) FROM oe_hdr")
        assert resolve_query(row, QueryMode.PRODUCTION) == (ServerType.ERP, "SELECT COUNT(*) FROM oe_hdr")

    def test_production_local_falls_back_to_test_sql(self):
        row = self._row(ServerType.LOCAL, sql="SELECT 5", production_sql="  ")
        assert resolve_query(row, QueryMode.PRODUCTION) == (ServerType.LOCAL, "SELECT 5")

    def test_production_remote_without_sql(self):
        row = self._row(ServerType.LEGACY_FILE, sql="SELECT 5")
        assert resolve_query(row, QueryMode.PRODUCTION) == (ServerType.LEGACY_FILE, None)


class TestQueryRunner:
    @pytest.mark.asyncio
    async def test_success_and_failure_are_row_local(self, provider, store, local_row):
        store.add_rows(
            [
                local_row("ok", "SELECT 1 AS value"),
                local_row("broken", "SELECT bad_column FROM missing_table", value=7.0),
                local_row("after", "SELECT 3 AS value"),
            ]
        )
        rows = store.get_all_rows()

        result = await QueryRunner(provider, store).run(rows, QueryMode.TEST)

        assert (result.processed, result.succeeded, result.failed) == (3, 2, 1)
        ok, broken, after = store.get_all_rows()
        assert (ok.value, ok.last_error) == (1.0, "")
        assert broken.value == 7.0
        assert "missing_table" in broken.last_error
        assert after.value == 3.0
        assert result.outcomes[1].error_kind is ErrorKind.EXECUTION

    @pytest.mark.asyncio
    async def test_events_follow_row_order(self, provider, store, local_row):
        store.add_rows([local_row(f"v{i}", f"SELECT {i} AS value") for i in range(4)])
        rows = store.get_all_rows()
        listener = RecordingListener()

        await QueryRunner(provider, store, listeners=[listener]).run(rows, QueryMode.TEST)

        expected = []
        for row in rows:
            expected += [("start", row.id), ("complete", row.id, True)]
        expected.append(("batch", 4, False))
        assert listener.events == expected

    @pytest.mark.asyncio
    async def test_production_dispatches_to_row_backend(self, provider, store, erp_backend, local_row):
        store.add_rows(
            [
                local_row(
                    "open orders",
                    "SELECT 1",
                    server_type=ServerType.ERP,
                    production_sql_expression="SELECT COUNT(*) AS value FROM oe_hdr",
                )
            ]
        )
        erp_backend.handler = lambda sql: [{"value": 250}]

        result = await QueryRunner(provider, store).run(store.get_all_rows(), QueryMode.PRODUCTION)

        assert result.succeeded == 1
        assert erp_backend.calls == ["SELECT COUNT(*) AS value FROM oe_hdr"]
        assert store.get_all_rows()[0].value == 250.0

    @pytest.mark.asyncio
    async def test_stop_during_pacing_prevents_next_row(self, provider, store, local_row):
        store.add_rows([local_row(f"v{i}", f"SELECT {i} AS value") for i in range(3)])
        rows = store.get_all_rows()
        cancel = asyncio.Event()

        class StopAfterFirst(RunListener):
            def on_row_complete(self, outcome):
                cancel.set()

        started = time.monotonic()
        result = await QueryRunner(provider, store, listeners=[StopAfterFirst()]).run(
            rows, QueryMode.TEST, cancel, pacing_seconds=5.0
        )

        assert time.monotonic() - started < 2.0
        assert result.cancelled
        assert result.processed == 1
        saved = store.get_all_rows()
        assert saved[0].value == 0.0
        assert saved[1].value is None

    @pytest.mark.asyncio
    async def test_save_failure_marks_row_failed(self, provider, store):
        ghost = MetricRow(
            id=999,
            chart_group="Sales",
            variable_name="ghost",
            server_type=ServerType.LOCAL,
            sql_expression="SELECT 1",
        )
        result = await QueryRunner(provider, store).run([ghost], QueryMode.TEST)
        outcome = result.outcomes[0]
        assert outcome.success is False
        assert outcome.error.startswith("Failed to save result")

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_stop_batch(self, provider, store, local_row):
        store.add_rows([local_row(f"v{i}", "SELECT 1") for i in range(2)])

        class Broken(RunListener):
            def on_row_complete(self, outcome):
                raise RuntimeError("listener bug")

        result = await QueryRunner(provider, store, listeners=[Broken()]).run(
            store.get_all_rows(), QueryMode.TEST
        )
        assert result.succeeded == 2
