"""API endpoint tests"""

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from dashboard.api.deps import get_db
from dashboard.api.routes import connections, health, rows, worker
from dashboard.main import app as main_app
from dashboard.services.worker_service import set_worker


class TestAPI:
    """Test API endpoints"""

    @pytest.fixture
    def controller(self, make_controller):
        controller = make_controller()
        set_worker(controller)
        yield controller
        set_worker(None)

    @pytest.fixture
    def client(self, controller, session_factory):
        """Routers mounted without the migration/startup lifespan"""
        app = FastAPI()
        for module in (worker, rows, connections, health):
            app.include_router(module.router)

        def _db():
            db = session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _db
        with TestClient(app) as client:
            yield client

    def _wait_idle(self, client, timeout=5.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            status = client.get("/worker/status").json()
            if status["state"] == "idle":
                return status
            time.sleep(0.02)
        raise AssertionError("worker did not settle")

    def test_main_app_routes(self):
        paths = {route.path for route in main_app.routes}
        for path in ("/worker/start", "/worker/stop", "/worker/status", "/rows", "/query", "/health"):
            assert path in paths

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "ok"
        assert body["worker_state"] == "idle"
        assert body["last_run_status"] is None

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_initial_status(self, client):
        response = client.get("/worker/status")
        assert response.status_code == 200
        body = response.json()
        assert body["is_running"] is False
        assert body["current_row_id"] is None
        assert body["total_rows"] == 0
        assert body["error"] is None

    def test_start_runs_batch(self, client, store, local_row):
        store.add_rows([local_row("ok", "SELECT 1 AS value"), local_row("bad", "SELECT x FROM missing")])

        response = client.post("/worker/start")
        assert response.status_code == 200
        assert response.json()["accepted"] is True

        status = self._wait_idle(client)
        assert status["is_running"] is False
        assert status["total_rows"] == 2
        assert status["error"] is None

        listed = client.get("/rows").json()
        assert listed[0]["value"] == 1.0
        assert listed[0]["last_error"] == ""
        assert listed[1]["last_error"] != ""

        runs = client.get("/worker/runs").json()
        assert runs[0]["status"] == "completed"
        assert runs[0]["rows_failed"] == 1

    def test_stop_when_idle(self, client):
        response = client.post("/worker/stop")
        assert response.status_code == 200
        assert response.json() == {"accepted": False, "message": "Worker is already stopped"}

    def test_get_row_not_found(self, client):
        response = client.get("/rows/4242")
        assert response.status_code == 404

    def test_patch_row(self, client, store, local_row):
        (row,) = store.add_rows([local_row("orders", "SELECT 1", last_error="old")])
        response = client.patch(f"/rows/{row.id}", json={"sql_expression": "SELECT 2", "last_error": None})
        assert response.status_code == 200
        body = response.json()
        assert body["sql_expression"] == "SELECT 2"
        assert body["last_error"] == ""

    @pytest.mark.parametrize("field", ["chart_group", "variable_name", "server_type"])
    def test_patch_rejects_null_for_required_columns(self, client, store, local_row, field):
        (row,) = store.add_rows([local_row("orders", "SELECT 1")])
        response = client.patch(f"/rows/{row.id}", json={field: None})
        assert response.status_code == 422
        saved = store.get_row(row.id)
        assert saved.chart_group == "Sales"
        assert saved.variable_name == "orders"

    def test_patch_missing_row(self, client):
        response = client.patch("/rows/4242", json={"variable_name": "x"})
        assert response.status_code == 404

    def test_mode_roundtrip(self, client):
        assert client.get("/worker/mode").json() == {"mode": "test", "locked": False}
        response = client.put("/worker/mode", json={"mode": "production"})
        assert response.status_code == 200
        assert response.json()["mode"] == "production"

    def test_mode_change_rejected_while_locked(self, client, controller):
        controller.mode_state.lock()
        response = client.put("/worker/mode", json={"mode": "production"})
        assert response.status_code == 409
        controller.mode_state.unlock()

    def test_query_returns_rows(self, client):
        response = client.post("/query", json={"server_type": "LOCAL", "sql": "SELECT 2 AS a, 3 AS b"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["rows"] == [{"a": 2, "b": 3}]

    def test_query_failure_is_not_http_error(self, client):
        response = client.post("/query", json={"server_type": "LOCAL", "sql": "SELECT * FROM missing"})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["error_kind"] == "execution"

    def test_query_unknown_server_type(self, client):
        response = client.post("/query", json={"server_type": "MAINFRAME", "sql": "SELECT 1"})
        assert response.status_code == 422

    def test_connection_test(self, client, erp_backend):
        response = client.post("/connections/ERP/test")
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert erp_backend.calls == ["SELECT 1 AS value"]

    def test_connection_test_failure(self, client, legacy_backend):
        def locked(sql):
            raise RuntimeError("could not find file 'metrics.accdb'")

        legacy_backend.handler = locked
        response = client.post("/connections/LEGACY_FILE/test")
        body = response.json()
        assert body["success"] is False
        assert body["error_kind"] == "connection"

    def test_invalid_endpoint(self, client):
        """Test invalid endpoint returns 404"""
        response = client.get("/invalid")
        assert response.status_code == 404


class TestErrorHandler:
    """Domain errors that escape a route become 400 responses"""

    def test_dashboard_error_is_json_400(self):
        from dashboard.core.errors import DashboardError
        from dashboard.main import dashboard_error_handler

        app = FastAPI()
        app.add_exception_handler(DashboardError, dashboard_error_handler)

        @app.get("/boom")
        def boom():
            raise DashboardError("bad input")

        response = TestClient(app).get("/boom")
        assert response.status_code == 400
        assert response.json() == {"detail": "bad input"}
