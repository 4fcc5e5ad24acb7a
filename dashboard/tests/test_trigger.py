"""Scheduled trigger tests"""

import importlib.util
import json
import urllib.error
from pathlib import Path

import pytest

TRIGGER_PATH = Path(__file__).resolve().parents[2] / "lambda" / "worker_trigger.py"


@pytest.fixture
def trigger():
    module_spec = importlib.util.spec_from_file_location("worker_trigger", TRIGGER_PATH)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class TestWorkerTrigger:
    def test_requires_api_url(self, trigger, monkeypatch):
        monkeypatch.delenv("API_URL", raising=False)
        result = trigger.lambda_handler({}, None)
        assert result["statusCode"] == 500

    def test_defaults_to_start(self, trigger, monkeypatch):
        calls = []
        monkeypatch.setenv("API_URL", "http://dashboard.local/")
        monkeypatch.setattr(
            trigger,
            "_call",
            lambda url, method, path, timeout: calls.append((url, method, path)) or {"accepted": True},
        )

        result = trigger.lambda_handler({}, None)

        assert result["statusCode"] == 200
        assert json.loads(result["body"])["result"] == {"accepted": True}
        assert calls == [("http://dashboard.local/", "POST", "/worker/start")]

    def test_stop_action(self, trigger, monkeypatch):
        calls = []
        monkeypatch.setenv("API_URL", "http://dashboard.local")
        monkeypatch.setattr(trigger, "_call", lambda url, method, path, timeout: calls.append(path) or {})
        trigger.lambda_handler({"action": "stop"}, None)
        assert calls == ["/worker/stop"]

    def test_unknown_action(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "http://dashboard.local")
        assert trigger.lambda_handler({"action": "reboot"}, None)["statusCode"] == 400

    def test_unreachable_api(self, trigger, monkeypatch):
        monkeypatch.setenv("API_URL", "http://dashboard.local")

        def refuse(*args):
            raise urllib.error.URLError("connection refused")

        monkeypatch.setattr(trigger, "_call", refuse)
        result = trigger.lambda_handler({"action": "status"}, None)
        assert result["statusCode"] == 502
        assert json.loads(result["body"])["success"] is False
