"""
AWS Lambda function that drives the dashboard worker over its HTTP API.

Schedule it with EventBridge to refresh the dashboard periodically, or invoke
it by hand with ``{"action": "stop"}`` to halt a batch.
"""

import json
import os
import urllib.request
from typing import Any, Dict

ACTIONS = {
    "start": ("POST", "/worker/start"),
    "stop": ("POST", "/worker/stop"),
    "status": ("GET", "/worker/status"),
}


def _call(api_url: str, method: str, path: str, timeout: int) -> Dict[str, Any]:
    request = urllib.request.Request(
        f"{api_url.rstrip('/')}{path}",
        method=method,
        headers={"Content-Type": "application/json", "User-Agent": "DashboardWorkerTrigger/1.0"},
    )
    with urllib.request.urlopen(request, timeout=timeout) as response:
        return json.loads(response.read().decode("utf-8"))


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Environment Variables:
        API_URL: Base URL of the dashboard service
        TRIGGER_TIMEOUT: Request timeout in seconds (default: 30)

    Event:
        {"action": "start" | "stop" | "status"}  (default: start)

    A start while a batch is already running comes back ``accepted: false``;
    overlapping schedules are therefore harmless.

    EventBridge Rule Example:
        Schedule: cron(0/15 * * * ? *)  # Every 15 minutes
    """
    api_url = os.environ.get("API_URL")
    if not api_url:
        return {"statusCode": 500, "body": json.dumps({"error": "API_URL environment variable not set"})}

    action = (event or {}).get("action", "start")
    if action not in ACTIONS:
        return {"statusCode": 400, "body": json.dumps({"error": f"Unknown action: {action}"})}

    method, path = ACTIONS[action]
    timeout = int(os.environ.get("TRIGGER_TIMEOUT", "30"))

    try:
        print(f"{action}: {method} {path}")
        result = _call(api_url, method, path, timeout)
        print(json.dumps(result))
        return {"statusCode": 200, "body": json.dumps({"success": True, "action": action, "result": result})}

    except urllib.error.HTTPError as e:
        error_body = e.read().decode("utf-8") if e.fp else str(e)
        print(f"{action} failed with HTTP {e.code}: {error_body}")
        return {"statusCode": e.code, "body": json.dumps({"success": False, "error": f"HTTP {e.code}: {error_body}"})}

    except urllib.error.URLError as e:
        print(f"{action} failed: {e}")
        return {"statusCode": 502, "body": json.dumps({"success": False, "error": f"Connection error: {e}"})}


# For local testing
if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        os.environ["API_URL"] = sys.argv[1]

    requested = sys.argv[2] if len(sys.argv) > 2 else "start"
    print(json.dumps(lambda_handler({"action": requested}, None), indent=2))
