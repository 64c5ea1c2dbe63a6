# hookwise/utils/executor.py
import json
import logging
from typing import Any, Dict

import requests
from flask import current_app

from ..errors import ExecutorError

logger = logging.getLogger(__name__)


def _auth_header(service_key: str) -> dict:
    if not service_key:
        return {}
    return {"Authorization": f"Bearer {service_key}"}


def execute_automation(automation_id: str, trigger_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ask the automation executor to run an automation.

    Returns the executor's JSON response; raises ExecutorError when the
    executor is not configured, unreachable, or answers non-2xx.
    """
    cfg = current_app.config.get("EXECUTOR") or {}
    base = cfg.get("url")
    if not base:
        logger.error("Executor URL not set (EXECUTOR_URL).")
        raise ExecutorError("Automation executor is not configured")

    url = f"{base.rstrip('/')}/execute-automation"
    payload = {"automation_id": automation_id, "trigger_data": trigger_data}
    headers = {"Content-Type": "application/json", **_auth_header(cfg.get("service_key", ""))}
    logger.debug("POST %s payload=%s", url, json.dumps(payload, default=str)[:1000])

    try:
        resp = requests.post(url, json=payload, headers=headers, timeout=cfg.get("timeout", 30))
    except requests.exceptions.RequestException as e:
        logger.error("Executor call failed for automation %s: %s", automation_id, e)
        raise ExecutorError(f"Executor unreachable: {e}") from e

    if resp.status_code not in (200, 201, 202):
        logger.error("Executor rejected automation %s: %s %s", automation_id, resp.status_code, resp.text[:500])
        raise ExecutorError(f"Executor error {resp.status_code}: {resp.text[:500]}", status_code=resp.status_code)

    try:
        return resp.json()
    except ValueError:
        return {}
