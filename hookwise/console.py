# hookwise/console.py
import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from .errors import ErrorType
from .utils.http import read_body
from .verify_signature import SIGNATURE_HEADER, sign_payload

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
BODY_LIMIT = 1000
TRANSPORT_CAVEAT = (
    "This may be a network restriction between the tester and the endpoint "
    "rather than a real delivery failure."
)


@dataclass
class WebhookTestResult:
    success: bool
    status_code: int
    response_time_ms: int
    response_body: Optional[str] = None
    error: Optional[str] = None
    user_message: str = ""
    network_error: bool = False
    test_payload: Dict[str, Any] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_test_payload() -> Dict[str, Any]:
    now = datetime.now(timezone.utc).isoformat()
    return {
        "event": "test_webhook",
        "data": {
            "message": "Test webhook from hookwise",
            "timestamp": now,
            "test": True,
            "source": "hookwise_webhook_tester",
            "test_id": str(uuid.uuid4()),
        },
        "timestamp": now,
    }


def send_test_webhook(url: str, secret: Optional[str] = None, sign: bool = False,
                      timeout: Optional[float] = None) -> WebhookTestResult:
    """
    POST a synthetic test event to a webhook URL and report how it went.

    The request is unsigned unless sign=True and a secret is given, so it
    exercises the receiver's unsigned path by default.
    """
    timeout = timeout or DEFAULT_TIMEOUT
    payload = build_test_payload()
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "hookwise-webhook-tester/1.0",
        "X-Webhook-Event": "test_webhook",
        "X-Webhook-Timestamp": payload["timestamp"],
    }
    signed = bool(sign and secret)
    if signed:
        headers[SIGNATURE_HEADER] = sign_payload(secret, body)

    details: Dict[str, Any] = {
        "url": url,
        "method": "POST",
        "has_signature": signed,
        "test_id": payload["data"]["test_id"],
    }

    logger.info("Sending test webhook to %s (signed=%s)", url, signed)
    start = time.monotonic()
    try:
        resp = requests.post(url, data=body, headers=headers, timeout=timeout, stream=True)
        response_body = read_body(resp, start + timeout)
    except requests.exceptions.Timeout:
        elapsed = int((time.monotonic() - start) * 1000)
        message = f"Webhook test timed out after {timeout:g} seconds. The endpoint may be slow or unresponsive."
        details["error_type"] = ErrorType.TIMEOUT.value
        return _transport_failure(message, elapsed, payload, details)
    except requests.exceptions.RequestException as e:
        elapsed = int((time.monotonic() - start) * 1000)
        message = "Unable to connect to the webhook URL. Please check that it is correct and reachable."
        details["error_type"] = ErrorType.NETWORK.value
        details["original_error"] = str(e)
        return _transport_failure(message, elapsed, payload, details)

    elapsed = int((time.monotonic() - start) * 1000)
    success = 200 <= resp.status_code < 300
    details["response_size"] = len(response_body)

    if success:
        message = f"Webhook test successful! Responded in {elapsed}ms with status {resp.status_code}."
    elif 400 <= resp.status_code < 500:
        message = f"Webhook rejected the request ({resp.status_code}). Check your webhook endpoint configuration."
    elif resp.status_code >= 500:
        message = f"Webhook server error ({resp.status_code}). The endpoint may be experiencing issues."
    else:
        message = f"Webhook responded with status {resp.status_code}."

    logger.info("Test webhook to %s answered %s in %sms", url, resp.status_code, elapsed)
    return WebhookTestResult(
        success=success,
        status_code=resp.status_code,
        response_time_ms=elapsed,
        response_body=response_body[:BODY_LIMIT],
        error=None if success else message,
        user_message=message,
        network_error=False,
        test_payload=payload,
        details=details,
    )


def _transport_failure(message: str, elapsed: int, payload: Dict[str, Any], details: Dict[str, Any]) -> WebhookTestResult:
    logger.warning("Test webhook to %s failed: %s", details["url"], details.get("error_type"))
    return WebhookTestResult(
        success=False,
        status_code=0,
        response_time_ms=elapsed,
        error=message,
        user_message=f"{message} {TRANSPORT_CAVEAT}",
        network_error=True,
        test_payload=payload,
        details=details,
    )
