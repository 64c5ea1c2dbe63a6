# hookwise/delivery.py
"""Outbound webhook delivery with retries, one delivery log row per attempt."""
import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import requests

from . import db as store
from .extensions import db
from .utils.http import read_body
from .verify_signature import SIGNATURE_HEADER, sign_payload

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
# seconds to wait before retry 1, 2, 3...; the last value repeats
RETRY_DELAYS = (1, 5, 30)
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "hookwise-webhook/1.0"


@dataclass
class DeliveryResult:
    success: bool
    status_code: int
    attempts: int
    delivery_time_ms: int
    response_body: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _attempt(url: str, body: bytes, headers: Dict[str, str], timeout: float) -> DeliveryResult:
    start = time.monotonic()
    try:
        resp = requests.post(url, data=body, headers=headers, timeout=timeout, stream=True)
        text = read_body(resp, start + timeout)
    except requests.exceptions.Timeout:
        return DeliveryResult(False, 0, 0, int((time.monotonic() - start) * 1000), error="Request timeout")
    except requests.exceptions.RequestException as e:
        return DeliveryResult(False, 0, 0, int((time.monotonic() - start) * 1000), error=str(e))

    ok = 200 <= resp.status_code < 300
    return DeliveryResult(
        success=ok,
        status_code=resp.status_code,
        attempts=0,
        delivery_time_ms=int((time.monotonic() - start) * 1000),
        response_body=text,
        error=None if ok else f"HTTP {resp.status_code}",
    )


def _log_attempt(webhook_id: int, payload: Any, result: DeliveryResult, attempt: int) -> None:
    try:
        store.log_delivery(
            webhook_id,
            payload,
            result.status_code,
            result.response_body if result.response_body is not None else {"error": result.error},
            attempt_count=attempt,
            delivery_time_ms=result.delivery_time_ms,
        )
    except Exception:
        logger.exception("Failed to write delivery log for webhook %s", webhook_id)
        db.session.rollback()


def deliver_webhook(url: str, payload: Dict[str, Any], secret: Optional[str] = None,
                    webhook_id: Optional[int] = None, max_retries: int = MAX_RETRIES,
                    timeout: Optional[float] = None, delays: Sequence[float] = RETRY_DELAYS,
                    sleep: Callable[[float], None] = time.sleep) -> DeliveryResult:
    """
    POST payload to url, retrying failed attempts up to max_retries times.

    The body is signed with secret when one is given. Every attempt, failed
    or not, is written to the delivery log when webhook_id is set.
    """
    timeout = timeout or DEFAULT_TIMEOUT
    body = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
    if isinstance(payload, dict):
        if payload.get("event"):
            headers["X-Webhook-Event"] = str(payload["event"])
        if payload.get("timestamp"):
            headers["X-Webhook-Timestamp"] = str(payload["timestamp"])
    if secret:
        headers[SIGNATURE_HEADER] = sign_payload(secret, body)

    attempt = 0
    while True:
        attempt += 1
        result = _attempt(url, body, headers, timeout)
        result.attempts = attempt
        if webhook_id is not None:
            _log_attempt(webhook_id, payload, result, attempt)

        if result.success:
            logger.info("Delivered webhook to %s in %s attempt(s)", url, attempt)
            return result
        if attempt > max_retries:
            logger.error("Webhook delivery to %s failed after %s attempts: %s", url, attempt, result.error)
            return result

        delay = delays[min(attempt - 1, len(delays) - 1)] if delays else 0
        logger.warning("Webhook delivery to %s failed (%s), retrying in %ss", url, result.error, delay)
        sleep(delay)
