import json
from datetime import timedelta
from unittest.mock import Mock, patch

import requests

from hookwise import db as store
from hookwise.delivery import deliver_webhook
from hookwise.extensions import db
from hookwise.models import WebhookDeliveryLog, utcnow
from hookwise.verify_signature import SIGNATURE_HEADER, verify_signature

URL = "https://receiver.example.com/hook"


def _response(status_code, text="ok"):
    resp = Mock(status_code=status_code, encoding="utf-8")
    resp.iter_content.side_effect = lambda chunk_size=1: iter([text.encode()])
    return resp


def _logs(webhook_id):
    return db.session.execute(
        db.select(WebhookDeliveryLog)
        .where(WebhookDeliveryLog.webhook_id == webhook_id)
        .order_by(WebhookDeliveryLog.id)
    ).scalars().all()


def test_signed_delivery_first_try(app, make_webhook):
    hook = make_webhook()
    payload = {"event": "order.created", "timestamp": "2026-01-01T00:00:00Z", "id": 7}
    sleeps = []
    with patch("hookwise.delivery.requests.post", return_value=_response(200)) as post:
        result = deliver_webhook(URL, payload, secret="s3cret", webhook_id=hook.id, sleep=sleeps.append)

    assert result.success is True
    assert result.attempts == 1
    assert sleeps == []

    kwargs = post.call_args.kwargs
    assert verify_signature("s3cret", kwargs["data"], kwargs["headers"][SIGNATURE_HEADER])
    assert kwargs["headers"]["X-Webhook-Event"] == "order.created"
    assert json.loads(kwargs["data"]) == payload

    logs = _logs(hook.id)
    assert [(log.status_code, log.attempt_count) for log in logs] == [(200, 1)]
    assert logs[0].delivery_time_ms is not None


def test_unsigned_without_secret():
    with patch("hookwise.delivery.requests.post", return_value=_response(200)) as post:
        deliver_webhook(URL, {"event": "ping"}, sleep=lambda s: None)
    assert SIGNATURE_HEADER not in post.call_args.kwargs["headers"]


def test_retries_until_success_and_logs_every_attempt(app, make_webhook):
    hook = make_webhook()
    sleeps = []
    responses = [_response(500, "boom"), requests.exceptions.ConnectionError("reset"), _response(202)]
    with patch("hookwise.delivery.requests.post", side_effect=responses) as post:
        result = deliver_webhook(URL, {"event": "x"}, webhook_id=hook.id, sleep=sleeps.append)

    assert result.success is True
    assert result.attempts == 3
    assert post.call_count == 3
    assert sleeps == [1, 5]
    assert [(log.status_code, log.attempt_count) for log in _logs(hook.id)] == [(500, 1), (0, 2), (202, 3)]
    assert "reset" in _logs(hook.id)[1].response_body


def test_gives_up_after_max_retries(app, make_webhook):
    hook = make_webhook()
    sleeps = []
    with patch("hookwise.delivery.requests.post", return_value=_response(503)) as post:
        result = deliver_webhook(URL, {"event": "x"}, webhook_id=hook.id, max_retries=2, sleep=sleeps.append)

    assert result.success is False
    assert result.attempts == 3
    assert result.status_code == 503
    assert result.error == "HTTP 503"
    assert post.call_count == 3
    assert sleeps == [1, 5]
    assert len(_logs(hook.id)) == 3


def test_timeout_attempt_is_reported():
    with patch("hookwise.delivery.requests.post", side_effect=requests.exceptions.ReadTimeout("slow")):
        result = deliver_webhook(URL, {"event": "x"}, max_retries=0, sleep=lambda s: None)

    assert result.success is False
    assert result.status_code == 0
    assert result.error == "Request timeout"


def test_delivery_stats(app, make_webhook):
    hook = make_webhook()
    other = make_webhook(automation_id="auto2", token="other")
    store.log_delivery(hook.id, {}, 200, "ok", attempt_count=1, delivery_time_ms=100)
    store.log_delivery(hook.id, {}, 500, "boom", attempt_count=1, delivery_time_ms=300)
    store.log_delivery(hook.id, {}, 200, "ok", attempt_count=2, delivery_time_ms=200)
    store.log_delivery(other.id, {}, 404, "nope")

    stats = store.delivery_stats(hook.id)
    assert stats["total_deliveries"] == 3
    assert stats["successful_deliveries"] == 2
    assert stats["failed_deliveries"] == 1
    assert stats["success_rate"] == 66.7
    assert stats["average_attempts"] == 1.33
    assert stats["average_delivery_time_ms"] == 200
    assert stats["by_status"] == {"200": 2, "500": 1}

    assert store.delivery_stats()["total_deliveries"] == 4
    assert store.delivery_stats(hook.id, since=utcnow() + timedelta(hours=1))["total_deliveries"] == 0


def test_delivery_stats_empty(app):
    stats = store.delivery_stats()
    assert stats["total_deliveries"] == 0
    assert stats["success_rate"] == 0.0
    assert stats["by_status"] == {}
