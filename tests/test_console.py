import json
import time
from unittest.mock import Mock, patch
from urllib.parse import urlsplit

import pytest
import requests

from hookwise.console import TRANSPORT_CAVEAT, send_test_webhook
from hookwise.extensions import db
from hookwise.models import Webhook
from hookwise.verify_signature import SIGNATURE_HEADER, verify_signature

URL = "https://receiver.example.com/hook"


def _response(status_code, text="ok"):
    resp = Mock(status_code=status_code, encoding="utf-8")
    resp.iter_content.side_effect = lambda chunk_size=1: iter([text.encode()])
    return resp


def test_success():
    with patch("hookwise.console.requests.post", return_value=_response(200)) as post:
        result = send_test_webhook(URL, timeout=4)

    assert result.success is True
    assert result.status_code == 200
    assert result.network_error is False
    assert result.error is None
    assert "successful" in result.user_message
    assert result.test_payload["event"] == "test_webhook"
    assert result.test_payload["data"]["test"] is True

    args, kwargs = post.call_args
    assert args[0] == URL
    assert kwargs["timeout"] == 4
    assert kwargs["headers"]["X-Webhook-Event"] == "test_webhook"
    assert json.loads(kwargs["data"]) == result.test_payload


def test_client_error():
    with patch("hookwise.console.requests.post", return_value=_response(404, "no such hook")):
        result = send_test_webhook(URL)

    assert result.success is False
    assert result.status_code == 404
    assert result.network_error is False
    assert "rejected" in result.user_message
    assert result.response_body == "no such hook"


def test_server_error():
    with patch("hookwise.console.requests.post", return_value=_response(503)):
        result = send_test_webhook(URL)

    assert result.success is False
    assert "server error" in result.user_message


def test_response_body_is_truncated():
    with patch("hookwise.console.requests.post", return_value=_response(200, "x" * 5000)):
        result = send_test_webhook(URL)

    assert len(result.response_body) == 1000
    assert result.details["response_size"] == 5000


def test_timeout_is_transport_failure():
    with patch("hookwise.console.requests.post", side_effect=requests.exceptions.ReadTimeout("slow")):
        result = send_test_webhook(URL, timeout=2)

    assert result.success is False
    assert result.status_code == 0
    assert result.network_error is True
    assert result.details["error_type"] == "timeout"
    assert "2 seconds" in result.user_message
    assert result.user_message.endswith(TRANSPORT_CAVEAT)


def test_connection_error_is_transport_failure():
    with patch("hookwise.console.requests.post", side_effect=requests.exceptions.ConnectionError("refused")):
        result = send_test_webhook(URL)

    assert result.network_error is True
    assert result.status_code == 0
    assert result.details["error_type"] == "network"
    assert "refused" in result.details["original_error"]
    assert TRANSPORT_CAVEAT in result.user_message


def test_unsigned_by_default():
    with patch("hookwise.console.requests.post", return_value=_response(200)) as post:
        result = send_test_webhook(URL, secret="s3cret")

    assert SIGNATURE_HEADER not in post.call_args.kwargs["headers"]
    assert result.details["has_signature"] is False


def test_signed_on_request():
    with patch("hookwise.console.requests.post", return_value=_response(200)) as post:
        result = send_test_webhook(URL, secret="s3cret", sign=True)

    kwargs = post.call_args.kwargs
    assert verify_signature("s3cret", kwargs["data"], kwargs["headers"][SIGNATURE_HEADER])
    assert result.details["has_signature"] is True


def test_route_requires_url(client):
    resp = client.post("/test-webhook", json={})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_route_reports_transport_failure_as_200(client):
    with patch("hookwise.console.requests.post", side_effect=requests.exceptions.ConnectionError("refused")):
        resp = client.post("/test-webhook", json={"webhook_url": URL})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["success"] is False
    assert data["network_error"] is True


def test_console_against_own_trigger_endpoint(client, make_webhook, monkeypatch):
    from hookwise.utils import executor

    received = []
    monkeypatch.setattr(executor, "execute_automation",
                        lambda automation_id, trigger_data: received.append(trigger_data) or {"execution_id": "e1"})
    hook = make_webhook()

    def forward(url, data=None, headers=None, **kwargs):
        parts = urlsplit(url)
        resp = client.post(f"{parts.path}?{parts.query}", data=data, headers=headers)
        return _response(resp.status_code, resp.get_data(as_text=True))

    with patch("hookwise.console.requests.post", side_effect=forward):
        result = send_test_webhook(hook.webhook_url)

    assert result.success is True
    assert json.loads(result.response_body)["execution_id"] == "e1"
    assert received[0]["payload"]["event"] == "test_webhook"
    db.session.expire_all()
    assert db.session.get(Webhook, hook.id).trigger_count == 1


@pytest.mark.parametrize("mode", ["silent", "drip"])
def test_slow_receiver_times_out_within_deadline(slow_server, mode):
    url = slow_server(mode)
    start = time.monotonic()
    result = send_test_webhook(url + "/hook", timeout=1)
    elapsed = time.monotonic() - start

    assert result.success is False
    assert result.network_error is True
    assert result.details["error_type"] == "timeout"
    assert elapsed < 2.5
