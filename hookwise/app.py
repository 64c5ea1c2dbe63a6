# hookwise/app.py
import json
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from . import db as store
from .extensions import db
from .console import send_test_webhook
from .platforms import get_credential_fields
from .tester import run_credential_test
from .utils import executor
from .verify_signature import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

bp = Blueprint("hookwise", __name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type, "
                                    "x-webhook-signature, x-webhook-event, x-webhook-timestamp",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


@bp.after_app_request
def add_cors_headers(response):
    for name, value in CORS_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@bp.app_errorhandler(413)
def payload_too_large(e):
    return jsonify({"error": "Payload size exceeds limit"}), 413


@bp.route("/", methods=["GET"])
def health():
    return jsonify({"status": "ok"}), 200


@bp.route("/webhook-trigger/<token>", methods=["POST"])
def webhook_trigger(token):
    automation_id = request.args.get("automation_id")
    if not automation_id:
        return jsonify({"error": "Missing automation_id parameter"}), 400

    body = request.get_data()
    if len(body) > current_app.config["MAX_WEBHOOK_PAYLOAD_BYTES"]:
        return jsonify({"error": "Payload size exceeds limit"}), 413

    webhook = store.find_active_webhook(automation_id, token)
    if webhook is None:
        logger.info("No active webhook for automation %s", automation_id)
        return jsonify({"error": "Webhook not found or inactive"}), 404
    hook_id = webhook.id

    rejection = None
    # a present but empty header is a failed signature, not an unsigned request
    if SIGNATURE_HEADER in request.headers:
        if not verify_signature(webhook.secret, body, request.headers.get(SIGNATURE_HEADER, "")):
            rejection = "Invalid webhook signature"
    elif current_app.config.get("REQUIRE_WEBHOOK_SIGNATURE"):
        rejection = "Missing webhook signature"

    if rejection:
        logger.warning("%s for webhook %s", rejection, hook_id)
        _log_delivery_safely(hook_id, None, 401, {"error": rejection})
        return jsonify({"error": rejection}), 401

    try:
        payload = json.loads(body) if body.strip() else {}
    except ValueError:
        return jsonify({"error": "invalid JSON"}), 400

    logger.info("Webhook %s triggered for automation %s", hook_id, automation_id)
    trigger_data = {
        "source": "webhook",
        "webhook_id": hook_id,
        "payload": payload,
        "headers": {k: v for k, v in request.headers.items() if k.lower() != "authorization"},
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source_ip": request.headers.get("X-Forwarded-For", request.remote_addr or "unknown"),
    }

    try:
        result = executor.execute_automation(automation_id, trigger_data)
        execution_id = (result.get("execution_id") or result.get("run_id")) if isinstance(result, dict) else None
        status_code = 200
        response_body = {
            "message": "Webhook processed successfully",
            "execution_id": execution_id,
            "status": "success",
        }
    except Exception as e:
        logger.exception("Failed to execute automation %s", automation_id)
        status_code = 500
        response_body = {"error": "Failed to execute automation", "details": str(e)}

    # counted whether or not the executor succeeded
    try:
        store.record_trigger(hook_id)
    except Exception:
        logger.exception("Failed to update trigger stats for webhook %s", hook_id)
        db.session.rollback()
    _log_delivery_safely(hook_id, payload, status_code, response_body)

    return jsonify(response_body), status_code


def _log_delivery_safely(webhook_id, payload, status_code, response_body):
    try:
        store.log_delivery(webhook_id, payload, status_code, response_body)
    except Exception:
        logger.exception("Failed to write delivery log for webhook %s", webhook_id)
        db.session.rollback()


@bp.route("/test-credential", methods=["POST"])
def test_credential():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "invalid JSON"}), 400

    test_type = data.get("type", "platform")
    if test_type != "platform":
        return jsonify({"error": f"Unsupported test type: {test_type}"}), 400

    platform_name = (data.get("platform_name") or "").strip()
    if not platform_name:
        return jsonify({"error": "Missing platform_name"}), 400

    platform_config = data.get("platform_config")
    if platform_config and not current_app.config.get("ALLOW_INLINE_PLATFORM_CONFIG"):
        return jsonify({"error": "Inline platform_config is disabled; store the config instead"}), 400
    platform_config = platform_config or store.lookup_platform_config(platform_name)
    outcome = run_credential_test(
        platform_name,
        data.get("credential_fields"),
        user_id=data.get("user_id"),
        platform_config=platform_config,
        timeout=current_app.config["CREDENTIAL_TEST_TIMEOUT"],
        recorder=current_app.extensions.get("insights"),
    )
    return jsonify(outcome.to_dict()), 200


@bp.route("/test-webhook", methods=["POST"])
def test_webhook():
    data = request.get_json(silent=True) or {}
    url = data.get("webhook_url")
    if not url:
        return jsonify({
            "success": False,
            "error": "Webhook URL is required for testing",
            "user_message": "Please provide a webhook URL to test",
        }), 400

    result = send_test_webhook(
        url,
        secret=data.get("secret"),
        sign=bool(data.get("sign")),
        timeout=current_app.config["WEBHOOK_TEST_TIMEOUT"],
    )
    # the probe itself worked even when the target did not
    return jsonify(result.to_dict()), 200


@bp.route("/platforms/<path:platform_name>/credential-fields", methods=["GET"])
def credential_fields(platform_name):
    platform_config = store.lookup_platform_config(platform_name)
    return jsonify({
        "platform": platform_name,
        "credential_fields": get_credential_fields(platform_name, platform_config),
    }), 200
