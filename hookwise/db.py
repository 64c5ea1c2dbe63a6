# hookwise/db.py
from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update

from .extensions import db
from .models import PlatformConfig, Webhook, WebhookDeliveryLog, utcnow

logger = logging.getLogger(__name__)

RESPONSE_BODY_LIMIT = 4000


def build_webhook_url(base_url: str, token: str, automation_id: str) -> str:
    return f"{base_url.rstrip('/')}/webhook-trigger/{token}?automation_id={automation_id}"


def create_webhook(automation_id: str, base_url: str) -> Webhook:
    token = secrets.token_hex(16)
    webhook = Webhook(
        automation_id=automation_id,
        token=token,
        webhook_url=build_webhook_url(base_url, token, automation_id),
        secret=secrets.token_hex(32),
        is_active=True,
        trigger_count=0,
    )
    db.session.add(webhook)
    db.session.commit()
    logger.info("Created webhook %s for automation %s", webhook.id, automation_id)
    return webhook


def set_webhook_active(webhook_id: int, active: bool) -> Optional[Webhook]:
    webhook = db.session.get(Webhook, webhook_id)
    if webhook is None:
        return None
    webhook.is_active = active
    db.session.commit()
    return webhook


def delete_webhook(webhook_id: int) -> bool:
    webhook = db.session.get(Webhook, webhook_id)
    if webhook is None:
        return False
    db.session.delete(webhook)
    db.session.commit()
    logger.info("Deleted webhook %s", webhook_id)
    return True


def find_active_webhook(automation_id: str, token: str) -> Optional[Webhook]:
    """The active webhook bound to this automation whose URL carries this token."""
    stmt = select(Webhook).where(
        Webhook.automation_id == automation_id,
        Webhook.token == token,
        Webhook.is_active.is_(True),
    )
    return db.session.execute(stmt).scalar_one_or_none()


def record_trigger(webhook_id: int) -> None:
    """Bump trigger_count in SQL so concurrent deliveries don't lose updates."""
    db.session.execute(
        update(Webhook)
        .where(Webhook.id == webhook_id)
        .values(trigger_count=Webhook.trigger_count + 1, last_triggered_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.session.commit()


def log_delivery(webhook_id: int, payload: Any, status_code: int, response_body: Any, attempt_count: int = 1,
                 delivery_time_ms: Optional[int] = None) -> WebhookDeliveryLog:
    if not isinstance(response_body, str):
        response_body = json.dumps(response_body, default=str)
    entry = WebhookDeliveryLog(
        webhook_id=webhook_id,
        payload=payload,
        status_code=status_code,
        response_body=response_body[:RESPONSE_BODY_LIMIT],
        attempt_count=attempt_count,
        delivery_time_ms=delivery_time_ms,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def lookup_platform_config(platform_name: str) -> Optional[dict]:
    """Stored platform config by case-insensitive name; store errors fall back to None."""
    if not platform_name:
        return None
    try:
        row = db.session.execute(
            select(PlatformConfig).where(func.lower(PlatformConfig.name) == platform_name.strip().lower())
        ).scalar_one_or_none()
    except Exception:
        logger.exception("Platform config lookup failed for %s", platform_name)
        db.session.rollback()
        return None
    return row.to_config() if row else None


def delivery_stats(webhook_id: Optional[int] = None, since: Optional[datetime] = None) -> dict:
    """Success rate, attempt and timing averages, and counts by status over the delivery log."""
    conditions = []
    if webhook_id is not None:
        conditions.append(WebhookDeliveryLog.webhook_id == webhook_id)
    if since is not None:
        conditions.append(WebhookDeliveryLog.delivered_at >= since)

    by_status = dict(db.session.execute(
        select(WebhookDeliveryLog.status_code, func.count())
        .where(*conditions)
        .group_by(WebhookDeliveryLog.status_code)
    ).all())
    avg_attempts, avg_time = db.session.execute(
        select(func.avg(WebhookDeliveryLog.attempt_count), func.avg(WebhookDeliveryLog.delivery_time_ms))
        .where(*conditions)
    ).one()

    total = sum(by_status.values())
    successful = sum(count for status, count in by_status.items() if 200 <= status < 300)
    return {
        "total_deliveries": total,
        "successful_deliveries": successful,
        "failed_deliveries": total - successful,
        "success_rate": round(successful * 100.0 / total, 1) if total else 0.0,
        "average_attempts": round(float(avg_attempts), 2) if avg_attempts is not None else 0.0,
        "average_delivery_time_ms": int(avg_time) if avg_time is not None else None,
        "by_status": {str(status): count for status, count in sorted(by_status.items())},
    }
