# hookwise/models.py
from datetime import datetime, timezone
from .extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Webhook(db.Model):
    __tablename__ = "webhooks"

    id = db.Column(db.Integer, primary_key=True)
    automation_id = db.Column(db.String(64), nullable=False, index=True)
    # random path fragment, the unguessable part of the URL
    token = db.Column(db.String(64), nullable=False, unique=True)
    webhook_url = db.Column(db.String(512), nullable=False)
    secret = db.Column(db.String(128), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    trigger_count = db.Column(db.Integer, nullable=False, default=0)
    last_triggered_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    deliveries = db.relationship(
        "WebhookDeliveryLog", back_populates="webhook", cascade="all, delete-orphan"
    )

    def to_dict(self, include_secret: bool = False) -> dict:
        data = {
            "id": self.id,
            "automation_id": self.automation_id,
            "webhook_url": self.webhook_url,
            "is_active": self.is_active,
            "trigger_count": self.trigger_count,
            "last_triggered_at": self.last_triggered_at.isoformat() if self.last_triggered_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_secret:
            data["secret"] = self.secret
        return data

    def __repr__(self):
        return f"<Webhook id={self.id} automation={self.automation_id} active={self.is_active}>"


class WebhookDeliveryLog(db.Model):
    __tablename__ = "webhook_delivery_logs"

    id = db.Column(db.Integer, primary_key=True)
    webhook_id = db.Column(db.Integer, db.ForeignKey("webhooks.id", ondelete="CASCADE"), nullable=False, index=True)
    payload = db.Column(db.JSON, nullable=True)
    # 0 when an outbound attempt never got an HTTP response
    status_code = db.Column(db.Integer, nullable=False)
    response_body = db.Column(db.Text, nullable=True)
    attempt_count = db.Column(db.Integer, nullable=False, default=1)
    delivery_time_ms = db.Column(db.Integer, nullable=True)
    delivered_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    webhook = db.relationship("Webhook", back_populates="deliveries")

    def __repr__(self):
        return f"<WebhookDeliveryLog id={self.id} webhook={self.webhook_id} status={self.status_code}>"


class PlatformConfig(db.Model):
    __tablename__ = "platform_configs"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    base_url = db.Column(db.String(512), nullable=False)
    auth_type = db.Column(db.String(128), nullable=False, default="bearer")
    auth_header_name = db.Column(db.String(128), nullable=True)
    auth_header_format = db.Column(db.String(256), nullable=True)
    api_methods = db.Column(db.JSON, nullable=True)
    test_endpoint = db.Column(db.JSON, nullable=True)
    extra_headers = db.Column(db.JSON, nullable=True)
    credential_fields = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_config(self) -> dict:
        return {
            "name": self.name,
            "base_url": self.base_url,
            "auth_type": self.auth_type,
            "auth_header_name": self.auth_header_name,
            "auth_header_format": self.auth_header_format,
            "api_methods": self.api_methods or {},
            "test_endpoint": self.test_endpoint,
            "extra_headers": self.extra_headers or {},
            "credential_fields": self.credential_fields or [],
        }

    def __repr__(self):
        return f"<PlatformConfig name={self.name} auth={self.auth_type}>"


class CredentialTestInsight(db.Model):
    __tablename__ = "credential_test_insights"

    id = db.Column(db.Integer, primary_key=True)
    platform_name = db.Column(db.String(128), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=True)
    outcome = db.Column(db.String(16), nullable=False)
    error_type = db.Column(db.String(32), nullable=True)
    status_code = db.Column(db.Integer, nullable=True)
    response_preview = db.Column(db.Text, nullable=True)
    details = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<CredentialTestInsight id={self.id} platform={self.platform_name} outcome={self.outcome}>"
