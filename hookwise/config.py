# hookwise/config.py
from dotenv import load_dotenv
import os
from typing import Optional

# load local .env if present
load_dotenv()


def _get_param_from_ssm(name: str, decrypt: bool = False) -> Optional[str]:
    """
    Try to fetch from SSM. Only consulted when SSM_PARAMETER_PREFIX is set;
    boto3 is imported lazily so local runs don't need AWS access.
    """
    if not os.getenv("SSM_PARAMETER_PREFIX"):
        return None
    try:
        from .utils.ssm import get_param
        return get_param(name, decrypt=decrypt)
    except Exception:
        return None


def _get_param_with_fallback(name: str, decrypt: bool = False, default: Optional[str] = None) -> Optional[str]:
    val = _get_param_from_ssm(name, decrypt=decrypt)
    if val:
        return val
    return os.getenv(name, default)


def _as_bool(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def get_database_url() -> str:
    db = _get_param_with_fallback("DATABASE_URL")
    if db:
        return db
    return "sqlite:///hookwise.sqlite"


def get_executor_config() -> dict:
    return {
        "url": _get_param_with_fallback("EXECUTOR_URL", default="") or "",
        "service_key": _get_param_with_fallback("EXECUTOR_SERVICE_KEY", decrypt=True, default="") or "",
        "timeout": float(_get_param_with_fallback("EXECUTOR_TIMEOUT", default="30")),
    }


class Config:
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Public base for generated webhook URLs
    WEBHOOK_BASE_URL = _get_param_with_fallback("WEBHOOK_BASE_URL", default="http://localhost:5000")
    MAX_WEBHOOK_PAYLOAD_BYTES = int(_get_param_with_fallback("MAX_WEBHOOK_PAYLOAD_BYTES", default=str(1024 * 1024)))
    # Unsigned deliveries are accepted unless this is switched on
    REQUIRE_WEBHOOK_SIGNATURE = _as_bool(_get_param_with_fallback("REQUIRE_WEBHOOK_SIGNATURE", default="false"))

    EXECUTOR = get_executor_config()

    CREDENTIAL_TEST_TIMEOUT = float(_get_param_with_fallback("CREDENTIAL_TEST_TIMEOUT", default="10"))
    WEBHOOK_TEST_TIMEOUT = float(_get_param_with_fallback("WEBHOOK_TEST_TIMEOUT", default="10"))
    INSIGHTS_ASYNC = _as_bool(_get_param_with_fallback("INSIGHTS_ASYNC", default="true"))

    # Outbound deliveries (flask webhooks deliver)
    DELIVERY_TIMEOUT = float(_get_param_with_fallback("DELIVERY_TIMEOUT", default="30"))
    DELIVERY_MAX_RETRIES = int(_get_param_with_fallback("DELIVERY_MAX_RETRIES", default="3"))
    # Lets /test-credential callers send their own platform_config (and so pick the host
    # that receives the credentials). Operator tooling only; off by default.
    ALLOW_INLINE_PLATFORM_CONFIG = _as_bool(_get_param_with_fallback("ALLOW_INLINE_PLATFORM_CONFIG", default="false"))
