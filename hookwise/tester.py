# hookwise/tester.py
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .credentials import normalize_credentials, parse_credentials
from .errors import CredentialFormatError, ErrorType, classify_status
from .platforms import resolve_auth
from .utils.http import read_body

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
PREVIEW_LIMIT = 200
USER_AGENT = "hookwise-credential-tester/1.0"

TROUBLESHOOTING: Dict[ErrorType, List[str]] = {
    ErrorType.AUTHENTICATION: [
        "Check that the API key or token was copied completely",
        "Check whether the key or token has expired or been revoked",
    ],
    ErrorType.PERMISSION: [
        "Check the scopes granted to the token",
        "Check that your account plan includes API access",
    ],
    ErrorType.ENDPOINT: [
        "Check the platform base URL and API version",
        "The platform configuration may need adjustment",
    ],
    ErrorType.RATE_LIMIT: ["Wait for the rate limit window to reset before retrying"],
    ErrorType.SERVER_ERROR: ["Check the platform status page and retry in a few minutes"],
    ErrorType.TIMEOUT: ["Check that the platform is reachable and retry"],
    ErrorType.NETWORK: [
        "Check the platform base URL",
        "Check outbound network access from this server",
    ],
    ErrorType.CREDENTIAL: ["Send credential_fields as an object of field name -> value"],
}


@dataclass
class TestOutcome:
    success: bool
    user_message: str
    technical_details: Dict[str, Any] = field(default_factory=dict)

    # keep pytest from collecting this as a test class
    __test__ = False

    @property
    def error_type(self) -> Optional[str]:
        return self.technical_details.get("error_type")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "user_message": self.user_message,
            "technical_details": self.technical_details,
        }


def user_message_for(platform: str, error_type: Optional[ErrorType], status_code: int = 0,
                     timeout: float = DEFAULT_TIMEOUT, detail: str = "") -> str:
    if error_type is None:
        return f"{platform} credentials verified successfully."
    if error_type == ErrorType.AUTHENTICATION:
        return f"Authentication failed for {platform}. Please check your API key/token is correct and active."
    if error_type == ErrorType.PERMISSION:
        return f"Access to {platform} was forbidden. Please check your account permissions and API scopes."
    if error_type == ErrorType.ENDPOINT:
        return f"The {platform} test endpoint was not found. The platform configuration may need adjustment."
    if error_type == ErrorType.RATE_LIMIT:
        return f"{platform} rate limit exceeded. Please wait before testing again."
    if error_type == ErrorType.SERVER_ERROR:
        return f"{platform} returned a server error ({status_code}). The service may be temporarily unavailable."
    if error_type == ErrorType.TIMEOUT:
        return f"{platform} did not respond within {timeout:g} seconds."
    if error_type == ErrorType.NETWORK:
        return f"Could not connect to {platform}: {detail}"
    if error_type == ErrorType.CREDENTIAL:
        return f"The credentials for {platform} are malformed: {detail}"
    return f"Unexpected response from {platform} (HTTP {status_code})."


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LIMIT:
        return text[:PREVIEW_LIMIT] + "..."
    return text


def _scrub(text: str, credentials: Dict[str, str]) -> str:
    """Mask credential values that leak into exception text (e.g. query strings)."""
    for value in credentials.values():
        if len(value) >= 4:
            text = text.replace(value, "***")
    return text


def _outcome(platform: str, error_type: Optional[ErrorType], details: Dict[str, Any], **message_kwargs) -> TestOutcome:
    details["error_type"] = error_type.value if error_type else None
    if error_type is not None:
        details["troubleshooting"] = TROUBLESHOOTING.get(error_type, [])
    return TestOutcome(
        success=error_type is None,
        user_message=user_message_for(platform, error_type, details.get("status_code") or 0, **message_kwargs),
        technical_details=details,
    )


def run_credential_test(platform_name: str, raw_credentials: Any, user_id: Optional[str] = None,
                        platform_config: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None,
                        recorder=None) -> TestOutcome:
    """
    Probe a platform with user-supplied credentials and classify the result.

    Transport and HTTP failures come back as success=False outcomes, never as
    exceptions. The insight write goes through recorder and can't change the
    outcome.
    """
    timeout = timeout or DEFAULT_TIMEOUT

    try:
        credentials = parse_credentials(raw_credentials)
    except CredentialFormatError as e:
        logger.info("Rejected malformed credentials for %s: %s", platform_name, e)
        outcome = _outcome(platform_name, ErrorType.CREDENTIAL, {"status_code": None, "platform": platform_name}, detail=str(e))
        _record(recorder, platform_name, user_id, outcome)
        return outcome

    normalized = normalize_credentials(credentials)
    resolution = resolve_auth(platform_name, normalized, platform_config=platform_config)
    details: Dict[str, Any] = {
        "status_code": None,
        "platform": resolution.platform,
        # query strings may carry credentials
        "endpoint_tested": resolution.test_url.split("?", 1)[0],
        "method": resolution.method,
        "config_source": resolution.source,
        "missing_fields": resolution.missing_fields,
        "credential_fields_used": sorted(credentials),
    }
    logger.info("Testing %s credentials via %s %s (%s)", resolution.platform, resolution.method,
                details["endpoint_tested"], resolution.source)

    headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT, **resolution.headers}
    start = time.monotonic()
    try:
        resp = requests.request(resolution.method, resolution.test_url, headers=headers, timeout=timeout, stream=True)
        text = read_body(resp, start + timeout)
    except requests.exceptions.Timeout:
        details["response_time_ms"] = int((time.monotonic() - start) * 1000)
        logger.warning("Credential test for %s timed out after %ss", resolution.platform, timeout)
        outcome = _outcome(resolution.platform, ErrorType.TIMEOUT, details, timeout=timeout)
    except requests.exceptions.RequestException as e:
        details["response_time_ms"] = int((time.monotonic() - start) * 1000)
        error = _scrub(str(e), credentials)
        details["error"] = error
        logger.warning("Credential test for %s failed to connect: %s", resolution.platform, error)
        outcome = _outcome(resolution.platform, ErrorType.NETWORK, details, detail=error)
    else:
        details["response_time_ms"] = int((time.monotonic() - start) * 1000)
        details["status_code"] = resp.status_code
        details["response_preview"] = _preview(text)
        error_type = classify_status(resp.status_code)
        outcome = _outcome(resolution.platform, error_type, details)
        logger.info("Credential test for %s: HTTP %s -> %s", resolution.platform, resp.status_code,
                    outcome.error_type or "success")

    _record(recorder, platform_name, user_id, outcome)
    return outcome


def _record(recorder, platform_name: str, user_id: Optional[str], outcome: TestOutcome) -> None:
    if recorder is None:
        return
    details = outcome.technical_details
    try:
        recorder.submit({
            "platform_name": platform_name,
            "user_id": user_id,
            "outcome": "success" if outcome.success else "failed",
            "error_type": details.get("error_type"),
            "status_code": details.get("status_code"),
            "response_preview": details.get("response_preview"),
            "details": {k: v for k, v in details.items() if k != "response_preview"},
        })
    except Exception:
        logger.exception("Insight recorder failed for %s", platform_name)
