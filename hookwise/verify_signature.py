import hmac
import hashlib
from typing import Union

SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="


def _as_bytes(payload: Union[bytes, str]) -> bytes:
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return payload


def sign_payload(secret: str, payload: Union[bytes, str]) -> str:
    """
    Sign a webhook payload.

    secret: Webhook secret as a string
    payload: Raw request body (bytes, or str which is UTF-8 encoded)

    Returns the header value, e.g. ``sha256=<hex digest>``.
    """
    mac = hmac.new(secret.encode("utf-8"), msg=_as_bytes(payload), digestmod=hashlib.sha256)
    return f"{SIGNATURE_PREFIX}{mac.hexdigest()}"


def verify_signature(secret: str, payload: Union[bytes, str], signature_header: str) -> bool:
    """
    Verify a webhook signature.

    secret: Webhook secret as a string
    payload: Raw request body (bytes)
    signature_header: The value of the 'X-Webhook-Signature' header

    An empty secret or header never verifies.
    """
    if not secret or not signature_header:
        return False

    expected_signature = sign_payload(secret, payload)

    # Constant-time comparison
    return hmac.compare_digest(expected_signature.encode("utf-8"), signature_header.strip().encode("utf-8"))
