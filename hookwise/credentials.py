# hookwise/credentials.py
import json
import re
from typing import Any, Dict

from .errors import CredentialFormatError

# Human-readable labels shown in credential forms -> canonical field names.
# Keys are matched case-insensitively.
FIELD_LABELS: Dict[str, str] = {
    "api key": "api_key",
    "apikey": "api_key",
    "api-key": "api_key",
    "secret key": "api_key",
    "access key": "api_key",
    "api token": "api_token",
    "access token": "access_token",
    "bearer token": "access_token",
    "oauth token": "access_token",
    "oauth access token": "access_token",
    "private app access token": "access_token",
    "integration token": "integration_token",
    "internal integration token": "integration_token",
    "integration secret": "integration_token",
    "bot token": "bot_token",
    "bot user oauth token": "bot_token",
    "slack bot token": "bot_token",
    "personal access token": "personal_access_token",
    "pat": "personal_access_token",
    "token": "token",
    "xi-api-key": "xi_api_key",
    "xi api key": "xi_api_key",
    "account sid": "account_sid",
    "auth token": "auth_token",
    "client id": "client_id",
    "client secret": "client_secret",
    "username": "username",
    "email": "email",
    "password": "password",
}

_WHITESPACE = re.compile(r"\s+")


def canonical_field(name: str) -> str:
    """Canonical snake_case name for a credential field label."""
    key = name.strip()
    mapped = FIELD_LABELS.get(key.lower())
    if mapped:
        return mapped
    return _WHITESPACE.sub("_", key.lower())


def normalize_credentials(raw: Dict[str, str]) -> Dict[str, str]:
    """
    Add canonical field names next to the user-supplied ones.

    Original keys are kept; a canonical key is only added when it is not
    already present, so normalizing twice gives the same map.
    """
    normalized = dict(raw)
    for key, value in raw.items():
        normalized.setdefault(canonical_field(key), value)
    return normalized


def parse_credentials(raw: Any) -> Dict[str, str]:
    """
    Accept a credential mapping or its JSON text, fail on anything else.

    Raises CredentialFormatError for non-JSON text, non-mapping payloads,
    nested values, or a map with no non-empty value.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise CredentialFormatError(f"credential payload is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise CredentialFormatError("credential payload must be an object of field -> value")

    parsed: Dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            raise CredentialFormatError(f"credential field '{key}' must be a plain value")
        parsed[str(key)] = str(value).strip()

    if not any(parsed.values()):
        raise CredentialFormatError("no credential values provided")
    return parsed
