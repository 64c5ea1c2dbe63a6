# hookwise/platforms.py
"""
Platform auth adapter.

Turns a platform name plus normalized credentials into the headers, URL and
HTTP method of a cheap authenticated probe. Known platforms come from the
``data/platforms.json`` registry; a stored or caller-supplied platform config
takes precedence, and anything unknown falls back to a generic bearer guess.
"""
from __future__ import annotations

import base64
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

REGISTRY_PATH = os.path.join(os.path.dirname(__file__), "data", "platforms.json")

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")

# Fallback credential fields for common placeholders, in order of preference
PLACEHOLDER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "token": ("personal_access_token", "access_token", "token", "api_key", "integration_token", "bot_token"),
    "api_key": ("api_key", "key", "xi_api_key"),
    "xi_api_key": ("xi_api_key", "api_key"),
    "access_token": ("access_token", "token", "oauth_token"),
    "personal_access_token": ("personal_access_token", "access_token", "token"),
    "integration_token": ("integration_token", "access_token", "token"),
    "bot_token": ("bot_token", "access_token", "token"),
    "api_token": ("api_token", "token"),
}

DYNAMIC_TEST_METHODS = ("test", "test_connection", "auth_test", "get_user")


@dataclass
class AuthResolution:
    platform: str
    headers: Dict[str, str]
    test_url: str
    method: str
    source: str
    required_fields: List[str] = field(default_factory=list)
    missing_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform,
            "test_url": self.test_url,
            "method": self.method,
            "source": self.source,
            # header values carry secrets
            "header_names": sorted(self.headers),
            "required_fields": list(self.required_fields),
            "missing_fields": list(self.missing_fields),
        }


def load_registry(path: str = REGISTRY_PATH) -> Tuple[Dict[str, Any], ...]:
    with open(path, "r", encoding="utf-8") as fh:
        entries = json.load(fh)
    logger.debug("Loaded %d platform definitions from %s", len(entries), path)
    return tuple(entries)


REGISTRY = load_registry()


def find_registry_entry(platform_name: str) -> Optional[Dict[str, Any]]:
    """First registry entry whose match term appears in the platform name."""
    lowered = (platform_name or "").lower()
    if not lowered:
        return None
    for entry in REGISTRY:
        for term in entry.get("match") or [entry["name"].lower()]:
            if term in lowered:
                return entry
    return None


def _credential_lookup(credentials: Dict[str, str]) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for key, value in credentials.items():
        if not value:
            continue
        for spelling in (key, key.lower(), key.upper(), key.replace("_", "-"), key.replace("-", "_")):
            lookup.setdefault(spelling, value)
    return lookup


def substitute_placeholders(template: str, credentials: Dict[str, str]) -> Tuple[str, List[str]]:
    """
    Replace ``{field}`` tokens with credential values.

    Returns the rendered string and the placeholders that could not be filled.
    """
    lookup = _credential_lookup(credentials)
    missing: List[str] = []

    def _replace(match):
        name = match.group(1)
        if name in lookup:
            return lookup[name]
        for candidate in PLACEHOLDER_ALIASES.get(name.lower().replace("-", "_"), ()):
            if candidate in lookup:
                return lookup[candidate]
        missing.append(name)
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, template), missing


def _first_value(credentials: Dict[str, str], names) -> Optional[str]:
    for name in names:
        if name and credentials.get(name):
            return credentials[name]
    return None


def build_auth_headers(entry: Dict[str, Any], credentials: Dict[str, str]) -> Tuple[Dict[str, str], Dict[str, str], List[str]]:
    """
    Interpret a declarative platform entry.

    Returns (headers, query_params, missing_placeholders). Headers or params
    whose placeholders can't be filled are left out.
    """
    headers: Dict[str, str] = {}
    params: Dict[str, str] = {}
    missing: List[str] = []

    def _render_into(target: Dict[str, str], name: str, template: str) -> None:
        value, unresolved = substitute_placeholders(template, credentials)
        if unresolved:
            missing.extend(unresolved)
            return
        target[name] = value

    auth_type = (entry.get("auth_type") or "bearer").strip()
    kind = auth_type.lower()

    if kind in ("bearer", "oauth2", "oauth", "bearer_token"):
        _render_into(
            headers,
            entry.get("auth_header_name") or "Authorization",
            entry.get("auth_header_format") or "Bearer {access_token}",
        )
    elif kind in ("api_key", "apikey"):
        if entry.get("auth_location") == "query":
            query = entry.get("query_params") or {
                entry.get("auth_param_name") or "api_key": entry.get("auth_header_format") or "{api_key}"
            }
            for name, template in query.items():
                _render_into(params, name, template)
        else:
            _render_into(
                headers,
                entry.get("auth_header_name") or "X-API-Key",
                entry.get("auth_header_format") or "{api_key}",
            )
    elif kind in ("basic", "basic_auth"):
        username = _first_value(credentials, (entry.get("username_field"), "username", "email"))
        password = _first_value(credentials, (entry.get("password_field"), "password", "api_key", "api_token"))
        if username and password:
            token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {token}"
        else:
            missing.extend(
                name
                for name, value in ((entry.get("username_field") or "username", username),
                                    (entry.get("password_field") or "password", password))
                if not value
            )
    elif _PLACEHOLDER.search(auth_type):
        # custom format string, e.g. "Bot {bot_token}"
        _render_into(headers, entry.get("auth_header_name") or "Authorization", auth_type)
    else:
        logger.warning("Unknown auth type %r for %s, assuming bearer", auth_type, entry.get("name"))
        _render_into(headers, "Authorization", entry.get("auth_header_format") or "Bearer {token}")

    if kind not in ("api_key", "apikey") or entry.get("auth_location") != "query":
        for name, template in (entry.get("query_params") or {}).items():
            _render_into(params, name, template)

    for name, template in (entry.get("extra_headers") or {}).items():
        _render_into(headers, name, template)

    return headers, params, missing


def build_url(base_url: str, path: str, params: Optional[Dict[str, str]] = None) -> str:
    url = base_url.rstrip("/")
    if path:
        url = f"{url}/{path.lstrip('/')}"
    if params:
        url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}"
    return url


def _endpoint(value: Any, default_method: str = "GET") -> Tuple[str, str]:
    if isinstance(value, str):
        return default_method, value
    if isinstance(value, dict):
        method = (value.get("method") or default_method).upper()
        return method, value.get("path") or value.get("endpoint") or ""
    return default_method, ""


def dynamic_entry(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten a stored or supplied platform config into a registry-shaped entry.

    Accepts both flat keys (``auth_type``, ``auth_header_format``) and the
    nested ``authentication`` block produced by the config generator.
    """
    auth = config.get("authentication") or {}
    method, path = _endpoint(config.get("test_endpoint"))
    if not path:
        methods = config.get("api_methods") or {}
        chosen = next((methods[name] for name in DYNAMIC_TEST_METHODS if name in methods), None)
        if chosen is None and methods:
            chosen = next(iter(methods.values()))
        method, path = _endpoint(chosen)

    return {
        "name": config.get("name") or config.get("platform_name"),
        "base_url": config.get("base_url") or config.get("api_base_url"),
        "auth_type": config.get("auth_type") or auth.get("type") or "bearer",
        "auth_header_name": config.get("auth_header_name") or auth.get("parameter_name") or auth.get("header"),
        "auth_header_format": config.get("auth_header_format") or auth.get("format"),
        "auth_location": config.get("auth_location") or auth.get("location") or "header",
        "username_field": config.get("username_field"),
        "password_field": config.get("password_field"),
        "query_params": config.get("query_params"),
        "extra_headers": config.get("extra_headers"),
        "credential_fields": config.get("credential_fields") or [],
        "test_endpoint": {"method": method, "path": path},
    }


def generic_entry(platform_name: str) -> Dict[str, Any]:
    slug = re.sub(r"\s+", "", (platform_name or "").lower())
    return {
        "name": platform_name,
        "base_url": f"https://api.{slug}.com",
        "auth_type": "bearer",
        "auth_header_format": "Bearer {api_key}",
        "test_endpoint": {"method": "GET", "path": "/me"},
        "credential_fields": [],
    }


def _required_fields(entry: Dict[str, Any]) -> List[str]:
    declared = [f["field"] for f in entry.get("credential_fields") or [] if f.get("field")]
    if declared:
        return declared
    templates = [entry.get("auth_header_format") or "", *(entry.get("query_params") or {}).values()]
    found: List[str] = []
    for template in templates:
        for name in _PLACEHOLDER.findall(template):
            if name not in found:
                found.append(name)
    return found


def resolve_auth(platform_name: str, credentials: Dict[str, str],
                 platform_config: Optional[Dict[str, Any]] = None) -> AuthResolution:
    """
    Resolve headers, test URL and method for a credential probe.

    platform_config wins when it carries a base_url; otherwise the static
    registry is searched, then the generic adapter is used. Never raises for
    missing credentials: the header is just omitted.
    """
    source = "registry"
    entry = None
    if platform_config:
        candidate = dynamic_entry(platform_config)
        if candidate.get("base_url"):
            entry, source = candidate, "dynamic"
        else:
            logger.warning("Platform config for %s has no base_url, ignoring it", platform_name)

    if entry is None:
        entry = find_registry_entry(platform_name)

    if entry is None:
        return _resolve_generic(platform_name, credentials)

    headers, params, missing = build_auth_headers(entry, credentials)
    method, path = _endpoint(entry.get("test_endpoint"))
    return AuthResolution(
        platform=entry.get("name") or platform_name,
        headers=headers,
        test_url=build_url(entry["base_url"], path, params),
        method=method,
        source=source,
        required_fields=_required_fields(entry),
        missing_fields=missing,
    )


def _resolve_generic(platform_name: str, credentials: Dict[str, str]) -> AuthResolution:
    entry = generic_entry(platform_name)
    headers: Dict[str, str] = {}
    missing: List[str] = []
    token = _first_value(credentials, ("api_key", "token"))
    if token:
        headers["Authorization"] = f"Bearer {token}"
    else:
        missing.append("api_key")
    method, path = _endpoint(entry["test_endpoint"])
    return AuthResolution(
        platform=platform_name,
        headers=headers,
        test_url=build_url(entry["base_url"], path),
        method=method,
        source="generic",
        required_fields=["api_key"],
        missing_fields=missing,
    )


def get_credential_fields(platform_name: str, platform_config: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
    """Declared credential fields for a platform, with a generic API key default."""
    if platform_config and platform_config.get("credential_fields"):
        return list(platform_config["credential_fields"])
    entry = find_registry_entry(platform_name)
    if entry and entry.get("credential_fields"):
        return list(entry["credential_fields"])
    slug = re.sub(r"\s+", "", (platform_name or "").lower())
    return [{
        "field": "api_key",
        "placeholder": f"Enter your {platform_name} API key",
        "link": f"https://{slug}.com/developers",
        "why_needed": f"Required for {platform_name} API access",
    }]
