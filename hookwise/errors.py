# hookwise/errors.py
from enum import Enum


class ErrorType(str, Enum):
    """Machine-readable failure classes shared by credential and webhook tests."""

    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    ENDPOINT = "endpoint"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK = "network"
    CREDENTIAL = "credential"
    UNKNOWN = "unknown"


def classify_status(status_code: int):
    """Map an HTTP status to an ErrorType, or None for 2xx."""
    if 200 <= status_code < 300:
        return None
    if status_code == 401:
        return ErrorType.AUTHENTICATION
    if status_code == 403:
        return ErrorType.PERMISSION
    if status_code == 404:
        return ErrorType.ENDPOINT
    if status_code == 429:
        return ErrorType.RATE_LIMIT
    if 500 <= status_code < 600:
        return ErrorType.SERVER_ERROR
    return ErrorType.UNKNOWN


class HookwiseError(RuntimeError):
    pass


class CredentialFormatError(HookwiseError):
    """Credential payload is not a usable field -> value mapping."""


class ExecutorError(HookwiseError):
    """The automation executor could not run the automation."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code
