"""
Error taxonomy for HTTP transmission.

Terminal errors (EncodeError, client-side rejections) are absorbed by the
publishing client. Retryable errors (TransportError, 5xx/429 statuses) and
NotConnectedError escape to the caller.
"""
from typing import Optional


class HTTPOutputError(Exception):
    """Base class for all output errors."""


class ConfigError(HTTPOutputError):
    """Invalid output configuration."""


class NotConnectedError(HTTPOutputError):
    """Publish attempted while the connection is not armed."""

    def __init__(self, message: str = "not connected"):
        super().__init__(message)


class EncodeError(HTTPOutputError):
    """Event has no JSON representation."""

    def __init__(self, message: str = "json encode failed", cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class TransportError(HTTPOutputError):
    """Network level failure: DNS, dial, TLS handshake, timeout, reset."""

    def __init__(self, cause: Exception):
        super().__init__(str(cause))
        self.cause = cause


class HTTPStatusError(HTTPOutputError):
    """Endpoint answered with a status >= 300."""

    def __init__(self, status_code: int, reason: str = ""):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{status_code} {reason}".strip())

    @property
    def retryable(self) -> bool:
        return is_retryable_status(self.status_code)


def is_retryable_status(status_code: int) -> bool:
    """
    Status partition used for the retry/drop decision.

    5xx and 429 are transient; everything else >= 300 is a permanent
    rejection of the request.
    """
    return status_code >= 500 or status_code == 429


class CircuitOpenError(HTTPOutputError):
    """Circuit breaker for the endpoint is open; nothing was sent."""
