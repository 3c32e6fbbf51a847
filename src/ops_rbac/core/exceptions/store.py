"""Exceptions raised while reaching or using the remote tabular store."""

from typing import Optional

from .base import RbacError


class ConfigurationError(RbacError):
    """Missing or malformed settings needed to reach the backing store.

    Raised at start-up; the service refuses to run half-configured.
    """


class StoreError(RbacError):
    """Base class for remote store failures."""


class TransientStoreError(StoreError):
    """Timeout, connection reset, remote 5xx or rate limit (429).

    Retried by the gateway and surfaced once retries are exhausted.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code


class CircuitOpenError(StoreError):
    """The circuit breaker is open; the call failed without touching the network."""

    def __init__(self, message: str = "Remote store temporarily unavailable", retry_after_seconds: float = 0.0):
        super().__init__(message, details={"retry_after_seconds": round(retry_after_seconds, 3)})
        self.retry_after_seconds = retry_after_seconds


class StoreRequestError(StoreError):
    """The store rejected a request in a way that retrying will not fix."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, details={"status_code": status_code} if status_code else None)
        self.status_code = status_code


class StoreAuthenticationError(StoreRequestError):
    """The store rejected our credentials (401/403)."""
