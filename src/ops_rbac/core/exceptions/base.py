"""Base exceptions for ops-rbac.

All exceptions inherit from RbacError and carry an error code, structured
details and an HTTP status code mapping for consumers that expose them.
"""

from typing import Any, Dict, Optional


class RbacError(Exception):
    """Base exception for all ops-rbac errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
    ):
        super().__init__(message, *args)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": self.__class__.__name__,
        }


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code (500 for anything unmapped)
    """
    from .http_mapping import get_http_status_code as _get_status_code
    return _get_status_code(exception)


def create_error_response(exception: RbacError) -> Dict[str, Any]:
    """Create standardized error response from exception.

    Args:
        exception: The ops-rbac exception

    Returns:
        Error response dictionary
    """
    return {"error": exception.to_dict()}
