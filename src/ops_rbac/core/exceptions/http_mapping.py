"""HTTP status code mapping for exceptions."""

from typing import Dict, Type

from .domain import ConflictError, NotFoundError, UserInactiveError
from .store import (
    CircuitOpenError,
    ConfigurationError,
    StoreError,
    TransientStoreError,
)


# Most specific classes first; lookups walk the MRO
HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    # 403 Forbidden
    UserInactiveError: 403,

    # 404 Not Found
    NotFoundError: 404,

    # 409 Conflict
    ConflictError: 409,

    # 500 Internal Server Error
    ConfigurationError: 500,

    # 502 Bad Gateway
    StoreError: 502,

    # 503 Service Unavailable
    TransientStoreError: 503,
    CircuitOpenError: 503,
}


def get_http_status_code(exception: Exception) -> int:
    """Resolve the HTTP status for an exception by walking its class hierarchy."""
    for klass in type(exception).__mro__:
        if klass in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[klass]
    return 500
