"""Exception hierarchy for ops-rbac."""

from .base import RbacError, create_error_response, get_http_status_code
from .domain import (
    AssignmentNotFoundError,
    ConflictError,
    DuplicateEmailError,
    NotFoundError,
    RoleNotFoundError,
    TransactionNotFoundError,
    UserInactiveError,
    UserNotFoundError,
)
from .store import (
    CircuitOpenError,
    ConfigurationError,
    StoreAuthenticationError,
    StoreError,
    StoreRequestError,
    TransientStoreError,
)

__all__ = [
    "RbacError",
    "create_error_response",
    "get_http_status_code",
    # Store
    "ConfigurationError",
    "StoreError",
    "TransientStoreError",
    "CircuitOpenError",
    "StoreRequestError",
    "StoreAuthenticationError",
    # Domain
    "NotFoundError",
    "UserNotFoundError",
    "RoleNotFoundError",
    "AssignmentNotFoundError",
    "TransactionNotFoundError",
    "UserInactiveError",
    "ConflictError",
    "DuplicateEmailError",
]
