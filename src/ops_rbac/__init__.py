"""
ops-rbac: role-based access control over a spreadsheet-backed store.

Resolves "can user U perform action A on resource R in module M" from role
assignments and permission grants held in Google Sheets, behind a circuit
breaker, bounded retries and a time-bounded permission cache. Every access
check fails closed.
"""

from .__version__ import __version__
from .core.exceptions import (
    CircuitOpenError,
    ConfigurationError,
    NotFoundError,
    RbacError,
    StoreError,
    TransientStoreError,
)
from .core.value_objects import VerifiedIdentity
from .factory import RbacServices, create_services

__all__ = [
    "__version__",
    "create_services",
    "RbacServices",
    "VerifiedIdentity",
    "RbacError",
    "ConfigurationError",
    "StoreError",
    "TransientStoreError",
    "CircuitOpenError",
    "NotFoundError",
]
