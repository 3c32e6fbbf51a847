"""Domain entities and the data access contract."""

from .models import (
    Module,
    Permission,
    Role,
    RoleAssignment,
    SiteConfig,
    SystemLogEntry,
    TransactionLogEntry,
    User,
)
from .protocols import DataService

__all__ = [
    "User",
    "Role",
    "RoleAssignment",
    "Module",
    "Permission",
    "SiteConfig",
    "TransactionLogEntry",
    "SystemLogEntry",
    "DataService",
]
