"""Data feature for ops-rbac.

Feature-First architecture for entity persistence:
- entities/: domain dataclasses and the DataService contract
- repositories/: row mappers and the Sheets-backed DataService
"""

from .entities import (
    DataService,
    Module,
    Permission,
    Role,
    RoleAssignment,
    SiteConfig,
    SystemLogEntry,
    TransactionLogEntry,
    User,
)
from .repositories import SheetsDataService

__all__ = [
    # Entities
    "User",
    "Role",
    "RoleAssignment",
    "Module",
    "Permission",
    "SiteConfig",
    "TransactionLogEntry",
    "SystemLogEntry",

    # Protocols
    "DataService",

    # Repositories
    "SheetsDataService",
]
