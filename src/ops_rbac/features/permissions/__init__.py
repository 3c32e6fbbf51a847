"""Permissions feature for ops-rbac.

Feature-First architecture for access control:
- entities/: resolved roles and permissions
- cache/: TTL cache of resolved permissions
- services/: fail-closed resolver and role assignment manager
"""

from .cache import PermissionCache
from .entities import UserPermission, UserRole
from .services import PermissionResolver, RoleAssignmentManager

__all__ = [
    # Entities
    "UserPermission",
    "UserRole",

    # Cache
    "PermissionCache",

    # Services
    "PermissionResolver",
    "RoleAssignmentManager",
]
