"""Permission services."""

from .permission_resolver import PermissionResolver, parse_conditions
from .role_assignment_manager import RoleAssignmentManager

__all__ = ["PermissionResolver", "RoleAssignmentManager", "parse_conditions"]
