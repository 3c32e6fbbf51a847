"""Permission resolution entities."""

from .resolved import UserPermission, UserRole

__all__ = ["UserPermission", "UserRole"]
