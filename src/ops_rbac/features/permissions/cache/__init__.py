"""Permission cache."""

from .permission_cache import CacheEntry, PermissionCache

__all__ = ["CacheEntry", "PermissionCache"]
