"""Users feature for ops-rbac.

Sign-in user sync, user deactivation and typed site configuration.
"""

from .services import SiteConfigService, UserService

__all__ = [
    "SiteConfigService",
    "UserService",
]
