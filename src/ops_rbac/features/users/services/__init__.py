"""User and site configuration services."""

from .site_config_service import SiteConfigService, convert_config_value
from .user_service import UserService

__all__ = ["SiteConfigService", "UserService", "convert_config_value"]
