"""FastAPI integration: access-check dependencies and exception handlers."""

from .dependencies import (
    get_permission_resolver,
    get_rbac_services,
    get_verified_identity,
    install_rbac,
    require_admin,
    require_module,
    require_permission,
)
from .exception_handlers import register_exception_handlers

__all__ = [
    "install_rbac",
    "get_rbac_services",
    "get_permission_resolver",
    "get_verified_identity",
    "require_permission",
    "require_module",
    "require_admin",
    "register_exception_handlers",
]
