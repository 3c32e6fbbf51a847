"""
FastAPI dependencies for access checks.

Token verification belongs to the consuming application: its middleware
places a ``VerifiedIdentity`` on ``request.state.identity``. The services
built by ``create_services`` are attached with ``install_rbac``.
"""

from typing import Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status

from ...core.exceptions import ConfigurationError
from ...core.value_objects.identity import VerifiedIdentity
from ...factory import RbacServices
from ...features.permissions.services.permission_resolver import PermissionResolver


def install_rbac(app: FastAPI, services: RbacServices) -> None:
    """Attach built services to an application."""
    app.state.rbac = services


def get_rbac_services(request: Request) -> RbacServices:
    services = getattr(request.app.state, "rbac", None)
    if services is None:
        raise ConfigurationError("ops-rbac services are not installed on this application")
    return services


def get_permission_resolver(services: RbacServices = Depends(get_rbac_services)) -> PermissionResolver:
    return services.resolver


def get_verified_identity(request: Request) -> VerifiedIdentity:
    """Identity verified upstream; 401 when the request carries none."""
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, VerifiedIdentity):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def _site_from_request(request: Request, site_param: Optional[str]) -> Optional[str]:
    if not site_param:
        return None
    return request.path_params.get(site_param) or request.query_params.get(site_param)


def require_permission(
    module_code: str,
    action: str,
    resource: Optional[str] = None,
    site_param: Optional[str] = None,
) -> Callable:
    """
    Dependency factory requiring a permission.

    Args:
        module_code: Module the action belongs to
        action: Action to check
        resource: Optional resource to check
        site_param: Name of a path or query parameter holding the site code;
            when present, only global or same-site grants count

    Returns:
        Dependency returning the caller's identity, or raising 403
    """

    async def permission_dependency(
        request: Request,
        identity: VerifiedIdentity = Depends(get_verified_identity),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> VerifiedIdentity:
        site_code = _site_from_request(request, site_param)
        allowed = await resolver.has_permission(identity.user_id, module_code, action, resource, site_code=site_code)
        if not allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {module_code}:{action}" + (f":{resource}" if resource else ""),
            )
        return identity

    return permission_dependency


def require_module(module_code: str) -> Callable:
    """Dependency factory requiring access to a module."""

    async def module_dependency(
        identity: VerifiedIdentity = Depends(get_verified_identity),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> VerifiedIdentity:
        if not await resolver.can_access_module(identity.user_id, module_code):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Module access denied: {module_code}",
            )
        return identity

    return module_dependency


def require_admin() -> Callable:
    """Dependency factory requiring an ADMIN or SUPER_ADMIN role."""

    async def admin_dependency(
        identity: VerifiedIdentity = Depends(get_verified_identity),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> VerifiedIdentity:
        if not await resolver.is_admin(identity.user_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden - Admin access required",
            )
        return identity

    return admin_dependency
