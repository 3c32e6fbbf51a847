"""
Permission resolution.

Resolves a user's effective roles and permissions from the data service and
answers access questions about them. Every public operation fails closed:
any error becomes "no access" (False or an empty collection), is logged, and
is recorded as an ERROR system event.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ....config.constants import RoleCodes, SystemLogLevel
from ....core.exceptions import CircuitOpenError
from ....utils.cells import safe_json_loads
from ....utils.datetime import parse_timestamp, utc_now
from ...audit.services.transaction_log import TransactionLogService
from ...data.entities.models import RoleAssignment
from ...data.entities.protocols import DataService
from ..cache.permission_cache import PermissionCache
from ..entities.resolved import UserPermission, UserRole

logger = logging.getLogger(__name__)


def parse_conditions(raw: Optional[str]) -> Dict[str, Any]:
    """Parse a permission's condition JSON; malformed or non-object input yields {}."""
    conditions = safe_json_loads(raw, {})
    return conditions if isinstance(conditions, dict) else {}


class PermissionResolver:
    """Fail-closed permission checks backed by a TTL cache."""

    def __init__(
        self,
        data_service: DataService,
        cache: PermissionCache,
        audit_log: Optional[TransactionLogService] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        """Initialize permission resolver.

        Args:
            data_service: Source of assignments, roles, permissions and modules
            cache: Cache of resolved permissions per user
            audit_log: Receives an ERROR system event for every swallowed failure
            now: Current time, used to evaluate assignment expiry
        """
        self._data_service = data_service
        self._cache = cache
        self._audit_log = audit_log
        self._now = now

    @property
    def cache(self) -> PermissionCache:
        return self._cache

    # Roles

    async def get_user_roles(self, user_id: str) -> List[UserRole]:
        """Effective roles of a user; empty on any failure."""
        try:
            return await self._resolve_roles(user_id)
        except Exception as e:
            self._record_failure("get_user_roles", user_id, e)
            return []

    async def has_role(self, user_id: str, role_code: str) -> bool:
        roles = await self.get_user_roles(user_id)
        return any(role.role_code == role_code for role in roles)

    async def is_admin(self, user_id: str) -> bool:
        """True iff the user holds an effective SUPER_ADMIN or ADMIN role."""
        roles = await self.get_user_roles(user_id)
        return any(role.role_code in RoleCodes.ADMIN_ROLES for role in roles)

    # Permissions

    async def get_user_permissions(self, user_id: str) -> List[UserPermission]:
        """Effective permissions of a user, served from cache when fresh.

        A failed computation returns an empty list and leaves the cache untouched.
        A result computed across an invalidation of the user is returned but
        not cached.
        """
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        generation = self._cache.generation(user_id)
        try:
            permissions = await self._compute_permissions(user_id)
        except Exception as e:
            self._record_failure("get_user_permissions", user_id, e)
            return []

        self._cache.put_if_current(user_id, generation, permissions)
        return permissions

    async def has_permission(
        self,
        user_id: str,
        module_code: str,
        action: str,
        resource: Optional[str] = None,
        site_code: Optional[str] = None,
    ) -> bool:
        """Check whether any effective permission matches.

        Module, action and resource are matched independently, each either
        exactly or by a ``*`` grant; ``resource`` is only checked when given.
        With ``site_code``, only permissions obtained through global
        assignments or assignments for that site count.
        """
        try:
            permissions = await self.get_user_permissions(user_id)
            return any(
                permission.matches(module_code, action, resource) and permission.applies_to_site(site_code)
                for permission in permissions
            )
        except Exception as e:
            self._record_failure("has_permission", user_id, e, module_code=module_code)
            return False

    async def can_access_module(self, user_id: str, module_code: str) -> bool:
        try:
            permissions = await self.get_user_permissions(user_id)
            return any(permission.grants_module(module_code) for permission in permissions)
        except Exception as e:
            self._record_failure("can_access_module", user_id, e, module_code=module_code)
            return False

    async def get_user_modules(self, user_id: str) -> List[str]:
        """Module codes the user may access.

        A wildcard module grant expands to every currently active module.
        """
        try:
            permissions = await self.get_user_permissions(user_id)
            if any(permission.is_module_wildcard for permission in permissions):
                modules = await self._data_service.list_active_modules()
                return [module.module_code for module in modules]

            module_codes: List[str] = []
            for permission in permissions:
                if permission.module_code not in module_codes:
                    module_codes.append(permission.module_code)
            return module_codes
        except Exception as e:
            self._record_failure("get_user_modules", user_id, e)
            return []

    # Resolution (raising)

    async def _resolve_roles(self, user_id: str) -> List[UserRole]:
        assignments = await self._data_service.list_role_assignments(user_id)
        if not assignments:
            return []

        # One read of the role table, joined in memory
        roles_by_id = {role.role_id: role for role in await self._data_service.list_roles()}
        now = self._now()

        user_roles: List[UserRole] = []
        for assignment in assignments:
            if not assignment.is_active or not self._is_unexpired(assignment, now):
                continue
            role = roles_by_id.get(assignment.role_id)
            if role is None:
                logger.warning(
                    f"Assignment {assignment.assignment_id} references missing role {assignment.role_id}"
                )
                continue
            if not role.is_active:
                continue
            user_roles.append(UserRole(
                role_id=role.role_id,
                role_code=role.role_code,
                role_name=role.role_name,
                site_code=assignment.site_code,
                assignment_id=assignment.assignment_id,
                expires_at=assignment.expires_at,
            ))
        return user_roles

    async def _compute_permissions(self, user_id: str) -> List[UserPermission]:
        roles = await self._resolve_roles(user_id)
        if not roles:
            return []

        # Site scope per role: global if any assignment of the role is global
        role_scopes: Dict[str, Tuple[bool, Set[str]]] = {}
        for role in roles:
            is_global, sites = role_scopes.get(role.role_id, (False, set()))
            if role.site_code:
                sites.add(role.site_code)
            else:
                is_global = True
            role_scopes[role.role_id] = (is_global, sites)

        merged: Dict[Tuple[str, str, str, str], Dict[str, Any]] = {}
        for permission in await self._data_service.list_all_permissions():
            if not permission.is_active or permission.role_id not in role_scopes:
                continue
            conditions = parse_conditions(permission.conditions)
            key = (
                permission.module_code,
                permission.action,
                permission.resource,
                json.dumps(conditions, sort_keys=True, default=str),
            )
            is_global, sites = role_scopes[permission.role_id]
            entry = merged.setdefault(key, {"conditions": conditions, "is_global": False, "sites": set()})
            entry["is_global"] = entry["is_global"] or is_global
            entry["sites"].update(sites)

        return [
            UserPermission(
                module_code=module_code,
                action=action,
                resource=resource,
                conditions=entry["conditions"],
                is_global=entry["is_global"],
                site_codes=frozenset(entry["sites"]),
            )
            for (module_code, action, resource, _), entry in merged.items()
        ]

    @staticmethod
    def _is_unexpired(assignment: RoleAssignment, now: datetime) -> bool:
        if not assignment.expires_at:
            return True
        try:
            expires_at = parse_timestamp(assignment.expires_at)
        except ValueError:
            logger.warning(
                f"Assignment {assignment.assignment_id} has unparseable expiry "
                f"{assignment.expires_at!r}, treating as expired"
            )
            return False
        return expires_at is None or now < expires_at

    def _record_failure(self, operation: str, user_id: str, error: Exception, **context: Any) -> None:
        logger.error(f"{operation} failed for user {user_id}, denying: {error}")
        # The event write would be rejected by the open circuit as well
        if self._audit_log is None or isinstance(error, CircuitOpenError):
            return
        self._audit_log.emit_system_event(
            SystemLogLevel.ERROR,
            f"Permission resolution failed in {operation}",
            context={
                "user_id": user_id,
                "action": operation,
                "details": {"error": str(error), "error_type": error.__class__.__name__, **context},
            },
        )
