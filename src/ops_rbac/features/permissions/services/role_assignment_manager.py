"""Role assignment mutations.

Grants and revocations go through the data service and always invalidate the
affected users' cached permissions, so the next resolution reflects the
change even inside the cache TTL. Errors propagate to the caller.
"""

import logging
from contextlib import nullcontext
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ....config.constants import RBAC_MODULE_CODE
from ....core.exceptions import RoleNotFoundError, UserNotFoundError
from ....utils.datetime import format_timestamp
from ...audit.services.transaction_log import TrackedTransaction, TransactionLogService
from ...data.entities.models import RoleAssignment
from ...data.entities.protocols import DataService
from ..cache.permission_cache import PermissionCache

logger = logging.getLogger(__name__)


class RoleAssignmentManager:
    """Grants and revokes roles."""

    def __init__(
        self,
        data_service: DataService,
        cache: PermissionCache,
        audit_log: Optional[TransactionLogService] = None,
    ):
        self._data_service = data_service
        self._cache = cache
        self._audit_log = audit_log

    async def assign_role(
        self,
        user_id: str,
        role_id: str,
        assigned_by: str,
        site_code: Optional[str] = None,
        expires_at: Optional[Union[str, datetime]] = None,
    ) -> RoleAssignment:
        """Grant a role to a user, optionally for one site and until ``expires_at``.

        Duplicate grants are not checked; every active copy counts during
        resolution.

        Raises:
            UserNotFoundError: If the user does not exist
            RoleNotFoundError: If the role does not exist
            StoreError: If the store write failed
        """
        if isinstance(expires_at, datetime):
            expires_at = format_timestamp(expires_at)

        payload = {
            "user_id": user_id,
            "role_id": role_id,
            "site_code": site_code,
            "expires_at": expires_at,
        }
        async with self._track(assigned_by, "assign_role", payload) as tx:
            try:
                if await self._data_service.get_user_by_id(user_id) is None:
                    raise UserNotFoundError(user_id)
                if await self._data_service.get_role_by_id(role_id) is None:
                    raise RoleNotFoundError(role_id)

                assignment = await self._data_service.create_role_assignment(
                    user_id=user_id,
                    role_id=role_id,
                    assigned_by=assigned_by,
                    site_code=site_code,
                    expires_at=expires_at,
                )
            finally:
                self._cache.invalidate(user_id)
            tx.entity_id = assignment.assignment_id

        logger.info(
            f"Assigned role {role_id} to user {user_id}"
            f"{f' at site {site_code}' if site_code else ''} by {assigned_by}"
        )
        return assignment

    async def revoke_role(self, assignment_id: str, user_id: str, revoked_by: Optional[str] = None) -> RoleAssignment:
        """Soft-revoke an assignment and invalidate the user's cached permissions.

        Raises:
            AssignmentNotFoundError: If no assignment has this id
            StoreError: If the store write failed
        """
        payload = {"assignment_id": assignment_id, "user_id": user_id}
        async with self._track(revoked_by or user_id, "revoke_role", payload, entity_id=assignment_id):
            try:
                assignment = await self._data_service.revoke_role_assignment(assignment_id)
            finally:
                self._cache.invalidate(user_id)

            if assignment.user_id != user_id:
                logger.warning(
                    f"Assignment {assignment_id} belongs to user {assignment.user_id}, not {user_id}"
                )
                self._cache.invalidate(assignment.user_id)

        logger.info(f"Revoked assignment {assignment_id} (role {assignment.role_id}, user {assignment.user_id})")
        return assignment

    async def list_assignments(self, user_id: str) -> List[RoleAssignment]:
        """Active assignments of a user, including expired ones."""
        return await self._data_service.list_role_assignments(user_id)

    def _track(self, actor: str, action: str, payload: Dict[str, Any], entity_id: Optional[str] = None):
        if self._audit_log is None:
            return nullcontext(TrackedTransaction(tx_id="", entity_id=entity_id))
        return self._audit_log.track(
            user_id=actor,
            module_code=RBAC_MODULE_CODE,
            action=action,
            entity_type="role_assignment",
            payload=payload,
            entity_id=entity_id,
        )
