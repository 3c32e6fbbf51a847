"""User lifecycle driven by external sign-in.

Identity verification happens upstream; this service only records the
verified identity as a platform user and keeps its login timestamp fresh.
"""

import logging
from typing import Optional, Union

from ....config.constants import RBAC_MODULE_CODE, AuthProvider
from ....core.exceptions import UserInactiveError
from ....core.value_objects.identity import VerifiedIdentity
from ....utils.datetime import utc_now_iso
from ...audit.services.transaction_log import TransactionLogService
from ...data.entities.models import User
from ...data.entities.protocols import DataService
from ...permissions.cache.permission_cache import PermissionCache

logger = logging.getLogger(__name__)


class UserService:
    """Sign-in upsert and soft-disable of users."""

    def __init__(
        self,
        data_service: DataService,
        cache: Optional[PermissionCache] = None,
        audit_log: Optional[TransactionLogService] = None,
    ):
        self._data_service = data_service
        self._cache = cache
        self._audit_log = audit_log

    async def sync_signed_in_user(
        self,
        identity: VerifiedIdentity,
        auth_provider: Union[AuthProvider, str] = AuthProvider.GOOGLE,
    ) -> User:
        """Create the user on first sign-in, otherwise refresh ``last_login_at``.

        Users are keyed by the identity provider's id.

        Raises:
            UserInactiveError: If the user exists but has been disabled
            DuplicateEmailError: If a different user already holds the email
            StoreError: If the store read or write failed
        """
        user = await self._data_service.get_user_by_id(identity.user_id)

        if user is None:
            user = await self._data_service.create_user(
                email=identity.email,
                name=identity.name,
                auth_provider=AuthProvider(auth_provider),
                user_id=identity.user_id,
                is_active=True,
                last_login_at=utc_now_iso(),
            )
            logger.info(f"Registered user {user.user_id} on first sign-in")
            return user

        if not user.is_active:
            logger.warning(f"Rejected sign-in of disabled user {user.user_id}")
            raise UserInactiveError(
                f"User {user.user_id} is disabled",
                details={"user_id": user.user_id},
            )

        return await self._data_service.update_user(user.user_id, {"last_login_at": utc_now_iso()})

    async def deactivate_user(self, user_id: str, deactivated_by: Optional[str] = None) -> User:
        """Soft-disable a user. Users are never deleted.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        if self._audit_log is not None:
            async with self._audit_log.track(
                user_id=deactivated_by or user_id,
                module_code=RBAC_MODULE_CODE,
                action="deactivate_user",
                entity_type="user",
                entity_id=user_id,
            ):
                user = await self._data_service.update_user(user_id, {"is_active": False})
        else:
            user = await self._data_service.update_user(user_id, {"is_active": False})

        if self._cache is not None:
            self._cache.invalidate(user_id)
        logger.info(f"Deactivated user {user_id}")
        return user
