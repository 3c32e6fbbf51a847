"""Sheets-backed implementation of the DataService contract.

Every sheet holds one entity type with a header in row 1. Lookups scan the
full sheet; updates locate the first row whose id matches and overwrite that
row by its 1-based position. Writes to a sheet are serialized through a
per-sheet lock so that a scan and the write that depends on it cannot
interleave with another in-process writer of the same sheet.
"""

import asyncio
import dataclasses
import functools
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from ....config.constants import (
    HEADER_ROWS,
    AuthProvider,
    SheetColumns,
    SheetNames,
    SystemLogLevel,
    TransactionStatus,
)
from ....core.exceptions import (
    AssignmentNotFoundError,
    DuplicateEmailError,
    NotFoundError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from ....utils.datetime import utc_now_iso
from ....utils.ids import generate_id
from ...storage.entities.ranges import RangeSpec
from ...storage.services.storage_gateway import StorageGateway
from ..entities.models import (
    Module,
    Permission,
    Role,
    RoleAssignment,
    SiteConfig,
    SystemLogEntry,
    TransactionLogEntry,
    User,
)
from ..entities.protocols import DataService
from . import row_mappers

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Fields an update may never change
_USER_IMMUTABLE_FIELDS = frozenset({"user_id", "created_at", "updated_at"})
_TRANSACTION_IMMUTABLE_FIELDS = frozenset({"tx_id", "started_at"})


class SheetsDataService(DataService):
    """DataService over the storage gateway."""

    def __init__(self, gateway: StorageGateway):
        self._gateway = gateway
        self._sheet_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # Row plumbing

    async def _read_rows(self, sheet: str) -> List[Tuple[int, Sequence[Any]]]:
        """Data rows of a sheet with their 1-based positions, blank rows skipped."""
        rows = await self._gateway.read(sheet)
        return [
            (index + HEADER_ROWS + 1, row)
            for index, row in enumerate(rows[HEADER_ROWS:])
            if any(cell not in (None, "") for cell in row)
        ]

    async def _list(self, sheet: str, from_row: Callable[[Sequence[Any]], T]) -> List[T]:
        return [from_row(row) for _, row in await self._read_rows(sheet)]

    async def _append(self, sheet: str, row: List[str]) -> None:
        async with self._sheet_locks[sheet]:
            await self._gateway.append(sheet, [row])

    async def _update_first(
        self,
        sheet: str,
        from_row: Callable[[Sequence[Any]], T],
        to_row: Callable[[T], List[str]],
        matches: Callable[[T], bool],
        apply: Callable[[T], T],
        not_found: NotFoundError,
        validate: Optional[Callable[[List[T]], None]] = None,
    ) -> T:
        """Rewrite the first row matching ``matches`` with ``apply(entity)``.

        ``validate`` sees every entity of the sheet under the lock and may
        raise to abort the write.
        """
        async with self._sheet_locks[sheet]:
            rows = await self._read_rows(sheet)
            if validate is not None:
                validate([from_row(row) for _, row in rows])
            for position, row in rows:
                entity = from_row(row)
                if not matches(entity):
                    continue
                updated = apply(entity)
                target = RangeSpec.for_row(sheet, position, len(SheetColumns.for_sheet(sheet)))
                await self._gateway.write(sheet, target.cells, [to_row(updated)])
                logger.debug(f"Rewrote {target.a1}")
                return updated
        raise not_found

    @staticmethod
    def _checked_updates(updates: Dict[str, Any], entity_type: type, immutable: frozenset) -> Dict[str, Any]:
        known = {f.name for f in dataclasses.fields(entity_type)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown {entity_type.__name__} fields: {sorted(unknown)}")
        return {key: value for key, value in updates.items() if key not in immutable}

    @staticmethod
    def _ensure_email_free(users: List[User], email: str, user_id: Optional[str] = None) -> None:
        normalized = email.strip().lower()
        for existing in users:
            if existing.user_id != user_id and existing.email.strip().lower() == normalized:
                raise DuplicateEmailError(email, existing.user_id)

    # Users

    async def list_users(self) -> List[User]:
        return await self._list(SheetNames.USERS, row_mappers.user_from_row)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        users = await self.list_users()
        return next((u for u in users if u.user_id == user_id), None)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        email = email.strip().lower()
        users = await self.list_users()
        return next((u for u in users if u.email.strip().lower() == email), None)

    async def create_user(
        self,
        email: str,
        name: str = "",
        auth_provider: AuthProvider = AuthProvider.GOOGLE,
        user_id: Optional[str] = None,
        is_active: bool = True,
        last_login_at: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> User:
        timestamp = utc_now_iso()
        user = User(
            user_id=user_id or generate_id(),
            email=email,
            name=name,
            auth_provider=auth_provider,
            is_active=is_active,
            created_at=timestamp,
            updated_at=timestamp,
            last_login_at=last_login_at,
            metadata=metadata or {},
        )
        async with self._sheet_locks[SheetNames.USERS]:
            self._ensure_email_free(await self.list_users(), email)
            await self._gateway.append(SheetNames.USERS, [row_mappers.user_to_row(user)])
        logger.info(f"Created user {user.user_id} ({user.email})")
        return user

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        changes = self._checked_updates(updates, User, _USER_IMMUTABLE_FIELDS)
        validate = None
        if "email" in changes:
            validate = functools.partial(self._ensure_email_free, email=changes["email"], user_id=user_id)
        return await self._update_first(
            SheetNames.USERS,
            row_mappers.user_from_row,
            row_mappers.user_to_row,
            matches=lambda user: user.user_id == user_id,
            apply=lambda user: dataclasses.replace(user, **changes, updated_at=utc_now_iso()),
            not_found=UserNotFoundError(user_id),
            validate=validate,
        )

    # Roles

    async def list_roles(self) -> List[Role]:
        return await self._list(SheetNames.ROLES, row_mappers.role_from_row)

    async def get_role_by_id(self, role_id: str) -> Optional[Role]:
        roles = await self.list_roles()
        return next((r for r in roles if r.role_id == role_id), None)

    async def get_role_by_code(self, role_code: str) -> Optional[Role]:
        roles = await self.list_roles()
        return next((r for r in roles if r.role_code == role_code), None)

    # Role assignments

    async def list_role_assignments(self, user_id: str) -> List[RoleAssignment]:
        assignments = await self._list(SheetNames.ROLE_ASSIGNMENTS, row_mappers.assignment_from_row)
        return [a for a in assignments if a.user_id == user_id and a.is_active]

    async def create_role_assignment(
        self,
        user_id: str,
        role_id: str,
        assigned_by: str,
        site_code: Optional[str] = None,
        expires_at: Optional[str] = None,
    ) -> RoleAssignment:
        assignment = RoleAssignment(
            assignment_id=generate_id(),
            user_id=user_id,
            role_id=role_id,
            site_code=site_code or None,
            assigned_by=assigned_by,
            assigned_at=utc_now_iso(),
            expires_at=expires_at or None,
            is_active=True,
        )
        await self._append(SheetNames.ROLE_ASSIGNMENTS, row_mappers.assignment_to_row(assignment))
        return assignment

    async def revoke_role_assignment(self, assignment_id: str) -> RoleAssignment:
        return await self._update_first(
            SheetNames.ROLE_ASSIGNMENTS,
            row_mappers.assignment_from_row,
            row_mappers.assignment_to_row,
            matches=lambda assignment: assignment.assignment_id == assignment_id,
            apply=lambda assignment: dataclasses.replace(assignment, is_active=False),
            not_found=AssignmentNotFoundError(assignment_id),
        )

    # Modules

    async def list_modules(self) -> List[Module]:
        return await self._list(SheetNames.MODULES, row_mappers.module_from_row)

    async def list_active_modules(self) -> List[Module]:
        modules = await self.list_modules()
        return sorted((m for m in modules if m.is_active), key=lambda m: m.sort_order)

    # Permissions

    async def list_permissions_by_role(self, role_id: str) -> List[Permission]:
        permissions = await self.list_all_permissions()
        return [p for p in permissions if p.role_id == role_id]

    async def list_all_permissions(self) -> List[Permission]:
        permissions = await self._list(SheetNames.PERMISSIONS, row_mappers.permission_from_row)
        return [p for p in permissions if p.is_active]

    # Site config

    async def list_site_config(self, site_code: str) -> List[SiteConfig]:
        configs = await self._list(SheetNames.SITE_CONFIG, row_mappers.site_config_from_row)
        return [c for c in configs if c.site_code == site_code and c.is_active]

    async def get_config_value(self, site_code: str, key: str) -> Optional[str]:
        for config in await self.list_site_config(site_code):
            if config.config_key == key:
                return config.config_value or None
        return None

    # Transaction log

    async def create_transaction_log(
        self,
        user_id: str,
        module_code: str,
        action: str,
        entity_type: str,
        payload: Optional[Dict[str, Any]] = None,
        entity_id: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> TransactionLogEntry:
        entry = TransactionLogEntry(
            tx_id=generate_id(),
            user_id=user_id,
            module_code=module_code,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            status=status,
            payload=payload or {},
            started_at=utc_now_iso(),
        )
        await self._append(SheetNames.TRANSACTION_LOG, row_mappers.transaction_to_row(entry))
        return entry

    async def update_transaction_log(self, tx_id: str, updates: Dict[str, Any]) -> TransactionLogEntry:
        changes = self._checked_updates(updates, TransactionLogEntry, _TRANSACTION_IMMUTABLE_FIELDS)
        return await self._update_first(
            SheetNames.TRANSACTION_LOG,
            row_mappers.transaction_from_row,
            row_mappers.transaction_to_row,
            matches=lambda entry: entry.tx_id == tx_id,
            apply=lambda entry: dataclasses.replace(entry, **changes),
            not_found=TransactionNotFoundError(tx_id),
        )

    # System log

    async def create_system_log(
        self,
        level: SystemLogLevel,
        message: str,
        user_id: Optional[str] = None,
        module_code: Optional[str] = None,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SystemLogEntry:
        entry = SystemLogEntry(
            log_id=generate_id(),
            timestamp=utc_now_iso(),
            level=level,
            message=message,
            user_id=user_id,
            module_code=module_code,
            action=action,
            details=details or {},
            correlation_id=correlation_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await self._append(SheetNames.SYSTEM_LOG, row_mappers.system_log_to_row(entry))
        return entry
