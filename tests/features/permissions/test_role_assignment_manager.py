"""Tests for role assignment mutations."""

import asyncio
from datetime import datetime, timezone

import pytest

from ops_rbac.config.constants import SheetNames
from ops_rbac.core.exceptions import (
    AssignmentNotFoundError,
    RoleNotFoundError,
    StoreRequestError,
    UserNotFoundError,
)
from ops_rbac.features.data.repositories.sheets_data_service import SheetsDataService
from ops_rbac.features.permissions.cache.permission_cache import PermissionCache
from ops_rbac.features.permissions.services.permission_resolver import PermissionResolver
from ops_rbac.features.permissions.services.role_assignment_manager import RoleAssignmentManager
from ops_rbac.features.storage.adapters.memory_store import InMemorySheetStore

from tests.conftest import FIXED_NOW, FUTURE, PAST, FailingStore, seed_sheets


class GatedRolesStore(InMemorySheetStore):
    """Memory store that holds the first read of the roles sheet until released."""

    def __init__(self, sheets):
        super().__init__(sheets)
        self.reached = asyncio.Event()
        self.release = asyncio.Event()
        self._held = False

    async def read(self, sheet, cells=None):
        if sheet == SheetNames.ROLES and not self._held:
            self._held = True
            self.reached.set()
            await self.release.wait()
        return await super().read(sheet, cells)


class TestAssignRole:
    """Test granting roles."""

    @pytest.mark.asyncio
    async def test_assignment_visible_immediately(self, manager, resolver):
        """Test a grant invalidates the cached (empty) permissions."""
        assert not await resolver.has_permission("u-carol", "HR", "create")

        await manager.assign_role("u-carol", "r-admin", assigned_by="u-root")

        assert await resolver.has_permission("u-carol", "HR", "create", "candidate")

    @pytest.mark.asyncio
    async def test_expired_assignment_excluded(self, manager, resolver):
        """Test a grant whose expiry already passed confers nothing."""
        await manager.assign_role("u-carol", "r-viewer", assigned_by="u-root", site_code="HQ", expires_at=PAST)

        assert not await resolver.has_permission("u-carol", "HR", "read", site_code="HQ")
        assert await resolver.get_user_roles("u-carol") == []

    @pytest.mark.asyncio
    async def test_datetime_expiry_formatted(self, manager):
        assignment = await manager.assign_role(
            "u-carol", "r-viewer", assigned_by="u-root",
            expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )

        assert assignment.expires_at == FUTURE

    @pytest.mark.asyncio
    async def test_malformed_conditions_become_empty(self, manager, resolver):
        await manager.assign_role("u-carol", "r-recruiter", assigned_by="u-root")

        permissions = await resolver.get_user_permissions("u-carol")

        assert len(permissions) == 1
        assert permissions[0].conditions == {}
        assert permissions[0].matches("HR", "approve", "candidate")

    @pytest.mark.asyncio
    async def test_assignment_logged_as_transaction(self, manager, memory_store):
        assignment = await manager.assign_role("u-carol", "r-viewer", assigned_by="u-root", site_code="HQ")

        rows = memory_store.snapshot(SheetNames.TRANSACTION_LOG)[1:]
        assert len(rows) == 1
        assert rows[0][1:7] == ["u-root", "RBAC", "assign_role", "role_assignment", assignment.assignment_id, "SUCCESS"]

    @pytest.mark.asyncio
    async def test_unknown_user_rejected(self, manager, memory_store):
        with pytest.raises(UserNotFoundError):
            await manager.assign_role("u-nobody", "r-viewer", assigned_by="u-root")

        rows = memory_store.snapshot(SheetNames.TRANSACTION_LOG)[1:]
        assert rows[0][6] == "FAILED"
        assert "u-nobody" in rows[0][8]

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, manager, data_service):
        with pytest.raises(RoleNotFoundError):
            await manager.assign_role("u-carol", "r-nope", assigned_by="u-root")

        assert await data_service.list_role_assignments("u-carol") == []

    @pytest.mark.asyncio
    async def test_cache_invalidated_when_write_fails(self, make_gateway, cache):
        """Test the user's entry is dropped even if the store write raises."""
        cache.put("u-carol", [])
        manager = RoleAssignmentManager(SheetsDataService(make_gateway(FailingStore())), cache)

        with pytest.raises(StoreRequestError):
            await manager.assign_role("u-carol", "r-viewer", assigned_by="u-root")

        assert cache.get("u-carol") is None


class TestRevokeRole:
    """Test revoking roles."""

    @pytest.mark.asyncio
    async def test_revocation_visible_immediately(self, manager, resolver):
        assert await resolver.is_admin("u-alice")

        revoked = await manager.revoke_role("a-alice-admin", "u-alice", revoked_by="u-root")

        assert revoked.is_active is False
        assert not await resolver.is_admin("u-alice")
        assert not await resolver.has_permission("u-alice", "HR", "create")

    @pytest.mark.asyncio
    async def test_revocation_during_resolution_not_undone(self, make_gateway, clock):
        """Test a resolution that read assignments before a revoke does not cache its result."""
        store = GatedRolesStore(seed_sheets())
        data_service = SheetsDataService(make_gateway(store))
        cache = PermissionCache(ttl_seconds=300, clock=clock)
        resolver = PermissionResolver(data_service, cache, now=lambda: FIXED_NOW)
        manager = RoleAssignmentManager(data_service, cache)

        in_flight = asyncio.ensure_future(resolver.get_user_permissions("u-alice"))
        await store.reached.wait()
        await manager.revoke_role("a-alice-admin", "u-alice")
        store.release.set()

        stale = await in_flight
        assert [(p.module_code, p.action) for p in stale] == [("HR", "create")]
        assert cache.get("u-alice") is None
        assert not await resolver.has_permission("u-alice", "HR", "create")

    @pytest.mark.asyncio
    async def test_owner_cache_invalidated_on_user_mismatch(self, manager, resolver):
        await resolver.get_user_permissions("u-alice")

        await manager.revoke_role("a-alice-admin", "u-bob")

        assert resolver.cache.get("u-alice") is None

    @pytest.mark.asyncio
    async def test_unknown_assignment(self, manager):
        with pytest.raises(AssignmentNotFoundError):
            await manager.revoke_role("a-nope", "u-alice")

    @pytest.mark.asyncio
    async def test_list_assignments(self, manager):
        assignments = await manager.list_assignments("u-bob")

        assert {a.assignment_id for a in assignments} == {
            "a-bob-viewer", "a-bob-recruiter", "a-bob-legacy", "a-bob-ghost",
        }
