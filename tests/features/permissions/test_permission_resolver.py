"""Tests for permission resolution."""

import pytest

from ops_rbac.config.constants import SheetNames
from ops_rbac.features.data.repositories.sheets_data_service import SheetsDataService
from ops_rbac.features.permissions.cache.permission_cache import PermissionCache
from ops_rbac.features.permissions.services.permission_resolver import (
    PermissionResolver,
    parse_conditions,
)
from ops_rbac.features.storage.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig

from tests.conftest import FIXED_NOW, FailingStore


class TestParseConditions:
    def test_parse_conditions(self):
        assert parse_conditions('{"own_site_only": true}') == {"own_site_only": True}
        assert parse_conditions("{not json") == {}
        assert parse_conditions("[1, 2]") == {}
        assert parse_conditions(None) == {}


class TestRoleResolution:
    """Test effective role filtering."""

    @pytest.mark.asyncio
    async def test_only_effective_roles_returned(self, resolver):
        """Test expired, inactive-role and dangling assignments are ignored."""
        roles = await resolver.get_user_roles("u-bob")

        assert [role.role_code for role in roles] == ["VIEWER"]
        assert roles[0].site_code == "HQ"
        assert roles[0].assignment_id == "a-bob-viewer"

    @pytest.mark.asyncio
    async def test_inactive_assignment_ignored(self, resolver):
        roles = await resolver.get_user_roles("u-alice")
        assert [role.role_code for role in roles] == ["ADMIN"]

    @pytest.mark.asyncio
    async def test_has_role_and_is_admin(self, resolver):
        assert await resolver.has_role("u-bob", "VIEWER")
        assert not await resolver.has_role("u-bob", "RECRUITER")
        assert await resolver.is_admin("u-root")
        assert await resolver.is_admin("u-alice")
        assert not await resolver.is_admin("u-bob")
        assert not await resolver.is_admin("u-nobody")

    @pytest.mark.asyncio
    async def test_unparseable_expiry_treated_as_expired(self, resolver, memory_store):
        rows = memory_store.snapshot(SheetNames.ROLE_ASSIGNMENTS)
        rows.append(["a-carol", "u-carol", "r-viewer", "", "u-root", "", "next tuesday", "TRUE"])
        memory_store.seed(SheetNames.ROLE_ASSIGNMENTS, rows)

        assert await resolver.get_user_roles("u-carol") == []


class TestPermissionChecks:
    """Test permission and module checks."""

    @pytest.mark.asyncio
    async def test_user_without_roles_has_nothing(self, resolver):
        assert await resolver.get_user_permissions("u-carol") == []
        assert not await resolver.has_permission("u-carol", "*", "*")
        assert not await resolver.can_access_module("u-carol", "HR")
        assert await resolver.get_user_modules("u-carol") == []

    @pytest.mark.asyncio
    async def test_admin_grant(self, resolver):
        """Test an ADMIN with HR/create/* may create HR candidates and nothing in WMS."""
        assert await resolver.has_permission("u-alice", "HR", "create", "candidate")
        assert await resolver.has_permission("u-alice", "HR", "create")
        assert not await resolver.has_permission("u-alice", "HR", "delete")
        assert not await resolver.has_permission("u-alice", "WMS", "create")
        assert not await resolver.has_permission("u-alice", "WMS", "delete")

    @pytest.mark.asyncio
    async def test_wildcard_module_grants_everything(self, resolver):
        assert await resolver.has_permission("u-root", "PAYROLL", "approve", "run-42")
        assert await resolver.can_access_module("u-root", "ANYTHING")

    @pytest.mark.asyncio
    async def test_wildcard_modules_expand_to_active_modules(self, resolver):
        assert await resolver.get_user_modules("u-root") == ["WMS", "HR", "FIN"]

    @pytest.mark.asyncio
    async def test_modules_from_explicit_grants(self, resolver):
        assert await resolver.get_user_modules("u-alice") == ["HR"]
        assert await resolver.get_user_modules("u-bob") == ["HR", "WMS"]

    @pytest.mark.asyncio
    async def test_site_restricted_permissions(self, resolver):
        """Test permissions from a site assignment only apply at that site."""
        assert await resolver.has_permission("u-bob", "HR", "read", site_code="HQ")
        assert not await resolver.has_permission("u-bob", "HR", "read", site_code="BKK")
        assert await resolver.has_permission("u-bob", "HR", "read")
        assert await resolver.has_permission("u-alice", "HR", "create", site_code="BKK")

    @pytest.mark.asyncio
    async def test_resource_must_match(self, resolver):
        assert await resolver.has_permission("u-bob", "WMS", "read", "stock")
        assert not await resolver.has_permission("u-bob", "WMS", "read", "invoices")

    @pytest.mark.asyncio
    async def test_conditions_parsed(self, resolver):
        permissions = await resolver.get_user_permissions("u-bob")

        hr_read = next(p for p in permissions if p.module_code == "HR")
        assert hr_read.conditions == {"own_site_only": True}
        assert hr_read.is_global is False
        assert hr_read.site_codes == frozenset({"HQ"})

    @pytest.mark.asyncio
    async def test_duplicate_grants_merge_site_scope(self, resolver, memory_store):
        rows = memory_store.snapshot(SheetNames.ROLE_ASSIGNMENTS)
        rows.append(["a-bob-viewer-bkk", "u-bob", "r-viewer", "BKK", "u-root", "", "", "TRUE"])
        memory_store.seed(SheetNames.ROLE_ASSIGNMENTS, rows)

        permissions = await resolver.get_user_permissions("u-bob")

        assert len(permissions) == 2
        assert all(p.site_codes == frozenset({"HQ", "BKK"}) for p in permissions)


class TestCaching:
    """Test cache interaction."""

    @pytest.mark.asyncio
    async def test_cache_hit_avoids_store(self, resolver, memory_store):
        await resolver.get_user_permissions("u-alice")
        calls = memory_store.call_count

        assert await resolver.has_permission("u-alice", "HR", "create")
        assert memory_store.call_count == calls

    @pytest.mark.asyncio
    async def test_stale_until_ttl(self, resolver, memory_store, clock):
        """Test store changes appear once the cached entry expires."""
        assert await resolver.has_permission("u-alice", "HR", "create")

        rows = memory_store.snapshot(SheetNames.ROLE_ASSIGNMENTS)
        memory_store.seed(SheetNames.ROLE_ASSIGNMENTS, [r for r in rows if r[0] != "a-alice-admin"])

        assert await resolver.has_permission("u-alice", "HR", "create")
        clock.advance(300)
        assert not await resolver.has_permission("u-alice", "HR", "create")


class TestFailClosed:
    """Test that store failures deny access."""

    @pytest.fixture
    def failing_resolver(self, make_gateway, audit_log, clock):
        data_service = SheetsDataService(make_gateway(FailingStore()))
        cache = PermissionCache(ttl_seconds=300, clock=clock)
        return PermissionResolver(data_service, cache, audit_log=audit_log, now=lambda: FIXED_NOW)

    @pytest.mark.asyncio
    async def test_failures_deny(self, failing_resolver):
        assert not await failing_resolver.has_permission("u-root", "HR", "read")
        assert not await failing_resolver.can_access_module("u-root", "HR")
        assert not await failing_resolver.is_admin("u-root")
        assert await failing_resolver.get_user_roles("u-root") == []
        assert await failing_resolver.get_user_permissions("u-root") == []
        assert await failing_resolver.get_user_modules("u-root") == []

    @pytest.mark.asyncio
    async def test_failure_not_cached(self, failing_resolver):
        await failing_resolver.get_user_permissions("u-root")
        assert len(failing_resolver.cache) == 0

    @pytest.mark.asyncio
    async def test_failure_recorded_as_system_event(self, failing_resolver, audit_log, memory_store):
        await failing_resolver.has_permission("u-root", "HR", "read")
        await audit_log.drain()

        rows = memory_store.snapshot(SheetNames.SYSTEM_LOG)[1:]
        assert len(rows) == 1
        assert rows[0][2:6] == ["ERROR", "u-root", "", "get_user_permissions"]
        assert "StoreRequestError" in rows[0][7]

    @pytest.mark.asyncio
    async def test_failure_without_audit_log(self, make_gateway, cache):
        resolver = PermissionResolver(SheetsDataService(make_gateway(FailingStore())), cache)
        assert await resolver.get_user_permissions("u-root") == []

    @pytest.mark.asyncio
    async def test_open_circuit_denials_not_persisted(self, make_gateway, audit_log, memory_store, clock):
        """Test only the failure that opened the circuit becomes a system event."""
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=1, cooldown_seconds=60), clock=clock)
        data_service = SheetsDataService(make_gateway(FailingStore(), breaker=breaker))
        resolver = PermissionResolver(
            data_service, PermissionCache(ttl_seconds=300, clock=clock), audit_log=audit_log, now=lambda: FIXED_NOW
        )

        for _ in range(3):
            assert not await resolver.has_permission("u-root", "HR", "read")
        await audit_log.drain()

        rows = memory_store.snapshot(SheetNames.SYSTEM_LOG)[1:]
        assert len(rows) == 1
        assert "StoreRequestError" in rows[0][7]
