"""Pytest configuration and fixtures for ops-rbac tests."""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from unittest.mock import AsyncMock

import pytest

from ops_rbac.config.constants import SheetColumns, SheetNames
from ops_rbac.core.exceptions import StoreRequestError
from ops_rbac.features.audit.services.transaction_log import TransactionLogService
from ops_rbac.features.data.repositories.sheets_data_service import SheetsDataService
from ops_rbac.features.permissions.cache.permission_cache import PermissionCache
from ops_rbac.features.permissions.services.permission_resolver import PermissionResolver
from ops_rbac.features.permissions.services.role_assignment_manager import RoleAssignmentManager
from ops_rbac.features.storage.adapters.memory_store import InMemorySheetStore
from ops_rbac.features.storage.entities.protocols import RemoteStore
from ops_rbac.features.storage.services.circuit_breaker import CircuitBreaker
from ops_rbac.features.storage.services.retry_policy import RetryPolicy
from ops_rbac.features.storage.services.storage_gateway import StorageGateway

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
PAST = "2020-01-01T00:00:00.000Z"
FUTURE = "2030-01-01T00:00:00.000Z"
CREATED = "2025-01-01T00:00:00.000Z"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FailingStore(RemoteStore):
    """RemoteStore whose every call raises."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or StoreRequestError("store unavailable", status_code=400)
        self.calls = 0

    async def _fail(self):
        self.calls += 1
        raise self.error

    async def read(self, sheet, cells=None):
        await self._fail()

    async def write(self, sheet, cells, rows):
        await self._fail()

    async def append(self, sheet, rows):
        await self._fail()

    async def batch_read(self, ranges):
        await self._fail()

    async def clear(self, sheet, cells=None):
        await self._fail()


def sheet(name: str, rows: Sequence[Sequence[str]] = ()) -> List[List[str]]:
    """Header row plus data rows for a sheet."""
    return [list(SheetColumns.for_sheet(name))] + [list(row) for row in rows]


def seed_sheets() -> Dict[str, List[List[str]]]:
    """Sample RBAC data: users, roles, grants, assignments and site config."""
    return {
        SheetNames.USERS: sheet(SheetNames.USERS, [
            ["u-root", "root@ops.test", "Root", "google", "TRUE", CREATED, CREATED, "", ""],
            ["u-alice", "Alice@Ops.test", "Alice", "google", "TRUE", CREATED, CREATED, "", '{"team":"hr"}'],
            ["u-bob", "bob@ops.test", "Bob", "email", "TRUE", CREATED, CREATED],
            ["u-carol", "carol@ops.test", "Carol", "google", "TRUE", CREATED, CREATED],
            ["u-gone", "gone@ops.test", "Gone", "sso", "FALSE", CREATED, CREATED],
        ]),
        SheetNames.ROLES: sheet(SheetNames.ROLES, [
            ["r-super", "SUPER_ADMIN", "Super Admin", "Everything", "TRUE", CREATED, CREATED],
            ["r-admin", "ADMIN", "Admin", "", "TRUE", CREATED, CREATED],
            ["r-viewer", "VIEWER", "Viewer", "", "TRUE", CREATED, CREATED],
            ["r-recruiter", "RECRUITER", "Recruiter", "", "TRUE", CREATED, CREATED],
            ["r-legacy", "LEGACY", "Legacy", "", "false", CREATED, CREATED],
        ]),
        SheetNames.MODULES: sheet(SheetNames.MODULES, [
            ["m-hr", "HR", "Human Resources", "", "users", "/hr", "TRUE", "2", CREATED, CREATED],
            ["m-wms", "WMS", "Warehouse", "", "box", "/wms", "TRUE", "1", CREATED, CREATED],
            ["m-fin", "FIN", "Finance", "", "coins", "/fin", "TRUE", "3", CREATED, CREATED],
            ["m-old", "OLD", "Retired", "", "", "/old", "FALSE", "0", CREATED, CREATED],
        ]),
        SheetNames.PERMISSIONS: sheet(SheetNames.PERMISSIONS, [
            ["p-all", "r-super", "*", "*", "*", "", "TRUE", CREATED, CREATED],
            ["p-hr-create", "r-admin", "HR", "create", "*", "", "TRUE", CREATED, CREATED],
            ["p-wms-delete", "r-admin", "WMS", "delete", "*", "", "FALSE", CREATED, CREATED],
            ["p-hr-read", "r-viewer", "HR", "read", "*", '{"own_site_only": true}', "TRUE", CREATED, CREATED],
            ["p-wms-read", "r-viewer", "WMS", "read", "stock", "", "TRUE", CREATED, CREATED],
            ["p-candidate", "r-recruiter", "HR", "*", "candidate", "{not json", "TRUE", CREATED, CREATED],
            ["p-fin", "r-legacy", "FIN", "read", "*", "", "TRUE", CREATED, CREATED],
        ]),
        SheetNames.ROLE_ASSIGNMENTS: sheet(SheetNames.ROLE_ASSIGNMENTS, [
            ["a-root", "u-root", "r-super", "", "system", CREATED, "", "TRUE"],
            ["a-alice-admin", "u-alice", "r-admin", "", "u-root", CREATED, "", "TRUE"],
            ["a-alice-viewer", "u-alice", "r-viewer", "", "u-root", CREATED, "", "FALSE"],
            ["a-bob-viewer", "u-bob", "r-viewer", "HQ", "u-root", CREATED, FUTURE, "TRUE"],
            ["a-bob-recruiter", "u-bob", "r-recruiter", "HQ", "u-root", CREATED, PAST, "TRUE"],
            ["a-bob-legacy", "u-bob", "r-legacy", "", "u-root", CREATED, "", "TRUE"],
            ["a-bob-ghost", "u-bob", "r-deleted", "", "u-root", CREATED, "", "TRUE"],
        ]),
        SheetNames.SITE_CONFIG: sheet(SheetNames.SITE_CONFIG, [
            ["c-1", "HQ", "max_shift_hours", "8", "number", "", "TRUE", CREATED, CREATED],
            ["c-2", "HQ", "overtime_rate", "1.5", "number", "", "TRUE", CREATED, CREATED],
            ["c-3", "HQ", "night_shift", "true", "boolean", "", "TRUE", CREATED, CREATED],
            ["c-4", "HQ", "theme", '{"color": "blue"}', "json", "", "TRUE", CREATED, CREATED],
            ["c-5", "HQ", "timezone", "Asia/Bangkok", "string", "", "TRUE", CREATED, CREATED],
            ["c-6", "HQ", "broken", "abc", "number", "", "TRUE", CREATED, CREATED],
            ["c-7", "HQ", "retired", "1", "number", "", "FALSE", CREATED, CREATED],
            ["c-8", "BKK", "timezone", "Asia/Bangkok", "string", "", "TRUE", CREATED, CREATED],
        ]),
        SheetNames.TRANSACTION_LOG: sheet(SheetNames.TRANSACTION_LOG),
        SheetNames.SYSTEM_LOG: sheet(SheetNames.SYSTEM_LOG),
    }


@pytest.fixture
def clock():
    """Manually advanced clock for breaker and cache tests."""
    return FakeClock()


@pytest.fixture
def no_sleep():
    """Backoff sleep that returns immediately."""
    return AsyncMock()


@pytest.fixture
def memory_store():
    """In-memory store seeded with sample RBAC data."""
    return InMemorySheetStore(seed_sheets())


@pytest.fixture
def make_gateway(no_sleep):
    """Build a gateway over any store with instant retries."""

    def _make(store: RemoteStore, breaker: Optional[CircuitBreaker] = None) -> StorageGateway:
        return StorageGateway(
            store,
            circuit_breaker=breaker or CircuitBreaker(),
            retry_policy=RetryPolicy(max_attempts=3, delays_ms=(200, 500, 1000)),
            timeout_seconds=1.0,
            sleep=no_sleep,
        )

    return _make


@pytest.fixture
def gateway(make_gateway, memory_store):
    return make_gateway(memory_store)


@pytest.fixture
def data_service(gateway):
    return SheetsDataService(gateway)


@pytest.fixture
def cache(clock):
    return PermissionCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def audit_log(data_service):
    return TransactionLogService(data_service)


@pytest.fixture
def resolver(data_service, cache, audit_log):
    return PermissionResolver(data_service, cache, audit_log=audit_log, now=lambda: FIXED_NOW)


@pytest.fixture
def manager(data_service, cache, audit_log):
    return RoleAssignmentManager(data_service, cache, audit_log=audit_log)
