"""Tests for the storage gateway and retry policy."""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from ops_rbac.core.exceptions import CircuitOpenError, StoreRequestError, TransientStoreError
from ops_rbac.features.storage.adapters.memory_store import InMemorySheetStore
from ops_rbac.features.storage.entities.operations import ReadOperation, WriteOperation
from ops_rbac.features.storage.entities.ranges import RangeSpec
from ops_rbac.features.storage.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
)
from ops_rbac.features.storage.services.retry_policy import ErrorClassifier, RetryPolicy
from ops_rbac.features.storage.services.storage_gateway import StorageGateway

from tests.conftest import FailingStore


class FlakyStore(InMemorySheetStore):
    """Memory store whose reads fail a set number of times first."""

    def __init__(self, failures, error_factory=None):
        super().__init__({"USERS": [["user_id", "email"], ["u-1", "a@ops.test"]]})
        self.failures = failures
        self.error_factory = error_factory or (lambda: TransientStoreError("503 from store", status_code=503))
        self.read_calls = 0

    async def read(self, sheet, cells=None):
        self.read_calls += 1
        if self.read_calls <= self.failures:
            raise self.error_factory()
        return await super().read(sheet, cells)


class TestErrorClassifier:
    """Test transient error classification."""

    def test_transient_errors(self):
        request = httpx.Request("GET", "https://sheets.test")
        assert ErrorClassifier.is_transient(TransientStoreError("x"))
        assert ErrorClassifier.is_transient(asyncio.TimeoutError())
        assert ErrorClassifier.is_transient(ConnectionResetError())
        assert ErrorClassifier.is_transient(httpx.ConnectError("reset", request=request))
        assert ErrorClassifier.is_transient(
            httpx.HTTPStatusError("429", request=request, response=httpx.Response(429, request=request))
        )
        assert ErrorClassifier.is_transient(
            httpx.HTTPStatusError("502", request=request, response=httpx.Response(502, request=request))
        )

    def test_permanent_errors(self):
        request = httpx.Request("GET", "https://sheets.test")
        assert not ErrorClassifier.is_transient(StoreRequestError("bad range", status_code=400))
        assert not ErrorClassifier.is_transient(ValueError("bad"))
        assert not ErrorClassifier.is_transient(
            httpx.HTTPStatusError("404", request=request, response=httpx.Response(404, request=request))
        )


class TestRetryPolicy:
    """Test the fixed backoff schedule."""

    def test_default_schedule(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert [policy.calculate_delay(i) for i in (1, 2, 3)] == [200, 500, 1000]

    def test_last_delay_reused(self):
        policy = RetryPolicy(max_attempts=5, delays_ms=(100, 300))
        assert policy.calculate_delay(4) == 300

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestStorageGateway:
    """Test gateway retry and circuit breaker behaviour."""

    @pytest.mark.asyncio
    async def test_read_through_gateway(self, gateway):
        """Test a plain read returns header and data rows."""
        rows = await gateway.read("ROLES")

        assert rows[0][0] == "role_id"
        assert rows[1][:2] == ["r-super", "SUPER_ADMIN"]

    @pytest.mark.asyncio
    async def test_transient_failures_retried_with_fixed_delays(self, make_gateway, no_sleep):
        """Test two transient failures then success sleep 200ms and 500ms."""
        store = FlakyStore(failures=2)
        gateway = make_gateway(store)

        rows = await gateway.read("USERS")

        assert rows[1] == ["u-1", "a@ops.test"]
        assert store.read_calls == 3
        assert [call.args[0] for call in no_sleep.await_args_list] == [0.2, 0.5]

    @pytest.mark.asyncio
    async def test_retried_success_counts_as_one_success(self, make_gateway):
        """Test breaker accounting happens once per call."""
        gateway = make_gateway(FlakyStore(failures=2))

        await gateway.read("USERS")

        stats = gateway.get_stats()["circuit_breaker"]
        assert stats["total_calls"] == 1
        assert stats["total_failures"] == 0

    @pytest.mark.asyncio
    async def test_transient_failures_surface_after_three_attempts(self, make_gateway):
        """Test exhausted retries surface the transient error as one failure."""
        store = FlakyStore(failures=10)
        gateway = make_gateway(store)

        with pytest.raises(TransientStoreError):
            await gateway.read("USERS")

        assert store.read_calls == 3
        assert gateway.get_stats()["circuit_breaker"]["consecutive_failures"] == 1

    @pytest.mark.asyncio
    async def test_permanent_failure_not_retried(self, make_gateway, no_sleep):
        """Test non-transient errors propagate immediately."""
        store = FlakyStore(failures=1, error_factory=lambda: StoreRequestError("bad", status_code=400))
        gateway = make_gateway(store)

        with pytest.raises(StoreRequestError):
            await gateway.read("USERS")

        assert store.read_calls == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, no_sleep):
        """Test a hanging attempt times out and is retried."""

        class HangingStore(InMemorySheetStore):
            calls = 0

            async def read(self, sheet, cells=None):
                HangingStore.calls += 1
                await asyncio.sleep(10)

        gateway = StorageGateway(HangingStore(), timeout_seconds=0.01, sleep=no_sleep)

        with pytest.raises(TransientStoreError, match="timed out"):
            await gateway.read("USERS")
        assert HangingStore.calls == 3

    @pytest.mark.asyncio
    async def test_sixth_call_fails_fast_without_store_access(self, make_gateway, clock):
        """Test five failed calls open the circuit and the sixth never reaches the store."""
        store = FailingStore(TransientStoreError("503", status_code=503))
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5, cooldown_seconds=60), clock=clock)
        gateway = make_gateway(store, breaker)

        for _ in range(5):
            with pytest.raises(TransientStoreError):
                await gateway.read("USERS")
        calls_before = store.calls

        with pytest.raises(CircuitOpenError):
            await gateway.read("USERS")

        assert store.calls == calls_before == 15
        assert gateway.circuit_state == CircuitBreakerState.OPEN

    @pytest.mark.asyncio
    async def test_probe_after_cooldown_reaches_store_once(self, make_gateway, clock):
        """Test exactly one probing call after the cool-down."""
        store = FailingStore(StoreRequestError("down", status_code=400))
        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5, cooldown_seconds=60), clock=clock)
        gateway = make_gateway(store, breaker)

        for _ in range(5):
            with pytest.raises(StoreRequestError):
                await gateway.read("USERS")
        clock.advance(60)

        with pytest.raises(StoreRequestError):
            await gateway.read("USERS")
        with pytest.raises(CircuitOpenError):
            await gateway.read("USERS")

        assert store.calls == 6

    @pytest.mark.asyncio
    async def test_execute_write_operation(self, gateway, memory_store):
        """Test executing an explicit operation object."""
        await gateway.execute(WriteOperation(range=RangeSpec("ROLES", "D3"), rows=[["Site admins"]]))

        rows = await gateway.execute(ReadOperation(range=RangeSpec("ROLES", "A3:D3")))
        assert rows == [["r-admin", "ADMIN", "Admin", "Site admins"]]

    @pytest.mark.asyncio
    async def test_batch_read_keys_by_range(self, gateway):
        """Test batch reads return rows per requested range."""
        result = await gateway.batch_read([RangeSpec("ROLES", "B2:B3"), RangeSpec("MODULES", "B2")])

        assert result == {"ROLES!B2:B3": [["SUPER_ADMIN"], ["ADMIN"]], "MODULES!B2": [["HR"]]}

    @pytest.mark.asyncio
    async def test_clear_range(self, gateway):
        """Test clearing a range blanks its cells."""
        await gateway.clear("SYSTEM_LOG")
        await gateway.append("SYSTEM_LOG", [["l-1", "now", "INFO"]])
        await gateway.clear("SYSTEM_LOG", "C1:C1")

        assert await gateway.read("SYSTEM_LOG") == [["l-1", "now"]]

    @pytest.mark.asyncio
    async def test_injected_sleep_used_for_backoff(self):
        """Test the gateway uses the injected sleep."""
        sleep = AsyncMock()
        gateway = StorageGateway(FlakyStore(failures=1), sleep=sleep)

        await gateway.read("USERS")

        sleep.assert_awaited_once_with(0.2)
