"""Storage gateway: the only component that talks to the remote store.

Every operation goes through the circuit breaker, and each call the breaker
lets through is retried under the retry policy with a per-attempt timeout.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from ....config.constants import CircuitDefaults
from ....core.exceptions import TransientStoreError
from ..entities.operations import (
    AppendOperation,
    BatchReadOperation,
    ClearOperation,
    ReadOperation,
    StoreOperation,
    WriteOperation,
)
from ..entities.protocols import RemoteStore, Rows
from ..entities.ranges import RangeSpec
from .circuit_breaker import CircuitBreaker, CircuitBreakerState
from .retry_policy import RetryPolicy, retry_with_backoff

logger = logging.getLogger(__name__)


class StorageGateway:
    """Resilient wrapper around a RemoteStore."""

    def __init__(
        self,
        store: RemoteStore,
        circuit_breaker: Optional[CircuitBreaker] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = CircuitDefaults.REQUEST_TIMEOUT_SECONDS,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """Initialize storage gateway.

        Args:
            store: Remote store implementation
            circuit_breaker: Breaker shared by all calls (a default one is created if None)
            retry_policy: Retry policy for transient failures
            timeout_seconds: Upper bound for a single attempt
            sleep: Backoff sleep, injectable for tests
        """
        self._store = store
        self._breaker = circuit_breaker or CircuitBreaker()
        self._retry_policy = retry_policy or RetryPolicy()
        self._timeout_seconds = timeout_seconds
        self._sleep = sleep

    @property
    def store(self) -> RemoteStore:
        return self._store

    @property
    def circuit_state(self) -> CircuitBreakerState:
        return self._breaker.state

    def get_stats(self) -> Dict[str, Any]:
        """Breaker and retry configuration snapshot for monitoring."""
        return {
            "circuit_breaker": self._breaker.get_stats(),
            "retry_policy": self._retry_policy.to_dict(),
            "timeout_seconds": self._timeout_seconds,
        }

    async def execute(self, operation: StoreOperation) -> Any:
        """Execute a store operation under circuit breaker and retry policy.

        Raises:
            CircuitOpenError: If the circuit is open
            TransientStoreError: If transient failures outlast the retries
            StoreError: For non-retryable store failures
        """
        operation_name = f"{operation.operation_type.value}({operation.target})"

        async def attempt() -> Any:
            try:
                return await asyncio.wait_for(operation.apply(self._store), timeout=self._timeout_seconds)
            except asyncio.TimeoutError as e:
                raise TransientStoreError(
                    f"{operation_name} timed out after {self._timeout_seconds}s"
                ) from e

        async def guarded() -> Any:
            return await retry_with_backoff(attempt, self._retry_policy, operation_name, self._sleep)

        logger.debug(f"Executing {operation_name}")
        return await self._breaker.call(guarded)

    # Convenience wrappers

    async def read(self, sheet: str, cells: Optional[str] = None) -> Rows:
        return await self.execute(ReadOperation(range=RangeSpec(sheet, cells)))

    async def write(self, sheet: str, cells: str, rows: Sequence[Sequence[Any]]) -> None:
        await self.execute(WriteOperation(range=RangeSpec(sheet, cells), rows=rows))

    async def append(self, sheet: str, rows: Sequence[Sequence[Any]]) -> None:
        await self.execute(AppendOperation(sheet=sheet, rows=rows))

    async def batch_read(self, ranges: Sequence[RangeSpec]) -> Dict[str, Rows]:
        return await self.execute(BatchReadOperation(ranges=tuple(ranges)))

    async def clear(self, sheet: str, cells: Optional[str] = None) -> None:
        await self.execute(ClearOperation(range=RangeSpec(sheet, cells)))
