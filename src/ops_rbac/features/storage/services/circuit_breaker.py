"""Circuit breaker guarding calls to the remote store.

Stops calling a failing store for a cool-down period after repeated failures
so callers fail fast instead of piling onto a rate-limited backend.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ....config.constants import CircuitDefaults
from ....core.exceptions import CircuitOpenError

logger = logging.getLogger(__name__)


class CircuitBreakerState(Enum):
    """Circuit breaker states following standard pattern."""
    CLOSED = "closed"        # Normal operation, requests allowed
    OPEN = "open"            # Circuit open, requests blocked
    HALF_OPEN = "half_open"  # One probe request testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    failure_threshold: int = CircuitDefaults.FAILURE_THRESHOLD  # Consecutive failures to open circuit
    cooldown_seconds: float = CircuitDefaults.COOLDOWN_SECONDS  # How long circuit stays open

    def __post_init__(self):
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.cooldown_seconds < 0:
            raise ValueError("cooldown_seconds must be non-negative")


@dataclass
class CircuitBreakerStats:
    """Circuit breaker statistics for monitoring and debugging."""

    state: CircuitBreakerState = CircuitBreakerState.CLOSED
    consecutive_failures: int = 0
    total_calls: int = 0
    total_failures: int = 0
    total_rejections: int = 0
    last_failure_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    state_changed_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
            "total_rejections": self.total_rejections,
            "last_failure_time": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "last_success_time": self.last_success_time.isoformat() if self.last_success_time else None,
            "state_changed_time": self.state_changed_time.isoformat(),
        }


class CircuitBreaker:
    """Three-state circuit breaker.

    - CLOSED: calls pass; consecutive failures are counted and the circuit
      opens when they reach the threshold.
    - OPEN: calls fail immediately with CircuitOpenError until the cool-down
      elapses; the first call after that becomes the probe.
    - HALF_OPEN: exactly one probe is in flight; its success closes the
      circuit, its failure re-opens it with a fresh cool-down. Other calls
      fail fast while the probe runs.

    Accounting happens once per call. The guarded coroutine runs in its own
    task and callers await it through ``asyncio.shield``, so a caller that
    gives up waiting does not lose the outcome of a call that completed.
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "remote-store",
    ):
        """Initialize circuit breaker.

        Args:
            config: Thresholds (defaults: 5 failures, 60s cool-down)
            clock: Monotonic clock in seconds, injectable for tests
            name: Name used in log messages
        """
        self._config = config or CircuitBreakerConfig()
        self._clock = clock
        self._name = name
        self._stats = CircuitBreakerStats()
        self._lock = asyncio.Lock()
        self._opened_at: Optional[float] = None
        self._probe_in_flight = False

        logger.info(f"Circuit breaker '{name}' initialized with config: {self._config}")

    @property
    def state(self) -> CircuitBreakerState:
        return self._stats.state

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of breaker statistics."""
        return self._stats.to_dict()

    async def call(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Execute operation with circuit breaker protection.

        Args:
            operation: Zero-argument coroutine factory to run

        Returns:
            Operation result

        Raises:
            CircuitOpenError: If the circuit blocks the call
            Exception: Any exception from the operation itself
        """
        is_probe = await self._admit()
        task = asyncio.ensure_future(self._run_and_record(operation, is_probe))
        return await asyncio.shield(task)

    async def reset(self) -> None:
        """Force the circuit closed (operator action)."""
        async with self._lock:
            self._transition(CircuitBreakerState.CLOSED)
            self._stats.consecutive_failures = 0
            self._opened_at = None
            self._probe_in_flight = False

    async def _admit(self) -> bool:
        """Decide whether a call may proceed. Returns True when it is the half-open probe."""
        async with self._lock:
            stats = self._stats

            if stats.state == CircuitBreakerState.OPEN:
                remaining = self._cooldown_remaining()
                if remaining > 0:
                    stats.total_rejections += 1
                    raise CircuitOpenError(
                        f"Circuit breaker OPEN for {self._name} - remote store temporarily unavailable",
                        retry_after_seconds=remaining,
                    )
                self._transition(CircuitBreakerState.HALF_OPEN)

            if stats.state == CircuitBreakerState.HALF_OPEN:
                if self._probe_in_flight:
                    stats.total_rejections += 1
                    raise CircuitOpenError(
                        f"Circuit breaker HALF_OPEN for {self._name} - recovery probe in progress"
                    )
                self._probe_in_flight = True
                return True

            return False

    async def _run_and_record(self, operation: Callable[[], Awaitable[Any]], is_probe: bool) -> Any:
        try:
            result = await operation()
        except asyncio.CancelledError:
            # Nothing completed; release the probe slot without counting anything
            if is_probe:
                async with self._lock:
                    self._probe_in_flight = False
            raise
        except Exception as e:
            await self._record_failure(e, is_probe)
            raise
        await self._record_success(is_probe)
        return result

    async def _record_success(self, is_probe: bool) -> None:
        async with self._lock:
            stats = self._stats
            stats.total_calls += 1
            stats.consecutive_failures = 0
            stats.last_success_time = datetime.now(timezone.utc)
            # A straggler admitted before the circuit opened does not close it
            if is_probe:
                self._probe_in_flight = False
                self._transition(CircuitBreakerState.CLOSED)
                self._opened_at = None
                logger.info(f"Circuit breaker CLOSED for {self._name} after successful probe")

    async def _record_failure(self, error: Exception, is_probe: bool) -> None:
        async with self._lock:
            stats = self._stats
            stats.total_calls += 1
            stats.total_failures += 1
            stats.consecutive_failures += 1
            stats.last_failure_time = datetime.now(timezone.utc)

            if is_probe:
                self._probe_in_flight = False
                self._open()
                logger.warning(f"Circuit breaker re-OPENED for {self._name}: probe failed: {error}")
            elif (
                stats.state == CircuitBreakerState.CLOSED
                and stats.consecutive_failures >= self._config.failure_threshold
            ):
                self._open()
                logger.error(
                    f"Circuit breaker OPEN for {self._name} after "
                    f"{stats.consecutive_failures} consecutive failures: {error}"
                )

    def _open(self) -> None:
        self._transition(CircuitBreakerState.OPEN)
        self._opened_at = self._clock()

    def _cooldown_remaining(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(0.0, self._opened_at + self._config.cooldown_seconds - self._clock())

    def _transition(self, new_state: CircuitBreakerState) -> None:
        if self._stats.state != new_state:
            logger.debug(f"Circuit breaker {self._name}: {self._stats.state.value} -> {new_state.value}")
            self._stats.state = new_state
            self._stats.state_changed_time = datetime.now(timezone.utc)
