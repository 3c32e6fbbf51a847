"""Retry policy for remote store calls."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from ....config.constants import CircuitDefaults
from ....core.exceptions import TransientStoreError

logger = logging.getLogger(__name__)


class ErrorClassifier:
    """Classifies store failures as transient (retryable) or permanent."""

    TRANSIENT_STATUS_CODES = frozenset({429})

    @classmethod
    def is_transient(cls, error: BaseException) -> bool:
        """Timeouts, connection resets, remote 5xx and rate limits are transient."""
        if isinstance(error, TransientStoreError):
            return True
        if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionResetError)):
            return True
        if isinstance(error, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
            return True
        if isinstance(error, httpx.HTTPStatusError):
            return cls.is_transient_status(error.response.status_code)
        return False

    @classmethod
    def is_transient_status(cls, status_code: int) -> bool:
        return status_code >= 500 or status_code in cls.TRANSIENT_STATUS_CODES

    @classmethod
    def classify(cls, error: BaseException) -> str:
        """Error category for logging: ``transient`` or ``permanent``."""
        return "transient" if cls.is_transient(error) else "permanent"


@dataclass
class RetryPolicy:
    """Bounded retry with a fixed backoff schedule.

    ``delays_ms[i]`` is slept after failed attempt ``i + 1``; when there are
    more attempts than delays the last delay is reused.
    """

    max_attempts: int = CircuitDefaults.RETRY_MAX_ATTEMPTS
    delays_ms: Tuple[int, ...] = field(default_factory=lambda: CircuitDefaults.RETRY_DELAYS_MS)

    def __post_init__(self):
        """Validate retry policy parameters."""
        self.delays_ms = tuple(self.delays_ms)
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if any(delay < 0 for delay in self.delays_ms):
            raise ValueError("delays_ms must be non-negative")

    def calculate_delay(self, attempt: int) -> int:
        """
        Delay after a failed attempt.

        Args:
            attempt: Attempt number that just failed (1-based)

        Returns:
            Delay in milliseconds
        """
        if attempt <= 0 or not self.delays_ms:
            return 0
        return self.delays_ms[min(attempt, len(self.delays_ms)) - 1]

    def should_retry(self, attempt: int, error: BaseException) -> bool:
        """Retry only transient errors and only while attempts remain."""
        return attempt < self.max_attempts and ErrorClassifier.is_transient(error)

    def to_dict(self) -> Dict[str, Any]:
        return {"max_attempts": self.max_attempts, "delays_ms": list(self.delays_ms)}


async def retry_with_backoff(
    operation: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    operation_name: str = "store_call",
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
) -> Any:
    """
    Run ``operation`` under ``policy``.

    Non-transient errors propagate on the first failure; transient errors
    propagate once attempts are exhausted.
    """
    sleep = sleep or asyncio.sleep
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not policy.should_retry(attempt, e):
                if attempt > 1:
                    logger.warning(
                        f"{operation_name} failed after {attempt} attempts "
                        f"({ErrorClassifier.classify(e)}): {e}"
                    )
                raise
            delay_ms = policy.calculate_delay(attempt)
            logger.warning(
                f"{operation_name} attempt {attempt}/{policy.max_attempts} failed: {e}; "
                f"retrying in {delay_ms}ms"
            )
            await sleep(delay_ms / 1000.0)
