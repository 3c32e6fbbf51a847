"""Storage services: circuit breaker, retry policy and the gateway."""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitBreakerStats,
)
from .retry_policy import ErrorClassifier, RetryPolicy, retry_with_backoff
from .storage_gateway import StorageGateway

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "CircuitBreakerStats",
    "ErrorClassifier",
    "RetryPolicy",
    "retry_with_backoff",
    "StorageGateway",
]
