"""Storage feature for ops-rbac.

Feature-First architecture for the remote tabular store:
- entities/: ranges, store operations and the RemoteStore protocol
- services/: circuit breaker, retry policy and the storage gateway
- adapters/: Google Sheets client, service account auth, in-memory store
"""

from .adapters import GoogleSheetsClient, InMemorySheetStore, ServiceAccountTokenProvider
from .entities import (
    AppendOperation,
    BatchReadOperation,
    ClearOperation,
    RangeSpec,
    ReadOperation,
    RemoteStore,
    StoreOperation,
    WriteOperation,
)
from .services import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerState,
    ErrorClassifier,
    RetryPolicy,
    StorageGateway,
)

__all__ = [
    # Entities
    "RangeSpec",
    "RemoteStore",
    "StoreOperation",
    "ReadOperation",
    "WriteOperation",
    "AppendOperation",
    "BatchReadOperation",
    "ClearOperation",

    # Services
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    "ErrorClassifier",
    "RetryPolicy",
    "StorageGateway",

    # Adapters
    "GoogleSheetsClient",
    "InMemorySheetStore",
    "ServiceAccountTokenProvider",
]
