"""Audit feature for ops-rbac.

Write-ahead transaction log for mutating operations and the leveled
system event log, both persisted through the DataService.
"""

from .services import TrackedTransaction, TransactionLogService

__all__ = [
    "TrackedTransaction",
    "TransactionLogService",
]
