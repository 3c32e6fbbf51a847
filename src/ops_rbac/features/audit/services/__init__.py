"""Audit services."""

from .transaction_log import TrackedTransaction, TransactionLogService

__all__ = ["TrackedTransaction", "TransactionLogService"]
