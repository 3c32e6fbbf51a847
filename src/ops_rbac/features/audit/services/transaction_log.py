"""
Transaction and system event logging.

Mutating operations are recorded write-ahead: a PENDING entry is appended
before the action runs and updated to SUCCESS or FAILED afterwards. This is
an audit and recovery trail, not a transaction mechanism: a PENDING entry
that never completes marks an interrupted operation, nothing is rolled back.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Optional, Set, Union

from ....config.constants import SystemLogLevel, TransactionStatus
from ....utils.datetime import utc_now_iso
from ...data.entities.models import SystemLogEntry, TransactionLogEntry
from ...data.entities.protocols import DataService

logger = logging.getLogger(__name__)

# Context keys stored in their own SYSTEM_LOG columns; anything else goes to details
_SYSTEM_LOG_COLUMNS = ("user_id", "module_code", "action", "correlation_id", "ip_address", "user_agent")


@dataclass
class TrackedTransaction:
    """Handle yielded by ``TransactionLogService.track``."""

    tx_id: str
    entity_id: Optional[str] = None


class TransactionLogService:
    """Write-ahead transaction log and fire-and-forget system event log."""

    def __init__(self, data_service: DataService, clock: Callable[[], float] = time.perf_counter):
        self._data_service = data_service
        self._clock = clock
        self._pending_events: Set[asyncio.Task] = set()

    async def begin_transaction(
        self,
        user_id: str,
        module_code: str,
        action: str,
        entity_type: str,
        payload: Optional[Dict[str, Any]] = None,
        entity_id: Optional[str] = None,
    ) -> str:
        """Append a PENDING entry and return its transaction id.

        Raises:
            StoreError: If the entry could not be written
        """
        entry = await self._data_service.create_transaction_log(
            user_id=user_id,
            module_code=module_code,
            action=action,
            entity_type=entity_type,
            payload=payload,
            entity_id=entity_id,
            status=TransactionStatus.PENDING,
        )
        logger.debug(f"Transaction {entry.tx_id} started: {module_code}.{action} on {entity_type}")
        return entry.tx_id

    async def complete_transaction(
        self,
        tx_id: str,
        status: Union[TransactionStatus, str],
        entity_id: Optional[str] = None,
        error_message: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> TransactionLogEntry:
        """Move a transaction to its terminal status.

        Raises:
            ValueError: If ``status`` is not SUCCESS or FAILED
            TransactionNotFoundError: If no entry has this id
        """
        status = TransactionStatus(status)
        if not status.is_terminal:
            raise ValueError(f"Transaction can only complete as SUCCESS or FAILED, got: {status.value}")

        updates: Dict[str, Any] = {
            "status": status,
            "completed_at": utc_now_iso(),
        }
        if entity_id is not None:
            updates["entity_id"] = entity_id
        if error_message is not None:
            updates["error_message"] = error_message
        if duration_ms is not None:
            updates["duration_ms"] = int(duration_ms)

        entry = await self._data_service.update_transaction_log(tx_id, updates)
        logger.debug(f"Transaction {tx_id} completed with {status.value}")
        return entry

    @asynccontextmanager
    async def track(
        self,
        user_id: str,
        module_code: str,
        action: str,
        entity_type: str,
        payload: Optional[Dict[str, Any]] = None,
        entity_id: Optional[str] = None,
    ) -> AsyncIterator[TrackedTransaction]:
        """Record the wrapped block as one transaction.

        Completes SUCCESS when the block exits normally and FAILED (with the
        error message) when it raises; the block's exception is re-raised.
        A failure to write the completion is logged but never replaces the
        outcome of the block itself.
        """
        tx_id = await self.begin_transaction(user_id, module_code, action, entity_type, payload, entity_id)
        handle = TrackedTransaction(tx_id=tx_id, entity_id=entity_id)
        started = self._clock()

        try:
            yield handle
        except Exception as e:
            await self._complete_quietly(
                handle, TransactionStatus.FAILED, started, error_message=str(e) or e.__class__.__name__
            )
            raise
        else:
            await self._complete_quietly(handle, TransactionStatus.SUCCESS, started)

    async def _complete_quietly(
        self,
        handle: TrackedTransaction,
        status: TransactionStatus,
        started: float,
        error_message: Optional[str] = None,
    ) -> None:
        duration_ms = int((self._clock() - started) * 1000)
        try:
            await self.complete_transaction(
                handle.tx_id, status, entity_id=handle.entity_id,
                error_message=error_message, duration_ms=duration_ms,
            )
        except Exception as e:
            logger.error(f"Failed to complete transaction {handle.tx_id} as {status.value}: {e}")

    async def log_system_event(
        self,
        level: Union[SystemLogLevel, str],
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[SystemLogEntry]:
        """Append a system event. Never raises; returns None if the write failed."""
        try:
            level = SystemLogLevel(str(getattr(level, "value", level)).upper())
            context = dict(context or {})
            columns = {key: _optional_str(context.pop(key, None)) for key in _SYSTEM_LOG_COLUMNS}
            details = context.pop("details", None)
            if isinstance(details, dict):
                context.update(details)
            elif details is not None:
                context["details"] = details

            return await self._data_service.create_system_log(
                level=level,
                message=message,
                details=context,
                **columns,
            )
        except Exception as e:
            logger.error(f"Failed to write system event {message!r}: {e}")
            return None

    def emit_system_event(
        self,
        level: Union[SystemLogLevel, str],
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[asyncio.Task]:
        """Schedule ``log_system_event`` without waiting for it.

        Must be called from a running event loop; outside one the event is
        only logged locally.
        """
        try:
            task = asyncio.get_running_loop().create_task(self.log_system_event(level, message, context))
        except RuntimeError:
            logger.warning(f"No running event loop, system event not persisted: {message}")
            return None
        self._pending_events.add(task)
        task.add_done_callback(self._pending_events.discard)
        return task

    async def drain(self) -> None:
        """Wait for scheduled system events to finish."""
        while self._pending_events:
            await asyncio.gather(*list(self._pending_events), return_exceptions=True)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)
