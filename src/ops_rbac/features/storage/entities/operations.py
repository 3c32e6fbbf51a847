"""Store operations executed by the storage gateway.

Each operation knows how to apply itself to a RemoteStore, so the gateway can
guard any of them with the same circuit breaker and retry policy.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Sequence, Tuple

from .protocols import RemoteStore, Rows
from .ranges import RangeSpec


class OperationType(str, Enum):
    """Kinds of store operations."""
    READ = "read"
    WRITE = "write"
    APPEND = "append"
    BATCH_READ = "batch_read"
    CLEAR = "clear"


def _freeze_rows(rows: Sequence[Sequence[Any]]) -> Tuple[Tuple[Any, ...], ...]:
    return tuple(tuple(row) for row in rows)


@dataclass(frozen=True)
class StoreOperation:
    """Base class for gateway operations."""

    operation_type: ClassVar[OperationType]

    async def apply(self, store: RemoteStore) -> Any:
        raise NotImplementedError

    @property
    def target(self) -> str:
        """Human readable target for logging."""
        raise NotImplementedError


@dataclass(frozen=True)
class ReadOperation(StoreOperation):
    range: RangeSpec
    operation_type: ClassVar[OperationType] = OperationType.READ

    async def apply(self, store: RemoteStore) -> Rows:
        return await store.read(self.range.sheet, self.range.cells)

    @property
    def target(self) -> str:
        return self.range.a1


@dataclass(frozen=True)
class WriteOperation(StoreOperation):
    range: RangeSpec
    rows: Tuple[Tuple[Any, ...], ...]
    operation_type: ClassVar[OperationType] = OperationType.WRITE

    def __post_init__(self):
        if not self.range.cells:
            raise ValueError("Write requires an explicit cell range")
        object.__setattr__(self, "rows", _freeze_rows(self.rows))

    async def apply(self, store: RemoteStore) -> None:
        await store.write(self.range.sheet, self.range.cells, [list(row) for row in self.rows])

    @property
    def target(self) -> str:
        return self.range.a1


@dataclass(frozen=True)
class AppendOperation(StoreOperation):
    sheet: str
    rows: Tuple[Tuple[Any, ...], ...]
    operation_type: ClassVar[OperationType] = OperationType.APPEND

    def __post_init__(self):
        object.__setattr__(self, "rows", _freeze_rows(self.rows))

    async def apply(self, store: RemoteStore) -> None:
        await store.append(self.sheet, [list(row) for row in self.rows])

    @property
    def target(self) -> str:
        return self.sheet


@dataclass(frozen=True)
class BatchReadOperation(StoreOperation):
    ranges: Tuple[RangeSpec, ...]
    operation_type: ClassVar[OperationType] = OperationType.BATCH_READ

    def __post_init__(self):
        object.__setattr__(self, "ranges", tuple(self.ranges))

    async def apply(self, store: RemoteStore) -> Dict[str, Rows]:
        return await store.batch_read([spec.a1 for spec in self.ranges])

    @property
    def target(self) -> str:
        return ",".join(spec.a1 for spec in self.ranges)


@dataclass(frozen=True)
class ClearOperation(StoreOperation):
    range: RangeSpec
    operation_type: ClassVar[OperationType] = OperationType.CLEAR

    async def apply(self, store: RemoteStore) -> None:
        await store.clear(self.range.sheet, self.range.cells)

    @property
    def target(self) -> str:
        return self.range.a1


__all__: List[str] = [
    "OperationType",
    "StoreOperation",
    "ReadOperation",
    "WriteOperation",
    "AppendOperation",
    "BatchReadOperation",
    "ClearOperation",
]
