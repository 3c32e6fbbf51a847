"""Storage entities: ranges, operations and the remote store protocol."""

from .operations import (
    AppendOperation,
    BatchReadOperation,
    ClearOperation,
    OperationType,
    ReadOperation,
    StoreOperation,
    WriteOperation,
)
from .protocols import RemoteStore, Row, Rows
from .ranges import CellBounds, RangeSpec

__all__ = [
    "AppendOperation",
    "BatchReadOperation",
    "ClearOperation",
    "OperationType",
    "ReadOperation",
    "StoreOperation",
    "WriteOperation",
    "RemoteStore",
    "Row",
    "Rows",
    "CellBounds",
    "RangeSpec",
]
