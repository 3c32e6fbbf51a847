"""Protocol for the remote tabular store.

Every sheet starts with a header row; stores return it like any other row
and callers skip it.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

Row = List[Any]
Rows = List[Row]


@runtime_checkable
class RemoteStore(Protocol):
    """Row-oriented store addressed by sheet name and A1 ranges."""

    @abstractmethod
    async def read(self, sheet: str, cells: Optional[str] = None) -> Rows:
        """Read a sheet (or a range of it) as a 2D array of cell values."""
        ...

    @abstractmethod
    async def write(self, sheet: str, cells: str, rows: Sequence[Sequence[Any]]) -> None:
        """Overwrite a range in place."""
        ...

    @abstractmethod
    async def append(self, sheet: str, rows: Sequence[Sequence[Any]]) -> None:
        """Insert rows after the last row of a sheet."""
        ...

    @abstractmethod
    async def batch_read(self, ranges: Sequence[str]) -> Dict[str, Rows]:
        """Read several A1 ranges in one round-trip, keyed by the requested range."""
        ...

    @abstractmethod
    async def clear(self, sheet: str, cells: Optional[str] = None) -> None:
        """Blank a sheet or a range of it."""
        ...
