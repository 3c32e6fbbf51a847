"""In-memory tabular store for local development and tests.

Behaves like the Sheets API for the subset the data layer relies on: cells
are stored as strings, reads drop trailing empty cells and rows, and A1
ranges address 1-based rows.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional, Sequence

from ..entities.protocols import RemoteStore, Rows
from ..entities.ranges import RangeSpec


def _to_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


def _trim_row(row: List[str]) -> List[str]:
    end = len(row)
    while end and row[end - 1] == "":
        end -= 1
    return row[:end]


class InMemorySheetStore(RemoteStore):
    """Process-local RemoteStore keyed by sheet name."""

    def __init__(self, sheets: Optional[Dict[str, Sequence[Sequence[Any]]]] = None):
        self._sheets: Dict[str, List[List[str]]] = {}
        self._lock = asyncio.Lock()
        self.call_count = 0
        for name, rows in (sheets or {}).items():
            self.seed(name, rows)

    def seed(self, sheet: str, rows: Sequence[Sequence[Any]]) -> None:
        """Replace a sheet's contents synchronously (header row included)."""
        self._sheets[sheet] = [[_to_cell(value) for value in row] for row in rows]

    def snapshot(self, sheet: str) -> List[List[str]]:
        """Copy of a sheet's raw rows, header included."""
        return copy.deepcopy(self._sheets.get(sheet, []))

    async def read(self, sheet: str, cells: Optional[str] = None) -> Rows:
        self.call_count += 1
        return self._read_range(RangeSpec(sheet, cells))

    async def write(self, sheet: str, cells: str, rows: Sequence[Sequence[Any]]) -> None:
        self.call_count += 1
        bounds = RangeSpec(sheet, cells).bounds()
        async with self._lock:
            grid = self._sheets.setdefault(sheet, [])
            for offset, row in enumerate(rows):
                row_index = bounds.first_row + offset
                if bounds.last_row is not None and row_index > bounds.last_row:
                    break
                while len(grid) <= row_index:
                    grid.append([])
                target = grid[row_index]
                for col_offset, value in enumerate(row):
                    col_index = bounds.first_col + col_offset
                    if bounds.last_col is not None and col_index > bounds.last_col:
                        break
                    while len(target) <= col_index:
                        target.append("")
                    target[col_index] = _to_cell(value)

    async def append(self, sheet: str, rows: Sequence[Sequence[Any]]) -> None:
        self.call_count += 1
        async with self._lock:
            grid = self._sheets.setdefault(sheet, [])
            # Like the Sheets API, append after the last row holding data
            while grid and not any(grid[-1]):
                grid.pop()
            grid.extend([_to_cell(value) for value in row] for row in rows)

    async def batch_read(self, ranges: Sequence[str]) -> Dict[str, Rows]:
        self.call_count += 1
        return {value: self._read_range(RangeSpec.parse(value)) for value in ranges}

    async def clear(self, sheet: str, cells: Optional[str] = None) -> None:
        self.call_count += 1
        async with self._lock:
            if sheet not in self._sheets:
                return
            if not cells:
                self._sheets[sheet] = []
                return
            bounds = RangeSpec(sheet, cells).bounds()
            grid = self._sheets[sheet]
            last_row = len(grid) - 1 if bounds.last_row is None else min(bounds.last_row, len(grid) - 1)
            for row_index in range(bounds.first_row, last_row + 1):
                row = grid[row_index]
                last_col = len(row) - 1 if bounds.last_col is None else min(bounds.last_col, len(row) - 1)
                for col_index in range(bounds.first_col, last_col + 1):
                    row[col_index] = ""

    def _read_range(self, spec: RangeSpec) -> Rows:
        grid = self._sheets.get(spec.sheet, [])
        bounds = spec.bounds()
        end_row = len(grid) if bounds.last_row is None else min(bounds.last_row + 1, len(grid))

        result: Rows = []
        for row in grid[bounds.first_row:end_row]:
            end_col = len(row) if bounds.last_col is None else bounds.last_col + 1
            result.append(_trim_row(list(row[bounds.first_col:end_col])))

        while result and not result[-1]:
            result.pop()
        return result
