"""A1-notation range value objects for the tabular store."""

import re
from dataclasses import dataclass
from typing import Optional

from ....utils.cells import column_index, column_letter

_CELLS_PATTERN = re.compile(r"^([A-Za-z]+)?(\d+)?(?::([A-Za-z]+)?(\d+)?)?$")
_PLAIN_SHEET_NAME = re.compile(r"^[A-Za-z0-9_]+$")


@dataclass(frozen=True)
class CellBounds:
    """Resolved rectangle of a range. Indexes are 0-based, ends inclusive, None = unbounded."""

    first_row: int
    first_col: int
    last_row: Optional[int]
    last_col: Optional[int]


@dataclass(frozen=True)
class RangeSpec:
    """Immutable reference to a sheet, optionally narrowed to an A1 cell range."""

    sheet: str
    cells: Optional[str] = None

    def __post_init__(self):
        if not self.sheet:
            raise ValueError("Range requires a sheet name")
        if self.cells is not None and not _CELLS_PATTERN.match(self.cells):
            raise ValueError(f"Invalid A1 cell range: {self.cells!r}")

    @property
    def a1(self) -> str:
        """Full A1 notation, e.g. ``USERS!A2:I2``."""
        sheet = self.sheet
        if not _PLAIN_SHEET_NAME.match(sheet):
            sheet = "'" + sheet.replace("'", "''") + "'"
        return f"{sheet}!{self.cells}" if self.cells else sheet

    @classmethod
    def parse(cls, value: str) -> "RangeSpec":
        """Parse ``SHEET`` or ``SHEET!A1:B2`` notation."""
        if "!" not in value:
            return cls(sheet=value.strip("'"))
        sheet, cells = value.rsplit("!", 1)
        if sheet.startswith("'") and sheet.endswith("'"):
            sheet = sheet[1:-1].replace("''", "'")
        return cls(sheet=sheet, cells=cells or None)

    @classmethod
    def for_row(cls, sheet: str, position: int, width: int) -> "RangeSpec":
        """Range covering one full row at a 1-based position."""
        if position < 1:
            raise ValueError(f"Row position must be 1-based, got: {position}")
        if width < 1:
            raise ValueError(f"Row width must be positive, got: {width}")
        return cls(sheet=sheet, cells=f"A{position}:{column_letter(width - 1)}{position}")

    def bounds(self) -> CellBounds:
        """Resolve the cell rectangle this range covers."""
        if not self.cells:
            return CellBounds(first_row=0, first_col=0, last_row=None, last_col=None)

        start_col, start_row, end_col, end_row = _CELLS_PATTERN.match(self.cells).groups()
        has_end = ":" in self.cells

        first_col = column_index(start_col) if start_col else 0
        first_row = int(start_row) - 1 if start_row else 0

        if has_end:
            last_col = column_index(end_col) if end_col else None
            last_row = int(end_row) - 1 if end_row else None
        else:
            # A single cell, a whole column ("C") or a whole row ("3")
            last_col = first_col if start_col else None
            last_row = first_row if start_row else None

        return CellBounds(first_row=first_row, first_col=first_col, last_row=last_row, last_col=last_col)

    def __str__(self) -> str:
        return self.a1
