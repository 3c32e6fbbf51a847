"""Helpers for untyped spreadsheet cell values."""

import json
from typing import Any, TypeVar

from ..config.constants import FALSE_TOKEN, TRUE_TOKEN

T = TypeVar("T")


def format_bool(value: bool) -> str:
    """Serialize a boolean as the literal TRUE/FALSE token."""
    return TRUE_TOKEN if value else FALSE_TOKEN


def parse_bool(value: Any) -> bool:
    """Parse a boolean cell; anything but a TRUE token is False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().upper() == TRUE_TOKEN
    return False


def parse_int(value: Any, default: int = 0) -> int:
    """Parse an integer cell, falling back to ``default``."""
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def safe_json_loads(value: Any, fallback: T) -> T:
    """Parse a JSON cell, returning ``fallback`` for blank or malformed input."""
    if value is None or value == "":
        return fallback
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        return fallback


def column_letter(index: int) -> str:
    """Convert a 0-based column index into an A1 column letter (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got: {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letters: str) -> int:
    """Convert an A1 column letter into a 0-based column index (A -> 0)."""
    if not letters or not letters.isalpha():
        raise ValueError(f"Invalid column letters: {letters!r}")
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1
