"""Utility helpers for ops-rbac."""

from .cells import column_letter, format_bool, parse_bool, parse_int, safe_json_loads
from .datetime import format_timestamp, parse_timestamp, utc_now, utc_now_iso
from .ids import generate_id

__all__ = [
    "generate_id",
    "utc_now",
    "utc_now_iso",
    "format_timestamp",
    "parse_timestamp",
    "column_letter",
    "format_bool",
    "parse_bool",
    "parse_int",
    "safe_json_loads",
]
