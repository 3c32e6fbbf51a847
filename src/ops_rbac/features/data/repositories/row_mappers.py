"""Row mappers between domain entities and fixed-width sheet rows.

The store omits trailing empty cells, so incoming rows are padded to the
sheet width before mapping. Outgoing rows always carry the full width with
empty strings for absent values.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from ....config.constants import (
    AuthProvider,
    ConfigDataType,
    SheetColumns,
    TransactionStatus,
)
from ....utils.cells import format_bool, parse_bool, parse_int, safe_json_loads
from ..entities.models import (
    Module,
    Permission,
    Role,
    RoleAssignment,
    SiteConfig,
    SystemLogEntry,
    TransactionLogEntry,
    User,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


def pad_row(row: Sequence[Any], width: int) -> List[str]:
    """Pad (or truncate) a row to exactly ``width`` string cells."""
    cells = ["" if value is None else str(value) for value in row[:width]]
    cells.extend([""] * (width - len(cells)))
    return cells


def _optional(value: str) -> Optional[str]:
    return value if value != "" else None


def _cell(value: Optional[Any]) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _json_cell(value: Optional[Dict[str, Any]]) -> str:
    return json.dumps(value, separators=(",", ":"), default=str) if value else ""


def _parse_enum(enum_type: Type[E], value: str, default: E) -> E:
    try:
        return enum_type(value)
    except ValueError:
        if value:
            logger.warning(f"Unknown {enum_type.__name__} value {value!r}, using {default.value}")
        return default


# Users

def user_from_row(row: Sequence[Any]) -> User:
    c = pad_row(row, len(SheetColumns.USERS))
    return User(
        user_id=c[0],
        email=c[1],
        name=c[2],
        auth_provider=_parse_enum(AuthProvider, c[3].lower(), AuthProvider.GOOGLE),
        is_active=parse_bool(c[4]),
        created_at=_optional(c[5]),
        updated_at=_optional(c[6]),
        last_login_at=_optional(c[7]),
        metadata=safe_json_loads(c[8], {}),
    )


def user_to_row(user: User) -> List[str]:
    return [
        user.user_id,
        user.email,
        user.name,
        _cell(user.auth_provider),
        format_bool(user.is_active),
        _cell(user.created_at),
        _cell(user.updated_at),
        _cell(user.last_login_at),
        _json_cell(user.metadata),
    ]


# Roles

def role_from_row(row: Sequence[Any]) -> Role:
    c = pad_row(row, len(SheetColumns.ROLES))
    return Role(
        role_id=c[0],
        role_code=c[1],
        role_name=c[2],
        description=c[3],
        is_active=parse_bool(c[4]),
        created_at=_optional(c[5]),
        updated_at=_optional(c[6]),
    )


# Role assignments

def assignment_from_row(row: Sequence[Any]) -> RoleAssignment:
    c = pad_row(row, len(SheetColumns.ROLE_ASSIGNMENTS))
    return RoleAssignment(
        assignment_id=c[0],
        user_id=c[1],
        role_id=c[2],
        site_code=_optional(c[3]),
        assigned_by=c[4],
        assigned_at=_optional(c[5]),
        expires_at=_optional(c[6]),
        is_active=parse_bool(c[7]),
    )


def assignment_to_row(assignment: RoleAssignment) -> List[str]:
    return [
        assignment.assignment_id,
        assignment.user_id,
        assignment.role_id,
        _cell(assignment.site_code),
        assignment.assigned_by,
        _cell(assignment.assigned_at),
        _cell(assignment.expires_at),
        format_bool(assignment.is_active),
    ]


# Modules

def module_from_row(row: Sequence[Any]) -> Module:
    c = pad_row(row, len(SheetColumns.MODULES))
    return Module(
        module_id=c[0],
        module_code=c[1],
        module_name=c[2],
        description=c[3],
        icon=c[4],
        route=c[5],
        is_active=parse_bool(c[6]),
        sort_order=parse_int(c[7]),
        created_at=_optional(c[8]),
        updated_at=_optional(c[9]),
    )


# Permissions

def permission_from_row(row: Sequence[Any]) -> Permission:
    c = pad_row(row, len(SheetColumns.PERMISSIONS))
    return Permission(
        permission_id=c[0],
        role_id=c[1],
        module_code=c[2],
        action=c[3],
        resource=c[4],
        conditions=_optional(c[5]),
        is_active=parse_bool(c[6]),
        created_at=_optional(c[7]),
        updated_at=_optional(c[8]),
    )


# Site config

def site_config_from_row(row: Sequence[Any]) -> SiteConfig:
    c = pad_row(row, len(SheetColumns.SITE_CONFIG))
    return SiteConfig(
        config_id=c[0],
        site_code=c[1],
        config_key=c[2],
        config_value=c[3],
        data_type=_parse_enum(ConfigDataType, c[4].lower(), ConfigDataType.STRING),
        description=c[5],
        is_active=parse_bool(c[6]),
        created_at=_optional(c[7]),
        updated_at=_optional(c[8]),
    )


# Transaction log

def transaction_from_row(row: Sequence[Any]) -> TransactionLogEntry:
    c = pad_row(row, len(SheetColumns.TRANSACTION_LOG))
    return TransactionLogEntry(
        tx_id=c[0],
        user_id=c[1],
        module_code=c[2],
        action=c[3],
        entity_type=c[4],
        entity_id=_optional(c[5]),
        status=_parse_enum(TransactionStatus, c[6].upper(), TransactionStatus.PENDING),
        payload=safe_json_loads(c[7], {}),
        error_message=_optional(c[8]),
        started_at=_optional(c[9]),
        completed_at=_optional(c[10]),
        duration_ms=parse_int(c[11], default=None),
    )


def transaction_to_row(entry: TransactionLogEntry) -> List[str]:
    return [
        entry.tx_id,
        entry.user_id,
        entry.module_code,
        entry.action,
        entry.entity_type,
        _cell(entry.entity_id),
        _cell(entry.status),
        _json_cell(entry.payload),
        _cell(entry.error_message),
        _cell(entry.started_at),
        _cell(entry.completed_at),
        _cell(entry.duration_ms),
    ]


# System log

def system_log_to_row(entry: SystemLogEntry) -> List[str]:
    return [
        entry.log_id,
        entry.timestamp,
        _cell(entry.level),
        _cell(entry.user_id),
        _cell(entry.module_code),
        _cell(entry.action),
        entry.message,
        _json_cell(entry.details),
        _cell(entry.correlation_id),
        _cell(entry.ip_address),
        _cell(entry.user_agent),
    ]
