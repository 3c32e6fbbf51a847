"""Constants and enums for ops-rbac.

Sheet names and column layouts mirror the spreadsheet schema: row 1 of every
sheet is a header row and column order is fixed.
"""

from enum import Enum
from typing import Final, Tuple


WILDCARD: Final[str] = "*"

TRUE_TOKEN: Final[str] = "TRUE"
FALSE_TOKEN: Final[str] = "FALSE"

# Row 1 is the header, so data row i (0-based) lives at position i + 2
HEADER_ROWS: Final[int] = 1

# Module code recorded on transaction log entries written by this package
RBAC_MODULE_CODE: Final[str] = "RBAC"


class CacheKeys:
    """Cache key patterns."""

    USER_PERMISSIONS: Final[str] = "permissions:{user_id}"


class CacheTTL:
    """Cache TTL values in seconds."""

    PERMISSIONS: Final[int] = 300  # 5 minutes


class CircuitDefaults:
    """Circuit breaker and retry defaults for the remote store."""

    FAILURE_THRESHOLD: Final[int] = 5
    COOLDOWN_SECONDS: Final[float] = 60.0
    RETRY_MAX_ATTEMPTS: Final[int] = 3
    RETRY_DELAYS_MS: Final[Tuple[int, ...]] = (200, 500, 1000)
    REQUEST_TIMEOUT_SECONDS: Final[float] = 5.0


class SheetNames:
    """Sheet names, one per entity."""

    USERS: Final[str] = "USERS"
    ROLES: Final[str] = "ROLES"
    ROLE_ASSIGNMENTS: Final[str] = "ROLE_ASSIGNMENTS"
    MODULES: Final[str] = "MODULES"
    PERMISSIONS: Final[str] = "PERMISSIONS"
    SITE_CONFIG: Final[str] = "SITE_CONFIG"
    TRANSACTION_LOG: Final[str] = "TRANSACTION_LOG"
    SYSTEM_LOG: Final[str] = "SYSTEM_LOG"


class SheetColumns:
    """Column order per sheet (0-indexed position = tuple index)."""

    USERS: Final[Tuple[str, ...]] = (
        "user_id", "email", "name", "auth_provider", "is_active",
        "created_at", "updated_at", "last_login_at", "metadata",
    )
    ROLES: Final[Tuple[str, ...]] = (
        "role_id", "role_code", "role_name", "description", "is_active",
        "created_at", "updated_at",
    )
    ROLE_ASSIGNMENTS: Final[Tuple[str, ...]] = (
        "assignment_id", "user_id", "role_id", "site_code", "assigned_by",
        "assigned_at", "expires_at", "is_active",
    )
    MODULES: Final[Tuple[str, ...]] = (
        "module_id", "module_code", "module_name", "description", "icon",
        "route", "is_active", "sort_order", "created_at", "updated_at",
    )
    PERMISSIONS: Final[Tuple[str, ...]] = (
        "permission_id", "role_id", "module_code", "action", "resource",
        "conditions", "is_active", "created_at", "updated_at",
    )
    SITE_CONFIG: Final[Tuple[str, ...]] = (
        "config_id", "site_code", "config_key", "config_value", "data_type",
        "description", "is_active", "created_at", "updated_at",
    )
    TRANSACTION_LOG: Final[Tuple[str, ...]] = (
        "tx_id", "user_id", "module_code", "action", "entity_type",
        "entity_id", "status", "payload", "error_message", "started_at",
        "completed_at", "duration_ms",
    )
    SYSTEM_LOG: Final[Tuple[str, ...]] = (
        "log_id", "timestamp", "level", "user_id", "module_code", "action",
        "message", "details", "correlation_id", "ip_address", "user_agent",
    )

    @classmethod
    def for_sheet(cls, sheet_name: str) -> Tuple[str, ...]:
        """Get the column layout for a sheet."""
        return getattr(cls, sheet_name)


class RoleCodes:
    """Seeded role codes."""

    SUPER_ADMIN: Final[str] = "SUPER_ADMIN"
    ADMIN: Final[str] = "ADMIN"
    VIEWER: Final[str] = "VIEWER"

    ADMIN_ROLES: Final[Tuple[str, ...]] = ("SUPER_ADMIN", "ADMIN")


class AuthProvider(str, Enum):
    """Identity providers a user can sign in with."""

    GOOGLE = "google"
    EMAIL = "email"
    SSO = "sso"


class TransactionStatus(str, Enum):
    """Write-ahead transaction log status."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


class SystemLogLevel(str, Enum):
    """System log levels as stored in the SYSTEM_LOG sheet."""

    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"


class ConfigDataType(str, Enum):
    """Declared value type of a site configuration entry."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"


class StoreBackend(str, Enum):
    """Remote store implementations."""

    SHEETS = "sheets"
    MEMORY = "memory"
