"""Domain entities persisted in the tabular store.

One dataclass per sheet. Timestamps stay ISO-8601 strings, as stored;
optional cells that are empty in the store map to None.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ....config.constants import AuthProvider, ConfigDataType, SystemLogLevel, TransactionStatus


@dataclass
class User:
    """Platform user, created on first successful sign-in."""

    user_id: str
    email: str
    name: str = ""
    auth_provider: AuthProvider = AuthProvider.GOOGLE
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_login_at: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Role:
    """Named bundle of permissions (SUPER_ADMIN, ADMIN, VIEWER, ...)."""

    role_id: str
    role_code: str
    role_name: str
    description: str = ""
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class RoleAssignment:
    """Grant of a role to a user, optionally scoped to one site."""

    assignment_id: str
    user_id: str
    role_id: str
    site_code: Optional[str] = None
    assigned_by: str = ""
    assigned_at: Optional[str] = None
    expires_at: Optional[str] = None
    is_active: bool = True

    @property
    def is_global(self) -> bool:
        """An assignment without a site applies to all sites."""
        return not self.site_code


@dataclass
class Module:
    """Installable feature area; the unit permissions are scoped against."""

    module_id: str
    module_code: str
    module_name: str
    description: str = ""
    icon: str = ""
    route: str = ""
    is_active: bool = True
    sort_order: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Permission:
    """Grant of an action on a resource within a module to a role.

    ``module_code``, ``action`` and ``resource`` each accept the ``*`` wildcard.
    ``conditions`` is the raw JSON cell; it is only parsed during resolution.
    """

    permission_id: str
    role_id: str
    module_code: str
    action: str
    resource: str = "*"
    conditions: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class SiteConfig:
    """Per-site key/value setting with a declared value type."""

    config_id: str
    site_code: str
    config_key: str
    config_value: str = ""
    data_type: ConfigDataType = ConfigDataType.STRING
    description: str = ""
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class TransactionLogEntry:
    """Write-ahead record of one mutating business operation."""

    tx_id: str
    user_id: str
    module_code: str
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    status: TransactionStatus = TransactionStatus.PENDING
    payload: Dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass
class SystemLogEntry:
    """Leveled system event, optionally correlated with a transaction."""

    log_id: str
    timestamp: str
    level: SystemLogLevel
    message: str
    user_id: Optional[str] = None
    module_code: Optional[str] = None
    action: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    correlation_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
