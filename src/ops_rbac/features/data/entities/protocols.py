"""Data access contract consumed by the permission, audit and user services.

Storage-agnostic: the Sheets-backed implementation lives in
``repositories/sheets_data_service.py``; anything else honoring this
protocol can replace it.
"""

from abc import abstractmethod
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ....config.constants import AuthProvider, SystemLogLevel, TransactionStatus
from .models import (
    Module,
    Permission,
    Role,
    RoleAssignment,
    SiteConfig,
    SystemLogEntry,
    TransactionLogEntry,
    User,
)


@runtime_checkable
class DataService(Protocol):
    """Protocol for entity persistence operations."""

    # Users

    @abstractmethod
    async def list_users(self) -> List[User]:
        """List all users."""
        ...

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get user by id."""
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        ...

    @abstractmethod
    async def create_user(
        self,
        email: str,
        name: str = "",
        auth_provider: AuthProvider = AuthProvider.GOOGLE,
        user_id: Optional[str] = None,
        is_active: bool = True,
        last_login_at: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> User:
        """Create a user, using ``user_id`` when supplied.

        Raises DuplicateEmailError if the email (case-insensitive) is taken.
        """
        ...

    @abstractmethod
    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> User:
        """Apply field updates to a user; raises UserNotFoundError."""
        ...

    # Roles

    @abstractmethod
    async def list_roles(self) -> List[Role]:
        """List all roles."""
        ...

    @abstractmethod
    async def get_role_by_id(self, role_id: str) -> Optional[Role]:
        """Get role by id."""
        ...

    @abstractmethod
    async def get_role_by_code(self, role_code: str) -> Optional[Role]:
        """Get role by code."""
        ...

    # Role assignments

    @abstractmethod
    async def list_role_assignments(self, user_id: str) -> List[RoleAssignment]:
        """List active assignments of a user (expiry is not evaluated here)."""
        ...

    @abstractmethod
    async def create_role_assignment(
        self,
        user_id: str,
        role_id: str,
        assigned_by: str,
        site_code: Optional[str] = None,
        expires_at: Optional[str] = None,
    ) -> RoleAssignment:
        """Append a new active assignment."""
        ...

    @abstractmethod
    async def revoke_role_assignment(self, assignment_id: str) -> RoleAssignment:
        """Soft-revoke an assignment; raises AssignmentNotFoundError."""
        ...

    # Modules

    @abstractmethod
    async def list_modules(self) -> List[Module]:
        """List all modules."""
        ...

    @abstractmethod
    async def list_active_modules(self) -> List[Module]:
        """List active modules ordered by sort_order."""
        ...

    # Permissions

    @abstractmethod
    async def list_permissions_by_role(self, role_id: str) -> List[Permission]:
        """List active permissions granted to a role."""
        ...

    @abstractmethod
    async def list_all_permissions(self) -> List[Permission]:
        """List all active permissions."""
        ...

    # Site config

    @abstractmethod
    async def list_site_config(self, site_code: str) -> List[SiteConfig]:
        """List active configuration entries of a site."""
        ...

    @abstractmethod
    async def get_config_value(self, site_code: str, key: str) -> Optional[str]:
        """Raw configuration value, or None when unset."""
        ...

    # Transaction log

    @abstractmethod
    async def create_transaction_log(
        self,
        user_id: str,
        module_code: str,
        action: str,
        entity_type: str,
        payload: Optional[Dict[str, Any]] = None,
        entity_id: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.PENDING,
    ) -> TransactionLogEntry:
        """Append a transaction log entry."""
        ...

    @abstractmethod
    async def update_transaction_log(self, tx_id: str, updates: Dict[str, Any]) -> TransactionLogEntry:
        """Update a transaction log entry in place; raises TransactionNotFoundError."""
        ...

    # System log

    @abstractmethod
    async def create_system_log(
        self,
        level: SystemLogLevel,
        message: str,
        user_id: Optional[str] = None,
        module_code: Optional[str] = None,
        action: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SystemLogEntry:
        """Append a system log entry."""
        ...
