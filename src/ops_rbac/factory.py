"""
Service construction for ops-rbac.

``create_services`` builds every service once at process start and wires
them together explicitly; consumers keep the returned ``RbacServices`` and
pass its members where they are needed.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .config.constants import StoreBackend
from .config.logging_config import setup_logging
from .config.settings import Settings, get_settings
from .features.audit.services.transaction_log import TransactionLogService
from .features.data.repositories.sheets_data_service import SheetsDataService
from .features.permissions.cache.permission_cache import PermissionCache
from .features.permissions.services.permission_resolver import PermissionResolver
from .features.permissions.services.role_assignment_manager import RoleAssignmentManager
from .features.storage.adapters.memory_store import InMemorySheetStore
from .features.storage.adapters.service_account import ServiceAccountTokenProvider
from .features.storage.adapters.sheets_client import GoogleSheetsClient
from .features.storage.entities.protocols import RemoteStore
from .features.storage.services.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .features.storage.services.retry_policy import RetryPolicy
from .features.storage.services.storage_gateway import StorageGateway
from .features.users.services.site_config_service import SiteConfigService
from .features.users.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class RbacServices:
    """Every service of one ops-rbac instance."""

    settings: Settings
    gateway: StorageGateway
    data_service: SheetsDataService
    cache: PermissionCache
    audit_log: TransactionLogService
    resolver: PermissionResolver
    assignments: RoleAssignmentManager
    users: UserService
    site_config: SiteConfigService
    http_client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        """Flush pending system events and release the HTTP client."""
        await self.audit_log.drain()
        if self.http_client is not None:
            await self.http_client.aclose()


def _build_sheets_store(settings: Settings, http_client: httpx.AsyncClient) -> GoogleSheetsClient:
    token_provider = ServiceAccountTokenProvider(
        client_email=settings.google_service_account_email,
        private_key=settings.private_key_pem,
        token_uri=settings.google_token_uri,
        http_client=http_client,
    )
    return GoogleSheetsClient(
        spreadsheet_id=settings.google_sheets_spreadsheet_id,
        token_provider=token_provider,
        http_client=http_client,
        base_url=settings.sheets_api_base_url,
    )


def create_services(
    settings: Optional[Settings] = None,
    store: Optional[RemoteStore] = None,
    configure_logging: bool = True,
) -> RbacServices:
    """
    Build all ops-rbac services.

    Args:
        settings: Settings to use (environment settings if None)
        store: Remote store to use instead of the configured backend
        configure_logging: Apply the logging settings

    Returns:
        Wired services

    Raises:
        ConfigurationError: If the configured store cannot be reached with
            the given settings
    """
    settings = settings or get_settings()

    if configure_logging:
        setup_logging(settings.log_level, settings.log_verbosity, settings.log_format)

    http_client: Optional[httpx.AsyncClient] = None
    if store is None:
        settings.validate_store_config()
        if settings.store_backend == StoreBackend.MEMORY:
            logger.warning("Using the in-memory store; data is lost when the process exits")
            store = InMemorySheetStore()
        else:
            http_client = httpx.AsyncClient(timeout=settings.store_request_timeout_seconds)
            store = _build_sheets_store(settings, http_client)

    breaker = CircuitBreaker(
        CircuitBreakerConfig(
            failure_threshold=settings.circuit_failure_threshold,
            cooldown_seconds=settings.circuit_cooldown_seconds,
        )
    )
    retry_policy = RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        delays_ms=tuple(settings.retry_delays_ms),
    )
    gateway = StorageGateway(
        store,
        circuit_breaker=breaker,
        retry_policy=retry_policy,
        timeout_seconds=settings.store_request_timeout_seconds,
    )

    data_service = SheetsDataService(gateway)
    cache = PermissionCache(
        ttl_seconds=settings.permission_cache_ttl_seconds,
        max_entries=settings.permission_cache_max_entries,
    )
    audit_log = TransactionLogService(data_service)

    logger.info(
        f"ops-rbac services ready (backend={settings.store_backend.value}, "
        f"cache_ttl={settings.permission_cache_ttl_seconds}s)"
    )
    return RbacServices(
        settings=settings,
        gateway=gateway,
        data_service=data_service,
        cache=cache,
        audit_log=audit_log,
        resolver=PermissionResolver(data_service, cache, audit_log=audit_log),
        assignments=RoleAssignmentManager(data_service, cache, audit_log=audit_log),
        users=UserService(data_service, cache=cache, audit_log=audit_log),
        site_config=SiteConfigService(data_service),
        http_client=http_client,
    )
