"""Configuration module for ops-rbac."""

from .constants import (
    WILDCARD,
    AuthProvider,
    CacheKeys,
    CacheTTL,
    CircuitDefaults,
    ConfigDataType,
    RoleCodes,
    SheetColumns,
    SheetNames,
    StoreBackend,
    SystemLogLevel,
    TransactionStatus,
)
from .logging_config import LogFormat, LoggingConfig, LogVerbosity, setup_logging
from .settings import Settings, get_settings

__all__ = [
    # Constants
    "WILDCARD",
    "AuthProvider",
    "CacheKeys",
    "CacheTTL",
    "CircuitDefaults",
    "ConfigDataType",
    "RoleCodes",
    "SheetColumns",
    "SheetNames",
    "StoreBackend",
    "SystemLogLevel",
    "TransactionStatus",
    # Logging
    "setup_logging",
    "LoggingConfig",
    "LogVerbosity",
    "LogFormat",
    # Settings
    "Settings",
    "get_settings",
]
