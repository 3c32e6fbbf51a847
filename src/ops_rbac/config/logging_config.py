"""Centralized logging configuration for ops-rbac.

Provides consistent, configurable logging with environment-based control
over verbosity, format and noisy third-party modules.
"""

import logging
import logging.config
import os
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogVerbosity(str, Enum):
    """Log verbosity modes."""
    QUIET = "QUIET"      # Only errors and critical
    NORMAL = "NORMAL"    # Standard logging (warnings and above)
    VERBOSE = "VERBOSE"  # Info level logging
    DEBUG = "DEBUG"      # Full debug logging


class LogFormat(str, Enum):
    """Log format options."""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


FORMAT_STRINGS: Dict[str, str] = {
    LogFormat.SIMPLE.value: "%(asctime)s - %(levelname)s - %(message)s",
    LogFormat.DETAILED.value: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
    LogFormat.JSON.value: '{"time":"%(asctime)s","level":"%(levelname)s","module":"%(name)s","message":"%(message)s"}',
}


def get_log_level_from_verbosity(verbosity: str) -> str:
    """Map verbosity mode to log level."""
    verbosity_map = {
        LogVerbosity.QUIET: LogLevel.ERROR.value,
        LogVerbosity.NORMAL: LogLevel.WARNING.value,
        LogVerbosity.VERBOSE: LogLevel.INFO.value,
        LogVerbosity.DEBUG: LogLevel.DEBUG.value,
    }
    try:
        return verbosity_map[LogVerbosity(verbosity.upper())]
    except ValueError:
        return LogLevel.WARNING.value


class LoggingConfig:
    """Centralized logging configuration manager."""

    # Modules that are chatty at INFO
    DEFAULT_QUIET_MODULES = [
        "ops_rbac.features.storage.adapters.sheets_client",
        "ops_rbac.features.storage.adapters.service_account",
    ]

    # Modules that should only log errors
    ERROR_ONLY_MODULES = [
        "httpx",
        "httpcore",
        "asyncio",
    ]

    @classmethod
    def build_config(
        cls,
        log_level: Optional[str] = None,
        log_verbosity: Optional[str] = None,
        log_format: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build a dictConfig mapping from explicit values or environment variables."""
        log_verbosity = (log_verbosity or os.getenv("LOG_VERBOSITY", "")).upper()
        log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
        log_format = (log_format or os.getenv("LOG_FORMAT", "simple")).lower()

        # Verbosity wins over the plain level when both are set
        if log_verbosity:
            effective_log_level = get_log_level_from_verbosity(log_verbosity)
        elif log_level in LogLevel.__members__:
            effective_log_level = log_level
        else:
            effective_log_level = LogLevel.INFO.value

        format_string = FORMAT_STRINGS.get(log_format, FORMAT_STRINGS[LogFormat.SIMPLE.value])

        logging_config: Dict[str, Any] = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": format_string,
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": effective_log_level,
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "level": effective_log_level,
                "handlers": ["console"],
            },
            "loggers": {},
        }

        for module in cls.DEFAULT_QUIET_MODULES:
            logging_config["loggers"][module] = {
                "level": "WARNING" if effective_log_level != "DEBUG" else "DEBUG",
            }

        for module in cls.ERROR_ONLY_MODULES:
            logging_config["loggers"][module] = {
                "level": "ERROR",
            }

        return logging_config

    @classmethod
    def configure(
        cls,
        log_level: Optional[str] = None,
        log_verbosity: Optional[str] = None,
        log_format: Optional[str] = None,
    ) -> None:
        """Configure logging based on arguments or environment variables."""
        logging_config = cls.build_config(log_level, log_verbosity, log_format)
        logging.config.dictConfig(logging_config)

        logger = logging.getLogger(__name__)
        logger.debug(
            f"Logging configured: level={logging_config['root']['level']}, "
            f"format={log_format or os.getenv('LOG_FORMAT', 'simple')}"
        )


def setup_logging(
    log_level: Optional[str] = None,
    log_verbosity: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """Setup logging configuration.

    This is the main entry point for configuring logging in the application.
    It should be called once at application startup.
    """
    LoggingConfig.configure(log_level, log_verbosity, log_format)
