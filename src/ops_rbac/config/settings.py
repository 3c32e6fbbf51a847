"""
Settings for the access-control core.

Values come from the environment (or a .env file). Store credentials are
validated once at start-up so the service never runs half-configured.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError
from .constants import CacheTTL, CircuitDefaults, StoreBackend


class Settings(BaseSettings):
    """Application settings for ops-rbac."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="ops-rbac")
    environment: str = Field(default="development")

    # Remote store
    store_backend: StoreBackend = Field(default=StoreBackend.SHEETS)
    google_sheets_spreadsheet_id: Optional[str] = Field(default=None)
    google_service_account_email: Optional[str] = Field(default=None)
    google_service_account_private_key: Optional[SecretStr] = Field(default=None)
    google_token_uri: str = Field(default="https://oauth2.googleapis.com/token")
    sheets_api_base_url: str = Field(default="https://sheets.googleapis.com/v4/spreadsheets")

    # Resilience
    store_request_timeout_seconds: float = Field(default=CircuitDefaults.REQUEST_TIMEOUT_SECONDS, gt=0)
    circuit_failure_threshold: int = Field(default=CircuitDefaults.FAILURE_THRESHOLD, ge=1)
    circuit_cooldown_seconds: float = Field(default=CircuitDefaults.COOLDOWN_SECONDS, ge=0)
    retry_max_attempts: int = Field(default=CircuitDefaults.RETRY_MAX_ATTEMPTS, ge=1)
    retry_delays_ms: List[int] = Field(default_factory=lambda: list(CircuitDefaults.RETRY_DELAYS_MS))

    # Permission cache
    permission_cache_ttl_seconds: float = Field(default=CacheTTL.PERMISSIONS, gt=0)
    permission_cache_max_entries: Optional[int] = Field(default=None, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_verbosity: Optional[str] = Field(default=None)
    log_format: str = Field(default="simple")

    @field_validator("retry_delays_ms")
    @classmethod
    def _non_negative_delays(cls, value: List[int]) -> List[int]:
        if any(delay < 0 for delay in value):
            raise ValueError("retry delays must be non-negative")
        return value

    @property
    def private_key_pem(self) -> Optional[str]:
        """Service account key with escaped newlines unfolded."""
        if self.google_service_account_private_key is None:
            return None
        return self.google_service_account_private_key.get_secret_value().replace("\\n", "\n")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def validate_store_config(self) -> None:
        """Fail fast when the configured backend cannot be reached.

        Raises:
            ConfigurationError: If required identifiers or credentials are
                missing or obviously malformed.
        """
        if self.store_backend == StoreBackend.MEMORY:
            return

        missing = [
            name for name, value in (
                ("GOOGLE_SHEETS_SPREADSHEET_ID", self.google_sheets_spreadsheet_id),
                ("GOOGLE_SERVICE_ACCOUNT_EMAIL", self.google_service_account_email),
                ("GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY", self.private_key_pem),
            )
            if not value or not str(value).strip()
        ]
        if missing:
            raise ConfigurationError(
                f"Google Sheets credentials not configured: missing {', '.join(missing)}",
                details={"missing": missing},
            )

        if "@" not in self.google_service_account_email:
            raise ConfigurationError(
                "GOOGLE_SERVICE_ACCOUNT_EMAIL is not a service account email",
                details={"field": "GOOGLE_SERVICE_ACCOUNT_EMAIL"},
            )

        if "PRIVATE KEY" not in self.private_key_pem:
            raise ConfigurationError(
                "GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY is not a PEM encoded key",
                details={"field": "GOOGLE_SERVICE_ACCOUNT_PRIVATE_KEY"},
            )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
