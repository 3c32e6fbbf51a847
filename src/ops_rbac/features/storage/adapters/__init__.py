"""Remote store implementations."""

from .memory_store import InMemorySheetStore
from .service_account import ServiceAccountTokenProvider
from .sheets_client import AccessTokenProvider, GoogleSheetsClient

__all__ = [
    "AccessTokenProvider",
    "GoogleSheetsClient",
    "InMemorySheetStore",
    "ServiceAccountTokenProvider",
]
