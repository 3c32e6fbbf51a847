"""
Service account access tokens for the Google Sheets API.

Signs an RS256 JWT assertion with the service account key and exchanges it
at the OAuth token endpoint. Tokens are cached until shortly before expiry.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from ....core.exceptions import (
    ConfigurationError,
    StoreAuthenticationError,
    TransientStoreError,
)
from ..services.retry_policy import ErrorClassifier

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
# Refresh this long before the token actually expires
EXPIRY_MARGIN_SECONDS = 60


class ServiceAccountTokenProvider:
    """
    OAuth2 access tokens for a Google service account.

    Concurrent callers share one refresh; the cached token is reused until
    it is within EXPIRY_MARGIN_SECONDS of expiring.
    """

    def __init__(
        self,
        client_email: str,
        private_key: str,
        token_uri: str,
        http_client: httpx.AsyncClient,
        scope: str = SHEETS_SCOPE,
        clock: Callable[[], float] = time.time,
    ):
        self._client_email = client_email
        self._private_key = private_key
        self._token_uri = token_uri
        self._http_client = http_client
        self._scope = scope
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Return a valid access token, refreshing it when needed."""
        if self._token_is_fresh():
            return self._access_token

        async with self._lock:
            if self._token_is_fresh():
                return self._access_token
            await self._refresh()
            return self._access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes it."""
        self._access_token = None
        self._expires_at = 0.0

    def _token_is_fresh(self) -> bool:
        return self._access_token is not None and self._clock() < self._expires_at - EXPIRY_MARGIN_SECONDS

    def build_assertion(self) -> str:
        """Signed JWT assertion for the token exchange."""
        issued_at = int(self._clock())
        claims = {
            "iss": self._client_email,
            "scope": self._scope,
            "aud": self._token_uri,
            "iat": issued_at,
            "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(claims, self._private_key, algorithm="RS256")
        except JOSEError as e:
            raise ConfigurationError(f"Service account private key is not usable: {e}") from e

    async def _refresh(self) -> None:
        assertion = self.build_assertion()
        try:
            response = await self._http_client.post(
                self._token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.TransportError as e:
            raise TransientStoreError(f"Token endpoint unreachable: {e}") from e

        if ErrorClassifier.is_transient_status(response.status_code):
            raise TransientStoreError(
                f"Token endpoint returned {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise StoreAuthenticationError(
                f"Service account token exchange rejected ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        payload = response.json()
        self._access_token = payload["access_token"]
        self._expires_at = self._clock() + float(payload.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        logger.debug(f"Obtained access token for {self._client_email}, expires in {payload.get('expires_in')}s")
