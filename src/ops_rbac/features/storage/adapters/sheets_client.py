"""
Google Sheets API client.

Implements the RemoteStore protocol on top of the Sheets REST API (v4) with
httpx. Resilience (retry, circuit breaking) is the gateway's job; this client
only translates HTTP outcomes into the store exception taxonomy.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from ....core.exceptions import (
    StoreAuthenticationError,
    StoreRequestError,
    TransientStoreError,
)
from ..entities.protocols import RemoteStore, Rows
from ..entities.ranges import RangeSpec
from ..services.retry_policy import ErrorClassifier

logger = logging.getLogger(__name__)


class AccessTokenProvider(Protocol):
    """Source of bearer tokens for the Sheets API."""

    async def get_token(self) -> str:
        ...

    def invalidate(self) -> None:
        ...


class GoogleSheetsClient(RemoteStore):
    """
    Sheets REST client for one spreadsheet.

    Values are written with ``valueInputOption=RAW`` so cells hold exactly
    the strings the data layer produces.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        token_provider: AccessTokenProvider,
        http_client: httpx.AsyncClient,
        base_url: str = "https://sheets.googleapis.com/v4/spreadsheets",
    ):
        self._spreadsheet_id = spreadsheet_id
        self._token_provider = token_provider
        self._http_client = http_client
        self._base_url = base_url.rstrip("/")

    async def read(self, sheet: str, cells: Optional[str] = None) -> Rows:
        """Read data from a sheet."""
        payload = await self._request("GET", self._values_url(RangeSpec(sheet, cells)))
        return payload.get("values", [])

    async def write(self, sheet: str, cells: str, rows: Sequence[Sequence[Any]]) -> None:
        """Write data to a range (overwrites)."""
        await self._request(
            "PUT",
            self._values_url(RangeSpec(sheet, cells)),
            params={"valueInputOption": "RAW"},
            json={"values": [list(row) for row in rows]},
        )

    async def append(self, sheet: str, rows: Sequence[Sequence[Any]]) -> None:
        """Append rows after the last row of a sheet."""
        await self._request(
            "POST",
            self._values_url(RangeSpec(sheet), suffix=":append"),
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": [list(row) for row in rows]},
        )

    async def batch_read(self, ranges: Sequence[str]) -> Dict[str, Rows]:
        """Batch read multiple ranges."""
        ranges = list(ranges)
        if not ranges:
            return {}
        payload = await self._request(
            "GET",
            f"{self._base_url}/{self._spreadsheet_id}/values:batchGet",
            params=[("ranges", value) for value in ranges],
        )
        value_ranges: List[Dict[str, Any]] = payload.get("valueRanges", [])
        result: Dict[str, Rows] = {value: [] for value in ranges}
        for index, value_range in enumerate(value_ranges[: len(ranges)]):
            result[ranges[index]] = value_range.get("values", [])
        return result

    async def clear(self, sheet: str, cells: Optional[str] = None) -> None:
        """Clear a sheet or a range."""
        await self._request("POST", self._values_url(RangeSpec(sheet, cells), suffix=":clear"))

    def _values_url(self, spec: RangeSpec, suffix: str = "") -> str:
        return f"{self._base_url}/{self._spreadsheet_id}/values/{quote(spec.a1, safe='')}{suffix}"

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        token = await self._token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}

        try:
            response = await self._http_client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientStoreError(f"Sheets API {method} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientStoreError(f"Sheets API {method} connection failed: {e}") from e

        status_code = response.status_code
        if status_code < 400:
            return response.json() if response.content else {}

        message = f"Sheets API {method} {url} returned {status_code}: {response.text[:200]}"
        if ErrorClassifier.is_transient_status(status_code):
            logger.warning(message)
            raise TransientStoreError(message, status_code=status_code)
        if status_code in (401, 403):
            self._token_provider.invalidate()
            raise StoreAuthenticationError(message, status_code=status_code)
        raise StoreRequestError(message, status_code=status_code)
