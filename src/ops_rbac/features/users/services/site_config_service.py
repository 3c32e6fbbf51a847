"""Typed access to per-site configuration."""

import json
import logging
from typing import Any, Dict, Optional

from ....config.constants import ConfigDataType
from ....utils.cells import parse_bool
from ...data.entities.models import SiteConfig
from ...data.entities.protocols import DataService

logger = logging.getLogger(__name__)


def convert_config_value(config: SiteConfig) -> Any:
    """Convert a raw config value according to its declared data type.

    Raises:
        ValueError: If the value does not parse as its declared type
    """
    raw = config.config_value
    if config.data_type is ConfigDataType.NUMBER:
        number = float(raw)
        return int(number) if number.is_integer() and "." not in raw else number
    if config.data_type is ConfigDataType.BOOLEAN:
        return parse_bool(raw)
    if config.data_type is ConfigDataType.JSON:
        return json.loads(raw)
    return raw


class SiteConfigService:
    """Reads site configuration with values converted to their declared type."""

    def __init__(self, data_service: DataService):
        self._data_service = data_service

    async def get_value(self, site_code: str, key: str, default: Any = None) -> Any:
        """Typed value of ``key`` for a site, or ``default`` when unset or malformed."""
        for config in await self._data_service.list_site_config(site_code):
            if config.config_key != key:
                continue
            if config.config_value == "":
                return default
            try:
                return convert_config_value(config)
            except ValueError as e:
                logger.warning(
                    f"Config {site_code}/{key} is not a valid {config.data_type.value}: {e}"
                )
                return default
        return default

    async def get_all(self, site_code: str) -> Dict[str, Any]:
        """All active values of a site, typed; malformed values are skipped."""
        values: Dict[str, Any] = {}
        for config in await self._data_service.list_site_config(site_code):
            if config.config_key in values or config.config_value == "":
                continue
            try:
                values[config.config_key] = convert_config_value(config)
            except ValueError as e:
                logger.warning(f"Skipping config {site_code}/{config.config_key}: {e}")
        return values

    async def get_raw_value(self, site_code: str, key: str) -> Optional[str]:
        return await self._data_service.get_config_value(site_code, key)
