"""Region resolution.

Maps a country code to the backend pricing region that serves it.
"""

import asyncio
from typing import Protocol

import structlog

from storefront.catalog.models import Region
from storefront.infrastructure.config import settings
from storefront.infrastructure.store_client import StoreClient

logger = structlog.get_logger()


class RegionResolver(Protocol):
    """Anything that can resolve a country code to a region."""

    async def get_region(self, country_code: str | None) -> Region | None:
        ...


class StoreRegionResolver:
    """Region resolver backed by the store ``/store/regions`` endpoint.

    The country map is loaded once per resolver and reused. Unknown
    country codes resolve to None.
    """

    def __init__(
        self,
        client: StoreClient,
        default_country_code: str | None = None,
    ) -> None:
        self.client = client
        self.default_country_code = (
            default_country_code or settings.default_country_code
        ).lower()
        self._region_map: dict[str, Region] | None = None
        self._lock = asyncio.Lock()

    async def _load_region_map(self) -> dict[str, Region]:
        async with self._lock:
            if self._region_map is None:
                region_map: dict[str, Region] = {}
                for payload in await self.client.list_regions():
                    region = Region.from_api_response(payload)
                    for country in region.countries:
                        region_map[country] = region
                logger.info(
                    "Loaded region map",
                    region_count=len({r.id for r in region_map.values()}),
                    country_count=len(region_map),
                )
                self._region_map = region_map
            return self._region_map

    async def get_region(self, country_code: str | None) -> Region | None:
        """Resolve a country code to its region.

        Args:
            country_code: ISO-2 country code. The configured default is
                used when empty.

        Returns:
            Region serving the country, or None if no region does.
        """
        code = (country_code or self.default_country_code).lower()
        region_map = await self._load_region_map()
        return region_map.get(code)

    def invalidate(self) -> None:
        """Forget the loaded country map."""
        self._region_map = None
