"""Tests for region resolution."""

from unittest.mock import MagicMock

import pytest

from storefront.catalog.models import Region
from storefront.catalog.regions import StoreRegionResolver

REGIONS = [
    {
        "id": "reg_eu",
        "name": "Europe",
        "currency_code": "EUR",
        "countries": [{"iso_2": "dk"}, {"iso_2": "DE"}],
    },
    {
        "id": "reg_us",
        "name": "United States",
        "currency_code": "usd",
        "countries": [{"iso_2": "us"}],
    },
]


class TestRegion:
    """Tests for Region parsing."""

    def test_from_api_response(self) -> None:
        """Countries and currency are normalized to lower case."""
        region = Region.from_api_response(REGIONS[0])
        assert region.id == "reg_eu"
        assert region.currency_code == "eur"
        assert region.countries == ("dk", "de")
        assert region.name == "Europe"

    def test_region_is_immutable(self) -> None:
        """Regions cannot be modified."""
        region = Region.from_api_response(REGIONS[1])
        with pytest.raises(AttributeError):
            region.id = "other"  # type: ignore[misc]


class TestStoreRegionResolver:
    """Tests for StoreRegionResolver."""

    @pytest.fixture
    def resolver(self, mock_store_client: MagicMock) -> StoreRegionResolver:
        mock_store_client.list_regions.return_value = REGIONS
        return StoreRegionResolver(mock_store_client, default_country_code="us")

    @pytest.mark.asyncio
    async def test_resolves_country(self, resolver: StoreRegionResolver) -> None:
        """A served country maps to its region."""
        region = await resolver.get_region("DE")
        assert region is not None
        assert region.id == "reg_eu"

    @pytest.mark.asyncio
    async def test_unknown_country(self, resolver: StoreRegionResolver) -> None:
        """Unserved countries resolve to None."""
        assert await resolver.get_region("zz") is None

    @pytest.mark.asyncio
    async def test_default_country(self, resolver: StoreRegionResolver) -> None:
        """An empty code falls back to the default country."""
        region = await resolver.get_region(None)
        assert region is not None
        assert region.id == "reg_us"

    @pytest.mark.asyncio
    async def test_regions_loaded_once(
        self, resolver: StoreRegionResolver, mock_store_client: MagicMock
    ) -> None:
        """The region map is reused until invalidated."""
        await resolver.get_region("us")
        await resolver.get_region("dk")
        mock_store_client.list_regions.assert_awaited_once()

        resolver.invalidate()
        await resolver.get_region("us")
        assert mock_store_client.list_regions.await_count == 2
