"""Pytest configuration and fixtures for catalog tests."""

from collections.abc import Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from storefront.catalog.models import Region
from storefront.catalog.service import ProductCatalog
from storefront.infrastructure.store_client import StoreClient, StoreProductList

US_REGION = Region(id="reg_us", currency_code="usd", countries=("us", "ca"), name="North America")


class StubRegionResolver:
    """Region resolver with a fixed country map."""

    def __init__(self, regions: dict[str, Region] | None = None) -> None:
        self.regions = regions if regions is not None else {"us": US_REGION, "ca": US_REGION}
        self.calls: list[str | None] = []

    async def get_region(self, country_code: str | None) -> Region | None:
        self.calls.append(country_code)
        return self.regions.get((country_code or "").lower())


def make_product(
    product_id: str,
    prices: list[float | None] | None = None,
    created_at: str | None = "2024-01-01T00:00:00Z",
    title: str | None = None,
) -> dict[str, Any]:
    """Create a backend-shaped product mapping."""
    variants = [
        {
            "id": f"{product_id}-v{i}",
            "calculated_price": (
                {"calculated_amount": price, "currency_code": "usd"}
                if price is not None
                else None
            ),
            "inventory_quantity": 10,
        }
        for i, price in enumerate(prices or [])
    ]
    product: dict[str, Any] = {
        "id": product_id,
        "title": title or f"Product {product_id}",
        "variants": variants,
    }
    if created_at is not None:
        product["created_at"] = created_at
    return product


def make_page(products: list[dict[str, Any]], count: int) -> StoreProductList:
    """Create a backend page."""
    return StoreProductList(products=products, count=count)


@pytest.fixture(autouse=True)
def captured_logs() -> Iterator[list[dict[str, Any]]]:
    """Capture structlog events so they never reach stdout."""
    with capture_logs() as logs:
        yield logs


@pytest.fixture
def mock_store_client() -> MagicMock:
    """Create a mock store client."""
    client = MagicMock(spec=StoreClient)
    client.list_products = AsyncMock(return_value=make_page([], 0))
    client.list_regions = AsyncMock(return_value=[])
    client.close = AsyncMock()
    return client


@pytest.fixture
def region_resolver() -> StubRegionResolver:
    """Create a region resolver that knows "us" and "ca"."""
    return StubRegionResolver()


@pytest.fixture
def catalog(mock_store_client: MagicMock, region_resolver: StubRegionResolver) -> ProductCatalog:
    """Create a catalog over the mock client."""
    return ProductCatalog(mock_store_client, region_resolver)
