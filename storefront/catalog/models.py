"""Catalog data model.

Products are kept as the backend's raw mappings; only the listing
envelope, the page request arithmetic and regions are typed here.
"""

from dataclasses import dataclass, field
from typing import Any

# Products per request. Not configurable by callers.
PAGE_SIZE = 12

# Projection requested on every product list call.
PRODUCT_FIELDS = "*variants.calculated_price,+variants.inventory_quantity"

# Invalidation group attached to every product fetch.
PRODUCTS_TAG = "products"

Product = dict[str, Any]
QueryParams = dict[str, Any]


@dataclass(frozen=True)
class Region:
    """Backend pricing region.

    Attributes:
        id: Region identifier.
        currency_code: ISO currency code prices are calculated in.
        countries: ISO-2 country codes served by the region.
        name: Display name.
    """

    id: str
    currency_code: str
    countries: tuple[str, ...] = ()
    name: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Region":
        """Create from backend region payload.

        Args:
            data: API response data.

        Returns:
            Region instance.
        """
        countries = tuple(
            c["iso_2"].lower()
            for c in data.get("countries") or []
            if c.get("iso_2")
        )
        return cls(
            id=data["id"],
            currency_code=(data.get("currency_code") or "").lower(),
            countries=countries,
            name=data.get("name"),
        )


@dataclass(frozen=True)
class PageRequest:
    """A request for one fixed-size page of products."""

    page: int
    limit: int = PAGE_SIZE

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.limit

    def next_page(self, count: int) -> int | None:
        """Cursor for the page after this one.

        Args:
            count: Total number of matching products.

        Returns:
            Next page number, or None when this page is the last.
        """
        if count > self.offset + self.limit:
            return self.page + 1
        return None


@dataclass
class ProductListResponse:
    """Products of one page plus the total match count."""

    products: list[Product] = field(default_factory=list)
    count: int = 0


@dataclass
class ProductListResult:
    """Result of a product list call.

    Attributes:
        response: Page products and total count.
        next_page: Cursor for the following page, None when exhausted.
        query_params: Caller query parameters, echoed back.
    """

    response: ProductListResponse
    next_page: int | None
    query_params: QueryParams | None = None

    @classmethod
    def empty(cls, query_params: QueryParams | None = None) -> "ProductListResult":
        """Result for a locale with no catalog available."""
        return cls(response=ProductListResponse(), next_page=None, query_params=query_params)
