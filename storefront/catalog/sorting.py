"""Product sorting.

Stable ordering of a page of products by one of a closed set of keys.
Products without a comparable value for the active key go last, in
their original relative order.
"""

import math
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from storefront.catalog.models import Product


class SortKey(str, Enum):
    """Supported product orderings."""

    CREATED_AT = "created_at"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


def _variant_price(variant: dict[str, Any]) -> float | None:
    price = variant.get("calculated_price")
    if isinstance(price, dict):
        price = price.get("calculated_amount")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    if not math.isfinite(price):
        return None
    return float(price)


def min_variant_price(product: Product) -> float | None:
    """Lowest calculated price across a product's variants.

    Args:
        product: Product mapping.

    Returns:
        Minimum price, or None if no variant carries a calculated price.
    """
    prices = [
        price
        for price in (_variant_price(v) for v in product.get("variants") or [])
        if price is not None
    ]
    return min(prices) if prices else None


def created_at(product: Product) -> datetime | None:
    """Creation timestamp of a product, or None if absent or unparseable."""
    value = product.get("created_at")
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # naive timestamps are read as UTC so they compare with aware ones
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _sort_value(product: Product, sort_by: SortKey) -> Any:
    if sort_by is SortKey.CREATED_AT:
        return created_at(product)
    return min_variant_price(product)


def sort_products(
    products: Iterable[Product],
    sort_by: SortKey | str = SortKey.CREATED_AT,
) -> list[Product]:
    """Sort products by the given key.

    Args:
        products: Products to order. Not modified.
        sort_by: Sort key or its string value.

    Returns:
        New list in sorted order.

    Raises:
        ValueError: If sort_by is not a known sort key.
    """
    key = SortKey(sort_by)
    keyed = [(product, _sort_value(product, key)) for product in products]
    comparable = [pair for pair in keyed if pair[1] is not None]
    missing = [product for product, value in keyed if value is None]

    # list.sort is stable for reverse=True as well
    comparable.sort(key=lambda pair: pair[1], reverse=key is SortKey.PRICE_DESC)
    return [product for product, _ in comparable] + missing
