"""Browse the product catalog from the command line.

Pages through a live store backend with the same loader a storefront
page uses, printing one line per product.

Usage:
    storefront-catalog --country us
    storefront-catalog --country dk --sort price_asc --pages 3
    storefront-catalog --country us --param q=shirt --param collection_id=pcol_1
"""

import argparse
import asyncio
import sys
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError

from storefront.catalog.loader import ProductLoader
from storefront.catalog.regions import StoreRegionResolver
from storefront.catalog.service import ProductCatalog
from storefront.catalog.sorting import SortKey, min_variant_price
from storefront.infrastructure.config import settings
from storefront.infrastructure.logging import configure_logging
from storefront.infrastructure.store_client import StoreClient

logger = structlog.get_logger()


class BrowseOptions(BaseModel):
    """Validated command-line options."""

    country_code: str = Field(default_factory=lambda: settings.default_country_code)
    sort_by: SortKey = SortKey.CREATED_AT
    pages: int = Field(default=1, ge=1, description="Maximum pages to load.")
    query_params: dict[str, Any] = Field(default_factory=dict)
    backend_url: str | None = None


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into query parameters.

    A key given more than once becomes a list.

    Raises:
        ValueError: If a pair has no ``=``.
    """
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected key=value, got {pair!r}")
        if key in params:
            existing = params[key]
            params[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def format_product(product: dict[str, Any]) -> str:
    """One display line for a product."""
    price = min_variant_price(product)
    price_text = f"{price:.2f}" if price is not None else "-"
    return f"{product.get('id', '?')}\t{price_text}\t{product.get('title', '')}"


async def browse(options: BrowseOptions) -> int:
    """Load up to ``options.pages`` pages and print them.

    Returns:
        Process exit code.
    """
    async with StoreClient(base_url=options.backend_url) as client:
        catalog = ProductCatalog(client, StoreRegionResolver(client))
        loader = ProductLoader(catalog.get_products_list_with_sort)

        await loader.set_query(
            options.query_params or None,
            country_code=options.country_code,
            sort_by=options.sort_by,
        )
        pages_loaded = 1
        while pages_loaded < options.pages and loader.can_load_more:
            await loader.load_more()
            pages_loaded += 1

    for product in loader.products:
        print(format_product(product))

    if loader.error_message:
        print(loader.error_message, file=sys.stderr)
        return 1
    if loader.is_empty:
        print("No products found.")
    elif loader.is_exhausted:
        print("No more products to load.")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Browse the store product catalog",
    )
    parser.add_argument(
        "--country",
        default=settings.default_country_code,
        help=f"Country code used to pick the pricing region (default: {settings.default_country_code})",
    )
    parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=SortKey.CREATED_AT.value,
        help="Per-page sort order",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Maximum number of pages to load (default: 1)",
    )
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Backend filter parameter, may be repeated",
    )
    parser.add_argument(
        "--backend-url",
        default=None,
        help="Store backend URL (default: from settings)",
    )

    args = parser.parse_args(argv)
    configure_logging(settings.log_level)

    try:
        options = BrowseOptions(
            country_code=args.country,
            sort_by=args.sort,
            pages=args.pages,
            query_params=parse_params(args.param),
            backend_url=args.backend_url,
        )
    except (ValidationError, ValueError) as e:
        parser.error(str(e))

    logger.info(
        "Browsing catalog",
        country_code=options.country_code,
        sort_by=options.sort_by.value,
        pages=options.pages,
    )
    return asyncio.run(browse(options))


if __name__ == "__main__":
    sys.exit(main())
