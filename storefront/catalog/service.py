"""Catalog service for product listing.

Fetches fixed-size product pages scoped to the pricing region of a
country, and sorts them per page. Every call runs inside a request
scope, so identical calls made during one logical operation reach the
backend once.

Example usage:
    async with StoreClient() as client:
        catalog = ProductCatalog(client, StoreRegionResolver(client))

        result = await catalog.get_products_list_with_sort(
            page=1, sort_by="price_asc", country_code="us"
        )
        result.response.products  # up to 12 products
        result.next_page          # 2, or None when exhausted
"""

from dataclasses import replace
from typing import Any

import structlog

from storefront.catalog.exceptions import InvalidPageError
from storefront.catalog.memo import canonical_key, request_scope
from storefront.catalog.models import (
    PRODUCT_FIELDS,
    PRODUCTS_TAG,
    PageRequest,
    Product,
    ProductListResponse,
    ProductListResult,
    QueryParams,
)
from storefront.catalog.regions import RegionResolver
from storefront.catalog.sorting import SortKey, sort_products
from storefront.infrastructure.store_client import StoreClient

logger = structlog.get_logger()

# Pagination is owned by the catalog, not by caller filters.
_PAGINATION_KEYS = frozenset({"limit", "offset"})


class ProductCatalog:
    """Service for product catalog reads.

    Combines the store client with region resolution, request-scoped
    memoization and per-page sorting.
    """

    def __init__(self, client: StoreClient, regions: RegionResolver) -> None:
        """Initialize the catalog.

        Args:
            client: Store backend client.
            regions: Country to region resolver.
        """
        self.client = client
        self.regions = regions

    async def get_products_list(
        self,
        page_param: int = 1,
        query_params: QueryParams | None = None,
        *,
        country_code: str,
    ) -> ProductListResult:
        """Fetch one page of products for a country.

        Args:
            page_param: Page number, starting at 1.
            query_params: Filters forwarded verbatim to the backend.
            country_code: Country whose region prices the products.

        Returns:
            Page products, total count and next page cursor. Empty with no
            next page when the country has no region.

        Raises:
            InvalidPageError: If page_param is below 1.
            StoreClientError: If the backend call fails.
        """
        if page_param < 1:
            raise InvalidPageError(page_param)

        key = canonical_key(
            "get_products_list", page_param, query_params or {}, country_code
        )
        async with request_scope() as scope:
            result = await scope.fetch(
                key,
                lambda: self._fetch_products_list(page_param, query_params, country_code),
                tags=(PRODUCTS_TAG,),
            )

        # the memoized result is shared across the scope
        return replace(
            result,
            response=ProductListResponse(
                products=list(result.response.products),
                count=result.response.count,
            ),
        )

    async def _fetch_products_list(
        self,
        page_param: int,
        query_params: QueryParams | None,
        country_code: str,
    ) -> ProductListResult:
        request = PageRequest(page=page_param)
        region = await self.regions.get_region(country_code)

        if region is None:
            logger.info("No region for country, catalog is empty", country_code=country_code)
            return ProductListResult.empty()

        filters = dict(query_params or {})
        ignored = sorted(_PAGINATION_KEYS & filters.keys())
        if ignored:
            logger.warning("Ignoring caller pagination parameters", keys=ignored)
            for name in ignored:
                del filters[name]

        params: dict[str, Any] = {
            "limit": request.limit,
            "offset": request.offset,
            "region_id": region.id,
            "fields": PRODUCT_FIELDS,
            **filters,
        }
        page = await self.client.list_products(params)
        next_page = request.next_page(page.count)

        logger.debug(
            "Fetched product page",
            page=page_param,
            region_id=region.id,
            returned=len(page.products),
            count=page.count,
            next_page=next_page,
        )

        return ProductListResult(
            response=ProductListResponse(products=page.products, count=page.count),
            next_page=next_page,
            query_params=query_params,
        )

    async def get_products_by_id(
        self,
        ids: list[str],
        region_id: str,
    ) -> list[Product]:
        """Fetch products by their IDs.

        Args:
            ids: Product identifiers.
            region_id: Region whose prices are calculated.

        Returns:
            Matching products in backend order.
        """
        key = canonical_key("get_products_by_id", list(ids), region_id)

        async def fetch() -> list[Product]:
            page = await self.client.list_products(
                {"id": list(ids), "region_id": region_id, "fields": PRODUCT_FIELDS}
            )
            return page.products

        async with request_scope() as scope:
            return list(await scope.fetch(key, fetch, tags=(PRODUCTS_TAG,)))

    async def get_product_by_handle(
        self,
        handle: str,
        region_id: str,
    ) -> Product | None:
        """Fetch a single product by its handle.

        Args:
            handle: Product handle (URL slug).
            region_id: Region whose prices are calculated.

        Returns:
            Product if found, None otherwise.
        """
        key = canonical_key("get_product_by_handle", handle, region_id)

        async def fetch() -> Product | None:
            page = await self.client.list_products(
                {"handle": handle, "region_id": region_id, "fields": PRODUCT_FIELDS}
            )
            return page.products[0] if page.products else None

        async with request_scope() as scope:
            return await scope.fetch(key, fetch, tags=(PRODUCTS_TAG,))

    async def get_products_list_with_sort(
        self,
        page: int = 1,
        query_params: QueryParams | None = None,
        sort_by: SortKey | str = SortKey.CREATED_AT,
        *,
        country_code: str,
    ) -> ProductListResult:
        """Fetch one page of products and sort it.

        Only the products of the requested page are sorted; pages are not
        merged or reordered against each other.

        Args:
            page: Page number, starting at 1.
            query_params: Filters forwarded verbatim to the backend.
            sort_by: Sort key.
            country_code: Country whose region prices the products.

        Returns:
            Sorted page products, total count and next page cursor.

        Raises:
            InvalidPageError: If page is below 1.
            ValueError: If sort_by is not a known sort key.
            StoreClientError: If the backend call fails.
        """
        sort_key = SortKey(sort_by)
        async with request_scope():
            result = await self.get_products_list(
                page,
                dict(query_params or {}),
                country_code=country_code,
            )

        return ProductListResult(
            response=ProductListResponse(
                products=sort_products(result.response.products, sort_key),
                count=result.response.count,
            ),
            next_page=result.next_page,
            query_params=query_params,
        )
