"""Product catalog module.

Provides:
- Paged, region-scoped product listing with next page cursors
- Request-scoped memoization of identical calls
- Per-page product sorting
- Incremental "load more" accumulation
"""

from storefront.catalog.exceptions import (
    CatalogError,
    InvalidLoaderTransitionError,
    InvalidPageError,
)
from storefront.catalog.loader import ListingQuery, LoaderState, LoaderStatus, ProductLoader
from storefront.catalog.memo import RequestScope, canonical_key, current_scope, request_scope
from storefront.catalog.models import (
    PAGE_SIZE,
    PRODUCT_FIELDS,
    PRODUCTS_TAG,
    PageRequest,
    ProductListResponse,
    ProductListResult,
    Region,
)
from storefront.catalog.regions import RegionResolver, StoreRegionResolver
from storefront.catalog.service import ProductCatalog
from storefront.catalog.sorting import SortKey, min_variant_price, sort_products

__all__ = [
    # Errors
    "CatalogError",
    "InvalidLoaderTransitionError",
    "InvalidPageError",
    # Models
    "PAGE_SIZE",
    "PRODUCT_FIELDS",
    "PRODUCTS_TAG",
    "PageRequest",
    "ProductListResponse",
    "ProductListResult",
    "Region",
    # Memoization
    "RequestScope",
    "canonical_key",
    "current_scope",
    "request_scope",
    # Regions
    "RegionResolver",
    "StoreRegionResolver",
    # Sorting
    "SortKey",
    "min_variant_price",
    "sort_products",
    # Service
    "ProductCatalog",
    # Loader
    "ListingQuery",
    "LoaderState",
    "LoaderStatus",
    "ProductLoader",
]
