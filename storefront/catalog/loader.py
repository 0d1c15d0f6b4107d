"""Incremental product loader.

Accumulates successive product pages for one listing query (filters,
country and sort key) behind a "load more" action. The loader is a
small state machine independent of any UI:

    State diagram:
        IDLE ─────────► LOADING ─────────► IDLE
                          │  ▲
                     fail │  │ load_more (retry)
                          ▼  │
                         ERROR

Changing the listing query starts over from page 1. A response that
arrives after the query changed is discarded.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import structlog

from storefront.catalog.exceptions import InvalidLoaderTransitionError
from storefront.catalog.memo import canonical_key
from storefront.catalog.models import Product, ProductListResult, QueryParams
from storefront.catalog.sorting import SortKey

logger = structlog.get_logger()

ListPage = Callable[..., Awaitable[ProductListResult]]


class LoaderStatus(str, Enum):
    """Product loader states."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"

    def can_transition_to(self, target: "LoaderStatus") -> bool:
        """Check if transition to target state is valid."""
        return target in _LOADER_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["LoaderStatus"]:
        """Get list of valid target states."""
        return list(_LOADER_TRANSITIONS.get(self, set()))


# LOADING -> LOADING happens when the query changes mid-request
_LOADER_TRANSITIONS: dict[LoaderStatus, set[LoaderStatus]] = {
    LoaderStatus.IDLE: {LoaderStatus.LOADING},
    LoaderStatus.LOADING: {LoaderStatus.IDLE, LoaderStatus.ERROR, LoaderStatus.LOADING},
    LoaderStatus.ERROR: {LoaderStatus.LOADING},
}


@dataclass(frozen=True)
class ListingQuery:
    """The inputs that identify one accumulated listing."""

    country_code: str
    query_params: QueryParams | None = None
    sort_by: SortKey = SortKey.CREATED_AT

    @property
    def key(self) -> str:
        """Canonical identity, independent of filter key order."""
        return canonical_key(
            "listing", self.query_params or {}, self.country_code, self.sort_by.value
        )


@dataclass
class LoaderState:
    """Snapshot of the loader's accumulated listing.

    Attributes:
        products: Products accumulated so far, in arrival order.
        current_page: Last page merged into products.
        next_page: Next page to request, None when exhausted.
        status: Current loader state.
        last_error: Error from the last failed request, if any.
    """

    products: list[Product] = field(default_factory=list)
    current_page: int = 1
    next_page: int | None = 2
    status: LoaderStatus = LoaderStatus.IDLE
    last_error: Exception | None = None


class ProductLoader:
    """Drives "load more" pagination for one listing at a time.

    Example usage:
        loader = ProductLoader(catalog.get_products_list_with_sort)
        await loader.set_query(country_code="us", sort_by="price_asc")
        while loader.can_load_more:
            await loader.load_more()
    """

    ERROR_MESSAGE = "Failed to load products."

    def __init__(self, list_page: ListPage) -> None:
        """Initialize the loader.

        Args:
            list_page: Coroutine function called as
                ``list_page(page=..., query_params=..., sort_by=..., country_code=...)``
                returning a ProductListResult.
        """
        self._list_page = list_page
        self._state = LoaderState()
        self._query: ListingQuery | None = None
        self._sequence = 0
        self._seen_ids: set[Any] = set()
        self._completed = False
        self._failed_page: int | None = None

    # =========================================================================
    # State accessors
    # =========================================================================

    @property
    def state(self) -> LoaderState:
        """Copy of the current state."""
        return replace(self._state, products=list(self._state.products))

    @property
    def query(self) -> ListingQuery | None:
        return self._query

    @property
    def products(self) -> list[Product]:
        return list(self._state.products)

    @property
    def status(self) -> LoaderStatus:
        return self._state.status

    @property
    def current_page(self) -> int:
        return self._state.current_page

    @property
    def next_page(self) -> int | None:
        return self._state.next_page

    @property
    def last_error(self) -> Exception | None:
        return self._state.last_error

    @property
    def error_message(self) -> str | None:
        """User-facing message for the last failure."""
        return self.ERROR_MESSAGE if self._state.last_error is not None else None

    @property
    def is_loading(self) -> bool:
        return self._state.status is LoaderStatus.LOADING

    @property
    def can_load_more(self) -> bool:
        """Whether a load_more call would issue a request."""
        return (
            self._query is not None
            and self._state.next_page is not None
            and not self.is_loading
        )

    @property
    def is_exhausted(self) -> bool:
        """No pages remain for the current query."""
        return self._query is not None and self._state.next_page is None

    @property
    def is_empty(self) -> bool:
        """A fetch completed and nothing was found."""
        return (
            self._completed
            and self._state.status is LoaderStatus.IDLE
            and not self._state.products
        )

    # =========================================================================
    # Actions
    # =========================================================================

    async def set_query(
        self,
        query_params: QueryParams | None = None,
        *,
        country_code: str,
        sort_by: SortKey | str = SortKey.CREATED_AT,
    ) -> bool:
        """Show the listing for a query, starting over if it changed.

        Args:
            query_params: Backend filters.
            country_code: Country whose region prices the products.
            sort_by: Per-page sort key.

        Returns:
            True if the first page was loaded and merged, False if the
            query was unchanged, the request failed, or its response went
            stale.
        """
        query = ListingQuery(
            country_code=country_code,
            query_params=dict(query_params) if query_params is not None else None,
            sort_by=SortKey(sort_by),
        )
        if self._query is not None and self._query.key == query.key:
            return False

        logger.debug(
            "Listing query changed",
            country_code=query.country_code,
            sort_by=query.sort_by.value,
        )
        self._query = query
        self._seen_ids = set()
        self._completed = False
        self._failed_page = None
        self._state.products = []
        self._state.current_page = 1
        self._state.next_page = 2
        return await self._load(1)

    async def reload(self) -> bool:
        """Start the current query over from page 1."""
        if self._query is None:
            return False
        query, self._query = self._query, None
        return await self.set_query(
            query.query_params,
            country_code=query.country_code,
            sort_by=query.sort_by,
        )

    async def load_more(self) -> bool:
        """Load the next page, if there is one and nothing is loading.

        After an error this retries the page that failed.

        Returns:
            True if a page was loaded and merged, False otherwise.
        """
        if not self.can_load_more:
            logger.debug(
                "Load more ignored",
                status=self._state.status.value,
                next_page=self._state.next_page,
            )
            return False
        page = self._failed_page or self._state.next_page
        return await self._load(page)

    # =========================================================================
    # Internals
    # =========================================================================

    def _transition(self, target: LoaderStatus) -> None:
        current = self._state.status
        if not current.can_transition_to(target):
            raise InvalidLoaderTransitionError(
                current.value,
                target.value,
                [s.value for s in current.allowed_transitions()],
            )
        self._state.status = target

    async def _load(self, page: int) -> bool:
        self._sequence += 1
        sequence = self._sequence
        query = self._query

        self._transition(LoaderStatus.LOADING)
        self._state.last_error = None

        try:
            result = await self._list_page(
                page=page,
                query_params=query.query_params,
                sort_by=query.sort_by,
                country_code=query.country_code,
            )
        except asyncio.CancelledError:
            # a cancelled page stays retryable
            if sequence == self._sequence:
                logger.info("Product load cancelled", page=page)
                self._failed_page = page
                self._transition(LoaderStatus.IDLE)
            raise
        except Exception as e:
            if sequence != self._sequence:
                logger.debug("Discarding stale failure", page=page, sequence=sequence)
                return False
            logger.warning(
                "Failed to load products",
                page=page,
                country_code=query.country_code,
                error=str(e),
            )
            self._state.last_error = e
            self._failed_page = page
            self._transition(LoaderStatus.ERROR)
            return False

        if sequence != self._sequence:
            logger.debug("Discarding stale page", page=page, sequence=sequence)
            return False

        self._merge(result.response.products)
        self._state.current_page = page
        self._state.next_page = result.next_page
        self._completed = True
        self._failed_page = None
        self._transition(LoaderStatus.IDLE)
        return True

    def _merge(self, products: list[Product]) -> None:
        skipped = 0
        for product in products:
            product_id = product.get("id")
            if product_id is not None:
                if product_id in self._seen_ids:
                    skipped += 1
                    continue
                self._seen_ids.add(product_id)
            self._state.products.append(product)
        if skipped:
            logger.info("Skipped products already loaded", count=skipped)
