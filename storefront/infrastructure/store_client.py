"""Store HTTP client for communicating with the commerce backend.

Thin async client over the backend's public ``/store`` API. Only the
endpoints the catalog layer needs are exposed: product listing and
region listing.
"""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from storefront.infrastructure.config import settings

logger = structlog.get_logger()


class StoreClientError(Exception):
    """Error from a store backend call."""

    def __init__(
        self, path: str, message: str, status_code: int | None = None
    ) -> None:
        self.path = path
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{path}] {message}")


@dataclass
class StoreProductList:
    """One page of products as returned by the backend."""

    products: list[dict[str, Any]]
    count: int

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "StoreProductList":
        """Create from backend API response.

        Args:
            data: API response data.

        Returns:
            StoreProductList instance.
        """
        products = data.get("products") or []
        return cls(
            products=list(products),
            count=int(data.get("count", len(products))),
        )


def encode_query(params: dict[str, Any]) -> dict[str, Any]:
    """Flatten query parameters into a form httpx can send.

    ``None`` values are dropped, nested mappings are written with bracket
    notation (``{"q": {"a": 1}}`` becomes ``{"q[a]": 1}``) and lists are
    sent as repeated keys.

    Args:
        params: Query parameters.

    Returns:
        Flat parameter mapping.
    """
    flat: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, dict):
            for sub_key, sub_value in encode_query(value).items():
                head, _, rest = sub_key.partition("[")
                nested = f"{key}[{head}]" + (f"[{rest}" if rest else "")
                flat[nested] = sub_value
        elif isinstance(value, (list, tuple, set, frozenset)):
            flat[key] = list(value)
        else:
            flat[key] = value
    return flat


class StoreClient:
    """HTTP client for the commerce backend store API.

    Raises ``StoreClientError`` on transport failures and on any response
    with a status code of 400 or above.
    """

    def __init__(
        self,
        base_url: str | None = None,
        publishable_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize the store client.

        Args:
            base_url: Backend base URL. Defaults to settings.
            publishable_key: Publishable API key. Defaults to settings.
            timeout: Request timeout in seconds. Defaults to settings.
        """
        self.base_url = (base_url or settings.store_backend_url).rstrip("/")
        self.publishable_key = (
            publishable_key
            if publishable_key is not None
            else settings.store_publishable_key
        )
        self.timeout = timeout if timeout is not None else settings.store_request_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.publishable_key:
                headers["x-publishable-api-key"] = self.publishable_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "StoreClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Issue a GET request and return the decoded JSON body.

        Args:
            path: API endpoint path.
            params: Query parameters.

        Returns:
            Decoded response body.

        Raises:
            StoreClientError: On transport error or error status.
        """
        client = await self._get_client()
        query = encode_query(params or {})

        try:
            logger.debug("Making store request", path=path, params=sorted(query))
            response = await client.get(path, params=query)
        except httpx.TimeoutException as e:
            logger.error("Store request timeout", path=path, error=str(e))
            raise StoreClientError(path, f"Request timed out: {str(e)}", 504) from e
        except httpx.RequestError as e:
            logger.error("Store request failed", path=path, error=str(e))
            raise StoreClientError(path, f"Request failed: {str(e)}") from e

        if response.status_code >= 400:
            logger.warning(
                "Store request returned error status",
                path=path,
                status_code=response.status_code,
            )
            raise StoreClientError(
                path,
                f"Unexpected response: {response.text}",
                response.status_code,
            )

        return response.json()

    async def list_products(self, params: dict[str, Any]) -> StoreProductList:
        """List products.

        Args:
            params: Query parameters (limit, offset, region_id, fields, filters).

        Returns:
            Page of products with the total match count.

        Raises:
            StoreClientError: On API error.
        """
        data = await self._get("/store/products", params=params)
        return StoreProductList.from_api_response(data)

    async def list_regions(self) -> list[dict[str, Any]]:
        """List all regions configured on the backend.

        Returns:
            Raw region payloads.

        Raises:
            StoreClientError: On API error.
        """
        data = await self._get("/store/regions")
        return list(data.get("regions") or [])
