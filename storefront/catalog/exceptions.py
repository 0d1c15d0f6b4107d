"""Catalog exceptions.

Errors raised by the catalog layer for invalid requests. Backend
transport failures are reported as ``StoreClientError`` and are not
wrapped here.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for all catalog exceptions."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize catalog error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidPageError(CatalogError):
    """Raised when a page number below 1 is requested."""

    def __init__(self, page: int) -> None:
        super().__init__(
            f"Page number must be 1 or greater, got {page}",
            details={"page": page},
        )


class InvalidLoaderTransitionError(CatalogError):
    """Raised when the product loader is driven into an invalid state."""

    def __init__(
        self,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        allowed = allowed_transitions or []
        super().__init__(
            f"Cannot transition ProductLoader from '{current_state}' "
            f"to '{target_state}'. Allowed transitions: {allowed}",
            details={
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )
