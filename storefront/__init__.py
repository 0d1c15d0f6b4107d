"""Storefront catalog client.

Client-side catalog layer for a storefront backed by a hosted commerce API.

This package provides:
- Paged product listing scoped to a pricing region
- Request-scoped memoization of identical catalog calls
- Per-page product sorting
- An incremental "load more" product loader
"""

__version__ = "0.1.0"
