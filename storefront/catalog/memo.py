"""Request-scoped memoization.

A ``RequestScope`` collapses identical catalog calls made during one
logical operation into a single backend request. Entries are keyed by a
canonical serialization of the call arguments and are dropped when the
outermost ``request_scope()`` block exits. There is no time-based
expiry.

Example usage:
    async with request_scope() as scope:
        first = await catalog.get_products_list(1, country_code="us")
        again = await catalog.get_products_list(1, country_code="us")
        # one backend call; ``again is first``

        scope.invalidate_tag("products")
"""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")

_current_scope: ContextVar["RequestScope | None"] = ContextVar(
    "storefront_request_scope", default=None
)


def _encode_default(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return repr(value)


def canonical_key(name: str, *args: Any, **kwargs: Any) -> str:
    """Build a deterministic cache key for a call.

    Mapping keys are sorted, so two structurally equal parameter
    mappings produce the same key regardless of insertion order.

    Args:
        name: Operation name.
        *args: Positional call arguments.
        **kwargs: Keyword call arguments.

    Returns:
        Canonical JSON string.
    """
    return json.dumps(
        [name, list(args), kwargs],
        sort_keys=True,
        separators=(",", ":"),
        default=_encode_default,
    )


class RequestScope:
    """Deduplication map for one logical operation.

    Concurrent callers of the same key share one in-flight task. Calls
    that fail are forgotten so the next identical call goes to the
    backend again.
    """

    def __init__(self) -> None:
        self._entries: dict[str, asyncio.Future[Any]] = {}
        self._tags: dict[str, set[str]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    async def fetch(
        self,
        key: str,
        factory: Callable[[], Awaitable[T]],
        tags: Iterable[str] = (),
    ) -> T:
        """Return the memoized result for ``key``, computing it once.

        Args:
            key: Canonical call key (see ``canonical_key``).
            factory: Zero-argument coroutine function producing the result.
            tags: Invalidation groups the entry belongs to.

        Returns:
            Result of the first call made with this key.
        """
        entry = self._entries.get(key)
        if entry is None:
            entry = asyncio.ensure_future(factory())
            self._entries[key] = entry
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)
            entry.add_done_callback(lambda done: self._drop_failed(key, done))
        else:
            logger.debug("Reusing memoized call", key=key)
        return await asyncio.shield(entry)

    def _drop_failed(self, key: str, entry: asyncio.Future[Any]) -> None:
        if not entry.cancelled() and entry.exception() is None:
            return
        if self._entries.get(key) is entry:
            self._forget(key)

    def _forget(self, key: str) -> None:
        self._entries.pop(key, None)
        for keys in self._tags.values():
            keys.discard(key)

    def invalidate_tag(self, tag: str) -> int:
        """Drop every entry belonging to an invalidation group.

        Args:
            tag: Invalidation group name.

        Returns:
            Number of entries dropped.
        """
        keys = self._tags.pop(tag, set())
        for key in keys:
            self._forget(key)
        if keys:
            logger.debug("Invalidated memoized calls", tag=tag, count=len(keys))
        return len(keys)

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()
        self._tags.clear()


def current_scope() -> RequestScope | None:
    """Get the request scope active in this context, if any."""
    return _current_scope.get()


@asynccontextmanager
async def request_scope() -> AsyncIterator[RequestScope]:
    """Enter a request scope, reusing the active one when nested.

    Yields:
        The active RequestScope. It is cleared when the outermost block
        exits.
    """
    scope = _current_scope.get()
    if scope is not None:
        yield scope
        return

    scope = RequestScope()
    token = _current_scope.set(scope)
    try:
        yield scope
    finally:
        _current_scope.reset(token)
        scope.clear()
