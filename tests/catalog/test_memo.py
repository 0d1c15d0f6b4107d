"""Tests for request-scoped memoization."""

import asyncio

import pytest

from storefront.catalog.memo import RequestScope, canonical_key, current_scope, request_scope


class TestCanonicalKey:
    """Tests for canonical_key."""

    def test_mapping_order_does_not_matter(self) -> None:
        """Equal mappings with different key order share a key."""
        first = canonical_key("op", 1, {"a": 1, "b": [1, 2]}, "us")
        second = canonical_key("op", 1, {"b": [1, 2], "a": 1}, "us")
        assert first == second

    def test_different_arguments_differ(self) -> None:
        """Different pages produce different keys."""
        assert canonical_key("op", 1, {}, "us") != canonical_key("op", 2, {}, "us")

    def test_operation_name_is_part_of_key(self) -> None:
        """Different operations never collide."""
        assert canonical_key("a", 1) != canonical_key("b", 1)

    def test_sets_are_order_independent(self) -> None:
        """Sets serialize deterministically."""
        assert canonical_key("op", {"x", "y", "z"}) == canonical_key("op", {"z", "y", "x"})


class TestRequestScope:
    """Tests for RequestScope."""

    @pytest.mark.asyncio
    async def test_second_call_reuses_result(self) -> None:
        """The factory runs once per key."""
        scope = RequestScope()
        calls = 0

        async def factory() -> int:
            nonlocal calls
            calls += 1
            return 42

        assert await scope.fetch("k", factory) == 42
        assert await scope.fetch("k", factory) == 42
        assert calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_task(self) -> None:
        """Identical in-flight calls collapse into one."""
        scope = RequestScope()
        release = asyncio.Event()
        calls = 0

        async def factory() -> str:
            nonlocal calls
            calls += 1
            await release.wait()
            return "done"

        pending = asyncio.gather(scope.fetch("k", factory), scope.fetch("k", factory))
        await asyncio.sleep(0)
        release.set()

        assert await pending == ["done", "done"]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_memoized(self) -> None:
        """A failed call is retried on the next fetch."""
        scope = RequestScope()
        attempts = 0

        async def factory() -> str:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise RuntimeError("boom")
            return "ok"

        with pytest.raises(RuntimeError):
            await scope.fetch("k", factory)
        assert "k" not in scope

        assert await scope.fetch("k", factory) == "ok"
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_invalidate_tag_drops_tagged_entries(self) -> None:
        """Invalidating a tag forces tagged calls to run again."""
        scope = RequestScope()
        calls: list[str] = []

        async def make(name: str) -> str:
            calls.append(name)
            return name

        await scope.fetch("p", lambda: make("p"), tags=("products",))
        await scope.fetch("r", lambda: make("r"), tags=("regions",))

        assert scope.invalidate_tag("products") == 1
        assert "p" not in scope
        assert "r" in scope

        await scope.fetch("p", lambda: make("p"), tags=("products",))
        assert calls == ["p", "r", "p"]

    def test_invalidate_unknown_tag(self) -> None:
        """Unknown tags invalidate nothing."""
        assert RequestScope().invalidate_tag("nothing") == 0


class TestRequestScopeContext:
    """Tests for request_scope()."""

    @pytest.mark.asyncio
    async def test_no_scope_outside_block(self) -> None:
        """No scope is active by default."""
        assert current_scope() is None

    @pytest.mark.asyncio
    async def test_nested_blocks_share_scope(self) -> None:
        """Nested request_scope reuses the outer scope."""
        async with request_scope() as outer:
            assert current_scope() is outer
            async with request_scope() as inner:
                assert inner is outer

    @pytest.mark.asyncio
    async def test_scope_cleared_on_exit(self) -> None:
        """Entries do not outlive the outermost block."""
        async with request_scope() as scope:
            async def factory() -> int:
                return 1

            await scope.fetch("k", factory)
            assert len(scope) == 1

        assert len(scope) == 0
        assert current_scope() is None

    @pytest.mark.asyncio
    async def test_inner_exit_keeps_outer_entries(self) -> None:
        """Leaving a nested block does not clear the shared scope."""
        async def factory() -> int:
            return 1

        async with request_scope() as outer:
            async with request_scope() as inner:
                await inner.fetch("k", factory)
            assert "k" in outer
