"""Tests for the in-process known-group caches."""

from __future__ import annotations

import asyncio

import pytest

from accessgraph import KnownGroupCache, KnownGroupEntry, PrincipalKind, SharedKnownGroupCache
from fakes import resource_group, security_group


def users_entry(principal, users="bob@x.com") -> KnownGroupEntry:
    return KnownGroupEntry(principal=principal, resolved_users=users, permission_levels="Read")


class TestKnownGroupCache:
    """Tests for KnownGroupCache."""

    @pytest.mark.asyncio
    async def test_lookup_miss_then_hit(self) -> None:
        cache = KnownGroupCache()
        group = security_group("grp1", "grp1")

        assert await cache.lookup(group) is None
        await cache.store(group, [users_entry(group)])
        entries = await cache.lookup(group)

        assert entries is not None
        assert entries[0].resolved_users == "bob@x.com"
        assert cache.stats.misses == 1
        assert cache.stats.hits == 1
        assert cache.stats.stores == 1

    @pytest.mark.asyncio
    async def test_first_store_wins(self) -> None:
        cache = KnownGroupCache()
        group = security_group("grp1", "grp1")

        first = await cache.store(group, [users_entry(group, "first@x.com")])
        second = await cache.store(group, [users_entry(group, "second@x.com")])

        assert second == first
        assert (await cache.lookup(group))[0].resolved_users == "first@x.com"

    @pytest.mark.asyncio
    async def test_empty_expansion_is_cached(self) -> None:
        cache = KnownGroupCache()
        group = security_group("empty", "empty")
        await cache.store(group, [])
        assert await cache.lookup(group) == ()

    @pytest.mark.asyncio
    async def test_directory_group_keyed_by_decoded_id(self) -> None:
        """Claims prefixes and the originating site do not split directory groups."""
        cache = KnownGroupCache()
        on_site_a = security_group("grp1", "c:0t.c|tenant|grp1", scope="https://a")
        on_site_b = security_group("grp1 (renamed)", "grp1", scope="https://b")

        await cache.store(on_site_a, [users_entry(on_site_a)])

        assert on_site_b in cache
        assert cache.key_for(on_site_b) == (PrincipalKind.DIRECTORY_GROUP, "grp1", None)

    @pytest.mark.asyncio
    async def test_owners_only_is_a_separate_key(self) -> None:
        cache = KnownGroupCache()
        owners = security_group("owners", "c:0o.c|federateddirectoryclaimprovider|abc_o")
        everyone_in_group = security_group("members", "c:0o.c|federateddirectoryclaimprovider|abc")

        await cache.store(owners, [users_entry(owners)])

        assert owners in cache
        assert everyone_in_group not in cache

    @pytest.mark.asyncio
    async def test_resource_groups_keyed_per_scope(self) -> None:
        cache = KnownGroupCache()
        on_a = resource_group("Members", "https://a")
        await cache.store(on_a, [users_entry(on_a)])

        assert on_a in cache
        assert resource_group("Members", "https://b") not in cache

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        cache = KnownGroupCache()
        group = security_group("grp1", "grp1")
        await cache.store(group, [users_entry(group)])
        cache.clear()
        assert len(cache) == 0
        assert cache.stats.stores == 0

    def test_contains_ignores_non_principals(self) -> None:
        assert "grp1" not in KnownGroupCache()


class TestSharedKnownGroupCache:
    """Tests for SharedKnownGroupCache."""

    @pytest.mark.asyncio
    async def test_reserve_serializes_same_key(self) -> None:
        cache = SharedKnownGroupCache()
        group = security_group("grp1", "grp1")
        fetches = 0

        async def expand_once() -> tuple:
            nonlocal fetches
            async with cache.reserve(group):
                cached = await cache.lookup(group)
                if cached is not None:
                    return cached
                fetches += 1
                await asyncio.sleep(0.01)
                return await cache.store(group, [users_entry(group)])

        results = await asyncio.gather(*(expand_once() for _ in range(5)))

        assert fetches == 1
        assert all(r == results[0] for r in results)

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self) -> None:
        cache = SharedKnownGroupCache()
        first = security_group("a", "a")
        second = security_group("b", "b")

        async with cache.reserve(first):
            await asyncio.wait_for(self._enter(cache, second), timeout=1)

    @staticmethod
    async def _enter(cache, principal) -> None:
        async with cache.reserve(principal):
            pass
