"""In-process known-group caches.

A group referenced from many resources, or reached through many access
paths, is expanded over the network at most once per scan. Each cache entry
holds one group's own expansion outcome; callers replay it and rebuild the
record labels from their current access path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from ..cancellation import CancellationToken
from ..models import CacheKey, KnownGroupEntry, PrincipalRef

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    stores: int = 0


class KnownGroupCache:
    """Per-run cache with no locking.

    Owned by one walker for the duration of one scan. Safe for any number of
    sequential resolutions; use :class:`SharedKnownGroupCache` when several
    resolutions run concurrently.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, tuple[KnownGroupEntry, ...]] = {}
        self.stats = CacheStats()

    def key_for(self, principal: PrincipalRef) -> CacheKey:
        return principal.identity

    async def lookup(self, principal: PrincipalRef) -> tuple[KnownGroupEntry, ...] | None:
        """Cached entries for ``principal``; None if it was never resolved."""
        entries = self._entries.get(self.key_for(principal))
        if entries is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return entries

    async def store(self, principal: PrincipalRef, entries: Iterable[KnownGroupEntry]) -> tuple[KnownGroupEntry, ...]:
        """Record the outcome of expanding ``principal``.

        The first stored outcome wins; the stored tuple is returned.
        """
        key = self.key_for(principal)
        existing = self._entries.get(key)
        if existing is not None:
            logger.debug("Known group %s already stored, keeping first outcome", key)
            return existing
        stored = tuple(entries)
        self._entries[key] = stored
        self.stats.stores += 1
        return stored

    @asynccontextmanager
    async def reserve(
        self, principal: PrincipalRef, cancellation: Optional[CancellationToken] = None
    ) -> AsyncIterator[None]:
        """Hold ``principal``'s key for lookup, expansion and store.

        Implementations that wait for the key check ``cancellation`` while
        waiting.
        """
        yield

    def clear(self) -> None:
        self._entries.clear()
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, principal: object) -> bool:
        return isinstance(principal, PrincipalRef) and self.key_for(principal) in self._entries


class SharedKnownGroupCache(KnownGroupCache):
    """Cache shared by concurrent resolutions of one scan.

    ``reserve`` takes a per-key lock, so lookup, remote expansion and store
    happen as one unit. A second caller for the same group waits for the
    in-flight expansion and is then served from the cache. The lock is
    released before the caller recurses into nested groups.
    """

    def __init__(self) -> None:
        super().__init__()
        self._locks: dict[CacheKey, asyncio.Lock] = {}

    def _lock_for(self, key: CacheKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def reserve(
        self, principal: PrincipalRef, cancellation: Optional[CancellationToken] = None
    ) -> AsyncIterator[None]:
        async with self._lock_for(self.key_for(principal)):
            yield

    def clear(self) -> None:
        super().clear()
        self._locks.clear()


__all__ = ["CacheStats", "KnownGroupCache", "SharedKnownGroupCache"]
