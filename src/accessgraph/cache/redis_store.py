"""Redis-backed known-group cache.

Lets several worker processes of one tenant scan share directory-group
expansions. Keys are namespaced by tenant and scan id, so scans of
unrelated tenants never read each other's entries:

    <prefix>:<tenant_id>:<scan_id>:<kind>:<scope>:<identifier>

``reserve`` takes a ``SET NX PX`` lease on the key. A second process asking
for a group that is being expanded polls until the entries appear or the
lease lapses, then reads them instead of fetching again. The run's
CancellationToken is checked on every poll.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from ..cancellation import CancellationToken
from ..exceptions import CacheError, ConfigurationError
from ..models import CacheKey, KnownGroupEntry, PrincipalRef
from .memory import KnownGroupCache

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "accessgraph:known-groups"
DEFAULT_TTL = 3600  # seconds, one scan
DEFAULT_LEASE_MS = 60_000

_ENTRIES = TypeAdapter(list[KnownGroupEntry])


class RedisKnownGroupCache(KnownGroupCache):
    """Known-group cache stored in Redis.

    Args:
        client: A ``redis.asyncio.Redis`` client created with
            ``decode_responses=True``.
        tenant_id: Tenant the scan runs against.
        scan_id: Identifier of this scan; a new scan starts empty.
        ttl_seconds: Lifetime of stored entries.
        lease_ms: How long one process may hold a group before others
            give up waiting and expand it themselves.
    """

    def __init__(
        self,
        client: Any,
        *,
        tenant_id: str,
        scan_id: str,
        prefix: str = DEFAULT_PREFIX,
        ttl_seconds: int = DEFAULT_TTL,
        lease_ms: int = DEFAULT_LEASE_MS,
        poll_interval: float = 0.05,
    ) -> None:
        if not tenant_id or not scan_id:
            raise ConfigurationError("RedisKnownGroupCache needs both tenant_id and scan_id")
        super().__init__()
        self._client = client
        self.tenant_id = tenant_id
        self.scan_id = scan_id
        self._prefix = prefix
        self._ttl = ttl_seconds
        self._lease_ms = lease_ms
        self._poll_interval = poll_interval

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisKnownGroupCache:
        try:
            import redis.asyncio as aioredis
        except ImportError:
            raise ConfigurationError(
                "redis is not installed; install accessgraph[redis] to use RedisKnownGroupCache"
            ) from None
        return cls(aioredis.from_url(url, decode_responses=True), **kwargs)

    def redis_key(self, key: CacheKey) -> str:
        return ":".join(
            (
                self._prefix,
                self.tenant_id,
                self.scan_id,
                key.kind.value,
                key.scope or "-",
                key.identifier,
            )
        )

    async def lookup(self, principal: PrincipalRef) -> tuple[KnownGroupEntry, ...] | None:
        rkey = self.redis_key(self.key_for(principal))
        try:
            raw = await self._client.get(rkey)
        except Exception as e:
            raise CacheError(f"Known-group lookup failed: {e}", key=rkey) from e

        if raw is None:
            self.stats.misses += 1
            return None
        try:
            entries = tuple(_ENTRIES.validate_json(raw))
        except ValidationError as e:
            logger.warning("Discarding unreadable known-group entry %s: %s", rkey, e)
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        return entries

    async def store(self, principal: PrincipalRef, entries: Iterable[KnownGroupEntry]) -> tuple[KnownGroupEntry, ...]:
        rkey = self.redis_key(self.key_for(principal))
        stored = tuple(entries)
        payload = _ENTRIES.dump_json(list(stored)).decode()
        try:
            written = await self._client.set(rkey, payload, ex=self._ttl, nx=True)
        except Exception as e:
            raise CacheError(f"Known-group store failed: {e}", key=rkey) from e

        if written:
            self.stats.stores += 1
            return stored
        logger.debug("Known group %s already stored by another worker", rkey)
        existing = await self.lookup(principal)
        return existing if existing is not None else stored

    @asynccontextmanager
    async def reserve(
        self, principal: PrincipalRef, cancellation: Optional[CancellationToken] = None
    ) -> AsyncIterator[None]:
        rkey = self.redis_key(self.key_for(principal))
        lease_key = f"{rkey}:lease"
        token = uuid.uuid4().hex

        held = False
        while True:
            if cancellation is not None:
                cancellation.raise_if_cancelled()
            try:
                if await self._client.set(lease_key, token, nx=True, px=self._lease_ms):
                    held = True
                    break
                if await self._client.exists(rkey):
                    break
            except Exception as e:
                raise CacheError(f"Known-group lease failed: {e}", key=lease_key) from e
            await asyncio.sleep(self._poll_interval)

        try:
            yield
        finally:
            if held:
                try:
                    if await self._client.get(lease_key) == token:
                        await self._client.delete(lease_key)
                except Exception as e:
                    logger.warning("Failed to release lease %s: %s", lease_key, e)

    def __contains__(self, principal: object) -> bool:
        raise TypeError("Use 'await cache.lookup(principal)' with RedisKnownGroupCache")

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["DEFAULT_PREFIX", "RedisKnownGroupCache"]
