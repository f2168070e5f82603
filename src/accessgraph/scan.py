"""Resolve many resources of one scan concurrently.

Each resource is still walked sequentially; parallelism is across
resources, bounded by a semaphore, with one known-group cache shared by all
of them so a directory group granted on many sites is fetched once.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Union

from .cache import KnownGroupCache, RedisKnownGroupCache, SharedKnownGroupCache
from .cancellation import CancellationToken
from .config import ResolverConfig
from .exceptions import ConfigurationError
from .models import PermissionRecord, RoleAssignment
from .walker import PermissionGraphWalker

logger = logging.getLogger(__name__)

ResourceAssignments = Union[
    Mapping[str, Sequence[RoleAssignment]],
    Iterable[tuple[str, Sequence[RoleAssignment]]],
]


def build_cache(config: ResolverConfig, scan_id: Optional[str] = None) -> KnownGroupCache:
    """Known-group cache for a scan.

    Redis when ``config.redis_url`` is set (requires ``tenant_id``),
    otherwise an in-process ``SharedKnownGroupCache``.
    """
    if not config.redis_url:
        return SharedKnownGroupCache()
    if not config.tenant_id:
        raise ConfigurationError("tenant_id is required when redis_url is set")
    return RedisKnownGroupCache.from_url(
        config.redis_url,
        tenant_id=config.tenant_id,
        scan_id=scan_id or uuid.uuid4().hex,
        ttl_seconds=config.cache_ttl_seconds,
    )


async def resolve_many(
    walker: PermissionGraphWalker,
    resources: ResourceAssignments,
    *,
    max_concurrency: int = 4,
    cache: Optional[KnownGroupCache] = None,
    cancellation: Optional[CancellationToken] = None,
) -> dict[str, list[PermissionRecord]]:
    """Resolve every resource and return its records keyed by resource scope.

    Args:
        walker: Walker holding the expanders.
        resources: ``{resource_scope: assignments}`` or ``(scope, assignments)``
            pairs. The result keeps this order.
        max_concurrency: Upper bound of resources resolved at once.
        cache: Shared cache; defaults to a new ``SharedKnownGroupCache``.
        cancellation: One token for the whole scan.

    Raises:
        ResolutionCancelled: The token fired; in-flight resources are
            cancelled and no results are returned.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    items = list(resources.items()) if isinstance(resources, Mapping) else list(resources)
    shared = cache if cache is not None else SharedKnownGroupCache()
    token = cancellation or CancellationToken()
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _resolve(scope: str, assignments: Sequence[RoleAssignment]) -> list[PermissionRecord]:
        async with semaphore:
            token.raise_if_cancelled()
            return await walker.resolve_resource(scope, assignments, cache=shared, cancellation=token)

    tasks = [asyncio.ensure_future(_resolve(scope, assignments)) for scope, assignments in items]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    logger.info("Resolved %d resources (%d records)", len(items), sum(len(r) for r in results))
    return {scope: records for (scope, _), records in zip(items, results)}


__all__ = ["ResourceAssignments", "build_cache", "resolve_many"]
