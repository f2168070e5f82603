"""Known-group caches.

- KnownGroupCache: per-run, single task (no locking)
- SharedKnownGroupCache: concurrent resolutions within one process
- RedisKnownGroupCache: concurrent workers across processes
"""

from .memory import CacheStats, KnownGroupCache, SharedKnownGroupCache
from .redis_store import RedisKnownGroupCache

__all__ = [
    "CacheStats",
    "KnownGroupCache",
    "RedisKnownGroupCache",
    "SharedKnownGroupCache",
]
