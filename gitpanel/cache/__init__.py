"""Caches for gitpanel.

This package provides:
- models: CachedStatus, DiffCacheEntry
- status: StatusCache (TTL freshness window)
- diff: DiffCache (bounded, oldest-inserted eviction)
"""

from gitpanel.cache.diff import DEFAULT_DIFF_CACHE_CAPACITY, DiffCache
from gitpanel.cache.models import CachedStatus, DiffCacheEntry
from gitpanel.cache.status import DEFAULT_STATUS_TTL_MS, StatusCache, monotonic_ms


__all__ = [
    "DEFAULT_DIFF_CACHE_CAPACITY",
    "DEFAULT_STATUS_TTL_MS",
    "CachedStatus",
    "DiffCache",
    "DiffCacheEntry",
    "StatusCache",
    "monotonic_ms",
]
