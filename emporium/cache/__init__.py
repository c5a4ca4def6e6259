"""
Cache — tiered read-through caching.

    from emporium import cache as C

    zones = C.cache(key_fn, fetch_fn).tier(C.LocalTier(max_size=256)).build()
    result = await zones.get(query)
"""

from __future__ import annotations

from emporium.cache._types import (
    Tier,
    Clock,
    LocalTier,
    CacheResult,
)
from emporium.cache._builder import cache, Cache, CacheExecutor

__all__ = (
    "Tier",
    "Clock",
    "LocalTier",
    "CacheResult",
    "cache",
    "Cache",
    "CacheExecutor",
)
