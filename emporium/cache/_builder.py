"""
Cache builder — read-through lookups in front of a slow source.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium.cache._types import Tier, CacheResult

logger = structlog.get_logger(__name__)

type KeyFn[K] = Callable[[K], str]
type Fetch[K, T, E] = Callable[[K], LazyCoroResult[T, E]]


# ═══════════════════════════════════════════════════════════════════════════════
# Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """
    Immutable description of a read-through cache; `build` compiles it.

    K is what callers look up by, T what the source returns, E how the
    source fails. Tiers are consulted in the order they were added.
    """

    _key_fn: KeyFn[K]
    _fetch: Fetch[K, T, E]
    _tiers: tuple[Tier[T], ...] = ()
    _coalesce: bool = True

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        return Cache(self._key_fn, self._fetch, (*self._tiers, t), self._coalesce)

    def coalesce(self, enabled: bool = True) -> Cache[K, T, E]:
        """Share one in-flight fetch between concurrent misses on the same key."""
        return Cache(self._key_fn, self._fetch, self._tiers, enabled)

    def build(self) -> CacheExecutor[K, T, E]:
        return CacheExecutor(
            key_fn=self._key_fn,
            fetch=self._fetch,
            tiers=self._tiers,
            coalesce=self._coalesce,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    """
    Serves hits from the tiers and fills every tier on a successful fetch.

    A failed fetch is returned as-is and leaves the tiers untouched, so the
    next lookup for that key goes to the source again. A broken tier is
    logged and skipped rather than failing the lookup.
    """

    key_fn: KeyFn[K]
    fetch: Fetch[K, T, E]
    tiers: tuple[Tier[T], ...]
    coalesce: bool = True
    _inflight: dict[str, asyncio.Future[Result[T, E]]] = field(default_factory=dict)

    async def _read(self, cache_key: str) -> CacheResult[T] | None:
        for t in self.tiers:
            try:
                value = await t.get(cache_key)
            except Exception as exc:
                logger.warning("Cache tier read failed", tier=t.name, key=cache_key, error=str(exc))
                continue
            if value is not None:
                return CacheResult(value=value, hit=True, tier=t.name, ttl_remaining=t.ttl_remaining(cache_key))
        return None

    async def _load(self, key: K, cache_key: str) -> Result[T, E]:
        result = await self.fetch(key)
        match result:
            case Ok(value):
                for t in self.tiers:
                    try:
                        await t.set(cache_key, value)
                    except Exception as exc:
                        logger.warning("Cache tier write failed", tier=t.name, key=cache_key, error=str(exc))
            case Error(_):
                pass
        return result

    async def _shared_load(self, key: K, cache_key: str) -> Result[T, E]:
        pending = self._inflight.get(cache_key)
        if pending is None:
            pending = asyncio.ensure_future(self._load(key, cache_key))
            self._inflight[cache_key] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(cache_key, None))
        else:
            logger.debug("Joined in-flight fetch", key=cache_key)
        # one waiter going away must not cancel the fetch for the others
        return await asyncio.shield(pending)

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        cache_key = self.key_fn(key)

        async def execute() -> Result[CacheResult[T], E]:
            cached = await self._read(cache_key)
            if cached is not None:
                return Ok(cached)

            loaded = await (self._shared_load(key, cache_key) if self.coalesce else self._load(key, cache_key))
            match loaded:
                case Ok(value):
                    return Ok(CacheResult(value=value, hit=False, tier=None, ttl_remaining=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, key: K) -> bool:
        """True if any tier held the key."""
        cache_key = self.key_fn(key)
        deleted = [await t.delete(cache_key) for t in self.tiers]
        return any(deleted)

    async def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern; returns how many entries went."""
        return sum([await t.delete_pattern(pattern) for t in self.tiers])


def cache[K, T, E](key: KeyFn[K], fetch: Fetch[K, T, E]) -> Cache[K, T, E]:
    """
    Start a cache description from a key function and a source.

    Example:
        from emporium import cache as C

        methods = (
            C.cache(lambda q: q.cache_key, lookup)
            .tier(C.LocalTier(max_size=256, ttl=timedelta(minutes=10)))
            .build()
        )
        result = await methods.get(query)
    """
    return Cache(_key_fn=key, _fetch=fetch)


__all__ = ("KeyFn", "Fetch", "Cache", "CacheExecutor", "cache")
