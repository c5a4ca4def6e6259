"""
Shipping zone resolver — exact-match zone lookup behind a local cache.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import timedelta

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium import cache as C
from emporium._types import ServiceError
from emporium.config import Settings
from emporium.lift import service_call
from emporium.pricing import ShippingMethod
from emporium.shipping._address import Address
from emporium.shipping._types import (
    ShippingZone,
    ZoneQuery,
    ZoneResolution,
    ZoneSource,
)

logger = structlog.get_logger(__name__)


def match_methods(
    query: ZoneQuery,
    zones: Sequence[ShippingZone],
) -> tuple[ShippingMethod, ...]:
    """
    Enabled methods of the zone whose name equals the query's zone name.

    No exact match means no methods; there is no fallback zone.
    """
    target = query.zone_name
    if target is None:
        return ()
    zone = next((z for z in zones if z.name == target), None)
    if zone is None:
        return ()
    return tuple(
        ShippingMethod(id=m.id, title=m.title, cost=m.cost)
        for m in zone.methods
        if m.enabled
    )


def reconcile_selection(selected_id: str | None, resolution: ZoneResolution) -> str | None:
    """Keep the selection only if the resolved set still contains it."""
    return selected_id if resolution.contains(selected_id) else None


class ShippingZoneResolver:
    """
    Resolves an address to its enabled shipping methods.

    A "no match" answer is cached like any other; a failed lookup is not,
    so the next resolve for the same address goes upstream again.

    Example:
        resolver = ShippingZoneResolver.from_settings(HttpZoneSource(client), settings)
        resolution = await resolver.resolve(address)
        resolution.methods
    """

    def __init__(
        self,
        source: ZoneSource,
        *,
        max_size: int = 256,
        ttl: timedelta | None = timedelta(minutes=10),
        clock: C.Clock = time.monotonic,
    ) -> None:
        self._source = source
        self._methods = (
            C.cache(lambda q: q.cache_key, self._lookup)
            .tier(C.LocalTier(max_size=max_size, ttl=ttl, clock=clock))
            .build()
        )

    @classmethod
    def from_settings(
        cls,
        source: ZoneSource,
        settings: Settings,
        *,
        clock: C.Clock = time.monotonic,
    ) -> ShippingZoneResolver:
        return cls(
            source,
            max_size=settings.zone_cache_size,
            ttl=timedelta(seconds=settings.zone_cache_ttl_sec),
            clock=clock,
        )

    def _lookup(self, query: ZoneQuery) -> LazyCoroResult[tuple[ShippingMethod, ...], ServiceError]:
        fetch = service_call("zones", lambda: self._source.fetch_zones(query))

        async def execute() -> Result[tuple[ShippingMethod, ...], ServiceError]:
            result = await fetch
            match result:
                case Ok(zones):
                    methods = match_methods(query, zones)
                    logger.info("Zone resolved", key=query.cache_key, methods=len(methods))
                    return Ok(methods)
                case Error(err):
                    return Error(err)

        return LazyCoroResult(execute)

    async def resolve(self, address: Address) -> ZoneResolution:
        query = address.zone_query()
        if query is None:
            return ZoneResolution(query=None)

        result = await self._methods.get(query)
        match result:
            case Ok(found):
                return ZoneResolution(query=query, methods=found.value, cached=found.hit)
            case Error(err):
                return ZoneResolution(query=query, failed=True, error=err)

    async def forget(self, query: ZoneQuery) -> bool:
        """Drop one cached resolution."""
        return await self._methods.invalidate(query)

    async def clear(self) -> int:
        return await self._methods.invalidate_pattern("zones:*")


__all__ = (
    "match_methods",
    "reconcile_selection",
    "ShippingZoneResolver",
)
