"""
Shipping types — zones as returned by the zone service, and queries.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from emporium._types import ServiceError
from emporium.pricing import ShippingMethod
from emporium.shipping._regions import is_metropolitan, province_name

# ═══════════════════════════════════════════════════════════════════════════════
# Zone service payloads
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ZoneMethod:
    id: str
    title: str
    cost: Decimal
    enabled: bool


@dataclass(frozen=True, slots=True)
class ShippingZone:
    id: int
    name: str
    locations: tuple[str, ...] = ()
    methods: tuple[ZoneMethod, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# ZoneQuery — normalized lookup input
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ZoneQuery:
    """
    What the zone service is asked for.

    district is only part of the query for metropolitan regions; for every
    other region the zone is chosen by province name alone.
    """

    region_code: str
    district: str | None = None

    @property
    def cache_key(self) -> str:
        if self.district is None:
            return f"zones:{self.region_code}"
        return f"zones:{self.region_code}:{self.district}"

    @property
    def zone_name(self) -> str | None:
        """Exact zone name that must match."""
        if is_metropolitan(self.region_code):
            return self.district
        return province_name(self.region_code)


class ZoneSource(Protocol):
    """Upstream zone/method lookup service."""

    async def fetch_zones(self, query: ZoneQuery) -> Sequence[ShippingZone]:
        """Zones with their methods. Raises on transport failure."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# ZoneResolution
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ZoneResolution:
    """
    Outcome of resolving an address.

    failed=True means the upstream lookup broke; methods is empty and the
    user should be offered a retry.
    """

    query: ZoneQuery | None
    methods: tuple[ShippingMethod, ...] = ()
    cached: bool = False
    failed: bool = False
    error: ServiceError | None = None

    def contains(self, method_id: str | None) -> bool:
        return method_id is not None and any(m.id == method_id for m in self.methods)

    def find(self, method_id: str | None) -> ShippingMethod | None:
        return next((m for m in self.methods if m.id == method_id), None)


__all__ = (
    "ShippingMethod",
    "ZoneMethod",
    "ShippingZone",
    "ZoneQuery",
    "ZoneSource",
    "ZoneResolution",
)
