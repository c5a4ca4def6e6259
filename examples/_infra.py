"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from emporium.coupons import CouponValidation
from emporium.pricing import CartSnapshot
from emporium.shipping import ShippingZone, ZoneMethod, ZoneQuery


# Fake zone service
@dataclass(slots=True)
class FakeZones:
    zones: list[ShippingZone] = field(default_factory=lambda: [
        ShippingZone(
            id=1,
            name="Miraflores",
            locations=("PE:LMA",),
            methods=(ZoneMethod("flat_rate:1", "Delivery Miraflores", Decimal("10.00"), True),),
        ),
        ShippingZone(
            id=2,
            name="Arequipa",
            locations=("PE:ARE",),
            methods=(ZoneMethod("flat_rate:4", "Courier Arequipa", Decimal("18.00"), True),),
        ),
    ])

    async def fetch_zones(self, query: ZoneQuery) -> Sequence[ShippingZone]:
        await asyncio.sleep(0.01)
        print(f"  → zone lookup {query.cache_key}")
        return self.zones


# Fake coupon service
@dataclass(slots=True)
class FakeCoupons:
    minimum: Decimal = Decimal("80.00")

    async def validate(self, code: str, cart: CartSnapshot) -> CouponValidation:
        await asyncio.sleep(0.01)
        if code != "BIENVENIDO10":
            return CouponValidation(valid=False, error_reason="Coupon not found")
        if cart.subtotal < self.minimum:
            return CouponValidation(valid=False, error_reason=f"Minimum purchase for this coupon is {self.minimum}")
        return CouponValidation(valid=True, discount_amount=Decimal("10.00"))


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    asyncio.run(main())
