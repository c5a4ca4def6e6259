"""
Pricing engine — one pure function, one tracker.

    from emporium import pricing as P

    tracker = P.BreakdownTracker(policy=settings.free_shipping_policy(), cart=cart)
    tracker.update(shipping_method=method)
    tracker.breakdown.total
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any

from emporium.pricing._types import (
    ZERO,
    CartSnapshot,
    Coupon,
    FreeShippingPolicy,
    PriceBreakdown,
    ShippingMethod,
    round2,
)
from emporium.pricing._policy import evaluate_free_shipping

# ═══════════════════════════════════════════════════════════════════════════════
# compute_breakdown() — memoized on structural hash of inputs
# ═══════════════════════════════════════════════════════════════════════════════


@lru_cache(maxsize=512)
def compute_breakdown(
    cart: CartSnapshot,
    coupon: Coupon | None,
    shipping_method: ShippingMethod | None,
    policy: FreeShippingPolicy,
) -> PriceBreakdown:
    """
    Derive the full price breakdown.

    Components are rounded first and the total is built from the rounded
    components, so what is displayed is exactly what gets submitted.

    Example:
        breakdown = compute_breakdown(cart, None, standard, FreeShippingPolicy())
        breakdown.total  # Decimal("110.00")
    """
    subtotal = round2(cart.subtotal)
    discount = round2(coupon.discount_amount) if coupon is not None else ZERO

    decision = evaluate_free_shipping(subtotal, policy, coupon)

    if decision.is_free or shipping_method is None:
        shipping_cost = ZERO
    else:
        shipping_cost = round2(shipping_method.cost)

    total = round2(max(ZERO, subtotal - discount) + shipping_cost)

    return PriceBreakdown(
        subtotal=subtotal,
        discount_amount=discount,
        shipping_cost=shipping_cost,
        is_shipping_free=decision.is_free,
        total=total,
        remaining_to_free_shipping=round2(decision.remaining_to_threshold),
        free_shipping_reason=decision.reason,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# BreakdownTracker — holds the tracked inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BreakdownInputs:
    cart: CartSnapshot
    coupon: Coupon | None
    shipping_method: ShippingMethod | None
    policy: FreeShippingPolicy


_KEEP: Any = object()


class BreakdownTracker:
    """
    Dependency-tracked recomputation.

    Every tracked input lives here; reading `breakdown` always evaluates
    compute_breakdown over the full current input set, so there is no way
    to refresh one field while leaving another stale.
    """

    def __init__(
        self,
        policy: FreeShippingPolicy,
        cart: CartSnapshot | None = None,
        coupon: Coupon | None = None,
        shipping_method: ShippingMethod | None = None,
    ) -> None:
        self._inputs = BreakdownInputs(
            cart=cart if cart is not None else CartSnapshot(),
            coupon=coupon,
            shipping_method=shipping_method,
            policy=policy,
        )
        self._revision = 0

    @property
    def inputs(self) -> BreakdownInputs:
        return self._inputs

    @property
    def revision(self) -> int:
        """Bumped whenever any tracked input actually changes."""
        return self._revision

    @property
    def breakdown(self) -> PriceBreakdown:
        i = self._inputs
        return compute_breakdown(i.cart, i.coupon, i.shipping_method, i.policy)

    def update(
        self,
        *,
        cart: CartSnapshot = _KEEP,
        coupon: Coupon | None = _KEEP,
        shipping_method: ShippingMethod | None = _KEEP,
        policy: FreeShippingPolicy = _KEEP,
    ) -> PriceBreakdown:
        """Replace any subset of inputs and return the fresh breakdown."""
        changes: dict[str, Any] = {}
        if cart is not _KEEP:
            changes["cart"] = cart
        if coupon is not _KEEP:
            changes["coupon"] = coupon
        if shipping_method is not _KEEP:
            changes["shipping_method"] = shipping_method
        if policy is not _KEEP:
            changes["policy"] = policy

        updated = replace(self._inputs, **changes)
        if updated != self._inputs:
            self._inputs = updated
            self._revision += 1
        return self.breakdown


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("compute_breakdown", "BreakdownInputs", "BreakdownTracker")
