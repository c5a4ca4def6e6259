"""
Free shipping policy evaluation.
"""

from __future__ import annotations

from decimal import Decimal

from emporium.pricing._types import (
    ZERO,
    Coupon,
    FreeShippingDecision,
    FreeShippingPolicy,
    FreeShippingReason,
)


def evaluate_free_shipping(
    subtotal: Decimal,
    policy: FreeShippingPolicy,
    coupon: Coupon | None = None,
) -> FreeShippingDecision:
    """
    Decide whether shipping is free.

    Precedence: a coupon grant wins over everything, then the threshold.
    The subtotal is the undiscounted cart subtotal.

    Example:
        decision = evaluate_free_shipping(Decimal("120"), FreeShippingPolicy(True, Decimal("150")))
        decision.is_free                 # False
        decision.remaining_to_threshold  # Decimal("30")
    """
    if coupon is not None and coupon.grants_free_shipping:
        return FreeShippingDecision(True, ZERO, FreeShippingReason.COUPON)

    if not policy.enabled:
        return FreeShippingDecision(False, ZERO, FreeShippingReason.NONE)

    if subtotal >= policy.threshold:
        return FreeShippingDecision(True, ZERO, FreeShippingReason.THRESHOLD)

    return FreeShippingDecision(
        False,
        max(ZERO, policy.threshold - subtotal),
        FreeShippingReason.NONE,
    )


__all__ = ("evaluate_free_shipping",)
