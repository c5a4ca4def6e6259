"""
Pricing — free-shipping policy and price breakdown.

    from emporium import pricing as P

    cart = P.CartSnapshot.of(P.CartLine.of(101, 2, "50.00"))
    breakdown = P.compute_breakdown(cart, None, method, P.FreeShippingPolicy())
"""

from __future__ import annotations

from emporium.pricing._types import (
    CENT,
    ZERO,
    Amount,
    to_decimal,
    round2,
    format_amount,
    to_minor_units,
    CartLine,
    CartSnapshot,
    DiscountKind,
    DiscountDescriptor,
    Coupon,
    ShippingMethod,
    FreeShippingPolicy,
    FreeShippingReason,
    FreeShippingDecision,
    PriceBreakdown,
)
from emporium.pricing._policy import evaluate_free_shipping
from emporium.pricing._engine import compute_breakdown, BreakdownInputs, BreakdownTracker

__all__ = (
    "CENT",
    "ZERO",
    "Amount",
    "to_decimal",
    "round2",
    "format_amount",
    "to_minor_units",
    "CartLine",
    "CartSnapshot",
    "DiscountKind",
    "DiscountDescriptor",
    "Coupon",
    "ShippingMethod",
    "FreeShippingPolicy",
    "FreeShippingReason",
    "FreeShippingDecision",
    "PriceBreakdown",
    "evaluate_free_shipping",
    "compute_breakdown",
    "BreakdownInputs",
    "BreakdownTracker",
)
