"""
Coupons — applying, revalidating and removing the cart coupon.

    from emporium import coupons as CP

    slot = CP.CouponSlot(validator, debounce=0.4)
    result = await slot.apply("verano2024", cart)
"""

from __future__ import annotations

from emporium.coupons._types import (
    CouponValidation,
    CouponValidator,
    RejectionReason,
    CouponRejected,
    CouponRemoved,
    normalize_code,
)
from emporium.coupons._slot import CouponSlot, CouponListener

__all__ = (
    "CouponValidation",
    "CouponValidator",
    "RejectionReason",
    "CouponRejected",
    "CouponRemoved",
    "normalize_code",
    "CouponSlot",
    "CouponListener",
)
