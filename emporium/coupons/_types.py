"""
Coupon types — validator contract and rejection reasons.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, auto
from typing import Protocol

from emporium.pricing import ZERO, CartSnapshot, DiscountDescriptor

# ═══════════════════════════════════════════════════════════════════════════════
# Validator contract
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CouponValidation:
    """Validator answer for one code against one cart."""

    valid: bool
    discount_amount: Decimal = ZERO
    grants_free_shipping: bool = False
    discount: DiscountDescriptor | None = None
    error_reason: str | None = None


class CouponValidator(Protocol):
    """
    External coupon validation service.

    The discount amount it returns is the source of truth; nothing here
    recomputes it.
    """

    async def validate(self, code: str, cart: CartSnapshot) -> CouponValidation:
        """Raises on transport failure."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class RejectionReason(Enum):
    INVALID_FORMAT = auto()
    EMPTY_CART = auto()
    NOT_VALID = auto()
    SERVICE_UNAVAILABLE = auto()


@dataclass(frozen=True, slots=True)
class CouponRejected:
    code: str
    reason: RejectionReason
    message: str


@dataclass(frozen=True, slots=True)
class CouponRemoved:
    """The applied coupon stopped being valid after a cart change."""

    code: str
    reason: RejectionReason
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Code normalization
# ═══════════════════════════════════════════════════════════════════════════════

_CODE = re.compile(r"^[A-Z0-9_-]{3,20}$")


def normalize_code(raw: str) -> str | None:
    """Trimmed upper-case code, or None if it cannot be a coupon code."""
    code = raw.strip().upper()
    return code if _CODE.match(code) else None


__all__ = (
    "CouponValidation",
    "CouponValidator",
    "RejectionReason",
    "CouponRejected",
    "CouponRemoved",
    "normalize_code",
)
