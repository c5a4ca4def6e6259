"""
Pricing types — cart, coupon and breakdown data.

All values are frozen and hashable so they can key the breakdown memo.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum, auto

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

type Amount = Decimal | int | str


def to_decimal(value: Amount) -> Decimal:
    """Coerce to Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Amount) -> Decimal:
    """Round half-up to cents. The only rounding used for display and submission."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value: Amount) -> str:
    """Two-decimal string as submitted to the commerce backend."""
    return f"{round2(value):.2f}"


def to_minor_units(value: Amount) -> int:
    """Cents, for gateways that take integer amounts."""
    return int(round2(value) * 100)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    A single cart line.

    selected_attributes is stored as sorted pairs so the line stays hashable.
    """

    product_id: int
    quantity: int
    unit_price: Decimal
    variation_id: int | None = None
    selected_attributes: tuple[tuple[str, str], ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError(f"quantity must be a positive integer, got {self.quantity!r}")
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be >= 0, got {self.unit_price}")

    @classmethod
    def of(
        cls,
        product_id: int,
        quantity: int,
        unit_price: Amount,
        *,
        variation_id: int | None = None,
        attributes: Mapping[str, str] | None = None,
        name: str = "",
    ) -> CartLine:
        return cls(
            product_id=product_id,
            quantity=quantity,
            unit_price=to_decimal(unit_price),
            variation_id=variation_id,
            selected_attributes=tuple(sorted((attributes or {}).items())),
            name=name,
        )

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def attributes(self) -> dict[str, str]:
        return dict(self.selected_attributes)


@dataclass(frozen=True, slots=True)
class CartSnapshot:
    """Read-only view of the cart at one point in time."""

    lines: tuple[CartLine, ...] = ()

    @classmethod
    def of(cls, *lines: CartLine) -> CartSnapshot:
        return cls(lines=lines)

    @property
    def subtotal(self) -> Decimal:
        """Sum of line totals, full precision."""
        return sum((line.line_total for line in self.lines), start=Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def without(self, product_id: int, variation_id: int | None = None) -> CartSnapshot:
        """Snapshot with the matching line removed."""
        return CartSnapshot(lines=tuple(
            line for line in self.lines
            if not (line.product_id == product_id and line.variation_id == variation_id)
        ))


# ═══════════════════════════════════════════════════════════════════════════════
# Coupon
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountKind(Enum):
    PERCENTAGE = auto()
    FIXED = auto()


@dataclass(frozen=True, slots=True)
class DiscountDescriptor:
    """How the coupon was defined. Informational; never used to recompute."""

    kind: DiscountKind
    value: Decimal


@dataclass(frozen=True, slots=True)
class Coupon:
    """
    A validated coupon.

    discount_amount is the validator's figure for validated_for; it is
    re-queried whenever the cart changes.
    """

    code: str
    discount: DiscountDescriptor
    discount_amount: Decimal
    grants_free_shipping: bool
    validated_for: CartSnapshot = field(default_factory=CartSnapshot)

    def is_current_for(self, cart: CartSnapshot) -> bool:
        return self.validated_for == cart


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping method (priced view)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingMethod:
    id: str
    title: str
    cost: Decimal

    def __post_init__(self) -> None:
        if self.cost < 0:
            raise ValueError(f"shipping cost must be >= 0, got {self.cost}")


# ═══════════════════════════════════════════════════════════════════════════════
# Free shipping
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class FreeShippingPolicy:
    """Merchant threshold configuration."""

    enabled: bool = True
    threshold: Decimal = Decimal("150.00")

    @classmethod
    def disabled(cls) -> FreeShippingPolicy:
        return cls(enabled=False, threshold=ZERO)


class FreeShippingReason(Enum):
    NONE = auto()
    COUPON = auto()
    THRESHOLD = auto()


@dataclass(frozen=True, slots=True)
class FreeShippingDecision:
    is_free: bool
    remaining_to_threshold: Decimal
    reason: FreeShippingReason


# ═══════════════════════════════════════════════════════════════════════════════
# Breakdown
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """
    Final price, every field already rounded to cents.

    total == round2(max(0, subtotal - discount_amount) + shipping_cost)
    """

    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    is_shipping_free: bool
    total: Decimal
    remaining_to_free_shipping: Decimal
    free_shipping_reason: FreeShippingReason


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

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
)
