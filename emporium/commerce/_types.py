"""
Commerce types — orders as the commerce backend sees them.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Order status
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    PENDING = "pending"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def wire(self) -> str:
        """Status string the commerce backend stores."""
        return "processing" if self is OrderStatus.CONFIRMED else self.value

    @classmethod
    def from_wire(cls, raw: str) -> OrderStatus:
        if raw in ("processing", "completed"):
            return cls.CONFIRMED
        return cls(raw)

    @property
    def is_final(self) -> bool:
        return self in (OrderStatus.CANCELLED, OrderStatus.CONFIRMED, OrderStatus.FAILED)


# ═══════════════════════════════════════════════════════════════════════════════
# Payload pieces
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Customer:
    first_name: str
    last_name: str
    email: str
    phone: str
    document_id: str

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True)
class PostalAddress:
    first_name: str
    last_name: str
    address_1: str
    city: str
    state: str
    postcode: str
    country: str
    email: str = ""
    phone: str = ""


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: int
    quantity: int
    variation_id: int | None = None
    meta_data: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True, slots=True)
class ShippingLine:
    method_id: str
    method_title: str
    total: str


@dataclass(frozen=True, slots=True)
class CouponLine:
    code: str
    discount: str


@dataclass(frozen=True, slots=True)
class OrderPayload:
    """Order creation request. `total` is the breakdown total to the cent."""

    line_items: tuple[LineItem, ...]
    billing: PostalAddress
    shipping: PostalAddress
    shipping_line: ShippingLine
    coupon_lines: tuple[CouponLine, ...]
    payment_method: str
    total: str
    status: OrderStatus = OrderStatus.PENDING
    meta_data: tuple[tuple[str, str], ...] = ()

    def to_wire(self) -> dict[str, Any]:
        def address(a: PostalAddress, with_contact: bool) -> dict[str, str]:
            data = {
                "first_name": a.first_name,
                "last_name": a.last_name,
                "address_1": a.address_1,
                "city": a.city,
                "state": a.state,
                "postcode": a.postcode,
                "country": a.country,
            }
            if with_contact:
                data["email"] = a.email
                data["phone"] = a.phone
            return data

        def items() -> list[dict[str, Any]]:
            out: list[dict[str, Any]] = []
            for item in self.line_items:
                entry: dict[str, Any] = {"product_id": item.product_id, "quantity": item.quantity}
                if item.variation_id is not None:
                    entry["variation_id"] = item.variation_id
                if item.meta_data:
                    entry["meta_data"] = [{"key": k, "value": v} for k, v in item.meta_data]
                out.append(entry)
            return out

        return {
            "status": self.status.wire,
            "payment_method": self.payment_method,
            "set_paid": False,
            "billing": address(self.billing, True),
            "shipping": address(self.shipping, False),
            "line_items": items(),
            "shipping_lines": [{
                "method_id": self.shipping_line.method_id,
                "method_title": self.shipping_line.method_title,
                "total": self.shipping_line.total,
            }],
            "coupon_lines": [{"code": c.code, "discount": c.discount} for c in self.coupon_lines],
            "meta_data": [{"key": k, "value": v} for k, v in self.meta_data],
            "total": self.total,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# PendingOrder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PendingOrder:
    id: str
    status: OrderStatus
    total: Decimal
    line_items: tuple[LineItem, ...] = ()
    shipping_line: ShippingLine | None = None
    coupon_lines: tuple[CouponLine, ...] = ()
    transaction_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Backend contract
# ═══════════════════════════════════════════════════════════════════════════════


class OrderNotFound(LookupError):
    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class OrderStateConflict(RuntimeError):
    """The order's current status does not allow the requested change."""

    def __init__(self, order_id: str, current: OrderStatus, requested: OrderStatus) -> None:
        super().__init__(f"Order {order_id} is {current.value}, cannot become {requested.value}")
        self.order_id = order_id
        self.current = current
        self.requested = requested


class CommerceBackend(Protocol):
    """
    The commerce system that owns orders.

    Implementations raise on failure; cancel_order must be idempotent.
    """

    async def create_order(self, payload: OrderPayload) -> PendingOrder: ...

    async def get_order(self, order_id: str) -> PendingOrder: ...

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        transaction_id: str | None = None,
    ) -> PendingOrder: ...

    async def cancel_order(self, order_id: str) -> PendingOrder: ...


__all__ = (
    "OrderStatus",
    "Customer",
    "PostalAddress",
    "LineItem",
    "ShippingLine",
    "CouponLine",
    "OrderPayload",
    "PendingOrder",
    "OrderNotFound",
    "OrderStateConflict",
    "CommerceBackend",
)
