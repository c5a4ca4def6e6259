"""
Checkout types — steps, commit inputs and outcomes, and the error taxonomy.

Expected failures are values carried in `Error(...)`; every one of them has
a stable `code` for wire responses and a human `message`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from emporium.commerce import Customer, OrderStatus, PendingOrder
from emporium.coupons import CouponRemoved
from emporium.payments import PaymentSession
from emporium.pricing import CartSnapshot, Coupon, PriceBreakdown, ShippingMethod
from emporium.shipping import Address

# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutStep(Enum):
    COLLECTING_PERSONAL_DATA = "collecting_personal_data"
    COLLECTING_SHIPPING_ADDRESS = "collecting_shipping_address"
    SELECTING_PAYMENT_METHOD = "selecting_payment_method"
    AWAITING_PAYMENT_COMPLETION = "awaiting_payment_completion"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutStep.COMPLETED, CheckoutStep.CANCELLED, CheckoutStep.FAILED)


class InvalidTransition(RuntimeError):
    """A transition the state machine does not define. Programmer error."""

    def __init__(self, current: CheckoutStep, target: CheckoutStep | str) -> None:
        name = target.name if isinstance(target, CheckoutStep) else target
        super().__init__(f"Cannot go from {current.name} to {name}")
        self.current = current
        self.target = target


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GateRejected:
    """Per-field reasons a step cannot be left yet."""

    code: ClassVar[str] = "gate_rejected"

    step: CheckoutStep
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return "; ".join(f"{name}: {reason}" for name, reason in self.fields.items())


@dataclass(frozen=True, slots=True)
class CouponInvalidated:
    """The coupon was dropped while forcing revalidation before payment."""

    code: ClassVar[str] = "coupon_invalidated"

    notice: CouponRemoved

    @property
    def message(self) -> str:
        return f"Coupon {self.notice.code} no longer applies: {self.notice.message}"


@dataclass(frozen=True, slots=True)
class OrderCreationFailed:
    code: ClassVar[str] = "order_creation_failed"

    message: str


@dataclass(frozen=True, slots=True)
class SessionCreationFailed:
    """The order exists and stays pending; retry the session or cancel."""

    code: ClassVar[str] = "session_creation_failed"

    order: PendingOrder
    message: str


@dataclass(frozen=True, slots=True)
class CommitCancelled:
    """Cancellation was requested while the commit was running."""

    code: ClassVar[str] = "commit_cancelled"

    order: PendingOrder | None = None

    @property
    def message(self) -> str:
        return "Checkout was cancelled"


@dataclass(frozen=True, slots=True)
class CancellationFailed:
    """
    The compensating cancel did not go through.

    The order may still be live in the commerce backend.
    """

    code: ClassVar[str] = "cancellation_failed"

    order_id: str
    message: str


class ConfirmationReason(Enum):
    MISSING_FIELDS = "missing_fields"
    BAD_SIGNATURE = "bad_signature"
    UNKNOWN_ORDER = "unknown_order"
    AMOUNT_MISMATCH = "amount_mismatch"
    UPDATE_FAILED = "update_failed"
    IN_PROGRESS = "in_progress"


@dataclass(frozen=True, slots=True)
class ConfirmationRejected:
    code: ClassVar[str] = "confirmation_rejected"

    reason: ConfirmationReason
    message: str


type CommitFailure = OrderCreationFailed | SessionCreationFailed | CommitCancelled
type SubmitFailure = GateRejected | CouponInvalidated | CommitFailure


# ═══════════════════════════════════════════════════════════════════════════════
# Commit data
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CommitRequest:
    """Snapshot of everything the commit needs, taken at submission time."""

    cart: CartSnapshot
    breakdown: PriceBreakdown
    customer: Customer
    address: Address
    shipping_method: ShippingMethod | None
    coupon: Coupon | None
    payment_method: str


@dataclass(frozen=True, slots=True)
class CommitOutcome:
    order: PendingOrder
    session: PaymentSession


@dataclass(frozen=True, slots=True)
class CancelOutcome:
    order: PendingOrder | None
    already_cancelled: bool = False


@dataclass(frozen=True, slots=True)
class ConfirmationOutcome:
    """
    What a confirmation did.

    applied=False means the notification was acknowledged without changing
    the order (unsuccessful payment status or already confirmed).
    """

    order_id: str | None
    transaction_id: str
    gateway_status: str
    order_status: OrderStatus | None = None
    applied: bool = False
    duplicate: bool = False


__all__ = (
    "CheckoutStep",
    "InvalidTransition",
    "GateRejected",
    "CouponInvalidated",
    "OrderCreationFailed",
    "SessionCreationFailed",
    "CommitCancelled",
    "CancellationFailed",
    "ConfirmationReason",
    "ConfirmationRejected",
    "CommitFailure",
    "SubmitFailure",
    "CommitRequest",
    "CommitOutcome",
    "CancelOutcome",
    "ConfirmationOutcome",
)
