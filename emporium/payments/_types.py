"""
Payment types — gateway sessions, widget hints and server-side notifications.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from emporium.pricing import CartLine

# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CallbackUrls:
    success: str
    failure: str
    cancel: str
    notification: str | None = None

    @classmethod
    def for_storefront(cls, storefront_url: str, notification: str | None = None) -> CallbackUrls:
        base = storefront_url.rstrip("/")
        return cls(
            success=f"{base}/payment-result/success",
            failure=f"{base}/payment-result/failed",
            cancel=f"{base}/payment-result/cancelled",
            notification=notification,
        )


@dataclass(frozen=True, slots=True)
class PaymentSessionRequest:
    """Everything the gateway needs to open a hosted payment form for one order."""

    order_id: str
    correlation_id: str
    amount: Decimal
    currency: str
    customer_email: str
    customer_first_name: str
    customer_last_name: str
    lines: tuple[CartLine, ...]
    callback_urls: CallbackUrls


@dataclass(frozen=True, slots=True)
class PaymentSession:
    token: str
    gateway_public_key: str
    correlation_order_id: str


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway outcomes
# ═══════════════════════════════════════════════════════════════════════════════


class GatewayStatus:
    AUTHORISED = "AUTHORISED"
    CAPTURED = "CAPTURED"
    REFUSED = "REFUSED"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"

    SUCCESSFUL = frozenset({AUTHORISED, CAPTURED})


@dataclass(frozen=True, slots=True)
class WidgetSubmission:
    """
    Client-side result reported by the embedded payment form.

    Advisory only: it may drive a redirect but never an order status change.
    """

    status: str
    correlation_order_id: str

    @property
    def looks_successful(self) -> bool:
        return self.status.upper() in GatewayStatus.SUCCESSFUL or self.status.upper() == "PAID"


@dataclass(frozen=True, slots=True)
class PaymentNotification:
    """Server-to-server confirmation as posted by the gateway."""

    answer: str
    signature: str
    transaction_id: str
    amount: Decimal
    status: str
    correlation_order_id: str | None = None

    @property
    def successful(self) -> bool:
        return self.status.upper() in GatewayStatus.SUCCESSFUL


class GatewayRejected(RuntimeError):
    """The gateway answered but refused to open a session."""


# ═══════════════════════════════════════════════════════════════════════════════
# Adapter contract
# ═══════════════════════════════════════════════════════════════════════════════

type SubmitHandler = Callable[[WidgetSubmission], None]


class PaymentSessionAdapter(Protocol):
    """
    Hosted payment gateway.

    create_session raises on failure. on_submit hooks are advisory UI
    signals. verify_notification checks a server notification's signature.
    """

    async def create_session(self, request: PaymentSessionRequest) -> PaymentSession: ...

    def on_submit(self, handler: SubmitHandler) -> None: ...

    async def teardown(self) -> None: ...

    def verify_notification(self, answer: str, signature: str) -> bool: ...


__all__ = (
    "CallbackUrls",
    "PaymentSessionRequest",
    "PaymentSession",
    "GatewayStatus",
    "WidgetSubmission",
    "PaymentNotification",
    "GatewayRejected",
    "SubmitHandler",
    "PaymentSessionAdapter",
)
