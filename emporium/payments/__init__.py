"""
Payments — hosted gateway sessions and notification verification.
"""

from __future__ import annotations

from emporium.payments._types import (
    CallbackUrls,
    PaymentSessionRequest,
    PaymentSession,
    GatewayStatus,
    WidgetSubmission,
    PaymentNotification,
    GatewayRejected,
    SubmitHandler,
    PaymentSessionAdapter,
)
from emporium.payments._fake import sign, FakePaymentGateway
from emporium.payments._http import SESSION_PATH, gateway_client, session_body, HttpPaymentGateway

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
    "sign",
    "FakePaymentGateway",
    "SESSION_PATH",
    "gateway_client",
    "session_body",
    "HttpPaymentGateway",
)
