"""
Checkout — state machine, two-phase commit and payment confirmation.

    from emporium import checkout as CO

    coordinator = CO.OrderCommitCoordinator(backend, gateway, settings)
    session = CO.CheckoutSession(settings, resolver=resolver, coupons=slot, coordinator=coordinator)
"""

from __future__ import annotations

from emporium.checkout._types import (
    CheckoutStep,
    InvalidTransition,
    GateRejected,
    CouponInvalidated,
    OrderCreationFailed,
    SessionCreationFailed,
    CommitCancelled,
    CancellationFailed,
    ConfirmationReason,
    ConfirmationRejected,
    CommitFailure,
    SubmitFailure,
    CommitRequest,
    CommitOutcome,
    CancelOutcome,
    ConfirmationOutcome,
)
from emporium.checkout._forms import PERSONAL_FIELDS, PersonalData, validate_personal_data
from emporium.checkout._machine import (
    TRANSITIONS,
    REQUIRED_FIELDS,
    CheckoutForm,
    shipping_gate,
    StepListener,
    CheckoutStateMachine,
)
from emporium.checkout._coordinator import NOTIFICATION_PATH, OrderCommitCoordinator
from emporium.checkout._confirmation import (
    STATUS_MAP,
    parse_notification,
    ConfirmationProcessor,
)
from emporium.checkout._session import CheckoutSession

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
    "PERSONAL_FIELDS",
    "PersonalData",
    "validate_personal_data",
    "TRANSITIONS",
    "REQUIRED_FIELDS",
    "CheckoutForm",
    "shipping_gate",
    "StepListener",
    "CheckoutStateMachine",
    "NOTIFICATION_PATH",
    "OrderCommitCoordinator",
    "STATUS_MAP",
    "parse_notification",
    "ConfirmationProcessor",
    "CheckoutSession",
)
