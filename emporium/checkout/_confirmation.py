"""
Payment confirmation — the server-to-server notification is the only signal
that marks an order paid.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, replace
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium import idempotency as I
from emporium.commerce import OrderStatus
from emporium.config import Settings
from emporium.payments import GatewayStatus, PaymentNotification, PaymentSessionAdapter
from emporium.pricing import round2
from emporium.checkout._coordinator import OrderCommitCoordinator
from emporium.checkout._types import (
    ConfirmationOutcome,
    ConfirmationReason,
    ConfirmationRejected,
)

logger = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("kr_answer", "kr_hash", "kr_transaction_id", "kr_amount", "kr_status")

STATUS_MAP: Mapping[str, OrderStatus] = {
    GatewayStatus.CAPTURED: OrderStatus.CONFIRMED,
    GatewayStatus.AUTHORISED: OrderStatus.ON_HOLD,
}


def parse_notification(form: Mapping[str, Any]) -> Result[PaymentNotification, ConfirmationRejected]:
    missing = [name for name in REQUIRED_FIELDS if not form.get(name)]
    if missing:
        return Error(ConfirmationRejected(
            ConfirmationReason.MISSING_FIELDS,
            f"Missing fields: {', '.join(missing)}",
        ))
    try:
        amount = Decimal(str(form["kr_amount"]))
    except InvalidOperation:
        return Error(ConfirmationRejected(ConfirmationReason.MISSING_FIELDS, "kr_amount is not a number"))
    return Ok(PaymentNotification(
        answer=str(form["kr_answer"]),
        signature=str(form["kr_hash"]),
        transaction_id=str(form["kr_transaction_id"]),
        amount=amount,
        status=str(form["kr_status"]).upper(),
        correlation_order_id=form.get("kr_order_id") or None,
    ))


def _encode(outcome: ConfirmationOutcome) -> str:
    data = asdict(outcome)
    data["order_status"] = outcome.order_status.value if outcome.order_status else None
    return json.dumps(data)


def _decode(raw: str) -> ConfirmationOutcome:
    data = json.loads(raw)
    status = data.pop("order_status")
    return ConfirmationOutcome(**data, order_status=OrderStatus(status) if status else None)


class ConfirmationProcessor:
    """
    Verifies and applies gateway notifications.

    CAPTURED confirms the order, AUTHORISED puts it on hold, anything else
    is acknowledged and ignored. Repeats of a transaction id return the
    first outcome with duplicate=True and never touch the order again; a
    later CAPTURED for an AUTHORISED transaction is a new notification.
    """

    def __init__(
        self,
        coordinator: OrderCommitCoordinator,
        verifier: PaymentSessionAdapter,
        settings: Settings,
        store: I.StoreAny | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._verifier = verifier
        self._settings = settings
        self._ledger = (
            I.idempotent(self._apply)
            .key(lambda n: f"confirmation:{n.transaction_id}:{n.status}")
            .store(store if store is not None else I.MemoryStore())
            .policy(I.Policy().with_ttl(hours=72).with_on_pending(I.FAIL))
            .codec(_encode, _decode)
            .build()
        )

    def order_id_for(self, notification: PaymentNotification) -> str | None:
        cid = notification.correlation_order_id
        if not cid:
            return None
        order_id = self._settings.order_id_from_correlation(cid)
        if order_id is None and cid.isdigit():
            return cid
        return order_id

    async def process(self, form: Mapping[str, Any]) -> Result[ConfirmationOutcome, ConfirmationRejected]:
        match parse_notification(form):
            case Error(rejected):
                logger.warning("confirmation rejected", reason=rejected.reason.value)
                return Error(rejected)
            case Ok(notification):
                pass

        if not self._verifier.verify_notification(notification.answer, notification.signature):
            logger.warning("confirmation signature mismatch", transaction_id=notification.transaction_id)
            return Error(ConfirmationRejected(ConfirmationReason.BAD_SIGNATURE, "Signature does not match"))

        order_id = self.order_id_for(notification)
        if notification.status not in STATUS_MAP:
            logger.info(
                "confirmation acknowledged without change",
                transaction_id=notification.transaction_id,
                gateway_status=notification.status,
            )
            return Ok(ConfirmationOutcome(
                order_id=order_id,
                transaction_id=notification.transaction_id,
                gateway_status=notification.status,
            ))

        match await self._ledger.run(notification):
            case Ok(recorded):
                if recorded.from_cache:
                    logger.info("duplicate confirmation", transaction_id=notification.transaction_id)
                    return Ok(replace(recorded.value, duplicate=True))
                return Ok(recorded.value)
            case Error(err):
                if isinstance(err.original_error, ConfirmationRejected):
                    return Error(err.original_error)
                reason = (
                    ConfirmationReason.IN_PROGRESS
                    if err.kind is I.IdempotencyErrorKind.CONFLICT
                    else ConfirmationReason.UPDATE_FAILED
                )
                return Error(ConfirmationRejected(reason, err.message))

    def _apply(self, notification: PaymentNotification) -> LazyCoroResult[ConfirmationOutcome, ConfirmationRejected]:
        async def execute() -> Result[ConfirmationOutcome, ConfirmationRejected]:
            order_id = self.order_id_for(notification)
            if order_id is None:
                return Error(ConfirmationRejected(
                    ConfirmationReason.UNKNOWN_ORDER,
                    f"No order reference in {notification.correlation_order_id!r}",
                ))

            match await self._coordinator.lookup(order_id):
                case Error(err):
                    return Error(ConfirmationRejected(ConfirmationReason.UNKNOWN_ORDER, err.message))
                case Ok(order):
                    pass

            if round2(notification.amount) != round2(order.total):
                logger.error(
                    "confirmation amount mismatch",
                    order_id=order_id,
                    notified=str(notification.amount),
                    expected=str(order.total),
                )
                return Error(ConfirmationRejected(
                    ConfirmationReason.AMOUNT_MISMATCH,
                    f"Notified {notification.amount} but order total is {order.total}",
                ))

            outcome = ConfirmationOutcome(
                order_id=order_id,
                transaction_id=notification.transaction_id,
                gateway_status=notification.status,
            )
            if order.status is OrderStatus.CONFIRMED:
                return Ok(replace(outcome, order_status=order.status))

            target = STATUS_MAP[notification.status]
            match await self._coordinator.confirm(order_id, target, transaction_id=notification.transaction_id):
                case Ok(updated):
                    return Ok(replace(outcome, order_status=updated.status, applied=True))
                case Error(err):
                    return Error(ConfirmationRejected(ConfirmationReason.UPDATE_FAILED, err.message))

        return LazyCoroResult(execute)


__all__ = (
    "REQUIRED_FIELDS",
    "STATUS_MAP",
    "parse_notification",
    "ConfirmationProcessor",
)
