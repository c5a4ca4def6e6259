"""
Order commit coordinator — pending order first, payment session second.

The two phases run as a saga chain under the retain policy: nothing is
undone automatically. The recorded compensation (cancel the order) is kept
for the user's explicit cancel. An order left pending after a session
failure can still be paid through the confirmation webhook.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium import saga as S
from emporium._types import ServiceError
from emporium.commerce import (
    CommerceBackend,
    OrderStatus,
    PendingOrder,
    build_order_payload,
)
from emporium.config import Settings
from emporium.lift import catching_async, service_call
from emporium.payments import (
    CallbackUrls,
    PaymentSession,
    PaymentSessionAdapter,
    PaymentSessionRequest,
    SubmitHandler,
)
from emporium.checkout._types import (
    CancelOutcome,
    CancellationFailed,
    CommitCancelled,
    CommitFailure,
    CommitOutcome,
    CommitRequest,
    OrderCreationFailed,
    SessionCreationFailed,
)

logger = structlog.get_logger(__name__)

NOTIFICATION_PATH = "/api/payments/confirmation"


class OrderCommitCoordinator:
    """
    Owns the PendingOrder and its PaymentSession for one checkout.

    Only this class changes an order's status: `cancel`/`cancel_order` for
    the compensating path and `confirm` for the confirmation path.

    Example:
        coordinator = OrderCommitCoordinator(backend, gateway, settings)
        match await coordinator.commit(request):
            case Ok(outcome): outcome.session.token
            case Error(SessionCreationFailed() as e): await coordinator.retry_session()
    """

    def __init__(
        self,
        commerce: CommerceBackend,
        gateway: PaymentSessionAdapter,
        settings: Settings,
        *,
        notification_url: str | None = None,
    ) -> None:
        self._commerce = commerce
        self._gateway = gateway
        self._settings = settings
        self._notification_url = notification_url
        self._request: CommitRequest | None = None
        self._order: PendingOrder | None = None
        self._session: PaymentSession | None = None
        self._compensation: S.Compensation | None = None
        self._inflight: asyncio.Future[object] | None = None
        self._cancel_requested = False

    @property
    def order(self) -> PendingOrder | None:
        return self._order

    @property
    def session(self) -> PaymentSession | None:
        return self._session

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def busy(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def _tracked[T](self, work: Awaitable[T]) -> T:
        if self.busy:
            raise RuntimeError("a commit step is already in flight")
        task = asyncio.ensure_future(work)
        self._inflight = task
        return await task

    # ═══════════════════════════════════════════════════════════════════════════
    # Steps
    # ═══════════════════════════════════════════════════════════════════════════

    def callback_urls(self) -> CallbackUrls:
        return CallbackUrls.for_storefront(self._settings.storefront_url, self._notification_url)

    def _session_request(self, order: PendingOrder, request: CommitRequest) -> PaymentSessionRequest:
        return PaymentSessionRequest(
            order_id=order.id,
            correlation_id=self._settings.correlation_id(order.id),
            amount=request.breakdown.total,
            currency=self._settings.currency,
            customer_email=request.customer.email,
            customer_first_name=request.customer.first_name,
            customer_last_name=request.customer.last_name,
            lines=request.cart.lines,
            callback_urls=self.callback_urls(),
        )

    async def _cancel_remote(self, order: PendingOrder) -> None:
        self._order = await self._commerce.cancel_order(order.id)
        logger.info("order cancelled", order_id=order.id)

    def _order_step(self, request: CommitRequest) -> S.SagaStep[PendingOrder, OrderCreationFailed]:
        payload = build_order_payload(
            cart=request.cart,
            breakdown=request.breakdown,
            customer=request.customer,
            address=request.address,
            shipping_method=request.shipping_method,
            coupon=request.coupon,
            payment_method=request.payment_method,
            free_shipping_title=self._settings.free_shipping_title,
        )
        return S.from_async(
            lambda: self._commerce.create_order(payload),
            on_error=lambda exc: OrderCreationFailed(str(exc) or type(exc).__name__),
            compensate=self._cancel_remote,
        )

    def _session_step(
        self,
        order: PendingOrder,
        request: CommitRequest,
    ) -> S.SagaStep[PaymentSession, SessionCreationFailed | CommitCancelled]:
        self._order = order
        create = catching_async(
            lambda: self._gateway.create_session(self._session_request(order, request)),
            on_error=lambda exc: SessionCreationFailed(order, str(exc) or type(exc).__name__),
        )

        async def execute() -> Result[PaymentSession, SessionCreationFailed | CommitCancelled]:
            if self._cancel_requested:
                return Error(CommitCancelled(order))
            result = await create
            # a session that lands after cancel was requested is never applied
            if self._cancel_requested:
                return Error(CommitCancelled(order))
            return result

        return S.step(LazyCoroResult(execute))

    # ═══════════════════════════════════════════════════════════════════════════
    # Commit
    # ═══════════════════════════════════════════════════════════════════════════

    async def commit(self, request: CommitRequest) -> Result[CommitOutcome, CommitFailure]:
        """
        Phase 1 creates the pending order; phase 2 opens a payment session
        for it. A session is never requested without an order id.
        """
        if self.busy:
            raise RuntimeError("a commit is already in flight")
        self._request = request
        self._order = None
        self._session = None
        self._compensation = None
        self._cancel_requested = False
        return await self._tracked(self._commit(request))

    async def _commit(self, request: CommitRequest) -> Result[CommitOutcome, CommitFailure]:
        chain = self._order_step(request).then(lambda order: self._session_step(order, request))
        logger.info("commit started", total=str(request.breakdown.total))

        match await S.run_chain(chain, policy=S.policy.retain()):
            case Ok(done):
                self._compensation = done.compensation
                self._session = done.value
                order: PendingOrder = self._order  # type: ignore[assignment]
                logger.info("payment session ready", order_id=order.id)
                return Ok(CommitOutcome(order=order, session=done.value))
            case Error(failed):
                self._compensation = failed.retained
                error = failed.error
                match error:
                    case OrderCreationFailed(message=message):
                        logger.error("order creation failed", error=message)
                    case SessionCreationFailed(order=order, message=message):
                        logger.warning("payment session failed, order kept pending", order_id=order.id, error=message)
                    case CommitCancelled():
                        logger.info("commit superseded by cancellation")
                return Error(error)

    async def retry_session(self) -> Result[PaymentSession, SessionCreationFailed | CommitCancelled]:
        """Ask for a new session against the same pending order."""
        if self._order is None or self._request is None:
            raise RuntimeError("there is no pending order to open a session for")
        if self._session is not None:
            return Ok(self._session)
        if self._order.status is OrderStatus.CANCELLED:
            return Error(CommitCancelled(self._order))
        self._cancel_requested = False

        async def retry() -> Result[PaymentSession, SessionCreationFailed | CommitCancelled]:
            order: PendingOrder = self._order  # type: ignore[assignment]
            request: CommitRequest = self._request  # type: ignore[assignment]
            match await S.run(self._session_step(order, request), policy=S.policy.retain()):
                case Ok(done):
                    self._session = done.value
                    logger.info("payment session ready", order_id=order.id, retry=True)
                    return Ok(done.value)
                case Error(failed):
                    return Error(failed.error)

        return await self._tracked(retry())

    # ═══════════════════════════════════════════════════════════════════════════
    # Cancellation
    # ═══════════════════════════════════════════════════════════════════════════

    async def cancel(self) -> Result[CancelOutcome, CancellationFailed]:
        """
        Compensate: cancel the pending order, then drop the session.

        Safe while a commit is in flight; waits for it to settle first and a
        late session success is discarded. Idempotent.
        """
        self._cancel_requested = True
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait([self._inflight])

        order = self._order
        if order is None:
            await self._discard_session()
            return Ok(CancelOutcome(order=None))
        if order.status is OrderStatus.CANCELLED:
            await self._discard_session()
            return Ok(CancelOutcome(order=order, already_cancelled=True))

        compensation = self._compensation
        if compensation is None or not len(compensation):
            compensation = S.Compensation()
            compensation.record(order, self._cancel_remote)
            self._compensation = compensation

        report = await compensation.run()
        if not report.complete:
            message = "; ".join(report.errors) or "order cancellation failed"
            logger.error("compensating cancel failed", order_id=order.id, error=message)
            return Error(CancellationFailed(order_id=order.id, message=message))

        await self._discard_session()
        return Ok(CancelOutcome(order=self._order))

    def on_widget_submit(self, handler: SubmitHandler) -> None:
        """Advisory hook for the embedded form; never changes order state."""
        self._gateway.on_submit(handler)

    async def _discard_session(self) -> None:
        self._session = None
        await self._gateway.teardown()

    async def cancel_order(self, order_id: str) -> Result[PendingOrder, CancellationFailed]:
        """Cancel any order by id; repeat calls on a cancelled order succeed."""
        match await service_call("commerce", lambda: self._commerce.cancel_order(order_id)):
            case Ok(order):
                if self._order is not None and self._order.id == order_id:
                    self._order = order
                    await self._discard_session()
                logger.info("order cancelled", order_id=order_id)
                return Ok(order)
            case Error(err):
                return Error(CancellationFailed(order_id=order_id, message=err.message))

    # ═══════════════════════════════════════════════════════════════════════════
    # Confirmation
    # ═══════════════════════════════════════════════════════════════════════════

    async def lookup(self, order_id: str) -> Result[PendingOrder, ServiceError]:
        return await service_call("commerce", lambda: self._commerce.get_order(order_id))

    async def confirm(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        transaction_id: str | None = None,
    ) -> Result[PendingOrder, ServiceError]:
        """Apply an authoritative payment outcome to the order."""
        result = await service_call(
            "commerce",
            lambda: self._commerce.update_status(order_id, status, transaction_id=transaction_id),
        )
        match result:
            case Ok(order):
                logger.info("order status confirmed", order_id=order_id, status=order.status.value)
                if self._order is not None and self._order.id == order_id:
                    self._order = order
            case Error(_):
                pass
        return result

    async def refresh_order(self) -> Result[PendingOrder, ServiceError]:
        """Re-read the current order; a confirmed order ends the session."""
        if self._order is None:
            raise RuntimeError("there is no order to refresh")
        result = await self.lookup(self._order.id)
        match result:
            case Ok(order):
                self._order = order
                if order.status is OrderStatus.CONFIRMED and self._session is not None:
                    await self._discard_session()
            case Error(_):
                pass
        return result


__all__ = (
    "NOTIFICATION_PATH",
    "OrderCommitCoordinator",
)
