"""
Checkout session — one buyer's checkout, wired from injected collaborators.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

import structlog
from kungfu import Result, Ok, Error

from emporium._types import ServiceError
from emporium.commerce import OrderStatus, PendingOrder
from emporium.config import Settings
from emporium.coupons import CouponRejected, CouponRemoved, CouponSlot
from emporium.log import bind_checkout, clear_checkout
from emporium.payments import PaymentSession, WidgetSubmission
from emporium.pricing import (
    BreakdownTracker,
    CartSnapshot,
    Coupon,
    PriceBreakdown,
    ShippingMethod,
)
from emporium.shipping import (
    Address,
    ShippingZoneResolver,
    ZoneResolution,
    reconcile_selection,
)
from emporium.checkout._coordinator import OrderCommitCoordinator
from emporium.checkout._forms import PersonalData
from emporium.checkout._machine import CheckoutForm, CheckoutStateMachine
from emporium.checkout._types import (
    CancelOutcome,
    CancellationFailed,
    CheckoutStep,
    CommitCancelled,
    CommitOutcome,
    CommitRequest,
    CouponInvalidated,
    GateRejected,
    InvalidTransition,
    OrderCreationFailed,
    SessionCreationFailed,
    SubmitFailure,
)

logger = structlog.get_logger(__name__)

Step = CheckoutStep


class CheckoutSession:
    """
    Inputs change here; the breakdown is recomputed from the full input set
    on every change, and the coordinator commits the latest one.

    Example:
        session = CheckoutSession(settings, resolver=resolver, coupons=slot, coordinator=coordinator)
        session.update_cart(cart)
        session.set_personal_data(first_name="Ana", ...)
        session.advance()
        session.change_region("PE:LMA")
        session.change_district("Miraflores")
        await session.refresh_shipping_methods()
        session.advance()
        session.select_payment_method("izipay")
        result = await session.submit()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        resolver: ShippingZoneResolver,
        coupons: CouponSlot,
        coordinator: OrderCommitCoordinator,
        cart: CartSnapshot | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self._settings = settings
        self._resolver = resolver
        self._coupons = coupons
        self._coordinator = coordinator
        self._form = CheckoutForm(address=Address(country_code=settings.country))
        self._machine = CheckoutStateMachine(self._form)
        self._tracker = BreakdownTracker(settings.free_shipping_policy(), cart=cart)
        self._zone_ticket = 0
        self._last_hint: WidgetSubmission | None = None
        coupons.subscribe(lambda coupon: self._tracker.update(coupon=coupon))

    # ═══════════════════════════════════════════════════════════════════════════
    # Read side
    # ═══════════════════════════════════════════════════════════════════════════

    @property
    def step(self) -> CheckoutStep:
        return self._machine.step

    @property
    def machine(self) -> CheckoutStateMachine:
        return self._machine

    @property
    def form(self) -> CheckoutForm:
        return self._form

    @property
    def breakdown(self) -> PriceBreakdown:
        return self._tracker.breakdown

    @property
    def cart(self) -> CartSnapshot:
        return self._tracker.inputs.cart

    @property
    def address(self) -> Address:
        return self._form.address

    @property
    def resolution(self) -> ZoneResolution | None:
        return self._form.resolution

    @property
    def shipping_method(self) -> ShippingMethod | None:
        return self._tracker.inputs.shipping_method

    @property
    def coupon(self) -> Coupon | None:
        return self._coupons.coupon

    @property
    def order(self) -> PendingOrder | None:
        return self._coordinator.order

    @property
    def payment_session(self) -> PaymentSession | None:
        return self._coordinator.session

    @property
    def last_widget_hint(self) -> WidgetSubmission | None:
        return self._last_hint

    def required_fields(self) -> tuple[str, ...]:
        return self._machine.required_fields()

    def notices(self) -> list[CouponRemoved]:
        return self._coupons.drain_notices()

    # ═══════════════════════════════════════════════════════════════════════════
    # Cart and coupon
    # ═══════════════════════════════════════════════════════════════════════════

    def update_cart(self, cart: CartSnapshot) -> PriceBreakdown:
        breakdown = self._tracker.update(cart=cart)
        self._coupons.cart_changed(cart)
        return breakdown

    async def apply_coupon(self, code: str) -> Result[Coupon, CouponRejected]:
        return await self._coupons.apply(code, self.cart)

    def remove_coupon(self) -> Coupon | None:
        return self._coupons.remove()

    # ═══════════════════════════════════════════════════════════════════════════
    # Personal data
    # ═══════════════════════════════════════════════════════════════════════════

    def set_personal_data(self, data: Mapping[str, Any] | None = None, **fields: Any) -> Result[PersonalData, GateRejected]:
        """Store what was entered (even if invalid) and report per-field problems."""
        self._form.personal.update(data or {})
        self._form.personal.update(fields)
        return self._form.personal_data()

    # ═══════════════════════════════════════════════════════════════════════════
    # Address and shipping
    # ═══════════════════════════════════════════════════════════════════════════

    def _select(self, method_id: str | None) -> None:
        resolution = self._form.resolution
        method = resolution.find(method_id) if resolution is not None and method_id else None
        self._form.shipping_method_id = method.id if method is not None else None
        self._tracker.update(shipping_method=method)

    def _set_address(self, address: Address, *, force_reset: bool = False) -> Address:
        previous = self._form.address
        self._form.address = address
        if force_reset or address.zone_query() != previous.zone_query():
            # a method id from one zone is meaningless in another
            self._form.resolution = None
            self._select(None)
        return address

    def change_region(self, region_code: str) -> Address:
        """Clears district, postal code and the selected method when the region changes."""
        previous = self._form.address
        return self._set_address(
            previous.with_region(region_code),
            force_reset=previous.region_code != region_code,
        )

    def change_district(self, district: str) -> Address:
        return self._set_address(self._form.address.with_district(district))

    def change_postal_code(self, postal_code: str) -> Address:
        return self._set_address(self._form.address.with_postal_code(postal_code))

    def change_street(self, street: str) -> Address:
        return self._set_address(self._form.address.with_street(street))

    async def refresh_shipping_methods(self) -> ZoneResolution | None:
        """
        Resolve methods for the current address.

        Returns None when the answer was for an address that is no longer
        current; the newer request's answer is the one applied.
        """
        address = self._form.address
        query = address.zone_query()
        self._zone_ticket += 1
        ticket = self._zone_ticket

        resolution = await self._resolver.resolve(address)

        if ticket != self._zone_ticket or self._form.address.zone_query() != query:
            logger.debug("stale zone result discarded", query=query.cache_key if query else None)
            return None

        self._form.resolution = resolution
        selected = reconcile_selection(self._form.shipping_method_id, resolution)
        if selected is None and self._settings.auto_select_shipping and resolution.methods:
            selected = resolution.methods[0].id
        self._select(selected)
        return resolution

    def select_shipping_method(self, method_id: str) -> Result[ShippingMethod, GateRejected]:
        resolution = self._form.resolution
        method = resolution.find(method_id) if resolution is not None else None
        if method is None:
            return Error(GateRejected(
                self.step,
                {"shipping_method": "The selected shipping method is not available for this address"},
            ))
        self._select(method.id)
        return Ok(method)

    # ═══════════════════════════════════════════════════════════════════════════
    # Navigation
    # ═══════════════════════════════════════════════════════════════════════════

    def advance(self) -> Result[CheckoutStep, GateRejected]:
        return self._machine.advance()

    def back(self) -> CheckoutStep:
        return self._machine.back()

    def restart(self) -> CheckoutStep:
        """Back to payment method selection after a cancelled or failed attempt."""
        step = self._machine.restart()
        self._last_hint = None
        return step

    def select_payment_method(self, method_id: str) -> None:
        self._form.payment_method = method_id

    # ═══════════════════════════════════════════════════════════════════════════
    # Payment
    # ═══════════════════════════════════════════════════════════════════════════

    async def submit(self, payment_method: str | None = None) -> Result[CommitOutcome, SubmitFailure]:
        """
        Revalidate the coupon if the cart changed, then commit.

        OrderCreationFailed ends the attempt (FAILED). A session failure
        leaves the order pending and the checkout awaiting payment, from
        where the session can be retried or the checkout cancelled.
        """
        if self.step is not Step.SELECTING_PAYMENT_METHOD:
            raise InvalidTransition(self.step, Step.AWAITING_PAYMENT_COMPLETION)
        if payment_method is not None:
            self._form.payment_method = payment_method

        match await self._coupons.ensure_current(self.cart):
            case Error(notice):
                return Error(CouponInvalidated(notice))
            case Ok(_):
                pass

        match self._form.personal_data():
            case Error(rejected):
                return Error(rejected)
            case Ok(personal):
                pass

        match self._machine.begin_payment():
            case Error(rejected):
                return Error(rejected)
            case Ok(_):
                pass

        inputs = self._tracker.inputs
        request = CommitRequest(
            cart=inputs.cart,
            breakdown=self._tracker.breakdown,
            customer=personal.to_customer(),
            address=self._form.address,
            shipping_method=inputs.shipping_method,
            coupon=inputs.coupon,
            payment_method=self._form.payment_method or self._settings.payment_method_id,
        )

        bind_checkout(checkout_id=self.id)
        try:
            result = await self._coordinator.commit(request)
            match result:
                case Ok(outcome):
                    logger.info("checkout awaiting payment", order_id=outcome.order.id)
                    self._coordinator.on_widget_submit(self.on_widget_submitted)
                case Error(OrderCreationFailed()):
                    if self.step is Step.AWAITING_PAYMENT_COMPLETION:
                        self._machine.fail()
                case Error(SessionCreationFailed()) | Error(CommitCancelled()):
                    pass
            return result
        finally:
            clear_checkout()

    async def retry_payment_session(self) -> Result[PaymentSession, SessionCreationFailed | CommitCancelled]:
        if self.step is not Step.AWAITING_PAYMENT_COMPLETION:
            raise InvalidTransition(self.step, "payment session retry")
        result = await self._coordinator.retry_session()
        match result:
            case Ok(_):
                self._coordinator.on_widget_submit(self.on_widget_submitted)
            case Error(_):
                pass
        return result

    async def cancel(self) -> Result[CancelOutcome, CancellationFailed]:
        """
        Cancel while awaiting payment. The compensating order cancel must
        succeed before the checkout counts as cancelled.
        """
        if self.step is not Step.AWAITING_PAYMENT_COMPLETION:
            raise InvalidTransition(self.step, Step.CANCELLED)
        result = await self._coordinator.cancel()
        match result:
            case Ok(_):
                if self.step is Step.AWAITING_PAYMENT_COMPLETION:
                    self._machine.cancel()
            case Error(failed):
                logger.error("checkout still awaiting payment, cancel failed", order_id=failed.order_id)
        return result

    async def refresh_order_status(self) -> Result[PendingOrder, ServiceError]:
        """Poll the order; a confirmation observed on it completes the checkout."""
        result = await self._coordinator.refresh_order()
        match result:
            case Ok(order):
                if order.status is OrderStatus.CONFIRMED and self.step is Step.AWAITING_PAYMENT_COMPLETION:
                    self._machine.complete()
            case Error(_):
                pass
        return result

    def on_widget_submitted(self, submission: WidgetSubmission) -> str:
        """
        Route the buyer after the embedded form reports back.

        Advisory only: the order and the checkout step are left untouched.
        """
        self._last_hint = submission
        urls = self._coordinator.callback_urls()
        return urls.success if submission.looks_successful else urls.failure

    async def close(self) -> None:
        await self._coupons.close()


__all__ = ("CheckoutSession",)
