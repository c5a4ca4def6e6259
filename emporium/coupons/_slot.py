"""
Coupon slot — the single applied coupon and its revalidation.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog
from kungfu import Result, Ok, Error

from emporium.lift import service_call
from emporium.pricing import CartSnapshot, Coupon, DiscountDescriptor, DiscountKind
from emporium.coupons._types import (
    CouponRejected,
    CouponRemoved,
    CouponValidator,
    RejectionReason,
    normalize_code,
)

logger = structlog.get_logger(__name__)

type CouponListener = Callable[[Coupon | None], None]


class CouponSlot:
    """
    Holds at most one applied coupon.

    Cart changes schedule a debounced revalidation. Before payment,
    `ensure_current` forces it. A revalidation that fails removes the coupon
    and records a CouponRemoved notice for the user.

    Example:
        slot = CouponSlot(validator, debounce=0.4)
        slot.subscribe(lambda c: tracker.update(coupon=c))
        await slot.apply("BIENVENIDO10", cart)
        slot.cart_changed(new_cart)
        await slot.ensure_current(new_cart)
    """

    def __init__(self, validator: CouponValidator, *, debounce: float = 0.4) -> None:
        self._validator = validator
        self._debounce = debounce
        self._coupon: Coupon | None = None
        self._latest_cart: CartSnapshot | None = None
        self._pending: asyncio.Task[Result[Coupon | None, CouponRemoved]] | None = None
        self._listeners: list[CouponListener] = []
        self._notices: list[CouponRemoved] = []

    @property
    def coupon(self) -> Coupon | None:
        return self._coupon

    @property
    def revalidation_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def subscribe(self, listener: CouponListener) -> None:
        self._listeners.append(listener)

    def drain_notices(self) -> list[CouponRemoved]:
        """Removal notices not yet shown to the user."""
        notices, self._notices = self._notices, []
        return notices

    def _set(self, coupon: Coupon | None) -> None:
        if coupon == self._coupon:
            return
        self._coupon = coupon
        for listener in self._listeners:
            listener(coupon)

    # ═══════════════════════════════════════════════════════════════════════════
    # Apply / remove
    # ═══════════════════════════════════════════════════════════════════════════

    async def apply(self, raw_code: str, cart: CartSnapshot) -> Result[Coupon, CouponRejected]:
        code = normalize_code(raw_code)
        if code is None:
            return Error(CouponRejected(
                code=raw_code.strip(),
                reason=RejectionReason.INVALID_FORMAT,
                message="Coupon codes are 3-20 letters, digits, '-' or '_'",
            ))

        self._latest_cart = cart
        result = await self._validate(code, cart)
        match result:
            case Ok(coupon):
                self._cancel_pending()
                self._set(coupon)
                logger.info("Coupon applied", code=code, discount=str(coupon.discount_amount))
            case Error(rejected):
                logger.info("Coupon rejected", code=code, reason=rejected.reason.name)
        return result

    def remove(self) -> Coupon | None:
        removed = self._coupon
        self._cancel_pending()
        self._set(None)
        return removed

    # ═══════════════════════════════════════════════════════════════════════════
    # Revalidation
    # ═══════════════════════════════════════════════════════════════════════════

    def cart_changed(self, cart: CartSnapshot) -> None:
        """Schedule a debounced revalidation for the new cart."""
        self._latest_cart = cart
        self._cancel_pending()
        if self._coupon is None or self._coupon.is_current_for(cart):
            return
        self._pending = asyncio.create_task(self._debounced(cart))

    async def _debounced(self, cart: CartSnapshot) -> Result[Coupon | None, CouponRemoved]:
        await asyncio.sleep(self._debounce)
        return await self.revalidate(cart)

    async def ensure_current(self, cart: CartSnapshot) -> Result[Coupon | None, CouponRemoved]:
        """
        Revalidate now if the cart changed since the coupon was validated.

        A cart change that lands while the validator is answering starts
        another round against that cart; the coupon returned is always
        current for the latest cart.
        """
        self._cancel_pending()
        self._latest_cart = cart
        while True:
            result = await self.revalidate(cart)
            latest = self._latest_cart
            match result:
                case Ok(coupon) if coupon is not None and latest is not None and not coupon.is_current_for(latest):
                    self._cancel_pending()
                    cart = latest
                case _:
                    return result

    async def revalidate(self, cart: CartSnapshot) -> Result[Coupon | None, CouponRemoved]:
        coupon = self._coupon
        if coupon is None:
            return Ok(None)
        if coupon.is_current_for(cart):
            return Ok(coupon)

        result = await self._validate(coupon.code, cart)

        # superseded by a newer cart or a different coupon while in flight
        if self._coupon is not coupon or self._latest_cart != cart:
            return Ok(self._coupon)

        match result:
            case Ok(fresh):
                self._set(fresh)
                return Ok(fresh)
            case Error(rejected):
                notice = CouponRemoved(
                    code=coupon.code,
                    reason=rejected.reason,
                    message=rejected.message,
                )
                self._set(None)
                self._notices.append(notice)
                logger.info("Coupon removed after cart change", code=coupon.code, reason=rejected.reason.name)
                return Error(notice)

    async def settle(self) -> None:
        """Wait for a scheduled revalidation, if any."""
        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)

    async def close(self) -> None:
        task = self._pending
        self._cancel_pending()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    # ═══════════════════════════════════════════════════════════════════════════
    # Validator call
    # ═══════════════════════════════════════════════════════════════════════════

    async def _validate(self, code: str, cart: CartSnapshot) -> Result[Coupon, CouponRejected]:
        if cart.is_empty:
            return Error(CouponRejected(code, RejectionReason.EMPTY_CART, "The cart is empty"))

        result = await service_call("coupons", lambda: self._validator.validate(code, cart))
        match result:
            case Error(err):
                return Error(CouponRejected(
                    code,
                    RejectionReason.SERVICE_UNAVAILABLE,
                    f"Could not validate the coupon: {err.message}",
                ))
            case Ok(answer) if not answer.valid:
                return Error(CouponRejected(
                    code,
                    RejectionReason.NOT_VALID,
                    answer.error_reason or "This coupon is not valid for your cart",
                ))
            case Ok(answer):
                return Ok(Coupon(
                    code=code,
                    discount=answer.discount or DiscountDescriptor(DiscountKind.FIXED, answer.discount_amount),
                    discount_amount=answer.discount_amount,
                    grants_free_shipping=answer.grants_free_shipping,
                    validated_for=cart,
                ))


__all__ = ("CouponSlot", "CouponListener")
