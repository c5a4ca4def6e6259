from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from kungfu import Ok, Error

from emporium.checkout import CheckoutSession, CommitRequest, OrderCommitCoordinator
from emporium.commerce import Customer
from emporium.coupons import CouponValidation
from emporium.payments import sign
from emporium.pricing import CartLine, CartSnapshot, FreeShippingPolicy, ShippingMethod, compute_breakdown
from emporium.shipping import Address, ShippingZone, ZoneMethod, ZoneQuery


@dataclass
class StaticZoneSource:
    """Zones served from memory; set `fail` to make lookups raise."""

    zones: list[ShippingZone] = field(default_factory=list)
    queries: list[ZoneQuery] = field(default_factory=list)
    fail: bool = False

    async def fetch_zones(self, query: ZoneQuery) -> Sequence[ShippingZone]:
        self.queries.append(query)
        if self.fail:
            raise ConnectionError("zone service down")
        return list(self.zones)


@dataclass
class ScriptedCouponValidator:
    """Answers per code, with an optional minimum subtotal per code."""

    answers: dict[str, CouponValidation] = field(default_factory=dict)
    minimum_subtotal: dict[str, Decimal] = field(default_factory=dict)
    calls: list[tuple[str, CartSnapshot]] = field(default_factory=list)
    fail: bool = False

    async def validate(self, code: str, cart: CartSnapshot) -> CouponValidation:
        self.calls.append((code, cart))
        if self.fail:
            raise ConnectionError("coupon service down")
        answer = self.answers.get(code)
        if answer is None:
            return CouponValidation(valid=False, error_reason="Coupon not found")
        minimum = self.minimum_subtotal.get(code)
        if minimum is not None and cart.subtotal < minimum:
            return CouponValidation(valid=False, error_reason=f"Minimum purchase is {minimum}")
        return answer


def make_cart(*prices: str, quantity: int = 1) -> CartSnapshot:
    return CartSnapshot.of(*(
        CartLine.of(100 + i, quantity, price, name=f"Product {i}")
        for i, price in enumerate(prices)
    ))


LIMA_ZONES = [
    ShippingZone(
        id=1,
        name="Miraflores",
        locations=("PE:LMA",),
        methods=(
            ZoneMethod(id="flat_rate:1", title="Delivery Miraflores", cost=Decimal("10.00"), enabled=True),
            ZoneMethod(id="local_pickup:2", title="Store pickup", cost=Decimal("0.00"), enabled=False),
        ),
    ),
    ShippingZone(
        id=2,
        name="San Isidro",
        locations=("PE:LMA",),
        methods=(
            ZoneMethod(id="flat_rate:3", title="Delivery San Isidro", cost=Decimal("12.50"), enabled=True),
        ),
    ),
    ShippingZone(
        id=3,
        name="Arequipa",
        locations=("PE:ARE",),
        methods=(
            ZoneMethod(id="flat_rate:4", title="Courier Arequipa", cost=Decimal("18.00"), enabled=True),
        ),
    ),
]

PERSONAL = {
    "first_name": "Ana",
    "first_last_name": "Quispe",
    "second_last_name": "Rojas",
    "document_id": "45678912",
    "email": "Ana.Quispe@example.pe",
    "phone": "+51 987 654 321",
}


async def ready_to_pay(session: CheckoutSession) -> CheckoutSession:
    """Drive a session to payment method selection with a Miraflores address."""
    session.set_personal_data(PERSONAL)
    session.advance()
    session.change_region("PE:LMA")
    session.change_district("Miraflores")
    session.change_street("Av. Larco 123")
    await session.refresh_shipping_methods()
    session.advance()
    session.select_payment_method("izipay")
    return session


CUSTOMER = Customer(
    first_name="Ana",
    last_name="Quispe Rojas",
    email="ana@example.pe",
    phone="987654321",
    document_id="45678912",
)
MIRAFLORES = Address().with_region("PE:LMA").with_district("Miraflores").with_street("Av. Larco 123")
DELIVERY = ShippingMethod(id="flat_rate:1", title="Delivery", cost=Decimal("10.00"))


def commit_request() -> CommitRequest:
    """Cart of 100.00 delivered to Miraflores: order total 110.00."""
    cart = make_cart("60.00", "40.00")
    return CommitRequest(
        cart=cart,
        breakdown=compute_breakdown(cart, None, DELIVERY, FreeShippingPolicy()),
        customer=CUSTOMER,
        address=MIRAFLORES,
        shipping_method=DELIVERY,
        coupon=None,
        payment_method="izipay",
    )


async def committed(coordinator: OrderCommitCoordinator) -> None:
    match await coordinator.commit(commit_request()):
        case Ok(_):
            pass
        case Error(err):
            raise AssertionError(err)


ANSWER = '{"orderStatus":"PAID","orderDetails":{"orderId":"WC-1001"}}'


def notification(**overrides: str) -> dict[str, str]:
    """Gateway notification for order 1001, signed with the fake gateway's key."""
    form = {
        "kr_answer": ANSWER,
        "kr_hash": sign(ANSWER, "test-hmac-key"),
        "kr_transaction_id": "tx-1",
        "kr_amount": "110.00",
        "kr_status": "CAPTURED",
        "kr_order_id": "WC-1001",
    }
    form.update(overrides)
    return form
