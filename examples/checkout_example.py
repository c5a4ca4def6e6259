"""
Checkout — price a cart, commit order and payment session, confirm payment.

Level 5: emporium.checkout
Level 4: emporium.saga / emporium.idempotency / emporium.cache
Level 2: kungfu.Result
"""

from kungfu import Ok, Error

from emporium.checkout import CheckoutSession, ConfirmationProcessor, OrderCommitCoordinator
from emporium.commerce import InMemoryCommerceBackend
from emporium.config import Settings
from emporium.coupons import CouponSlot
from emporium.payments import FakePaymentGateway, WidgetSubmission, sign
from emporium.pricing import CartLine, CartSnapshot, PriceBreakdown
from emporium.shipping import ShippingZoneResolver
from examples._infra import FakeCoupons, FakeZones, banner, run


def show(b: PriceBreakdown) -> None:
    print(f"  subtotal {b.subtotal}  discount -{b.discount_amount}  shipping {b.shipping_cost}  total {b.total}")
    if b.remaining_to_free_shipping:
        print(f"  {b.remaining_to_free_shipping} more for free shipping")


def new_session(settings: Settings, coordinator: OrderCommitCoordinator) -> CheckoutSession:
    return CheckoutSession(
        settings,
        resolver=ShippingZoneResolver.from_settings(FakeZones(), settings),
        coupons=CouponSlot(FakeCoupons(), debounce=settings.coupon_debounce_sec),
        coordinator=coordinator,
        cart=CartSnapshot.of(CartLine.of(101, 2, "45.00", name="Polo pima")),
    )


async def fill(session: CheckoutSession) -> None:
    session.set_personal_data(
        first_name="Ana",
        first_last_name="Quispe",
        second_last_name="Rojas",
        document_id="45678912",
        email="ana@example.pe",
        phone="987654321",
    )
    session.advance()
    session.change_region("PE:LMA")
    session.change_district("Miraflores")
    session.change_street("Av. Larco 123")
    await session.refresh_shipping_methods()
    session.advance()
    session.select_payment_method("izipay")


async def main() -> None:
    settings = Settings(storefront_url="https://shop.example.pe")
    backend = InMemoryCommerceBackend()
    gateway = FakePaymentGateway()
    coordinator = OrderCommitCoordinator(backend, gateway, settings, notification_url="https://api.example.pe/ipn")

    banner("Checkout: pay and confirm")
    session = new_session(settings, coordinator)
    show(session.breakdown)

    match await session.apply_coupon("bienvenido10"):
        case Ok(coupon):
            print(f"  ✓ Coupon {coupon.code} applied")
        case Error(rejected):
            print(f"  ✗ {rejected.message}")

    await fill(session)
    show(session.breakdown)

    match await session.submit():
        case Ok(outcome):
            print(f"  ✓ Order {outcome.order.id} pending, session {outcome.session.token}")
        case Error(failure):
            print(f"  ✗ Submit failed: {failure}")
            return

    gateway.submit(WidgetSubmission("PAID", settings.correlation_id(outcome.order.id)))
    print(f"  → Widget says paid, buyer sent to {session.on_widget_submitted(session.last_widget_hint)}")

    processor = ConfirmationProcessor(coordinator, gateway, settings)
    answer = '{"orderStatus":"PAID"}'
    form = {
        "kr_answer": answer,
        "kr_hash": sign(answer, gateway.hmac_key),
        "kr_transaction_id": "tx-0001",
        "kr_amount": str(outcome.order.total),
        "kr_status": "CAPTURED",
        "kr_order_id": settings.correlation_id(outcome.order.id),
    }
    for attempt in ("first", "repeat"):
        match await processor.process(form):
            case Ok(confirmed):
                print(f"  ✓ {attempt} notification: {confirmed.order_status} duplicate={confirmed.duplicate}")
            case Error(rejected):
                print(f"  ✗ {attempt} notification rejected: {rejected.message}")

    await session.refresh_order_status()
    print(f"  Checkout step: {session.step.name}")
    await session.close()

    banner("Checkout: cancel while awaiting payment")
    session = new_session(settings, coordinator)
    await fill(session)
    await session.submit()
    match await session.cancel():
        case Ok(cancelled):
            print(f"  ← Order {cancelled.order.id} {cancelled.order.status.value}")  # type: ignore[union-attr]
        case Error(failed):
            print(f"  ✗ Cancel failed: {failed.message}")
    session.restart()
    print(f"  Checkout step: {session.step.name}")
    await session.close()


if __name__ == "__main__":
    run(main)
