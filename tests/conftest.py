from __future__ import annotations

import pytest

from emporium.checkout import CheckoutSession, OrderCommitCoordinator
from emporium.commerce import InMemoryCommerceBackend
from emporium.config import Settings
from emporium.coupons import CouponSlot
from emporium.payments import FakePaymentGateway
from emporium.shipping import ShippingZoneResolver

from support import LIMA_ZONES, ScriptedCouponValidator, StaticZoneSource, make_cart


@pytest.fixture()
def settings() -> Settings:
    return Settings(coupon_debounce_sec=0.01, storefront_url="https://shop.example.pe")


@pytest.fixture()
def backend() -> InMemoryCommerceBackend:
    return InMemoryCommerceBackend()


@pytest.fixture()
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture()
def zone_source() -> StaticZoneSource:
    return StaticZoneSource(zones=list(LIMA_ZONES))


@pytest.fixture()
def validator() -> ScriptedCouponValidator:
    return ScriptedCouponValidator()


@pytest.fixture()
def resolver(zone_source: StaticZoneSource, settings: Settings) -> ShippingZoneResolver:
    return ShippingZoneResolver.from_settings(zone_source, settings)


@pytest.fixture()
def coordinator(
    backend: InMemoryCommerceBackend,
    gateway: FakePaymentGateway,
    settings: Settings,
) -> OrderCommitCoordinator:
    return OrderCommitCoordinator(backend, gateway, settings, notification_url="https://api.example.pe/ipn")


@pytest.fixture()
async def checkout(
    settings: Settings,
    resolver: ShippingZoneResolver,
    validator: ScriptedCouponValidator,
    coordinator: OrderCommitCoordinator,
):
    session = CheckoutSession(
        settings,
        resolver=resolver,
        coupons=CouponSlot(validator, debounce=settings.coupon_debounce_sec),
        coordinator=coordinator,
        cart=make_cart("60.00", "40.00"),
    )
    try:
        yield session
    finally:
        await session.close()
