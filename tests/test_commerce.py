from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest

from emporium.commerce import (
    API,
    Customer,
    HttpCommerceBackend,
    HttpCouponValidator,
    HttpZoneSource,
    InMemoryCommerceBackend,
    OrderStateConflict,
    OrderStatus,
    build_order_payload,
    evaluate_coupon,
    parse_method,
)
from emporium.pricing import (
    CartLine,
    CartSnapshot,
    Coupon,
    DiscountDescriptor,
    DiscountKind,
    FreeShippingPolicy,
    ShippingMethod,
    compute_breakdown,
)
from emporium.shipping import Address, ZoneQuery

from support import make_cart

CUSTOMER = Customer(
    first_name="Ana",
    last_name="Quispe Rojas",
    email="ana@example.pe",
    phone="987654321",
    document_id="45678912",
)
ADDRESS = Address().with_region("PE:LMA").with_district("Miraflores").with_street("Av. Larco 123")
STANDARD = ShippingMethod(id="flat_rate:1", title="Delivery Miraflores", cost=Decimal("10.00"))
NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def payload_for(cart: CartSnapshot, coupon: Coupon | None = None):
    breakdown = compute_breakdown(cart, coupon, STANDARD, FreeShippingPolicy())
    return build_order_payload(
        cart=cart,
        breakdown=breakdown,
        customer=CUSTOMER,
        address=ADDRESS,
        shipping_method=STANDARD,
        coupon=coupon,
        payment_method="izipay",
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Payload
# ═══════════════════════════════════════════════════════════════════════════════


def test_payload_total_comes_from_breakdown() -> None:
    cart = CartSnapshot.of(CartLine.of(7, 2, "45.00", variation_id=70, attributes={"talla": "M"}))
    wire = payload_for(cart).to_wire()

    assert wire["total"] == "100.00"
    assert wire["status"] == "pending"
    assert wire["set_paid"] is False
    assert wire["shipping_lines"] == [
        {"method_id": "flat_rate:1", "method_title": "Delivery Miraflores", "total": "10.00"},
    ]
    assert wire["line_items"] == [{
        "product_id": 7,
        "quantity": 2,
        "variation_id": 70,
        "meta_data": [{"key": "pa_talla", "value": "M"}],
    }]
    assert wire["billing"]["email"] == "ana@example.pe"
    assert wire["billing"]["postcode"] == "15074"
    assert "email" not in wire["shipping"]
    assert {"key": "_billing_document", "value": "45678912"} in wire["meta_data"]


def test_free_shipping_line_is_zero() -> None:
    wire = payload_for(make_cart("160.00")).to_wire()

    assert wire["shipping_lines"][0]["total"] == "0.00"
    assert wire["shipping_lines"][0]["method_title"] == "Envío gratis"
    assert wire["total"] == "160.00"


def test_coupon_line_carries_discount() -> None:
    cart = make_cart("100.00")
    coupon = Coupon(
        code="VERANO",
        discount=DiscountDescriptor(DiscountKind.PERCENTAGE, Decimal("20")),
        discount_amount=Decimal("20.00"),
        grants_free_shipping=False,
        validated_for=cart,
    )
    wire = payload_for(cart, coupon).to_wire()

    assert wire["coupon_lines"] == [{"code": "VERANO", "discount": "20.00"}]
    assert wire["total"] == "90.00"


# ═══════════════════════════════════════════════════════════════════════════════
# Coupon rules
# ═══════════════════════════════════════════════════════════════════════════════


def test_percent_coupon() -> None:
    result = evaluate_coupon(
        {"discount_type": "percent", "amount": "10", "free_shipping": False},
        make_cart("80.00", "20.00"),
        NOW,
    )

    assert result.valid is True
    assert result.discount_amount == Decimal("10.00")
    assert result.grants_free_shipping is False


def test_fixed_product_coupon_limited_to_products() -> None:
    result = evaluate_coupon(
        {"discount_type": "fixed_product", "amount": "5", "product_ids": [100]},
        make_cart("80.00", "20.00", quantity=2),
        NOW,
    )

    assert result.discount_amount == Decimal("10.00")


def test_fixed_cart_coupon_capped_at_subtotal() -> None:
    result = evaluate_coupon({"discount_type": "fixed_cart", "amount": "500"}, make_cart("30.00"), NOW)

    assert result.discount_amount == Decimal("30.00")


@pytest.mark.parametrize("flag", [True, "yes", 1])
def test_free_shipping_flag_variants(flag: object) -> None:
    result = evaluate_coupon({"discount_type": "fixed_cart", "amount": "0", "free_shipping": flag}, make_cart("30.00"), NOW)

    assert result.grants_free_shipping is True


@pytest.mark.parametrize(
    ("data", "reason"),
    [
        ({"status": "draft"}, "Coupon is not active"),
        ({"date_expires": "2026-02-01T00:00:00"}, "Coupon has expired"),
        ({"usage_limit": 5, "usage_count": 5}, "Coupon usage limit reached"),
        ({"minimum_amount": "200.00"}, "Minimum purchase for this coupon is 200.00"),
        ({"maximum_amount": "50.00"}, "Maximum purchase for this coupon is 50.00"),
    ],
)
def test_coupon_rejections(data: dict, reason: str) -> None:
    result = evaluate_coupon({"discount_type": "fixed_cart", "amount": "5", **data}, make_cart("100.00"), NOW)

    assert result.valid is False
    assert result.error_reason == reason


# ═══════════════════════════════════════════════════════════════════════════════
# In-memory backend
# ═══════════════════════════════════════════════════════════════════════════════


async def test_memory_backend_cancel_is_idempotent(backend: InMemoryCommerceBackend) -> None:
    order = await backend.create_order(payload_for(make_cart("50.00")))

    first = await backend.cancel_order(order.id)
    second = await backend.cancel_order(order.id)

    assert first.status is OrderStatus.CANCELLED
    assert second.status is OrderStatus.CANCELLED
    assert backend.calls == [("create_order", None), ("cancel_order", order.id), ("cancel_order", order.id)]


async def test_memory_backend_refuses_to_revive_cancelled(backend: InMemoryCommerceBackend) -> None:
    order = await backend.create_order(payload_for(make_cart("50.00")))
    await backend.cancel_order(order.id)

    with pytest.raises(OrderStateConflict):
        await backend.update_status(order.id, OrderStatus.CONFIRMED)


async def test_memory_backend_refuses_to_cancel_confirmed(backend: InMemoryCommerceBackend) -> None:
    order = await backend.create_order(payload_for(make_cart("50.00")))
    await backend.update_status(order.id, OrderStatus.CONFIRMED, transaction_id="tx-1")

    with pytest.raises(OrderStateConflict):
        await backend.cancel_order(order.id)
    assert backend.orders[order.id].transaction_id == "tx-1"


def test_status_wire_names() -> None:
    assert OrderStatus.CONFIRMED.wire == "processing"
    assert OrderStatus.from_wire("completed") is OrderStatus.CONFIRMED
    assert OrderStatus.from_wire("on-hold") is OrderStatus.ON_HOLD


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP adapters
# ═══════════════════════════════════════════════════════════════════════════════


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url="https://shop.example.pe", transport=httpx.MockTransport(handler))


async def test_http_backend_create_and_cancel() -> None:
    seen: list[tuple[str, str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        seen.append((request.method, request.url.path, body))
        status = body.get("status", "pending")
        return httpx.Response(200, json={"id": 1234, "status": status, "total": "110.00"})

    async with mock_client(handler) as client:
        backend = HttpCommerceBackend(client)
        created = await backend.create_order(payload_for(make_cart("100.00")))
        cancelled = await backend.cancel_order(created.id)

    assert created.id == "1234"
    assert created.total == Decimal("110.00")
    assert cancelled.status is OrderStatus.CANCELLED
    assert seen[0][:2] == ("POST", f"{API}/orders")
    assert seen[1][:2] == ("GET", f"{API}/orders/1234")
    assert seen[2] == ("PUT", f"{API}/orders/1234", {"status": "cancelled"})


def order_with_status(status: str, methods: list[str]):
    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json={"id": 77, "status": status, "total": "110.00"})

    return handler


async def test_http_backend_cancel_of_cancelled_order_is_noop() -> None:
    methods: list[str] = []

    async with mock_client(order_with_status("cancelled", methods)) as client:
        order = await HttpCommerceBackend(client).cancel_order("77")

    assert order.status is OrderStatus.CANCELLED
    assert methods == ["GET"]


async def test_http_backend_refuses_to_cancel_paid_order() -> None:
    methods: list[str] = []

    async with mock_client(order_with_status("processing", methods)) as client:
        with pytest.raises(OrderStateConflict):
            await HttpCommerceBackend(client).cancel_order("77")

    assert methods == ["GET"]


async def test_http_backend_confirm_sets_paid() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": 9, "status": "processing", "total": "10.00", "transaction_id": "tx"})

    async with mock_client(handler) as client:
        order = await HttpCommerceBackend(client).update_status("9", OrderStatus.CONFIRMED, transaction_id="tx")

    assert bodies == [{"status": "processing", "set_paid": True, "transaction_id": "tx"}]
    assert order.status is OrderStatus.CONFIRMED


async def test_http_backend_raises_on_error_status() -> None:
    async with mock_client(lambda request: httpx.Response(503)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await HttpCommerceBackend(client).get_order("1")


async def test_http_zone_source_loads_matching_zone_only() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        paths.append(path)
        if path.endswith("/shipping/zones"):
            return httpx.Response(200, json=[{"id": 1, "name": "Miraflores"}, {"id": 2, "name": "Surco"}])
        if path.endswith("/zones/1/methods"):
            return httpx.Response(200, json=[{
                "instance_id": 5,
                "method_id": "flat_rate",
                "title": "Delivery",
                "enabled": True,
                "settings": {"cost": {"value": "9.90"}},
            }])
        return httpx.Response(200, json=[{"code": "PE:LMA"}])

    async with mock_client(handler) as client:
        zones = await HttpZoneSource(client).fetch_zones(ZoneQuery("PE:LMA", "Miraflores"))

    assert [z.name for z in zones] == ["Miraflores"]
    assert zones[0].methods[0].id == "flat_rate:5"
    assert zones[0].methods[0].cost == Decimal("9.90")
    assert zones[0].locations == ("PE:LMA",)
    assert not any("/zones/2/" in p for p in paths)


def test_parse_method_without_cost() -> None:
    method = parse_method({"instance_id": 3, "method_id": "free_shipping", "title": "Gratis", "enabled": False})

    assert method.id == "free_shipping:3"
    assert method.cost == Decimal("0")
    assert method.enabled is False


async def test_http_coupon_validator_not_found() -> None:
    async with mock_client(lambda request: httpx.Response(200, json=[])) as client:
        result = await HttpCouponValidator(client).validate("NADA", make_cart("10.00"))

    assert result.valid is False
    assert result.error_reason == "Coupon not found"
