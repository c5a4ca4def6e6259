"""
HTTP adapters for a WooCommerce-style commerce site.

All three share one AsyncClient carrying the REST credentials:

    client = commerce_client(settings)
    backend = HttpCommerceBackend(client)
    zones = HttpZoneSource(client)
    coupons = HttpCouponValidator(client)

Adapters raise on transport or status errors; callers lift them with
`service_call`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from emporium.config import Settings
from emporium.commerce._types import (
    CouponLine,
    LineItem,
    OrderPayload,
    OrderStateConflict,
    OrderStatus,
    PendingOrder,
    ShippingLine,
)
from emporium.coupons import CouponValidation
from emporium.pricing import (
    ZERO,
    CartSnapshot,
    DiscountDescriptor,
    DiscountKind,
    format_amount,
    round2,
)
from emporium.shipping import ShippingZone, ZoneMethod, ZoneQuery

API = "/wp-json/wc/v3"


def commerce_client(settings: Settings) -> httpx.AsyncClient:
    auth = None
    if settings.commerce_consumer_key and settings.commerce_consumer_secret:
        auth = httpx.BasicAuth(settings.commerce_consumer_key, settings.commerce_consumer_secret)
    return httpx.AsyncClient(
        base_url=settings.commerce_url,
        auth=auth,
        timeout=settings.http_timeout_sec,
        headers={"Content-Type": "application/json"},
    )


def _decimal(raw: Any) -> Decimal:
    if raw in (None, ""):
        return ZERO
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return ZERO


def _flag(raw: Any) -> bool:
    return raw is True or raw == "yes" or raw == 1


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


def parse_order(data: dict[str, Any]) -> PendingOrder:
    shipping_lines = data.get("shipping_lines") or []
    shipping_line = None
    if shipping_lines:
        first = shipping_lines[0]
        shipping_line = ShippingLine(
            method_id=str(first.get("method_id", "")),
            method_title=first.get("method_title", ""),
            total=str(first.get("total", "0.00")),
        )
    return PendingOrder(
        id=str(data["id"]),
        status=OrderStatus.from_wire(data.get("status", "pending")),
        total=_decimal(data.get("total")),
        line_items=tuple(
            LineItem(
                product_id=int(item["product_id"]),
                quantity=int(item["quantity"]),
                variation_id=item.get("variation_id") or None,
            )
            for item in data.get("line_items") or []
        ),
        shipping_line=shipping_line,
        coupon_lines=tuple(
            CouponLine(code=c.get("code", ""), discount=str(c.get("discount", "0.00")))
            for c in data.get("coupon_lines") or []
        ),
        transaction_id=data.get("transaction_id") or None,
    )


class HttpCommerceBackend:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _send(self, method: str, path: str, body: dict[str, Any] | None = None) -> PendingOrder:
        response = await self._client.request(method, f"{API}{path}", json=body)
        response.raise_for_status()
        return parse_order(response.json())

    async def create_order(self, payload: OrderPayload) -> PendingOrder:
        return await self._send("POST", "/orders", payload.to_wire())

    async def get_order(self, order_id: str) -> PendingOrder:
        return await self._send("GET", f"/orders/{order_id}")

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        transaction_id: str | None = None,
    ) -> PendingOrder:
        body: dict[str, Any] = {"status": status.wire}
        if status is OrderStatus.CONFIRMED:
            body["set_paid"] = True
        if transaction_id:
            body["transaction_id"] = transaction_id
        return await self._send("PUT", f"/orders/{order_id}", body)

    async def cancel_order(self, order_id: str) -> PendingOrder:
        """Cancelling twice is a no-op; a paid order is never voided."""
        current = await self.get_order(order_id)
        if current.status is OrderStatus.CANCELLED:
            return current
        if current.status is OrderStatus.CONFIRMED:
            raise OrderStateConflict(order_id, current.status, OrderStatus.CANCELLED)
        return await self._send("PUT", f"/orders/{order_id}", {"status": OrderStatus.CANCELLED.wire})


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping zones
# ═══════════════════════════════════════════════════════════════════════════════


def parse_method(data: dict[str, Any]) -> ZoneMethod:
    settings = data.get("settings") or {}
    cost = (settings.get("cost") or {}).get("value")
    return ZoneMethod(
        id=f"{data.get('method_id', 'method')}:{data.get('instance_id', data.get('id'))}",
        title=data.get("title") or data.get("method_title") or "",
        cost=_decimal(cost),
        enabled=bool(data.get("enabled")),
    )


class HttpZoneSource:
    """Only zones whose name could match the query get their methods loaded."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get(self, path: str) -> list[dict[str, Any]]:
        response = await self._client.get(f"{API}{path}")
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, list) else []

    async def _load(self, zone: dict[str, Any]) -> ShippingZone:
        zone_id = int(zone["id"])
        methods, locations = await asyncio.gather(
            self._get(f"/shipping/zones/{zone_id}/methods"),
            self._get(f"/shipping/zones/{zone_id}/locations"),
        )
        return ShippingZone(
            id=zone_id,
            name=zone.get("name", ""),
            locations=tuple(str(loc.get("code", "")) for loc in locations),
            methods=tuple(parse_method(m) for m in methods),
        )

    async def fetch_zones(self, query: ZoneQuery) -> Sequence[ShippingZone]:
        zones = await self._get("/shipping/zones")
        candidates = [z for z in zones if z.get("name") == query.zone_name]
        return await asyncio.gather(*(self._load(z) for z in candidates))


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


def _expired(raw: str | None, now: datetime) -> bool:
    if not raw:
        return False
    expires = datetime.fromisoformat(raw)
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    return expires < now


def evaluate_coupon(data: dict[str, Any], cart: CartSnapshot, now: datetime | None = None) -> CouponValidation:
    """
    Apply the commerce site's coupon rules to a cart.

    The discount is capped at the cart subtotal.
    """
    now = now or datetime.now(timezone.utc)
    subtotal = cart.subtotal

    def invalid(reason: str) -> CouponValidation:
        return CouponValidation(valid=False, error_reason=reason)

    if data.get("status", "publish") != "publish":
        return invalid("Coupon is not active")
    if _expired(data.get("date_expires"), now):
        return invalid("Coupon has expired")
    usage_limit = data.get("usage_limit")
    if usage_limit and int(data.get("usage_count") or 0) >= int(usage_limit):
        return invalid("Coupon usage limit reached")

    minimum = _decimal(data.get("minimum_amount"))
    if minimum > 0 and subtotal < minimum:
        return invalid(f"Minimum purchase for this coupon is {format_amount(minimum)}")
    maximum = _decimal(data.get("maximum_amount"))
    if maximum > 0 and subtotal > maximum:
        return invalid(f"Maximum purchase for this coupon is {format_amount(maximum)}")

    amount = _decimal(data.get("amount"))
    product_ids = {int(p) for p in data.get("product_ids") or []}
    eligible = [line for line in cart.lines if not product_ids or line.product_id in product_ids]

    match data.get("discount_type"):
        case "percent":
            base = sum((line.line_total for line in eligible), ZERO)
            discount = base * amount / 100
            descriptor = DiscountDescriptor(DiscountKind.PERCENTAGE, amount)
        case "fixed_product":
            discount = amount * sum(line.quantity for line in eligible)
            descriptor = DiscountDescriptor(DiscountKind.FIXED, amount)
        case _:
            discount = amount
            descriptor = DiscountDescriptor(DiscountKind.FIXED, amount)

    return CouponValidation(
        valid=True,
        discount_amount=round2(min(discount, subtotal)),
        grants_free_shipping=_flag(data.get("free_shipping")),
        discount=descriptor,
    )


class HttpCouponValidator:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def validate(self, code: str, cart: CartSnapshot) -> CouponValidation:
        response = await self._client.get(f"{API}/coupons", params={"code": code, "per_page": 1})
        response.raise_for_status()
        found = response.json()
        if not found:
            return CouponValidation(valid=False, error_reason="Coupon not found")
        return evaluate_coupon(found[0], cart)


__all__ = (
    "API",
    "commerce_client",
    "parse_order",
    "HttpCommerceBackend",
    "parse_method",
    "HttpZoneSource",
    "evaluate_coupon",
    "HttpCouponValidator",
)
