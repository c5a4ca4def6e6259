"""
Commerce — orders in the commerce backend, and its HTTP adapters.

    from emporium import commerce as C

    payload = C.build_order_payload(cart=cart, breakdown=b, customer=c, ...)
    order = await backend.create_order(payload)
"""

from __future__ import annotations

from emporium.commerce._types import (
    OrderStatus,
    Customer,
    PostalAddress,
    LineItem,
    ShippingLine,
    CouponLine,
    OrderPayload,
    PendingOrder,
    OrderNotFound,
    OrderStateConflict,
    CommerceBackend,
)
from emporium.commerce._payload import (
    FREE_SHIPPING_METHOD_ID,
    line_item,
    shipping_line,
    build_order_payload,
)
from emporium.commerce._memory import InMemoryCommerceBackend
from emporium.commerce._http import (
    API,
    commerce_client,
    parse_order,
    HttpCommerceBackend,
    parse_method,
    HttpZoneSource,
    evaluate_coupon,
    HttpCouponValidator,
)

__all__ = (
    "OrderStatus",
    "Customer",
    "PostalAddress",
    "LineItem",
    "ShippingLine",
    "CouponLine",
    "OrderPayload",
    "PendingOrder",
    "OrderNotFound",
    "OrderStateConflict",
    "CommerceBackend",
    "FREE_SHIPPING_METHOD_ID",
    "line_item",
    "shipping_line",
    "build_order_payload",
    "InMemoryCommerceBackend",
    "API",
    "commerce_client",
    "parse_order",
    "HttpCommerceBackend",
    "parse_method",
    "HttpZoneSource",
    "evaluate_coupon",
    "HttpCouponValidator",
)
