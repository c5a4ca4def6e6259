"""
Order payload assembly from the priced checkout.
"""

from __future__ import annotations

from emporium.commerce._types import (
    CouponLine,
    Customer,
    LineItem,
    OrderPayload,
    PostalAddress,
    ShippingLine,
)
from emporium.pricing import (
    CartLine,
    CartSnapshot,
    Coupon,
    PriceBreakdown,
    ShippingMethod,
    format_amount,
)
from emporium.shipping import Address

FREE_SHIPPING_METHOD_ID = "free_shipping"


def _attribute_key(attribute_id: str) -> str:
    return attribute_id if attribute_id.startswith("pa_") else f"pa_{attribute_id}"


def line_item(line: CartLine) -> LineItem:
    return LineItem(
        product_id=line.product_id,
        quantity=line.quantity,
        variation_id=line.variation_id,
        meta_data=tuple((_attribute_key(k), v) for k, v in line.selected_attributes),
    )


def shipping_line(
    breakdown: PriceBreakdown,
    method: ShippingMethod | None,
    free_title: str,
) -> ShippingLine:
    """Shipping line at the effective cost: zero whenever shipping is free."""
    if breakdown.is_shipping_free:
        return ShippingLine(
            method_id=method.id if method is not None else FREE_SHIPPING_METHOD_ID,
            method_title=free_title,
            total=format_amount(0),
        )
    if method is None:
        raise ValueError("a shipping method is required when shipping is not free")
    return ShippingLine(
        method_id=method.id,
        method_title=method.title,
        total=format_amount(breakdown.shipping_cost),
    )


def build_order_payload(
    *,
    cart: CartSnapshot,
    breakdown: PriceBreakdown,
    customer: Customer,
    address: Address,
    shipping_method: ShippingMethod | None,
    coupon: Coupon | None,
    payment_method: str,
    free_shipping_title: str = "Envío gratis",
) -> OrderPayload:
    """
    Build the order request.

    The total is taken from the breakdown, never re-added here.
    """
    billing = PostalAddress(
        first_name=customer.first_name,
        last_name=customer.last_name,
        address_1=address.street,
        city=address.city,
        state=address.region_code,
        postcode=address.postal_code,
        country=address.country_code,
        email=customer.email,
        phone=customer.phone,
    )
    shipping = PostalAddress(
        first_name=customer.first_name,
        last_name=customer.last_name,
        address_1=address.street,
        city=address.city,
        state=address.region_code,
        postcode=address.postal_code,
        country=address.country_code,
    )

    coupon_lines: tuple[CouponLine, ...] = ()
    if coupon is not None:
        coupon_lines = (CouponLine(code=coupon.code, discount=format_amount(breakdown.discount_amount)),)

    return OrderPayload(
        line_items=tuple(line_item(line) for line in cart.lines),
        billing=billing,
        shipping=shipping,
        shipping_line=shipping_line(breakdown, shipping_method, free_shipping_title),
        coupon_lines=coupon_lines,
        payment_method=payment_method,
        total=format_amount(breakdown.total),
        meta_data=(("_billing_document", customer.document_id),),
    )


__all__ = (
    "FREE_SHIPPING_METHOD_ID",
    "line_item",
    "shipping_line",
    "build_order_payload",
)
