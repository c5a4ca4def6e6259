"""
HTTP gateway — sessions opened through the commerce site's payment endpoint.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

import httpx
import structlog

from emporium.config import Settings
from emporium.payments._types import (
    GatewayRejected,
    PaymentSession,
    PaymentSessionRequest,
    SubmitHandler,
)
from emporium.pricing import format_amount

logger = structlog.get_logger(__name__)

SESSION_PATH = "/wp-json/izipay/v1/create-payment"


def gateway_client(settings: Settings) -> httpx.AsyncClient:
    """The session endpoint is served by the commerce site unless `gateway_url` points elsewhere."""
    return httpx.AsyncClient(
        base_url=settings.gateway_url or settings.commerce_url,
        timeout=settings.http_timeout_sec,
    )


def session_body(request: PaymentSessionRequest) -> dict[str, Any]:
    urls = request.callback_urls
    body: dict[str, Any] = {
        "amount": format_amount(request.amount),
        "currency": request.currency,
        "orderId": request.correlation_id,
        "customerEmail": request.customer_email,
        "customerFirstName": request.customer_first_name,
        "customerLastName": request.customer_last_name,
        "cartItems": [
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "name": line.name,
                "price": format_amount(line.unit_price),
                "selectedAttributes": line.attributes,
            }
            for line in request.lines
        ],
        "successUrl": urls.success,
        "errorUrl": urls.failure,
        "cancelUrl": urls.cancel,
    }
    if urls.notification:
        body["ipnUrl"] = urls.notification
    return body


class HttpPaymentGateway:
    def __init__(self, client: httpx.AsyncClient, public_key: str, hmac_key: str) -> None:
        self._client = client
        self._public_key = public_key
        self._hmac_key = hmac_key
        self._handlers: list[SubmitHandler] = []

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> HttpPaymentGateway:
        return cls(client, settings.gateway_public_key or "", settings.gateway_hmac_key or "")

    async def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        response = await self._client.post(SESSION_PATH, json=session_body(request))
        response.raise_for_status()
        data = response.json()
        token = data.get("form_token")
        if not data.get("success") or not token:
            raise GatewayRejected(data.get("error") or data.get("message") or "no form token returned")
        logger.info("payment session created", order_id=request.order_id)
        return PaymentSession(
            token=token,
            gateway_public_key=data.get("public_key") or self._public_key,
            correlation_order_id=request.correlation_id,
        )

    def on_submit(self, handler: SubmitHandler) -> None:
        self._handlers.append(handler)

    async def teardown(self) -> None:
        self._handlers.clear()

    def verify_notification(self, answer: str, signature: str) -> bool:
        if not self._hmac_key:
            logger.error("gateway hmac key is not configured")
            return False
        expected = hmac.new(self._hmac_key.encode(), answer.encode(), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)


__all__ = ("SESSION_PATH", "gateway_client", "session_body", "HttpPaymentGateway")
