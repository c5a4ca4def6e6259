"""
Settings — checkout configuration from the environment and an optional .env file.

Every key is read from an `EMPORIUM_`-prefixed variable; `Settings()` with
no arguments gives the local-development defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv

from emporium.pricing import FreeShippingPolicy

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(slots=True)
class Settings:
    currency: str = "PEN"
    country: str = "PE"
    free_shipping_enabled: bool = True
    free_shipping_threshold: Decimal = Decimal("150.00")
    free_shipping_title: str = "Envío gratis"
    zone_cache_size: int = 256
    zone_cache_ttl_sec: float = 600.0
    coupon_debounce_sec: float = 0.4
    storefront_url: str = "http://localhost:3000"
    commerce_url: str = "http://localhost:8080"
    commerce_consumer_key: str | None = None
    commerce_consumer_secret: str | None = None
    gateway_url: str | None = None
    gateway_public_key: str | None = None
    gateway_hmac_key: str | None = None
    correlation_prefix: str = "WC-"
    payment_method_id: str = "izipay"
    http_timeout_sec: float = 15.0
    database_url: str = "sqlite+aiosqlite:///:memory:"
    auto_select_shipping: bool = True

    @classmethod
    def load(cls) -> Settings:
        load_dotenv(override=False)

        return cls(
            currency=os.getenv("EMPORIUM_CURRENCY", "PEN"),
            country=os.getenv("EMPORIUM_COUNTRY", "PE"),
            free_shipping_enabled=_flag("EMPORIUM_FREE_SHIPPING_ENABLED", True),
            free_shipping_threshold=Decimal(os.getenv("EMPORIUM_FREE_SHIPPING_THRESHOLD", "150.00")),
            free_shipping_title=os.getenv("EMPORIUM_FREE_SHIPPING_TITLE", "Envío gratis"),
            zone_cache_size=int(os.getenv("EMPORIUM_ZONE_CACHE_SIZE", "256")),
            zone_cache_ttl_sec=float(os.getenv("EMPORIUM_ZONE_CACHE_TTL_SEC", "600")),
            coupon_debounce_sec=float(os.getenv("EMPORIUM_COUPON_DEBOUNCE_SEC", "0.4")),
            storefront_url=os.getenv("EMPORIUM_STOREFRONT_URL", "http://localhost:3000").rstrip("/"),
            commerce_url=os.getenv("EMPORIUM_COMMERCE_URL", "http://localhost:8080").rstrip("/"),
            commerce_consumer_key=os.getenv("EMPORIUM_COMMERCE_CONSUMER_KEY"),
            commerce_consumer_secret=os.getenv("EMPORIUM_COMMERCE_CONSUMER_SECRET"),
            gateway_url=(os.getenv("EMPORIUM_GATEWAY_URL") or "").rstrip("/") or None,
            gateway_public_key=os.getenv("EMPORIUM_GATEWAY_PUBLIC_KEY"),
            gateway_hmac_key=os.getenv("EMPORIUM_GATEWAY_HMAC_KEY"),
            correlation_prefix=os.getenv("EMPORIUM_CORRELATION_PREFIX", "WC-"),
            payment_method_id=os.getenv("EMPORIUM_PAYMENT_METHOD_ID", "izipay"),
            http_timeout_sec=float(os.getenv("EMPORIUM_HTTP_TIMEOUT_SEC", "15")),
            database_url=os.getenv("EMPORIUM_DATABASE_URL", "sqlite+aiosqlite:///:memory:"),
            auto_select_shipping=_flag("EMPORIUM_AUTO_SELECT_SHIPPING", True),
        )

    def free_shipping_policy(self) -> FreeShippingPolicy:
        return FreeShippingPolicy(
            enabled=self.free_shipping_enabled,
            threshold=self.free_shipping_threshold,
        )

    def correlation_id(self, order_id: int | str) -> str:
        return f"{self.correlation_prefix}{order_id}"

    def order_id_from_correlation(self, correlation_id: str) -> str | None:
        if not correlation_id.startswith(self.correlation_prefix):
            return None
        order_id = correlation_id[len(self.correlation_prefix):]
        return order_id or None
