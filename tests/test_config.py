from __future__ import annotations

from decimal import Decimal

import pytest
import structlog

from emporium.config import Settings
from emporium.log import bind_checkout, clear_checkout, get_log_level


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "EMPORIUM_FREE_SHIPPING_THRESHOLD",
        "EMPORIUM_FREE_SHIPPING_ENABLED",
        "EMPORIUM_STOREFRONT_URL",
        "EMPORIUM_GATEWAY_URL",
        "EMPORIUM_ZONE_CACHE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env: pytest.MonkeyPatch) -> None:
    settings = Settings.load()

    assert settings.currency == "PEN"
    assert settings.free_shipping_threshold == Decimal("150.00")
    assert settings.correlation_prefix == "WC-"
    assert settings.auto_select_shipping is True
    assert settings.gateway_url is None
    assert settings.zone_cache_size == 256


def test_environment_overrides(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("EMPORIUM_FREE_SHIPPING_THRESHOLD", "200")
    clean_env.setenv("EMPORIUM_FREE_SHIPPING_ENABLED", "no")
    clean_env.setenv("EMPORIUM_STOREFRONT_URL", "https://shop.example.pe/")
    clean_env.setenv("EMPORIUM_GATEWAY_URL", "https://pagos.example.pe/")

    settings = Settings.load()

    assert settings.free_shipping_threshold == Decimal("200")
    assert settings.free_shipping_enabled is False
    assert settings.storefront_url == "https://shop.example.pe"
    assert settings.gateway_url == "https://pagos.example.pe"


def test_free_shipping_policy_follows_settings() -> None:
    policy = Settings(free_shipping_enabled=False, free_shipping_threshold=Decimal("99")).free_shipping_policy()

    assert policy.enabled is False
    assert policy.threshold == Decimal("99")


def test_correlation_ids() -> None:
    settings = Settings()

    assert settings.correlation_id(1001) == "WC-1001"
    assert settings.order_id_from_correlation("WC-1001") == "1001"
    assert settings.order_id_from_correlation("WC-") is None
    assert settings.order_id_from_correlation("ORD-1001") is None


@pytest.mark.parametrize(
    ("environment", "level"),
    [("production", "INFO"), ("development", "DEBUG"), ("test", "WARNING")],
)
def test_log_level_by_environment(monkeypatch: pytest.MonkeyPatch, environment: str, level: str) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setenv("ENVIRONMENT", environment)

    assert get_log_level() == level


def test_checkout_context_binding() -> None:
    bind_checkout(checkout_id="abc", order_id="1001")
    assert structlog.contextvars.get_contextvars() == {"checkout_id": "abc", "order_id": "1001"}

    clear_checkout()
    assert structlog.contextvars.get_contextvars() == {}
