"""Tests for settings loaded from the environment."""

from decimal import Decimal

import pytest
from shared.config import PAYMENT_METHODS, Settings, StockPolicy, get_settings


@pytest.fixture(autouse=True)
def _clear_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in (
        "CHECKOUT_CURRENCY",
        "CHECKOUT_FREE_SHIPPING_THRESHOLD",
        "CHECKOUT_STOCK_POLICY",
        "CHECKOUT_DEFAULT_UNIT_WEIGHT",
        "CHECKOUT_SHIPPING_CAP",
        "CHECKOUT_RATE_LIMIT_ENABLED",
        "CHECKOUT_RATE_LIMIT",
        "CHECKOUT_ORDER_RATE_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.currency == "MXN"
    assert settings.free_shipping_threshold == Decimal("299")
    assert settings.stock_policy is StockPolicy.CLAMP
    assert settings.shipping.cap == Decimal("250")
    assert settings.shipping.default_unit_weight == Decimal("0.5")
    assert settings.payment_methods == PAYMENT_METHODS
    assert settings.rate_limits.enabled is True
    assert settings.rate_limits.checkout == "50 per 15 minutes"
    assert settings.rate_limits.orders == "10 per hour"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CHECKOUT_CURRENCY", "USD")
    monkeypatch.setenv("CHECKOUT_FREE_SHIPPING_THRESHOLD", "500")
    monkeypatch.setenv("CHECKOUT_STOCK_POLICY", "REJECT")
    monkeypatch.setenv("CHECKOUT_DEFAULT_UNIT_WEIGHT", "1.25")
    monkeypatch.setenv("CHECKOUT_SHIPPING_CAP", "199")
    monkeypatch.setenv("CHECKOUT_RATE_LIMIT", "5 per minute")
    monkeypatch.setenv("CHECKOUT_ORDER_RATE_LIMIT", "2 per hour")

    settings = get_settings()

    assert settings.currency == "USD"
    assert settings.free_shipping_threshold == Decimal("500")
    assert settings.stock_policy is StockPolicy.REJECT
    assert settings.shipping.default_unit_weight == Decimal("1.25")
    assert settings.shipping.cap == Decimal("199")
    assert settings.rate_limits.checkout == "5 per minute"
    assert settings.rate_limits.orders == "2 per hour"


@pytest.mark.parametrize("value", ["false", "0", "OFF", "no"])
def test_rate_limiting_can_be_switched_off(monkeypatch, value):
    monkeypatch.setenv("CHECKOUT_RATE_LIMIT_ENABLED", value)

    assert Settings.from_env().rate_limits.enabled is False


def test_settings_are_cached(monkeypatch):
    monkeypatch.setenv("CHECKOUT_CURRENCY", "USD")
    first = get_settings()
    monkeypatch.setenv("CHECKOUT_CURRENCY", "EUR")

    assert get_settings() is first


def test_unknown_stock_policy_is_rejected(monkeypatch):
    monkeypatch.setenv("CHECKOUT_STOCK_POLICY", "ignore")

    with pytest.raises(ValueError):
        Settings.from_env()
