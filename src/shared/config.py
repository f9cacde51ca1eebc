"""Runtime configuration for the storefront checkout engine.

Pricing and request-limit values come from environment variables with
development-friendly defaults. The database connection belongs to the
ordering domain and is configured in ``ordering/domain.toml``.
``get_settings()`` caches the first read; tests clear the cache after
changing the environment.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from functools import lru_cache


class StockPolicy(Enum):
    """What the pricing calculator does when a tracked line exceeds stock."""

    CLAMP = "clamp"
    REJECT = "reject"


PAYMENT_METHODS = ("card", "paypal", "bank_transfer", "cash_on_delivery", "zelle")


@dataclass(frozen=True)
class ShippingTier:
    """Flat shipping cost for orders up to ``max_weight`` kilograms."""

    max_weight: Decimal
    cost: Decimal


DEFAULT_SHIPPING_TIERS = (
    ShippingTier(Decimal("1"), Decimal("70")),
    ShippingTier(Decimal("3"), Decimal("80")),
    ShippingTier(Decimal("5"), Decimal("90")),
    ShippingTier(Decimal("10"), Decimal("95")),
)


@dataclass(frozen=True)
class ShippingRates:
    tiers: tuple[ShippingTier, ...] = DEFAULT_SHIPPING_TIERS
    heavy_base: Decimal = Decimal("150")
    heavy_per_kg: Decimal = Decimal("15")
    cap: Decimal = Decimal("250")
    default_unit_weight: Decimal = Decimal("0.5")


@dataclass(frozen=True)
class RateLimits:
    """Request budgets per client, in ``limits`` notation.

    ``checkout`` is shared by every checkout endpoint; ``orders`` applies to
    order placement on top of it.
    """

    enabled: bool = True
    checkout: str = "50 per 15 minutes"
    orders: str = "10 per hour"


def _flag(value: str) -> bool:
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass(frozen=True)
class Settings:
    currency: str = "MXN"
    free_shipping_threshold: Decimal = Decimal("299")
    stock_policy: StockPolicy = StockPolicy.CLAMP
    shipping: ShippingRates = field(default_factory=ShippingRates)
    payment_methods: tuple[str, ...] = PAYMENT_METHODS
    rate_limits: RateLimits = field(default_factory=RateLimits)

    @classmethod
    def from_env(cls) -> "Settings":
        shipping = ShippingRates(
            cap=Decimal(os.getenv("CHECKOUT_SHIPPING_CAP", "250")),
            default_unit_weight=Decimal(os.getenv("CHECKOUT_DEFAULT_UNIT_WEIGHT", "0.5")),
        )
        rate_limits = RateLimits(
            enabled=_flag(os.getenv("CHECKOUT_RATE_LIMIT_ENABLED", "true")),
            checkout=os.getenv("CHECKOUT_RATE_LIMIT", RateLimits.checkout),
            orders=os.getenv("CHECKOUT_ORDER_RATE_LIMIT", RateLimits.orders),
        )
        return cls(
            currency=os.getenv("CHECKOUT_CURRENCY", cls.currency),
            free_shipping_threshold=Decimal(os.getenv("CHECKOUT_FREE_SHIPPING_THRESHOLD", "299")),
            stock_policy=StockPolicy(os.getenv("CHECKOUT_STOCK_POLICY", StockPolicy.CLAMP.value).lower()),
            shipping=shipping,
            rate_limits=rate_limits,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings read from the environment."""
    return Settings.from_env()
