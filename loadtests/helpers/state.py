"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks what the shopper has in the cart and what the server said about
it so follow-up steps can react.
"""

from dataclasses import dataclass, field


@dataclass
class ShopperState:
    """Tracks state for a single simulated checkout journey."""

    user_id: str | None = None
    items: list[dict] = field(default_factory=list)
    coupon_code: str | None = None
    coupon_valid: bool = False
    quoted_subtotal: str | None = None
    order_number: str | None = None
    adjustments: int = 0

    def reset(self):
        self.items = []
        self.coupon_code = None
        self.coupon_valid = False
        self.quoted_subtotal = None
        self.order_number = None
        self.adjustments = 0
