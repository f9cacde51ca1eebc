"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys that walk a shopper from cart to placed
order, plus a contention user hammering the scarce demo product. Steps in a
journey execute in order — each depends on the previous step succeeding.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, constant_pacing, task

from loadtests.data_generators import (
    SCARCE_PRODUCT_ID,
    cart_items,
    coupon_validation_data,
    maybe_coupon_code,
    order_data,
    shopper_id,
    totals_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState

# Refusals a shopper can legitimately receive while stock and coupons drain
EXPECTED_REFUSALS = {
    "OUT_OF_STOCK",
    "INSUFFICIENT_STOCK",
    "STOCK_CONFLICT",
    "COUPON_CONFLICT",
    "COUPON_LIMIT_REACHED",
    "COUPON_USER_LIMIT_REACHED",
    "COUPON_BELOW_MINIMUM",
    "COUPON_NO_APPLICABLE_ITEMS",
}


def _refusal_code(resp) -> str | None:
    try:
        return resp.json().get("code")
    except ValueError:
        return None


class CheckoutJourney(SequentialTaskSet):
    """Load config -> Preview totals -> Validate coupon -> Verify stock -> Place order.

    Models a shopper going through the checkout page. Every preview is
    read-only; only the final step takes stock and redeems the coupon.
    """

    def on_start(self):
        self.state = ShopperState(user_id=shopper_id())

    @task
    def load_config(self):
        self.state.reset()
        self.state.items = cart_items()
        self.state.coupon_code = maybe_coupon_code()
        with self.client.get("/checkout/config", catch_response=True, name="GET /checkout/config") as resp:
            if resp.status_code != 200:
                resp.failure(f"Config failed: {resp.status_code}")
                self.interrupt()

    @task
    def preview_totals(self):
        with self.client.post(
            "/checkout/totals",
            json=totals_data(self.state.items, self.state.coupon_code),
            headers={"X-User-Id": self.state.user_id},
            catch_response=True,
            name="POST /checkout/totals",
        ) as resp:
            if resp.status_code == 200:
                body = resp.json()
                self.state.quoted_subtotal = body["subtotal"]
                self.state.adjustments = len(body["adjustments"])
                if body["coupon_rejection"] is not None:
                    self.state.coupon_code = None
            else:
                resp.failure(f"Totals failed: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def validate_coupon(self):
        if self.state.coupon_code is None:
            return
        with self.client.post(
            "/checkout/coupons/validate",
            json=coupon_validation_data(self.state.coupon_code, self.state.quoted_subtotal, self.state.items),
            headers={"X-User-Id": self.state.user_id},
            catch_response=True,
            name="POST /checkout/coupons/validate",
        ) as resp:
            if resp.status_code == 200:
                self.state.coupon_valid = resp.json()["valid"]
                if not self.state.coupon_valid:
                    self.state.coupon_code = None
            else:
                resp.failure(f"Coupon validation failed: {extract_error_detail(resp)}")

    @task
    def verify_stock(self):
        with self.client.post(
            "/checkout/stock",
            json={"items": self.state.items},
            catch_response=True,
            name="POST /checkout/stock",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Stock check failed: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_order(self):
        # Most shoppers abandon at the last step
        if random.random() < 0.4:
            self.interrupt()
            return
        with self.client.post(
            "/checkout/orders",
            json=order_data(self.state.items, self.state.coupon_code),
            headers={"X-User-Id": self.state.user_id},
            catch_response=True,
            name="POST /checkout/orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_number = resp.json()["order_number"]
            elif _refusal_code(resp) in EXPECTED_REFUSALS:
                resp.success()
            else:
                resp.failure(f"Place order failed: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CheckoutShopper(HttpUser):
    """Realistic checkout traffic: mostly previews, some placed orders."""

    wait_time = between(0.5, 3.0)
    tasks = {CheckoutJourney: 1}


class LastUnitRushUser(HttpUser):
    """Stress test: many shoppers racing for the scarce demo product.

    Every order asks for the same product so the conditional stock update is
    contended. Conflicts and sold-out refusals are expected outcomes; any 5xx
    or oversold stock is not.
    """

    wait_time = constant_pacing(0.1)  # ~10 requests/sec per user

    @task(3)
    def place_scarce_order(self):
        with self.client.post(
            "/checkout/orders",
            json=order_data([{"product_id": SCARCE_PRODUCT_ID, "quantity": 1}]),
            headers={"X-User-Id": shopper_id()},
            catch_response=True,
            name="[RUSH] POST /checkout/orders",
        ) as resp:
            if resp.status_code == 201 or _refusal_code(resp) in EXPECTED_REFUSALS:
                resp.success()
            else:
                resp.failure(f"Unexpected refusal: {extract_error_detail(resp)}")

    @task(1)
    def preview_scarce(self):
        self.client.post(
            "/checkout/totals",
            json=totals_data([{"product_id": SCARCE_PRODUCT_ID, "quantity": 2}]),
            name="[RUSH] POST /checkout/totals",
        )
