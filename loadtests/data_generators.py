"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the checkout validation
rules and match the exact field names expected by the API's Pydantic request
schemas. Product and coupon identifiers refer to the demo catalogue loaded by
``manage.py seed``.
"""

import random
import uuid

from faker import Faker

fake = Faker("es_MX")

# ---------- Demo catalogue ----------

DEMO_PRODUCT_IDS = ("prod-001", "prod-002", "prod-003", "prod-004", "prod-005")

# prod-004 is scarce and prod-005 sold out: both exercise stock clamping
IN_STOCK_PRODUCT_IDS = ("prod-001", "prod-002", "prod-003")
SCARCE_PRODUCT_ID = "prod-004"

DEMO_COUPON_CODES = ("SAVE10", "WELCOME100", "FREESHIP", "TECH15")

PAYMENT_METHODS = ("card", "paypal", "bank_transfer", "cash_on_delivery", "zelle")


# ---------- Shoppers ----------


def shopper_id() -> str:
    """Generate user ids like 'user-lt-a1b2c3d4'."""
    return f"user-lt-{uuid.uuid4().hex[:8]}"


def shipping_address() -> dict:
    """Generate a shipping address payload."""
    return {
        "name": fake.name()[:100],
        "street": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": fake.postcode()[:20],
        "country": "MX",
        "phone": fake.phone_number()[:30],
    }


# ---------- Cart ----------


def cart_line(product_id: str | None = None, max_quantity: int = 3) -> dict:
    """Generate a CartLineInput payload."""
    return {
        "product_id": product_id or random.choice(IN_STOCK_PRODUCT_IDS),
        "quantity": random.randint(1, max_quantity),
    }


def cart_items(num_items: int | None = None) -> list[dict]:
    """Generate a cart of distinct demo products, occasionally reaching for scarce stock."""
    num_items = num_items or random.randint(1, 3)
    product_ids = random.sample(IN_STOCK_PRODUCT_IDS, k=min(num_items, len(IN_STOCK_PRODUCT_IDS)))
    if random.random() < 0.1:
        product_ids.append(random.choice((SCARCE_PRODUCT_ID, "prod-005")))
    return [cart_line(product_id) for product_id in product_ids]


def maybe_coupon_code() -> str | None:
    """Pick a demo coupon half the time, sometimes with sloppy casing."""
    if random.random() < 0.5:
        return None
    code = random.choice(DEMO_COUPON_CODES)
    return code.lower() if random.random() < 0.2 else code


# ---------- Checkout ----------


def totals_data(items: list[dict], coupon_code: str | None = None) -> dict:
    """Generate a TotalsRequest payload."""
    return {"items": items, "coupon_code": coupon_code}


def coupon_validation_data(code: str, subtotal: str, items: list[dict] | None = None) -> dict:
    """Generate a ValidateCouponRequest payload."""
    return {"code": code, "subtotal": subtotal, "items": items}


def order_data(items: list[dict], coupon_code: str | None = None) -> dict:
    """Generate a PlaceOrderRequest payload."""
    return {
        "items": items,
        "shipping_address": shipping_address(),
        "payment_method": random.choice(PAYMENT_METHODS),
        "coupon_code": coupon_code,
        "notes": fake.sentence()[:500] if random.random() < 0.3 else None,
    }
