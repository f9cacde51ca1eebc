"""Shared BDD fixtures and step definitions for checkout scenarios."""

from decimal import Decimal

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when
from shared.errors import CheckoutError, ConflictError

from ordering.catalogue.product import Product
from ordering.checkout.preview import CheckoutPreview, cart_lines
from ordering.order.placement import PlaceOrder

ADDRESS = {"street": "Av. Juarez 10", "city": "Guadalajara", "country": "MX"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def cart():
    """Cart lines collected by Given steps."""
    return []


@pytest.fixture()
def outcome():
    """Container for the pricing result or refusal captured by When steps."""
    return {"pricing": None, "error": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{product_id}" priced {price} with {stock:d} in stock'))
def product(add_product, product_id, price, stock):
    add_product(product_id, price=Decimal(price), stock_count=stock)


@given(parsers.cfparse('an "{category}" product "{product_id}" priced {price} with {stock:d} in stock'))
def categorized_product(add_product, category, product_id, price, stock):
    add_product(product_id, price=Decimal(price), stock_count=stock, category_id=category)


@given(parsers.cfparse('a coupon "{code}" taking {percent:d} percent off'))
def percentage_coupon(add_coupon, code, percent):
    add_coupon(code, value=Decimal(percent))


@given(parsers.cfparse('a coupon "{code}" taking {percent:d} percent off category "{category}"'))
def category_coupon(add_coupon, code, percent, category):
    add_coupon(
        code,
        value=Decimal(percent),
        application_type="SPECIFIC_CATEGORIES",
        category_ids=[category],
    )


@given(parsers.cfparse('a coupon "{code}" taking {percent:d} percent off with {used:d} of {limit:d} uses taken'))
def limited_coupon(add_coupon, code, percent, used, limit):
    add_coupon(code, value=Decimal(percent), usage_count=used, usage_limit=limit)


@given(parsers.cfparse('the cart holds {quantity:d} of "{product_id}"'))
def cart_line(cart, quantity, product_id):
    cart.append({"product_id": product_id, "quantity": quantity})


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
def _preview(cart, outcome, coupon_code=None):
    quote = CheckoutPreview().totals(cart, coupon_code=coupon_code)
    outcome["pricing"] = quote.pricing


def _place(cart, outcome, coupon_code=None):
    command = PlaceOrder(
        user_id="user-001",
        items=cart_lines(cart),
        shipping_address=ADDRESS,
        payment_method="card",
        coupon_code=coupon_code,
    )
    try:
        outcome["pricing"] = current_domain.process(command, asynchronous=False).pricing
    except CheckoutError as exc:
        outcome["error"] = exc


@when("the customer previews the totals")
def preview_totals(cart, outcome):
    _preview(cart, outcome)


@when(parsers.cfparse('the customer previews the totals with coupon "{code}"'))
def preview_totals_with_coupon(cart, outcome, code):
    _preview(cart, outcome, coupon_code=code)


@when("the customer places the order")
def place_order(cart, outcome):
    _place(cart, outcome)


@when(parsers.cfparse('the customer places the order with coupon "{code}"'))
def place_order_with_coupon(cart, outcome, code):
    _place(cart, outcome, coupon_code=code)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the subtotal is {amount}"))
def subtotal_is(outcome, amount):
    assert outcome["pricing"].subtotal == Decimal(amount)


@then(parsers.cfparse("the discount is {amount}"))
def discount_is(outcome, amount):
    assert outcome["pricing"].discount == Decimal(amount)


@then(parsers.cfparse("the shipping is {amount}"))
def shipping_is(outcome, amount):
    assert outcome["pricing"].shipping == Decimal(amount)


@then(parsers.cfparse("the total is {amount}"))
def total_is(outcome, amount):
    assert outcome["pricing"].total == Decimal(amount)


@then(parsers.cfparse('the order bills {quantity:d} of "{product_id}" for {amount}'))
def order_bills(outcome, quantity, product_id, amount):
    assert outcome["error"] is None
    item = next(item for item in outcome["pricing"].items if item.product_id == product_id)
    assert item.quantity == quantity
    assert item.line_total == Decimal(amount)


@then(parsers.cfparse('"{product_id}" is reported as adjusted from {requested:d} to {adjusted:d}'))
def reported_adjusted(outcome, product_id, requested, adjusted):
    adjustment = next(a for a in outcome["pricing"].adjustments if a.product_id == product_id)
    assert adjustment.requested_quantity == requested
    assert adjustment.adjusted_quantity == adjusted


@then(parsers.cfparse('{count:d} units of "{product_id}" remain in stock'))
def remaining_stock(fetch, count, product_id):
    assert fetch(Product, product_id).stock_count == count


@then(parsers.cfparse('the order is refused with conflict "{code}"'))
def refused_with_conflict(outcome, code):
    assert isinstance(outcome["error"], ConflictError)
    assert outcome["error"].code == code
