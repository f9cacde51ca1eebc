"""Order aggregate — a committed checkout.

An Order is written exactly once, by the PlaceOrder handler, with totals
recomputed on the server. Later status and payment-status changes belong to
the payment and fulfillment collaborators.

Invariants held by every committed order:
    sum(item.line_total) == subtotal
    total == subtotal - discount + shipping + tax
"""

import json
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Decimal, Dict, HasMany, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import OrderPlaced


class OrderStatus(Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class CartLine:
    """One requested line of a cart: a product and how many units of it.

    ``variants`` (size, colour, ...) is carried through to the order item
    untouched and never affects the price.
    """

    product_id = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    variants = Dict()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order", schema_name="order_items")
class OrderItem:
    position = Integer(required=True, min_value=0)
    product_id = String(required=True, max_length=50)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Decimal(required=True, min_value=0, precision=12, scale=2)
    line_total = Decimal(required=True, min_value=0, precision=12, scale=2)
    variants = Dict()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate(schema_name="orders")
class Order:
    order_number = String(required=True, max_length=64, unique=True)
    user_id = String(required=True, max_length=50)
    items = HasMany(OrderItem)
    subtotal = Decimal(required=True, min_value=0, precision=12, scale=2)
    discount = Decimal(min_value=0, precision=12, scale=2, default=0)
    shipping = Decimal(min_value=0, precision=12, scale=2, default=0)
    tax = Decimal(min_value=0, precision=12, scale=2, default=0)
    total = Decimal(required=True, min_value=0, precision=12, scale=2)
    currency = String(required=True, max_length=3)
    status = String(max_length=20, choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(max_length=20, choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = String(required=True, max_length=30)
    coupon_code = String(max_length=20)
    shipping_address = Dict(required=True)  # opaque, read downstream
    notes = Text()
    created_at = DateTime(required=True)

    @invariant.post
    def total_must_balance(self):
        if self.total != self.subtotal - self.discount + self.shipping + self.tax:
            raise ValidationError({"total": ["Total must equal subtotal - discount + shipping + tax"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        *,
        order_number,
        user_id,
        pricing,
        currency,
        payment_method,
        shipping_address,
        placed_at,
        notes=None,
    ):
        """Build a PENDING order from a priced cart and raise ``OrderPlaced``.

        ``pricing`` is the ``PricingResult`` computed inside the committing
        unit of work; only its billed items become order items.
        """
        coupon_code = pricing.applied_coupon.code if pricing.applied_coupon else None
        order = cls(
            order_number=order_number,
            user_id=user_id,
            items=[
                OrderItem(
                    position=position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                    variants=item.variants or {},
                )
                for position, item in enumerate(pricing.items)
            ],
            subtotal=pricing.subtotal,
            discount=pricing.discount,
            shipping=pricing.shipping,
            tax=pricing.tax,
            total=pricing.total,
            currency=currency,
            payment_method=payment_method,
            coupon_code=coupon_code,
            shipping_address=shipping_address,
            notes=notes,
            created_at=placed_at,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                user_id=user_id,
                items=json.dumps(
                    [
                        {
                            "product_id": item.product_id,
                            "product_name": item.product_name,
                            "quantity": item.quantity,
                            "unit_price": str(item.unit_price),
                            "line_total": str(item.line_total),
                        }
                        for item in pricing.items
                    ]
                ),
                subtotal=pricing.subtotal,
                discount=pricing.discount,
                shipping=pricing.shipping,
                tax=pricing.tax,
                total=pricing.total,
                currency=currency,
                payment_method=payment_method,
                coupon_code=coupon_code,
                shipping_address=json.dumps(shipping_address),
                placed_at=placed_at,
            )
        )
        return order

    def ordered_items(self):
        return sorted(self.items, key=lambda item: item.position)
