"""Domain events for the Order aggregate.

``OrderPlaced`` is the handoff to the payment and fulfillment collaborators.
It is raised by ``Order.place`` and written to the event store in the same
unit of work as the order, so it exists only for committed orders.
"""

from protean.fields import DateTime, Decimal, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order was committed with server-computed totals."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=64)
    user_id = String(required=True, max_length=50)
    items = Text(required=True)  # JSON: list of billed lines, money as strings
    subtotal = Decimal(required=True, precision=12, scale=2)
    discount = Decimal(required=True, precision=12, scale=2)
    shipping = Decimal(required=True, precision=12, scale=2)
    tax = Decimal(required=True, precision=12, scale=2)
    total = Decimal(required=True, precision=12, scale=2)
    currency = String(required=True, max_length=3)
    payment_method = String(required=True, max_length=30)
    coupon_code = String(max_length=20)
    shipping_address = Text(required=True)  # JSON: address dict
    placed_at = DateTime(required=True)
