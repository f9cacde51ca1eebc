"""Ordering reacts to its own OrderPlaced event.

Runs after the placing unit of work has committed. The order is already
durable at this point, so this handler only records the handoff to the
payment and fulfillment collaborators, which consume the event from the
``ordering::order`` stream.
"""

import structlog
from protean.utils.logging import bind_event_context
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.order.events import OrderPlaced
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=Order)
class OrderHandoffEventHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        bind_event_context(order_id=str(event.order_id), order_number=event.order_number)
        logger.info(
            "order_handoff",
            user_id=event.user_id,
            total=str(event.total),
            currency=event.currency,
            payment_method=event.payment_method,
        )
