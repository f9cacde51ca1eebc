"""Order placement — command and handler.

``PlaceOrderHandler`` is the only code path that mutates stock and coupon
usage. It runs inside the unit of work protean opens for the command:

1. Re-price the cart against current data (client totals are never read).
2. Add the Order, with one OrderItem per billed line, and raise OrderPlaced.
3. Decrement stock with a conditional UPDATE per line.
4. Consume one coupon redemption with a conditional UPDATE, append a
   CouponUsage record and recount the user's redemptions.

A conditional UPDATE that matches no row means a concurrent commit took the
last unit or the last redemption. The handler raises ``ConflictError``, the
unit of work rolls everything back, and OrderPlaced is never published.
"""

import secrets
import string
from dataclasses import dataclass
from datetime import datetime

import structlog
from protean.utils.mixins import handle
from protean.exceptions import ValidationError
from protean.fields import Dict, List, String, ValueObject
from protean.utils.globals import current_domain
from protean.utils.query import F, Q
from shared.config import Settings, get_settings
from shared.errors import CheckoutError, ConflictError, IneligibleError
from sqlalchemy import case
from sqlalchemy.exc import IntegrityError

from ordering.catalogue.product import Product
from ordering.checkout.preview import quote_cart
from ordering.coupon.coupon import Coupon, CouponUsage, normalize_code
from ordering.coupon.resolution import USAGE_REJECTIONS, ResolvedCoupon
from ordering.domain import ordering
from ordering.order.order import CartLine, Order, OrderStatus, PaymentStatus
from ordering.pricing.calculator import PricingResult

logger = structlog.get_logger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number(now: datetime) -> str:
    """``ORD-<epoch ms>-<9 random upper-case alphanumerics>``."""
    suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(9))
    return f"ORD-{int(now.timestamp() * 1000)}-{suffix}"


@ordering.command(part_of="Order")
class PlaceOrder:
    """Submit a cart for commit.

    ``order_number`` is an optional client-generated idempotency key; a retry
    with the same key is refused as a duplicate instead of creating a second
    order.
    """

    user_id = String(required=True, max_length=50)
    items = List(content_type=ValueObject(CartLine), required=True)
    shipping_address = Dict(required=True)
    payment_method = String(required=True, max_length=30)
    coupon_code = String(max_length=20)
    order_number = String(max_length=64)
    notes = String(max_length=500)


@dataclass(frozen=True)
class PlacedOrder:
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    currency: str
    payment_method: str
    pricing: PricingResult
    created_at: datetime

    def to_dict(self):
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "status": self.status.value,
            "payment_status": self.payment_status.value,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "created_at": self.created_at,
        }
        data.update(self.pricing.to_dict())
        return data


def _check_input(command: PlaceOrder, settings: Settings) -> None:
    errors = {}
    if not command.items:
        errors["items"] = ["Cart is empty"]
    if not command.shipping_address:
        errors["shipping_address"] = ["Shipping address is required"]
    if command.payment_method not in settings.payment_methods:
        errors["payment_method"] = [
            f"Unsupported payment method. Choose one of: {', '.join(settings.payment_methods)}"
        ]
    if errors:
        raise ValidationError(errors)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command: PlaceOrder) -> PlacedOrder:
        settings = get_settings()
        _check_input(command, settings)

        placed_at = current_domain.clock.now()
        order_number = command.order_number or generate_order_number(placed_at)
        log = logger.bind(order_number=order_number, user_id=command.user_id)

        try:
            placed = self._commit(command, order_number, placed_at, settings)
        except ConflictError as exc:
            log.warning("order_conflict", code=exc.code, reason=exc.message)
            raise
        except CheckoutError as exc:
            log.info("order_refused", code=exc.code, reason=exc.message)
            raise
        except IntegrityError as exc:
            # A concurrent commit stored the same order number after our check.
            if "order_number" not in str(exc.orig):
                raise
            log.warning("order_conflict", code="DUPLICATE_ORDER")
            raise ConflictError(f"Order {order_number} already exists", code="DUPLICATE_ORDER") from exc

        log.info(
            "order_placed",
            order_id=placed.id,
            subtotal=str(placed.pricing.subtotal),
            discount=str(placed.pricing.discount),
            shipping=str(placed.pricing.shipping),
            total=str(placed.pricing.total),
            coupon_code=placed.pricing.applied_coupon.code if placed.pricing.applied_coupon else None,
        )
        return placed

    def _commit(self, command: PlaceOrder, order_number: str, placed_at: datetime, settings: Settings) -> PlacedOrder:
        order_repo = current_domain.repository_for(Order)
        if order_repo._dao.query.filter(order_number=order_number).count():
            raise ConflictError(f"Order {order_number} already exists", code="DUPLICATE_ORDER")

        quote = quote_cart(
            command.items,
            settings=settings,
            coupon_code=normalize_code(command.coupon_code) or None,
            user_id=command.user_id,
        )
        if quote.rejection is not None:
            if quote.rejection.code in USAGE_REJECTIONS:
                # Still usable when the customer previewed; another checkout consumed it.
                raise ConflictError(quote.rejection.message, code=f"COUPON_{quote.rejection.code.value}")
            raise quote.rejection.to_error()

        pricing = quote.pricing
        if not pricing.items:
            raise IneligibleError("None of the requested items are in stock", code="OUT_OF_STOCK")

        order = Order.place(
            order_number=order_number,
            user_id=command.user_id,
            pricing=pricing,
            currency=settings.currency,
            payment_method=command.payment_method,
            shipping_address=command.shipping_address,
            placed_at=placed_at,
            notes=command.notes,
        )
        order_repo.add(order)

        for item in pricing.items:
            self._take_stock(item.product_id, item.quantity)

        if quote.coupon is not None:
            self._redeem_coupon(quote.coupon.id)
            current_domain.repository_for(CouponUsage).add(
                CouponUsage(
                    coupon_id=quote.coupon.id,
                    user_id=command.user_id,
                    order_id=str(order.id),
                    discount_amount=pricing.discount,
                    order_total=pricing.total,
                    applied_product_ids=sorted(quote.coupon.eligible_product_ids),
                    used_at=placed_at,
                )
            )
            self._check_user_limit(quote.coupon, command.user_id)

        return PlacedOrder(
            id=str(order.id),
            order_number=order.order_number,
            user_id=order.user_id,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            currency=order.currency,
            payment_method=order.payment_method,
            pricing=pricing,
            created_at=placed_at,
        )

    @staticmethod
    def _take_stock(product_id: str, quantity: int) -> None:
        dao = current_domain.repository_for(Product)._dao
        model = dao.database_model_cls
        updated = dao._update_all(
            Q(id=product_id) & (Q(track_inventory=False) | Q(stock_count__gte=quantity)),
            {
                # Untracked products keep their stock figure and only count sales.
                "stock_count": case(
                    (model.track_inventory.is_(True), model.stock_count - quantity),
                    else_=model.stock_count,
                ),
                "sales_count": model.sales_count + quantity,
            },
        )
        if updated != 1:
            raise ConflictError(f"Product {product_id} no longer has enough stock", code="STOCK_CONFLICT")

    @staticmethod
    def _redeem_coupon(coupon_id: str) -> None:
        dao = current_domain.repository_for(Coupon)._dao
        updated = dao._update_all(
            Q(id=coupon_id) & (Q(usage_limit__isnull=True) | Q(usage_count__lt=F("usage_limit"))),
            {"usage_count": dao.database_model_cls.usage_count + 1},
        )
        if updated != 1:
            raise ConflictError("This coupon has reached its usage limit", code="COUPON_CONFLICT")

    @staticmethod
    def _check_user_limit(coupon: ResolvedCoupon, user_id: str) -> None:
        # The coupon row was just updated, so any other commit for this coupon
        # waits on us; the recount includes the usage added above.
        limit = current_domain.repository_for(Coupon).get(coupon.id).usage_limit_per_user
        if limit is None:
            return

        used = (
            current_domain.repository_for(CouponUsage)
            ._dao.query.filter(coupon_id=coupon.id, user_id=user_id)
            .count()
        )
        if used > limit:
            raise ConflictError(
                "You have already used this coupon the maximum number of times",
                code="COUPON_USER_LIMIT_REACHED",
            )
