"""Checkout previews — read-only pricing for the checkout page.

Nothing here writes to the database. The same ``quote_cart`` pipeline runs
again inside the order commit unit of work, so a preview is only ever a
display value and never an input to the committed price.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import structlog
from protean.exceptions import ValidationError
from shared.config import Settings, get_settings

from ordering.catalogue.lookup import CatalogueLookup
from ordering.coupon.coupon import CouponType, normalize_code
from ordering.coupon.resolution import CouponRejection, CouponResolver, ResolvedCoupon
from ordering.order.order import CartLine
from ordering.pricing.calculator import PricingResult, calculate_totals, discount_for, price_cart
from ordering.pricing.money import ZERO, to_money

logger = structlog.get_logger(__name__)

MAX_COUPON_CODE_LENGTH = 20


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------
def cart_lines(items) -> list[CartLine]:
    """Build ``CartLine`` value objects, reporting every bad line under ``items``."""
    if not items:
        raise ValidationError({"items": ["Cart is empty"]})

    lines = []
    errors = []
    for position, item in enumerate(items):
        data = item if isinstance(item, dict) else dict(item)
        try:
            lines.append(CartLine(**{key: value for key, value in data.items() if value is not None}))
        except ValidationError as exc:
            for field_name, messages in exc.messages.items():
                errors.extend(f"{position}.{field_name}: {message}" for message in messages)

    if errors:
        raise ValidationError({"items": errors})
    return lines


def coupon_code_or_none(code: str | None, field_name: str = "coupon_code") -> str | None:
    code = normalize_code(code) or None
    if code is not None and len(code) > MAX_COUPON_CODE_LENGTH:
        raise ValidationError({field_name: [f"Ensure this value has at most {MAX_COUPON_CODE_LENGTH} characters"]})
    return code


@dataclass(frozen=True)
class Quote:
    pricing: PricingResult
    coupon: ResolvedCoupon | None = None
    rejection: CouponRejection | None = None

    def to_dict(self):
        data = self.pricing.to_dict()
        data["coupon_rejection"] = self.rejection.to_dict() if self.rejection else None
        return data


def quote_cart(
    lines: Iterable[CartLine],
    *,
    settings: Settings,
    coupon_code: str | None = None,
    user_id: str | None = None,
) -> Quote:
    """Look up products, resolve the coupon and price the cart.

    An unusable coupon does not fail the quote; it is returned as
    ``rejection`` and the cart is priced without it. Inside a unit of work
    every read joins its transaction.
    """
    lines = list(lines)
    products = CatalogueLookup().lookup_by_id(line.product_id for line in lines)
    cart = price_cart(lines, products, settings.stock_policy)

    for adjustment in cart.adjustments:
        logger.warning(
            "stock_clamped",
            product_id=adjustment.product_id,
            requested=adjustment.requested_quantity,
            adjusted=adjustment.adjusted_quantity,
        )

    coupon = None
    rejection = None
    if coupon_code:
        resolution = CouponResolver().resolve(
            coupon_code,
            user_id=user_id,
            subtotal=cart.subtotal,
            lines=cart.items,
        )
        if isinstance(resolution, CouponRejection):
            rejection = resolution
            logger.info("coupon_rejected", coupon_code=coupon_code, reason=resolution.code.value)
        else:
            coupon = resolution

    return Quote(pricing=calculate_totals(cart, coupon, settings), coupon=coupon, rejection=rejection)


class CheckoutPreview:
    """Read-only checkout operations."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def totals(self, items, *, coupon_code: str | None = None, user_id: str | None = None) -> Quote:
        return quote_cart(
            cart_lines(items),
            settings=self.settings,
            coupon_code=coupon_code_or_none(coupon_code),
            user_id=user_id,
        )

    def validate_coupon(self, code: str, subtotal, *, items=None, user_id: str | None = None) -> dict:
        """Check a code against a cart and report the discount it would give.

        With cart items the cart is priced on the server: its subtotal is what
        the minimum purchase is checked against, and the discount is based on
        the eligible lines only. Without items the client subtotal is all
        there is.
        """
        code = coupon_code_or_none(code, field_name="code")
        if code is None:
            raise ValidationError({"code": ["Coupon code is required"]})
        base = _client_subtotal(subtotal)

        lines = None
        if items:
            requested = cart_lines(items)
            products = CatalogueLookup().lookup_by_id(line.product_id for line in requested)
            cart = price_cart(requested, products, self.settings.stock_policy)
            lines = cart.items
            base = cart.subtotal

        resolution = CouponResolver().resolve(code, user_id=user_id, subtotal=base, lines=lines)
        if isinstance(resolution, CouponRejection):
            return {"valid": False, "coupon": None, "rejection": resolution.to_dict()}

        if lines is not None:
            base = to_money(
                sum((line.line_total for line in lines if line.product_id in resolution.eligible_product_ids), ZERO)
            )

        discount = discount_for(resolution, base)

        return {
            "valid": True,
            "coupon": {
                "id": resolution.id,
                "code": resolution.code,
                "type": resolution.type.value,
                "value": resolution.value,
                "discount": discount,
                "free_shipping": resolution.type is CouponType.FREE_SHIPPING,
            },
            "rejection": None,
        }

    def verify_stock(self, items) -> dict:
        lines = cart_lines(items)
        products = CatalogueLookup().lookup_by_id(line.product_id for line in lines)

        out_of_stock = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                out_of_stock.append(
                    {
                        "product_id": line.product_id,
                        "product_name": None,
                        "requested": line.quantity,
                        "available": 0,
                    }
                )
            elif product.track_inventory and product.stock_count < line.quantity:
                out_of_stock.append(
                    {
                        "product_id": product.id,
                        "product_name": product.name,
                        "requested": line.quantity,
                        "available": max(0, product.stock_count),
                    }
                )

        return {"valid": not out_of_stock, "out_of_stock_items": out_of_stock}


def _client_subtotal(value) -> Decimal:
    try:
        subtotal = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({"subtotal": ["A valid number is required"]}) from None
    if subtotal < ZERO:
        raise ValidationError({"subtotal": ["Must be greater than or equal to 0"]})
    return subtotal


def checkout_config(settings: Settings) -> dict:
    """Public pricing configuration shown on the checkout page."""
    return {
        "free_shipping_threshold": settings.free_shipping_threshold,
        "tax_rate": ZERO,
        "currency": settings.currency,
        "payment_methods": list(settings.payment_methods),
    }
