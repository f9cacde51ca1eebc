"""Pricing calculator: turns cart lines into a totals breakdown.

Everything in this module is pure: no database access and no clock, so the
same inputs always produce the same totals. Pricing runs in two steps so the
coupon resolver can see the cart subtotal before the discount is applied:

    cart = price_cart(lines, products, stock_policy)
    resolution = resolver.resolve(code, subtotal=cart.subtotal, lines=cart.items, ...)
    result = calculate_totals(cart, coupon, settings)

Stock handling follows the configured policy. Under CLAMP a tracked line that
asks for more than is available is billed at the available quantity and
reported in ``adjustments``; lines clamped to zero are reported but not
billed. Under REJECT the same condition raises ``StockInsufficientError``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from shared.config import Settings, StockPolicy
from shared.errors import NotFoundError, StockInsufficientError

from ordering.catalogue.lookup import ProductSnapshot
from ordering.coupon.coupon import CouponType
from ordering.coupon.resolution import ResolvedCoupon
from ordering.order.order import CartLine
from ordering.pricing.money import ZERO, to_money
from ordering.pricing.shipping import estimate_shipping, line_weight

TAX_RATE = Decimal("0")


@dataclass(frozen=True)
class PricedItem:
    """A billable line after stock adjustment."""

    product_id: str
    product_name: str
    category_id: str | None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    weight: Decimal | None = None
    variants: dict | None = None

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "variants": self.variants,
        }


@dataclass(frozen=True)
class StockInsufficientWarning:
    """Non-fatal record of a line whose quantity was reduced to available stock."""

    product_id: str
    product_name: str
    requested_quantity: int
    adjusted_quantity: int

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "requested_quantity": self.requested_quantity,
            "adjusted_quantity": self.adjusted_quantity,
        }


@dataclass(frozen=True)
class PricedCart:
    items: tuple[PricedItem, ...]
    adjustments: tuple[StockInsufficientWarning, ...] = ()

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((item.line_total for item in self.items), ZERO))

    @property
    def is_empty(self) -> bool:
        return not self.items


@dataclass(frozen=True)
class AppliedCoupon:
    id: str
    code: str
    type: CouponType
    discount: Decimal
    eligible_product_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def free_shipping(self) -> bool:
        return self.type is CouponType.FREE_SHIPPING

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.type.value,
            "discount": self.discount,
            "free_shipping": self.free_shipping,
            "eligible_product_ids": sorted(self.eligible_product_ids),
        }


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    items: tuple[PricedItem, ...]
    adjustments: tuple[StockInsufficientWarning, ...] = ()
    applied_coupon: AppliedCoupon | None = None

    def to_dict(self):
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "shipping": self.shipping,
            "tax": self.tax,
            "total": self.total,
            "applied_coupon": self.applied_coupon.to_dict() if self.applied_coupon else None,
            "items": [item.to_dict() for item in self.items],
            "adjustments": [adjustment.to_dict() for adjustment in self.adjustments],
        }


# ---------------------------------------------------------------------------
# Step 1: lines
# ---------------------------------------------------------------------------
def price_cart(
    lines: Iterable[CartLine],
    products: Mapping[str, ProductSnapshot],
    stock_policy: StockPolicy = StockPolicy.CLAMP,
) -> PricedCart:
    """Price each cart line against the catalogue snapshot.

    Stock is allocated in cart order, so two lines for the same product never
    claim more than the product has in total.
    """
    items = []
    adjustments = []
    allocated: dict[str, int] = {}

    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise NotFoundError(f"Product {line.product_id} not found", code="PRODUCT_NOT_FOUND")

        quantity = line.quantity
        if product.track_inventory:
            available = max(0, product.stock_count - allocated.get(product.id, 0))
            if quantity > available:
                if stock_policy is StockPolicy.REJECT:
                    raise StockInsufficientError(
                        f"Insufficient stock for {product.name}: requested {quantity}, available {available}"
                    )
                adjustments.append(
                    StockInsufficientWarning(
                        product_id=product.id,
                        product_name=product.name,
                        requested_quantity=quantity,
                        adjusted_quantity=available,
                    )
                )
                quantity = available
            allocated[product.id] = allocated.get(product.id, 0) + quantity

        if quantity == 0:
            continue

        unit_price = to_money(product.price)
        items.append(
            PricedItem(
                product_id=product.id,
                product_name=product.name,
                category_id=product.category_id,
                quantity=quantity,
                unit_price=unit_price,
                line_total=to_money(unit_price * quantity),
                weight=product.weight,
                variants=line.variants,
            )
        )

    return PricedCart(items=tuple(items), adjustments=tuple(adjustments))


# ---------------------------------------------------------------------------
# Step 2: totals
# ---------------------------------------------------------------------------
def discount_for(coupon: ResolvedCoupon, eligible_subtotal: Decimal) -> Decimal:
    if coupon.type is CouponType.PERCENTAGE:
        discount = to_money(eligible_subtotal * coupon.value / Decimal("100"))
        if coupon.max_discount is not None:
            discount = min(discount, to_money(coupon.max_discount))
        # Never more than the lines it applies to, even above 100%.
        return min(discount, eligible_subtotal)
    if coupon.type is CouponType.FIXED_AMOUNT:
        return min(to_money(coupon.value), eligible_subtotal)
    return ZERO


def calculate_totals(
    cart: PricedCart,
    coupon: ResolvedCoupon | None,
    settings: Settings,
) -> PricingResult:
    subtotal = cart.subtotal

    discount = ZERO
    applied = None
    if coupon is not None:
        eligible_subtotal = to_money(
            sum((item.line_total for item in cart.items if item.product_id in coupon.eligible_product_ids), ZERO)
        )
        discount = discount_for(coupon, eligible_subtotal)
        applied = AppliedCoupon(
            id=coupon.id,
            code=coupon.code,
            type=coupon.type,
            discount=discount,
            eligible_product_ids=coupon.eligible_product_ids,
        )

    if cart.is_empty or (applied is not None and applied.free_shipping) or subtotal >= settings.free_shipping_threshold:
        shipping = ZERO
    else:
        weight = sum(
            (line_weight(item.weight, item.quantity, settings.shipping) for item in cart.items),
            Decimal("0"),
        )
        shipping = estimate_shipping(weight, settings.shipping)

    tax = to_money(TAX_RATE)
    total = max(ZERO, to_money(subtotal - discount + shipping + tax))

    return PricingResult(
        subtotal=subtotal,
        discount=discount,
        shipping=shipping,
        tax=tax,
        total=total,
        items=cart.items,
        adjustments=cart.adjustments,
        applied_coupon=applied,
    )
