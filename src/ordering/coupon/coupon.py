"""Coupon and CouponUsage aggregates.

Coupons are created and edited by the admin collaborator. Checkout reads
them through the resolver and changes ``usage_count`` only inside the order
commit unit of work, with a conditional update guarded by ``usage_limit``.

CouponUsage is an append-only ledger: one record per committed redemption,
always written in the same unit of work as its Order.
"""

from enum import Enum

from protean.fields import Boolean, DateTime, Decimal, Identifier, Integer, List, String

from ordering.domain import ordering


class CouponType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"
    FREE_SHIPPING = "FREE_SHIPPING"


class ApplicationType(Enum):
    ALL = "ALL"
    SPECIFIC_PRODUCTS = "SPECIFIC_PRODUCTS"
    SPECIFIC_CATEGORIES = "SPECIFIC_CATEGORIES"
    EXCLUDE_PRODUCTS = "EXCLUDE_PRODUCTS"


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


@ordering.aggregate(schema_name="coupons")
class Coupon:
    code = String(required=True, max_length=20, unique=True)
    type = String(required=True, max_length=20, choices=CouponType)
    value = Decimal(min_value=0, precision=12, scale=2, default=0)
    min_amount = Decimal(min_value=0, precision=12, scale=2)
    max_discount = Decimal(min_value=0, precision=12, scale=2)
    usage_limit = Integer(min_value=0)
    usage_limit_per_user = Integer(min_value=0)
    usage_count = Integer(min_value=0, default=0)
    application_type = String(max_length=30, choices=ApplicationType, default=ApplicationType.ALL.value)
    # Allow-set for SPECIFIC_* types, deny-set for EXCLUDE_PRODUCTS.
    product_ids = List(content_type=String(max_length=50))
    category_ids = List(content_type=String(max_length=50))
    is_active = Boolean(default=True)
    starts_at = DateTime()
    expires_at = DateTime()
    created_at = DateTime(auto_now_add=True)


@ordering.aggregate(schema_name="coupon_usages")
class CouponUsage:
    coupon_id = Identifier(required=True)
    user_id = String(required=True, max_length=50)
    order_id = Identifier(required=True, unique=True)
    discount_amount = Decimal(required=True, precision=12, scale=2)
    order_total = Decimal(required=True, precision=12, scale=2)
    applied_product_ids = List(content_type=String(max_length=50))
    used_at = DateTime(required=True)
