"""Pydantic request/response schemas for the checkout API.

These are external contracts. Request schemas only pin down JSON shapes;
business validation (quantities, payment methods, note length) happens in
the domain so that it answers with a ``ValidationError``.
Money is serialized as decimal strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    product_id: str
    quantity: int
    variants: dict[str, Any] | None = None


class PricedItemSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    variants: dict[str, Any] | None = None


class AdjustmentSchema(BaseModel):
    product_id: str
    product_name: str
    requested_quantity: int
    adjusted_quantity: int


class AppliedCouponSchema(BaseModel):
    id: str
    code: str
    type: str
    discount: Decimal
    free_shipping: bool
    eligible_product_ids: list[str]


class CouponRejectionSchema(BaseModel):
    code: str
    message: str


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class TotalsRequest(BaseModel):
    items: list[CartItemSchema]
    coupon_code: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2}],
                    "coupon_code": "SAVE10",
                }
            ]
        }
    }


class ValidateCouponRequest(BaseModel):
    code: str
    subtotal: Decimal
    items: list[CartItemSchema] | None = None


class VerifyStockRequest(BaseModel):
    items: list[CartItemSchema]


class PlaceOrderRequest(BaseModel):
    items: list[CartItemSchema]
    shipping_address: dict[str, Any]
    payment_method: str
    coupon_code: str | None = None
    order_number: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [{"product_id": "prod-001", "quantity": 2, "variants": {"size": "M"}}],
                    "shipping_address": {
                        "street": "Av. Reforma 123",
                        "city": "Ciudad de Mexico",
                        "postal_code": "06600",
                        "country": "MX",
                    },
                    "payment_method": "card",
                    "coupon_code": "SAVE10",
                    "notes": "Leave at the front desk",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CheckoutConfigResponse(BaseModel):
    free_shipping_threshold: Decimal
    tax_rate: Decimal
    currency: str
    payment_methods: list[str]


class TotalsResponse(BaseModel):
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    applied_coupon: AppliedCouponSchema | None = None
    coupon_rejection: CouponRejectionSchema | None = None
    items: list[PricedItemSchema]
    adjustments: list[AdjustmentSchema]


class ValidatedCouponSchema(BaseModel):
    id: str
    code: str
    type: str
    value: Decimal
    discount: Decimal
    free_shipping: bool


class ValidateCouponResponse(BaseModel):
    valid: bool
    coupon: ValidatedCouponSchema | None = None
    rejection: CouponRejectionSchema | None = None


class OutOfStockItemSchema(BaseModel):
    product_id: str
    product_name: str | None = None
    requested: int
    available: int


class VerifyStockResponse(BaseModel):
    valid: bool
    out_of_stock_items: list[OutOfStockItemSchema]


class OrderResponse(BaseModel):
    id: str
    order_number: str
    status: str
    payment_status: str
    currency: str
    payment_method: str
    created_at: datetime
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    applied_coupon: AppliedCouponSchema | None = None
    items: list[PricedItemSchema]
    adjustments: list[AdjustmentSchema]
