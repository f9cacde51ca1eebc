"""FastAPI routes for checkout: previews and order placement."""

from fastapi import APIRouter, Header, HTTPException, Request
from protean.utils.globals import current_domain
from shared.config import get_settings

from ordering.api.limits import checkout_limit, order_limit
from ordering.api.schemas import (
    CheckoutConfigResponse,
    OrderResponse,
    PlaceOrderRequest,
    TotalsRequest,
    TotalsResponse,
    ValidateCouponRequest,
    ValidateCouponResponse,
    VerifyStockRequest,
    VerifyStockResponse,
)
from ordering.checkout.preview import CheckoutPreview, cart_lines, checkout_config, coupon_code_or_none
from ordering.order.placement import PlaceOrder


def require_user(x_user_id: str | None) -> str:
    """The upstream auth collaborator forwards the authenticated user id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.get("/config", response_model=CheckoutConfigResponse)
@checkout_limit
async def get_checkout_config(request: Request) -> dict:
    return checkout_config(get_settings())


@router.post("/totals", response_model=TotalsResponse)
@checkout_limit
async def calculate_totals(
    request: Request,
    body: TotalsRequest,
    x_user_id: str | None = Header(default=None),
) -> dict:
    quote = CheckoutPreview().totals(
        [item.model_dump() for item in body.items],
        coupon_code=body.coupon_code,
        user_id=x_user_id,
    )
    return quote.to_dict()


@router.post("/coupons/validate", response_model=ValidateCouponResponse)
@checkout_limit
async def validate_coupon(
    request: Request,
    body: ValidateCouponRequest,
    x_user_id: str | None = Header(default=None),
) -> dict:
    items = [item.model_dump() for item in body.items] if body.items else None
    return CheckoutPreview().validate_coupon(body.code, body.subtotal, items=items, user_id=x_user_id)


@router.post("/stock", response_model=VerifyStockResponse)
@checkout_limit
async def verify_stock(request: Request, body: VerifyStockRequest) -> dict:
    return CheckoutPreview().verify_stock([item.model_dump() for item in body.items])


@router.post("/orders", status_code=201, response_model=OrderResponse)
@checkout_limit
@order_limit
async def place_order(
    request: Request,
    body: PlaceOrderRequest,
    x_user_id: str | None = Header(default=None),
) -> dict:
    """Price the cart again on the server and commit the order.

    Client-side totals are never accepted; the response carries the totals
    that were actually committed.
    """
    command = PlaceOrder(
        user_id=require_user(x_user_id),
        items=cart_lines([item.model_dump() for item in body.items]),
        shipping_address=body.shipping_address,
        payment_method=body.payment_method,
        coupon_code=coupon_code_or_none(body.coupon_code),
        order_number=body.order_number,
        notes=body.notes,
    )
    placed = current_domain.process(command, asynchronous=False)
    return placed.to_dict()
