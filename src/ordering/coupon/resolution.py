"""Coupon resolution: decides whether a code can discount a cart.

Checks run in a fixed order and stop at the first failure, so a caller always
learns the most fundamental reason a coupon does not apply:

    NOT_FOUND -> INACTIVE -> NOT_STARTED -> EXPIRED -> LIMIT_REACHED
    -> USER_LIMIT_REACHED -> BELOW_MINIMUM -> NO_APPLICABLE_ITEMS

Expected business outcomes are returned as ``CouponRejection`` values, not
raised. ``evaluate_coupon`` holds the rules and touches no storage;
``CouponResolver`` loads the coupon and the user's redemption count and
delegates to it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from protean.utils.globals import current_domain
from shared.errors import IneligibleError, NotFoundError

from ordering.coupon.coupon import ApplicationType, Coupon, CouponType, CouponUsage, normalize_code


class RejectionCode(Enum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_STARTED = "NOT_STARTED"
    EXPIRED = "EXPIRED"
    LIMIT_REACHED = "LIMIT_REACHED"
    USER_LIMIT_REACHED = "USER_LIMIT_REACHED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    NO_APPLICABLE_ITEMS = "NO_APPLICABLE_ITEMS"


# Rejections that can appear between a preview and a commit because another
# checkout consumed the last redemption.
USAGE_REJECTIONS = frozenset({RejectionCode.LIMIT_REACHED, RejectionCode.USER_LIMIT_REACHED})


class EligibilityLine(Protocol):
    product_id: str
    category_id: str | None


@dataclass(frozen=True)
class ResolvedCoupon:
    id: str
    code: str
    type: CouponType
    value: Decimal
    max_discount: Decimal | None = None
    eligible_product_ids: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class CouponRejection:
    code: RejectionCode
    message: str

    def to_error(self):
        if self.code is RejectionCode.NOT_FOUND:
            return NotFoundError(self.message, code=f"COUPON_{self.code.value}")
        return IneligibleError(self.message, code=f"COUPON_{self.code.value}")

    def to_dict(self):
        return {"code": self.code.value, "message": self.message}


def _as_utc(moment: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=UTC)


def eligible_product_ids(coupon: Coupon, lines: Iterable[EligibilityLine]) -> frozenset[str]:
    """Product ids in ``lines`` that the coupon's application rule covers."""
    lines = list(lines)
    application = ApplicationType(coupon.application_type or ApplicationType.ALL.value)
    product_ids = set(coupon.product_ids or [])
    category_ids = set(coupon.category_ids or [])

    if application is ApplicationType.ALL:
        eligible = lines
    elif application is ApplicationType.SPECIFIC_PRODUCTS:
        eligible = [line for line in lines if line.product_id in product_ids]
    elif application is ApplicationType.SPECIFIC_CATEGORIES:
        eligible = [line for line in lines if line.category_id is not None and line.category_id in category_ids]
    else:
        eligible = [line for line in lines if line.product_id not in product_ids]

    return frozenset(line.product_id for line in eligible)


def evaluate_coupon(
    coupon: Coupon | None,
    *,
    subtotal: Decimal,
    lines: Iterable[EligibilityLine] | None,
    now: datetime,
    user_usage_count: int = 0,
) -> ResolvedCoupon | CouponRejection:
    """Apply the checks to an already loaded coupon.

    ``lines`` of ``None`` means the caller only knows a subtotal; applicability
    is then not checked and the result carries no eligible product ids.
    """
    if coupon is None:
        return CouponRejection(RejectionCode.NOT_FOUND, "Coupon not found")

    if not coupon.is_active:
        return CouponRejection(RejectionCode.INACTIVE, "This coupon is not active")

    starts_at = _as_utc(coupon.starts_at)
    if starts_at is not None and now < starts_at:
        return CouponRejection(RejectionCode.NOT_STARTED, "This coupon is not available yet")

    expires_at = _as_utc(coupon.expires_at)
    if expires_at is not None and now > expires_at:
        return CouponRejection(RejectionCode.EXPIRED, "This coupon has expired")

    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return CouponRejection(RejectionCode.LIMIT_REACHED, "This coupon has reached its usage limit")

    if coupon.usage_limit_per_user is not None and user_usage_count >= coupon.usage_limit_per_user:
        return CouponRejection(
            RejectionCode.USER_LIMIT_REACHED,
            "You have already used this coupon the maximum number of times",
        )

    if coupon.min_amount is not None and subtotal < Decimal(coupon.min_amount):
        return CouponRejection(
            RejectionCode.BELOW_MINIMUM,
            f"This coupon requires a minimum purchase of ${Decimal(coupon.min_amount):.2f}",
        )

    eligible = frozenset()
    if lines is not None:
        eligible = eligible_product_ids(coupon, lines)
        if not eligible:
            return CouponRejection(RejectionCode.NO_APPLICABLE_ITEMS, "This coupon does not apply to any item in the cart")

    return ResolvedCoupon(
        id=str(coupon.id),
        code=coupon.code,
        type=CouponType(coupon.type),
        value=Decimal(coupon.value),
        max_discount=Decimal(coupon.max_discount) if coupon.max_discount is not None else None,
        eligible_product_ids=eligible,
    )


class CouponResolver:
    """Loads a coupon and the user's redemption count, then applies the rules."""

    def find(self, code: str) -> Coupon | None:
        return current_domain.repository_for(Coupon)._dao.query.filter(code=normalize_code(code)).first

    def usage_count_for(self, coupon_id: str, user_id: str) -> int:
        return (
            current_domain.repository_for(CouponUsage)._dao.query.filter(coupon_id=coupon_id, user_id=user_id).count()
        )

    def resolve(
        self,
        code: str,
        *,
        user_id: str | None,
        subtotal: Decimal,
        lines: Iterable[EligibilityLine] | None,
    ) -> ResolvedCoupon | CouponRejection:
        coupon = self.find(code)

        # Anonymous previews cannot be attributed, so the per-user cap is checked at commit.
        user_usage_count = 0
        if coupon is not None and user_id is not None and coupon.usage_limit_per_user is not None:
            user_usage_count = self.usage_count_for(str(coupon.id), user_id)

        return evaluate_coupon(
            coupon,
            subtotal=subtotal,
            lines=lines,
            now=current_domain.clock.now(),
            user_usage_count=user_usage_count,
        )
