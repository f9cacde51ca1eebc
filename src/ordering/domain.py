"""Ordering bounded context — checkout pricing and order commit.

Prices carts against the catalogue, resolves coupons, and commits orders
together with their stock and coupon-usage side effects in one unit of work.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
