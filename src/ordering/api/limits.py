"""Per-client request budgets for the checkout API.

Clients are keyed by the forwarded user id together with the remote address,
so users behind one NAT do not share a budget and an anonymous caller cannot
borrow a signed-in user's. Every checkout endpoint draws from one shared
``checkout`` budget; placing an order also draws from the tighter ``orders``
budget. Both are read from settings on each request.
"""

from fastapi import Request
from shared.config import get_settings
from slowapi import Limiter
from slowapi.util import get_remote_address


def client_key(request: Request) -> str:
    address = get_remote_address(request)
    user_id = request.headers.get("x-user-id")
    if user_id:
        return f"user:{user_id}:{address}"
    return address


limiter = Limiter(key_func=client_key, enabled=get_settings().rate_limits.enabled)

checkout_limit = limiter.shared_limit(lambda: get_settings().rate_limits.checkout, scope="checkout")
order_limit = limiter.limit(lambda: get_settings().rate_limits.orders)
