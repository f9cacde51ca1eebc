"""Error taxonomy shared by the checkout contexts.

Every error carries a machine-readable ``code`` so HTTP handlers and other
callers can react without parsing messages. Malformed input is reported with
protean's ``ValidationError`` before any lookup runs; the errors here cover
well-formed requests that the catalogue, coupon rules or concurrent commits
refuse.

``ConflictError`` is kept apart from the others: a conflict means shared
state moved under the request, so re-fetching and retrying may succeed
without collecting new checkout input.
"""


class CheckoutError(Exception):
    """Base class for all expected checkout failures."""

    code = "CHECKOUT_ERROR"

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class NotFoundError(CheckoutError):
    """A coupon or product referenced by the request does not exist."""

    code = "NOT_FOUND"


class IneligibleError(CheckoutError):
    """The request is well formed but business rules refuse it."""

    code = "INELIGIBLE"


class StockInsufficientError(IneligibleError):
    """A tracked line asks for more than is in stock under the reject policy."""

    code = "INSUFFICIENT_STOCK"


class ConflictError(CheckoutError):
    """A concurrent commit won the race for stock, a coupon, or an order number."""

    code = "CONFLICT"


class InternalError(CheckoutError):
    """The data store is unavailable or failed unexpectedly."""

    code = "INTERNAL_ERROR"
