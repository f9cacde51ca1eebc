"""FastAPI application factory for the checkout API.

Every request runs inside the ordering domain context. Expected checkout
failures are translated to JSON error bodies of the form
``{"error": ..., "code": ...}``.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import TransactionError, ValidationError
from protean.utils.logging import add_context, clear_context
from shared.config import get_settings
from shared.errors import CheckoutError, ConflictError, IneligibleError, InternalError, NotFoundError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import DBAPIError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ordering.api.limits import limiter
from ordering.api.routes import router as checkout_router
from ordering.domain import ordering
from ordering.utils.logging import configure_logging

logger = structlog.get_logger(__name__)

# Most specific first: StockInsufficientError is an IneligibleError.
_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (IneligibleError, 422),
    (ConflictError, 409),
    (InternalError, 503),
)


def status_for(exc: CheckoutError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 400


def _unavailable() -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "Service unavailable", "code": InternalError.code})


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Checkout API",
        description="Checkout pricing and order placement",
        lifespan=lifespan,
    )
    app.state.limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the ordering domain context and bind per-request log values."""
        clear_context()
        add_context(path=request.url.path, user_id=request.headers.get("x-user-id"))
        try:
            with ordering.domain_context():
                return await call_next(request)
        finally:
            clear_context()

    # -----------------------------------------------------------------------
    # Error handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        return JSONResponse(status_code=status_for(exc), content=exc.to_dict())

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.messages, "code": "VALIDATION_ERROR"})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        messages = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"] if part != "body")
            messages.setdefault(field or "body", []).append(error["msg"])
        return JSONResponse(status_code=422, content={"error": messages, "code": "INVALID_REQUEST"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = "UNAUTHENTICATED" if exc.status_code == 401 else f"HTTP_{exc.status_code}"
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail, "code": code})

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("rate_limited", path=request.url.path, limit=str(exc.detail))
        return JSONResponse(
            status_code=429,
            content={"error": "Too many requests, please try again later", "code": "RATE_LIMITED"},
        )

    @app.exception_handler(DBAPIError)
    async def database_error_handler(request: Request, exc: DBAPIError):
        logger.error("database_unavailable", error=str(exc.orig))
        return _unavailable()

    @app.exception_handler(TransactionError)
    async def transaction_error_handler(request: Request, exc: TransactionError):
        logger.error("commit_failed", error=str(exc))
        return _unavailable()

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------
    app.include_router(checkout_router)

    # -----------------------------------------------------------------------
    # Health
    # -----------------------------------------------------------------------
    @app.get("/health")
    async def health():
        if not ordering.providers["default"].is_alive():
            return JSONResponse(status_code=503, content={"status": "unavailable", "database": "unreachable"})
        return {"status": "ok", "domain": ordering.name, "currency": get_settings().currency}

    return app
