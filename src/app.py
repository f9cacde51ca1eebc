"""Storefront checkout FastAPI application.

Serves checkout previews and order placement over HTTP.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the domain.toml overlay and DATABASE_URL the database.
from ordering.domain import ordering
from ordering.utils.db import configure_sqlite

ordering.init()
configure_sqlite(ordering)

from ordering.api.application import create_app  # noqa: E402

app = create_app()
