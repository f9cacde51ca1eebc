import os
import tempfile
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


class FrozenClock:
    """Stands in for the domain clock so coupon windows and order numbers are predictable."""

    def __init__(self, now):
        self.current = now

    def now(self):
        return self.current


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Points the domain at a throwaway SQLite file, then activates it by pushing
    the associated domain_context. The activated domain can then be referred to
    elsewhere as `current_domain`.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ["DATABASE_URL"] = f"sqlite:///{Path(tempfile.mkdtemp()) / 'checkout.db'}"
    # Leave structlog unconfigured so tests can capture log events.
    os.environ.setdefault("PROTEAN_NO_AUTO_LOGGING", "1")

    from ordering.domain import ordering
    from ordering.utils.db import configure_sqlite

    ordering.init()
    configure_sqlite(ordering)
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    setup_db(ordering)

    yield

    drop_db(ordering)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    from ordering.api.limits import limiter
    from ordering.domain import ordering
    from shared.config import get_settings

    system_clock = ordering.clock
    ordering.clock = FrozenClock(NOW)

    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    ordering.clock = system_clock
    get_settings.cache_clear()
    limiter.reset()


@pytest.fixture()
def clock():
    from ordering.domain import ordering

    return ordering.clock


@pytest.fixture()
def settings():
    from shared.config import Settings

    return Settings()


@pytest.fixture()
def add_product():
    from protean import current_domain

    from ordering.catalogue.product import Product

    def _add(product_id="prod-001", **overrides):
        data = {
            "id": product_id,
            "name": f"Product {product_id}",
            "price": Decimal("25.00"),
            "stock_count": 10,
            "track_inventory": True,
            "weight": Decimal("0.5"),
            "category_id": None,
            "is_active": True,
        }
        data.update(overrides)
        return current_domain.repository_for(Product).add(Product(**data))

    return _add


@pytest.fixture()
def add_coupon():
    from protean import current_domain

    from ordering.coupon.coupon import Coupon

    def _add(code="SAVE10", **overrides):
        data = {
            "code": code,
            "type": "PERCENTAGE",
            "value": Decimal("10"),
            "is_active": True,
        }
        data.update(overrides)
        return current_domain.repository_for(Coupon).add(Coupon(**data))

    return _add


@pytest.fixture()
def fetch():
    """Load a single aggregate by identifier from the database."""
    from protean import current_domain

    def _fetch(aggregate_cls, identifier):
        return current_domain.repository_for(aggregate_cls).get(identifier)

    return _fetch


@pytest.fixture()
def count_rows():
    from protean import current_domain

    def _count(aggregate_cls, **criteria):
        return current_domain.repository_for(aggregate_cls)._dao.query.filter(**criteria).count()

    return _count
