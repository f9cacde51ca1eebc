"""Schema management and SQLite connection tuning for the Ordering domain."""

from protean.domain import Domain
from protean.utils.globals import current_uow
from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url

RDBMS_PROVIDERS = ("sqlite", "postgresql")


def _register_models(domain: Domain, provider_name: str) -> None:
    # Accessing `_dao` builds the SQLAlchemy model for each element and
    # registers its table on the provider's metadata.
    for _, aggregate_record in domain.registry.aggregates.items():
        if aggregate_record.cls.meta_.provider == provider_name:
            domain.repository_for(aggregate_record.cls)._dao  # noqa: B018

    for _, entity_record in domain.registry.entities.items():
        if entity_record.cls.meta_.provider == provider_name:
            domain.repository_for(entity_record.cls)._dao  # noqa: B018


def setup_db(domain: Domain):
    """Create the checkout tables"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _register_models(domain, provider.name)
                provider._metadata.create_all(engine)
                engine.dispose()


def drop_db(domain: Domain):
    """Drop the checkout tables"""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _register_models(domain, provider.name)
                provider._metadata.drop_all(engine)
                engine.dispose()


def _sqlite_connect_hook(url):
    in_memory = url.database in (None, "", ":memory:")

    def on_connect(dbapi_connection, connection_record):
        # pysqlite would otherwise issue its own deferred BEGIN; the
        # `begin` hook below takes over.
        dbapi_connection.isolation_level = None
        if not in_memory:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return on_connect


def _sqlite_begin(conn):
    # A unit of work may decrement stock and redeem coupons, so it takes the
    # write lock before its first read. Everything else reads a snapshot.
    if current_uow and current_uow.in_progress:
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        conn.exec_driver_sql("BEGIN")


def configure_sqlite(domain: Domain):
    """Serialize order commits on SQLite providers.

    Must run after ``domain.init()``. Connections opened before the hooks are
    installed are discarded.
    """
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] != "sqlite":
                continue

            engine = provider._engine
            if not event.contains(engine, "begin", _sqlite_begin):
                event.listen(engine, "connect", _sqlite_connect_hook(make_url(provider.conn_info["database_uri"])))
                event.listen(engine, "begin", _sqlite_begin)
            engine.dispose()
