from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from .config import get_settings


logger = logging.getLogger(__name__)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    # pysqlite abre transacciones por su cuenta y rompe SAVEPOINT;
    # dejamos que SQLAlchemy emita BEGIN explícitamente.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


def create_db_engine(url: str) -> Engine:
    """Crea el engine para la URL dada.

    SQLite en memoria usa StaticPool para que todas las conexiones
    compartan la misma base (tests y modo local).
    """
    parsed = make_url(url)
    kwargs: dict = {"future": True}

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
        kwargs["pool_recycle"] = 300

    engine = create_engine(url, **kwargs)

    if parsed.get_backend_name() == "sqlite":
        _enable_sqlite_savepoints(engine)

    logger.info(
        "[DB] Engine created backend=%s database=%s",
        parsed.get_backend_name(),
        parsed.database,
    )
    return engine


@lru_cache
def get_engine() -> Engine:
    return create_db_engine(get_settings().database_url)


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
