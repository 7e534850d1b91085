"""SQLAlchemy engine construction.

Targets PostgreSQL in production and SQLite for local development and CI. No
declarative models are defined here; tables come from `migrations/*.sql` and
repositories address them through SQLAlchemy Core.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from ordinal.config import load_config

logger = logging.getLogger(__name__)


# Module-level cached Engine so repositories share one pool
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _use_immediate_transactions(engine: Engine) -> None:
    """Make every SQLite transaction take the write lock when it begins.

    pysqlite defers BEGIN until the first write, so two transactions could
    both read the same max(position) before either writes. With the driver's
    own BEGIN disabled, SQLAlchemy's begin event emits BEGIN IMMEDIATE and
    writers queue on the database lock (up to the connect timeout).
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across threads, otherwise every connection sees an empty database.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or load_config().database.dsn

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        elif resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(resolved_url, **kwargs)
        if _ENGINE.dialect.name == "sqlite":
            _use_immediate_transactions(_ENGINE)
        _ENGINE_URL = resolved_url
        logger.info("db.engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


def dispose_engine() -> None:
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None
