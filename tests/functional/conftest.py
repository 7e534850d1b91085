from __future__ import annotations

"""Functional test bootstrap.

Points the service at a file-backed SQLite database before any `ordinal`
module builds an engine, applies the SQLite migrations once per session, and
empties the item table between tests.
"""

import os
import pathlib

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# The session fixture applies migrations explicitly
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.pop("SEQUENCE_START_AT", None)


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Apply SQLite migrations once for the shared test database."""
    from ordinal.db.base import get_engine
    from ordinal.db.migrations_runner import apply_migrations

    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    apply_migrations(engine)
    yield engine


@pytest.fixture()
def engine(functional_sqlite_bootstrap):
    from ordinal.db.base import get_engine

    return get_engine(os.environ["TEST_DATABASE_URL"])


@pytest.fixture()
def clean_items(engine):
    from sqlalchemy import text as sql_text

    with engine.begin() as conn:
        conn.execute(sql_text("DELETE FROM sequence_item"))
    yield
    with engine.begin() as conn:
        conn.execute(sql_text("DELETE FROM sequence_item"))


@pytest.fixture()
def client(clean_items):
    from fastapi.testclient import TestClient

    from ordinal.main import create_app

    with TestClient(create_app()) as c:
        yield c
