"""Database bootstrap utilities.

Exposes engine construction and the SQL migrations runner. The DB layer does
not define ORM models; repositories use SQLAlchemy Core directly.
"""

from ordinal.db.base import dispose_engine, get_engine
from ordinal.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "dispose_engine",
    "apply_migrations",
]
