"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the dialect-specific subdirectory of
`ordinal/db/migrations/` (e.g. `sqlite/`, `postgresql/`). Applied filenames
are recorded in a `schema_migrations` table so a file is never applied twice
against the same database. Intended for local development and CI; production
environments should use Alembic or the platform's migration mechanism.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

_JOURNAL_DDL = (
    "CREATE TABLE IF NOT EXISTS schema_migrations ("
    "filename VARCHAR(255) PRIMARY KEY, applied_at VARCHAR(32) NOT NULL)"
)


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _split_statements(sql: str) -> Iterable[str]:
    # Full-line comments go first so a ';' inside one never splits a statement.
    # Trailing comments after SQL on the same line are not supported.
    body = "\n".join(ln for ln in sql.splitlines() if not ln.strip().startswith("--"))
    for stmt in body.split(";"):
        s = stmt.strip()
        if not s or s.upper() in {"BEGIN", "COMMIT", "END"}:
            continue
        yield s


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute a migration file one statement at a time.

    pysqlite refuses multiple statements per execute() call, and running them
    separately keeps every dialect inside the surrounding transaction.
    """
    for stmt in _split_statements(sql):
        conn.exec_driver_sql(stmt)


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> list[str]:
    """Apply pending migrations and return the filenames applied."""
    base = Path(migrations_dir) if migrations_dir is not None else MIGRATIONS_DIR
    root = base / engine.dialect.name
    if not root.exists():
        root = base
    if not root.exists():  # pragma: no cover - optional
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    applied_now: list[str] = []
    with engine.begin() as conn:
        conn.execute(sql_text(_JOURNAL_DDL))
        applied = {str(r[0]) for r in conn.execute(sql_text("SELECT filename FROM schema_migrations"))}
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            _exec_sql_compat(conn, sql)
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
            applied_now.append(fname)
            logger.info("migration_applied file=%s dialect=%s", fname, engine.dialect.name)
    return applied_now
