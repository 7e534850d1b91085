"""SQL-backed sequence store.

Translates the sequencer's abstract filters into SQLAlchemy Core statements
against a single table. Works on a caller-supplied ``Connection`` so the
record's own write and the bulk adjustment share one transaction.
"""

from __future__ import annotations

import hashlib
import json
import logging
import operator
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import column, func, inspect, select, table, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import NoSuchTableError

from ordinal.logic.errors import InvalidSequenceConfig, RecordNotFound
from ordinal.models.sequence import AdjustmentFilter, RecordId, SequenceConfig

logger = logging.getLogger(__name__)

_COMPARATORS = {
    ">=": operator.ge,
    ">": operator.gt,
    "<": operator.lt,
    "<=": operator.le,
}


class SqlSequenceStore:
    def __init__(
        self,
        conn: Connection,
        table_name: str,
        config: SequenceConfig,
        id_column: str = "id",
    ) -> None:
        self.conn = conn
        self.table_name = table_name
        self.config = config
        self.id_column = id_column
        names = [id_column, config.order_field, *config.group_fields]
        self.table = table(table_name, *(column(n) for n in dict.fromkeys(names)))

    def verify_schema(self) -> None:
        """Raise InvalidSequenceConfig when a configured column is missing."""
        try:
            present = {c["name"] for c in inspect(self.conn).get_columns(self.table_name)}
        except NoSuchTableError as exc:
            raise InvalidSequenceConfig(f"table {self.table_name!r} does not exist") from exc
        if not present:
            raise InvalidSequenceConfig(f"table {self.table_name!r} does not exist")
        missing = [c.name for c in self.table.columns if c.name not in present]
        if missing:
            raise InvalidSequenceConfig(
                f"column(s) {missing} configured for sequencing are missing from {self.table_name!r}"
            )

    def _group_clauses(self, group: Mapping[str, Any]) -> List[Any]:
        clauses = []
        for name, value in group.items():
            if name not in self.table.c:
                raise InvalidSequenceConfig(f"{name!r} is not a configured group field")
            clauses.append(self.table.c[name] == value)
        return clauses

    def _lock_key(self, group: Mapping[str, Any]) -> int:
        raw = json.dumps([self.table_name, sorted(group.items())], default=str)
        digest = hashlib.blake2b(raw.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big", signed=True)

    def lock_group(self, group: Mapping[str, Any]) -> None:
        """Hold off other writers to ``group`` until the transaction ends.

        PostgreSQL takes a transaction-scoped advisory lock keyed on table and
        group, which also covers a group with no rows yet. SQLite connections
        already hold the database write lock from BEGIN IMMEDIATE (see
        ``ordinal.db.base``). Other dialects lock the group's rows with
        ``SELECT ... FOR UPDATE``.
        """
        dialect = self.conn.dialect.name
        if dialect == "sqlite":
            return
        if dialect == "postgresql":
            self.conn.execute(select(func.pg_advisory_xact_lock(self._lock_key(group))))
        else:
            self.conn.execute(
                select(self.table.c[self.id_column]).where(*self._group_clauses(group)).with_for_update()
            )
        logger.debug("sequence.lock_group table=%s dialect=%s group=%s", self.table_name, dialect, dict(group))

    def find_max_order(self, group: Mapping[str, Any]) -> Optional[int]:
        order_col = self.table.c[self.config.order_field]
        stmt = select(func.max(order_col)).where(*self._group_clauses(group))
        value = self.conn.execute(stmt).scalar()
        return None if value is None else int(value)

    def bulk_adjust(
        self,
        field: str,
        delta: int,
        flt: AdjustmentFilter,
        exclude_id: Optional[RecordId],
    ) -> bool:
        target = self.table.c[field]
        clauses = self._group_clauses(flt.group)
        clauses.extend(_COMPARATORS[b.op](target, b.value) for b in flt.bounds)
        if exclude_id is not None:
            clauses.append(self.table.c[self.id_column] != exclude_id)
        stmt = update(self.table).where(*clauses).values({field: target + delta})
        result = self.conn.execute(stmt)
        logger.info(
            "sequence.bulk_adjust table=%s field=%s delta=%s group=%s bounds=%s rows=%s",
            self.table_name,
            field,
            delta,
            flt.group,
            [f"{b.op}{b.value}" for b in flt.bounds],
            result.rowcount,
        )
        return True

    def current_order_and_group(self, record_id: RecordId) -> Tuple[int, Dict[str, Any]]:
        cols = [self.table.c[self.config.order_field]]
        cols.extend(self.table.c[g] for g in self.config.group_fields)
        row = self.conn.execute(
            select(*cols).where(self.table.c[self.id_column] == record_id)
        ).fetchone()
        if row is None:
            raise RecordNotFound(record_id)
        mapping = row._mapping
        order = mapping[self.config.order_field]
        if order is None:
            raise InvalidSequenceConfig(
                f"record {record_id!r} has no {self.config.order_field!r} value"
            )
        return int(order), {g: mapping[g] for g in self.config.group_fields}


__all__ = ["SqlSequenceStore"]
