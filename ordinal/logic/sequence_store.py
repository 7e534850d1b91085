"""Store contract used by the sequencer, plus a dict-backed implementation.

The in-memory store keeps rows as plain dicts keyed by id. It is used by tests
and local tooling; the SQL-backed store lives in ``repository_sequence``.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ordinal.logic.errors import InvalidSequenceConfig, RecordNotFound
from ordinal.models.sequence import AdjustmentFilter, RecordId, SequenceConfig

logger = logging.getLogger(__name__)


class SequenceStore(Protocol):
    def find_max_order(self, group: Mapping[str, Any]) -> Optional[int]:
        ...

    def bulk_adjust(
        self,
        field: str,
        delta: int,
        flt: AdjustmentFilter,
        exclude_id: Optional[RecordId],
    ) -> bool:
        ...

    def current_order_and_group(self, record_id: RecordId) -> Tuple[int, Dict[str, Any]]:
        ...


class InMemorySequenceStore:
    def __init__(self, config: SequenceConfig) -> None:
        self.config = config
        self.rows: Dict[RecordId, Dict[str, Any]] = {}
        self._ids = itertools.count(1)

    def _group_of(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            return {name: row[name] for name in self.config.group_fields}
        except KeyError as exc:
            raise InvalidSequenceConfig(f"group field {exc.args[0]!r} missing from record") from exc

    def _order_of(self, row: Mapping[str, Any]) -> int:
        try:
            return int(row[self.config.order_field])
        except KeyError as exc:
            raise InvalidSequenceConfig(
                f"order field {self.config.order_field!r} missing from record"
            ) from exc

    def find_max_order(self, group: Mapping[str, Any]) -> Optional[int]:
        orders = [
            self._order_of(row)
            for row in self.rows.values()
            if all(row.get(k) == v for k, v in group.items())
        ]
        return max(orders) if orders else None

    def bulk_adjust(
        self,
        field: str,
        delta: int,
        flt: AdjustmentFilter,
        exclude_id: Optional[RecordId],
    ) -> bool:
        touched = 0
        for record_id, row in self.rows.items():
            if exclude_id is not None and record_id == exclude_id:
                continue
            if flt.matches(int(row[field]), row):
                row[field] = int(row[field]) + delta
                touched += 1
        logger.debug("inmemory.bulk_adjust delta=%s touched=%s", delta, touched)
        return True

    def current_order_and_group(self, record_id: RecordId) -> Tuple[int, Dict[str, Any]]:
        row = self.rows.get(record_id)
        if row is None:
            raise RecordNotFound(record_id)
        return self._order_of(row), self._group_of(row)

    # Persistence helpers standing in for the caller's own insert/update/delete

    def insert(self, values: Mapping[str, Any]) -> RecordId:
        record_id = next(self._ids)
        self.rows[record_id] = dict(values)
        return record_id

    def save(self, record_id: RecordId, values: Mapping[str, Any]) -> None:
        if record_id not in self.rows:
            raise RecordNotFound(record_id)
        self.rows[record_id].update(values)

    def delete(self, record_id: RecordId) -> None:
        if self.rows.pop(record_id, None) is None:
            raise RecordNotFound(record_id)

    def orders_by_group(self) -> Dict[Tuple[Any, ...], List[int]]:
        """Return sorted order values per group key tuple."""
        out: Dict[Tuple[Any, ...], List[int]] = {}
        for row in self.rows.values():
            key = tuple(row.get(name) for name in self.config.group_fields)
            out.setdefault(key, []).append(self._order_of(row))
        return {k: sorted(v) for k, v in out.items()}


__all__ = ["SequenceStore", "InMemorySequenceStore"]
