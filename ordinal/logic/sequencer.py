"""Contiguous order maintenance for grouped records.

Keeps an integer order column dense (``start_at .. start_at+N-1``) within each
group of records. Every operation is planned up front into a
``PendingChange``: the caller writes ``set_order`` onto the record it is
saving, persists it, and then calls ``apply`` so neighbours are shifted by a
single bulk +1/-1 update.

Example, one global group starting at 0::

    A0 B1 C2 D3 E4 F5 G6

- insert H without an order: H gets 7.
- insert H at 3: D..G are incremented, H gets 3.
- move E from 4 to 2: C and D are incremented, E gets 2.
- move C from 2 to 4: D and E are decremented, C gets 4.
- delete D: E..G are decremented.
- move a record to another group: it is appended to the end of that group
  and the records after it in the old group are decremented. Any order
  supplied alongside the new group is ignored.

The sequencer does not lock anything. Each plan-persist-apply cycle must run
inside one transaction (or equivalent per-group exclusion) owned by the
caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ordinal.logic.errors import InvalidSequenceConfig, SequenceAdjustmentError
from ordinal.logic.sequence_store import SequenceStore
from ordinal.models.sequence import (
    NO_OP,
    AdjustmentFilter,
    BulkAdjustment,
    OperationKind,
    OrderBound,
    PendingChange,
    RecordId,
    RecordRef,
    SequenceConfig,
)

logger = logging.getLogger(__name__)


class Sequencer:
    def __init__(self, config: SequenceConfig, store: SequenceStore) -> None:
        self.config = config
        self.store = store

    @staticmethod
    def configure(
        order_field: str = "order",
        group_fields: Iterable[str] | str | None = (),
        start_at: int = 0,
    ) -> SequenceConfig:
        return SequenceConfig(order_field=order_field, group_fields=group_fields, start_at=start_at)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def group_filter(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Return the configured group fields picked from ``values``.

        Raises InvalidSequenceConfig when a configured field is absent.
        """
        missing = [name for name in self.config.group_fields if name not in values]
        if missing:
            raise InvalidSequenceConfig(f"group field(s) missing from record: {missing}")
        return {name: values[name] for name in self.config.group_fields}

    def highest_order(self, group: Mapping[str, Any]) -> int:
        found = self.store.find_max_order(self.group_filter(group))
        if found is None:
            return self.config.start_at - 1
        return int(found)

    def load(self, record_id: RecordId) -> RecordRef:
        """Read the stored order and group of an existing record."""
        order, group = self.store.current_order_and_group(record_id)
        return RecordRef(id=record_id, order=order, group=group)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(self, kind: OperationKind, old: Optional[RecordRef], new: Optional[RecordRef]) -> PendingChange:
        kind = OperationKind(kind)
        if kind is OperationKind.INSERT:
            if new is None:
                raise ValueError("insert requires the new record state")
            change = self.plan_insert(new.group, new.order)
        elif kind is OperationKind.UPDATE:
            if old is None or new is None:
                raise ValueError("update requires old and new record state")
            change = self.plan_update(old, new.group or None, new.order)
        else:
            if old is None:
                raise ValueError("delete requires the stored record state")
            change = self.plan_delete(old)
        logger.info(
            "sequence.plan kind=%s set_order=%s delta=%s bounds=%s",
            kind.value,
            change.set_order,
            change.adjustment.delta if change.adjustment else None,
            [f"{b.op}{b.value}" for b in change.adjustment.filter.bounds] if change.adjustment else [],
        )
        return change

    def plan_insert(self, group: Mapping[str, Any], requested_order: Optional[int] = None) -> PendingChange:
        target_group = self.group_filter(group)
        highest = self.highest_order(target_group)
        if requested_order is None:
            return PendingChange(set_order=highest + 1)

        order = self._clamp(int(requested_order), highest + 1)
        return PendingChange(
            set_order=order,
            adjustment=self._adjustment(1, target_group, OrderBound(op=">=", value=order)),
        )

    def plan_update(
        self,
        old: RecordRef,
        new_group: Optional[Mapping[str, Any]] = None,
        new_order: Optional[int] = None,
    ) -> PendingChange:
        if new_group is None and new_order is None:
            return NO_OP
        if old.order is None:
            raise InvalidSequenceConfig(f"record {old.id!r} has no {self.config.order_field!r} value")

        old_group = self.group_filter(old.group)
        merged = dict(old_group)
        for name in self.config.group_fields:
            if new_group is not None and name in new_group:
                merged[name] = new_group[name]

        if merged != old_group:
            # Appended to the new group; the old group closes up behind it.
            return PendingChange(
                set_order=self.highest_order(merged) + 1,
                adjustment=self._adjustment(
                    -1, old_group, OrderBound(op=">=", value=old.order), exclude_id=old.id
                ),
            )

        if new_order is None or int(new_order) == old.order:
            return NO_OP

        highest = max(self.highest_order(old_group), old.order)
        order = self._clamp(int(new_order), highest)
        if order == old.order:
            return NO_OP
        if order < old.order:
            adjustment = self._adjustment(
                1,
                old_group,
                OrderBound(op=">=", value=order),
                OrderBound(op="<", value=old.order),
                exclude_id=old.id,
            )
        else:
            adjustment = self._adjustment(
                -1,
                old_group,
                OrderBound(op=">", value=old.order),
                OrderBound(op="<=", value=order),
                exclude_id=old.id,
            )
        return PendingChange(set_order=order, adjustment=adjustment)

    def plan_delete(self, old: RecordRef) -> PendingChange:
        if old.order is None:
            raise InvalidSequenceConfig(f"record {old.id!r} has no {self.config.order_field!r} value")
        return PendingChange(
            adjustment=self._adjustment(
                -1, self.group_filter(old.group), OrderBound(op=">", value=old.order), exclude_id=old.id
            ),
        )

    # ------------------------------------------------------------------
    # Applying
    # ------------------------------------------------------------------

    def apply(self, change: PendingChange, record_id: Optional[RecordId]) -> None:
        """Run the bulk adjustment of ``change``, skipping ``record_id``.

        Must be called after the record's own insert/update/delete.
        """
        adjustment = change.adjustment
        if adjustment is None:
            return
        if record_id is None:
            record_id = adjustment.exclude_id
        ok = self.store.bulk_adjust(
            self.config.order_field,
            adjustment.delta,
            adjustment.filter,
            exclude_id=record_id,
        )
        if not ok:
            logger.error(
                "sequence.apply_failed field=%s delta=%s exclude_id=%s",
                self.config.order_field,
                adjustment.delta,
                record_id,
            )
            raise SequenceAdjustmentError(
                f"bulk adjustment of {self.config.order_field!r} by {adjustment.delta} failed"
            )

    # ------------------------------------------------------------------

    def _clamp(self, order: int, upper: int) -> int:
        return max(self.config.start_at, min(order, upper))

    def _adjustment(
        self,
        delta: int,
        group: Mapping[str, Any],
        *bounds: OrderBound,
        exclude_id: Optional[RecordId] = None,
    ) -> BulkAdjustment:
        return BulkAdjustment(
            delta=delta,
            filter=AdjustmentFilter(group=dict(group), bounds=bounds),
            exclude_id=exclude_id,
        )


__all__ = ["Sequencer"]
