"""Value types for sequence maintenance.

These models describe what a sequencing operation wants to happen without
saying how the backing store does it: a self-update for the record being
saved and at most one bulk +1/-1 adjustment on its neighbours.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

RecordId = Union[int, str]
Comparison = Literal[">=", ">", "<", "<="]


class OperationKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class SequenceConfig(BaseModel):
    """Per-entity sequencing settings.

    ``group_fields`` accepts a single field name, a list of names, or a falsy
    value for one global group.
    """

    model_config = ConfigDict(frozen=True)

    order_field: str = "order"
    group_fields: Tuple[str, ...] = ()
    start_at: int = 0

    @field_validator("group_fields", mode="before")
    @classmethod
    def normalise_group_fields(cls, v: Any) -> Tuple[str, ...]:
        if not v:
            return ()
        if isinstance(v, str):
            return (v,)
        return tuple(v)

    @field_validator("group_fields")
    @classmethod
    def group_fields_are_identifiers(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        for name in v:
            if not _IDENTIFIER.match(name):
                raise ValueError(f"invalid group field name: {name!r}")
        if len(set(v)) != len(v):
            raise ValueError("group fields must be unique")
        return v

    @field_validator("order_field")
    @classmethod
    def order_field_is_identifier(cls, v: str) -> str:
        if not _IDENTIFIER.match(v or ""):
            raise ValueError(f"invalid order field name: {v!r}")
        return v


class RecordRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[RecordId] = None
    order: Optional[int] = None
    group: Dict[str, Any] = Field(default_factory=dict)


class OrderBound(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Comparison
    value: int

    def matches(self, order: int) -> bool:
        if self.op == ">=":
            return order >= self.value
        if self.op == ">":
            return order > self.value
        if self.op == "<":
            return order < self.value
        return order <= self.value


class AdjustmentFilter(BaseModel):
    """Group equality match AND every order bound."""

    model_config = ConfigDict(frozen=True)

    group: Dict[str, Any] = Field(default_factory=dict)
    bounds: Tuple[OrderBound, ...] = ()

    def matches(self, order: int, group: Dict[str, Any]) -> bool:
        for name, value in self.group.items():
            if group.get(name) != value:
                return False
        return all(b.matches(order) for b in self.bounds)


class BulkAdjustment(BaseModel):
    model_config = ConfigDict(frozen=True)

    delta: Literal[1, -1]
    filter: AdjustmentFilter
    exclude_id: Optional[RecordId] = None


class PendingChange(BaseModel):
    """Outcome of planning one operation.

    ``set_order`` is written to the record itself before it is persisted;
    ``adjustment`` runs after. A change carrying neither is a no-op.
    """

    model_config = ConfigDict(frozen=True)

    set_order: Optional[int] = None
    adjustment: Optional[BulkAdjustment] = None

    @property
    def is_noop(self) -> bool:
        return self.set_order is None and self.adjustment is None


NO_OP = PendingChange()


__all__ = [
    "AdjustmentFilter",
    "BulkAdjustment",
    "Comparison",
    "NO_OP",
    "OperationKind",
    "OrderBound",
    "PendingChange",
    "RecordId",
    "RecordRef",
    "SequenceConfig",
]
