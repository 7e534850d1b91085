"""Exceptions raised by sequencing and its stores."""

from __future__ import annotations


class SequenceError(Exception):
    pass


class RecordNotFound(SequenceError):
    """The referenced record no longer exists in the store."""

    def __init__(self, record_id: object) -> None:
        super().__init__(f"record not found: {record_id!r}")
        self.record_id = record_id


class InvalidSequenceConfig(SequenceError):
    """An order or group field is configured but missing from the record or table."""


class SequenceAdjustmentError(SequenceError):
    """The store reported that a bulk order adjustment did not apply."""


__all__ = [
    "SequenceError",
    "RecordNotFound",
    "InvalidSequenceConfig",
    "SequenceAdjustmentError",
]
