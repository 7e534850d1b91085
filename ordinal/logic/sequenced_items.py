"""Ordered item persistence.

Each write runs lock -> plan -> persist the item -> apply the neighbour
adjustment inside a single ``engine.begin()`` transaction. The list (or both
lists, for a move) is locked before its highest position is read, so
concurrent writers to one list queue instead of computing the same slot, and
a failure at any step rolls the whole operation back.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple
import logging

from sqlalchemy import Column, Integer, MetaData, String, Table, delete, insert, select, update
from sqlalchemy.engine import Connection

from ordinal.config import load_config
from ordinal.db.base import get_engine
from ordinal.logic.errors import RecordNotFound
from ordinal.logic.repository_sequence import SqlSequenceStore
from ordinal.logic.sequencer import Sequencer
from ordinal.models.sequence import OperationKind, RecordRef, SequenceConfig

logger = logging.getLogger(__name__)

ITEM_TABLE = "sequence_item"

_metadata = MetaData()
sequence_item = Table(
    ITEM_TABLE,
    _metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String, nullable=False),
    Column("list_key", String, nullable=False),
    Column("position", Integer, nullable=False),
)


def item_sequence_config() -> SequenceConfig:
    return Sequencer.configure(
        order_field="position",
        group_fields="list_key",
        start_at=load_config().sequence.start_at,
    )


def _sequencer(conn: Connection) -> Tuple[Sequencer, SqlSequenceStore]:
    config = item_sequence_config()
    store = SqlSequenceStore(conn, ITEM_TABLE, config)
    return Sequencer(config, store), store


def _load_locked(seq: Sequencer, store: SqlSequenceStore, item_id: int, target_list: Optional[str] = None) -> RecordRef:
    """Load an item once its current list (and ``target_list``) is locked.

    Re-reads after locking because another writer may have moved the item to
    a different list in between.
    """
    held: Set[str] = set()
    while True:
        old = seq.load(item_id)
        wanted = {str(old.group["list_key"])}
        if target_list is not None:
            wanted.add(target_list)
        pending = sorted(wanted - held)
        if not pending:
            return old
        for key in pending:
            store.lock_group({"list_key": key})
        held.update(pending)


def _row_to_item(row: Any) -> Dict[str, Any]:
    m = row._mapping
    return {
        "id": int(m["id"]),
        "title": str(m["title"]),
        "list_key": str(m["list_key"]),
        "position": int(m["position"]),
    }


def _fetch(conn: Connection, item_id: int) -> Dict[str, Any]:
    row = conn.execute(
        select(sequence_item.c.id, sequence_item.c.title, sequence_item.c.list_key, sequence_item.c.position)
        .where(sequence_item.c.id == item_id)
    ).fetchone()
    if row is None:
        raise RecordNotFound(item_id)
    return _row_to_item(row)


def verify_item_schema() -> None:
    with get_engine().connect() as conn:
        SqlSequenceStore(conn, ITEM_TABLE, item_sequence_config()).verify_schema()


def get_item(item_id: int) -> Dict[str, Any]:
    with get_engine().connect() as conn:
        return _fetch(conn, item_id)


def list_items(list_key: str) -> List[Dict[str, Any]]:
    with get_engine().connect() as conn:
        rows = conn.execute(
            select(sequence_item.c.id, sequence_item.c.title, sequence_item.c.list_key, sequence_item.c.position)
            .where(sequence_item.c.list_key == list_key)
            .order_by(sequence_item.c.position.asc(), sequence_item.c.id.asc())
        ).fetchall()
    return [_row_to_item(r) for r in rows]


def create_item(list_key: str, title: str, position: Optional[int] = None) -> Dict[str, Any]:
    """Insert an item, appending when ``position`` is None."""
    with get_engine().begin() as conn:
        seq, store = _sequencer(conn)
        store.lock_group({"list_key": list_key})
        change = seq.plan(OperationKind.INSERT, None, RecordRef(order=position, group={"list_key": list_key}))
        result = conn.execute(
            insert(sequence_item)
            .values(title=title, list_key=list_key, position=change.set_order)
            .returning(sequence_item.c.id)
        )
        item_id = int(result.scalar_one())
        seq.apply(change, item_id)
        item = _fetch(conn, item_id)
    logger.info("item.created id=%s list_key=%s position=%s", item_id, list_key, item["position"])
    return item


def update_item(
    item_id: int,
    title: Optional[str] = None,
    list_key: Optional[str] = None,
    position: Optional[int] = None,
) -> Dict[str, Any]:
    """Update an item; moving it to another list appends it there."""
    with get_engine().begin() as conn:
        seq, store = _sequencer(conn)
        old = _load_locked(seq, store, item_id, list_key)
        new = RecordRef(
            id=item_id,
            order=position,
            group={"list_key": list_key} if list_key is not None else {},
        )
        change = seq.plan(OperationKind.UPDATE, old, new)

        values: Dict[str, Any] = {}
        if title is not None:
            values["title"] = title
        if list_key is not None:
            values["list_key"] = list_key
        if change.set_order is not None:
            values["position"] = change.set_order
        if values:
            conn.execute(update(sequence_item).where(sequence_item.c.id == item_id).values(**values))
        seq.apply(change, item_id)
        item = _fetch(conn, item_id)
    logger.info(
        "item.updated id=%s list_key=%s position=%s noop=%s",
        item_id,
        item["list_key"],
        item["position"],
        change.is_noop,
    )
    return item


def delete_item(item_id: int) -> None:
    with get_engine().begin() as conn:
        seq, store = _sequencer(conn)
        old = _load_locked(seq, store, item_id)
        change = seq.plan(OperationKind.DELETE, old, None)
        conn.execute(delete(sequence_item).where(sequence_item.c.id == item_id))
        seq.apply(change, item_id)
    logger.info("item.deleted id=%s list_key=%s position=%s", item_id, old.group.get("list_key"), old.order)


__all__ = [
    "ITEM_TABLE",
    "sequence_item",
    "item_sequence_config",
    "verify_item_schema",
    "get_item",
    "list_items",
    "create_item",
    "update_item",
    "delete_item",
]
