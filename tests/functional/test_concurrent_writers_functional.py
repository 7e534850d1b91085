"""Concurrent writers to one list must leave its positions dense.

Threads are released together from a barrier so their transactions overlap;
each call opens its own connection from the shared file-backed engine.
"""

from __future__ import annotations

import threading
import typing as t

from ordinal.logic.sequenced_items import create_item, delete_item, list_items, update_item

WORKERS = 8


def _run_together(calls: t.Sequence[t.Callable[[], object]]) -> list[Exception]:
    barrier = threading.Barrier(len(calls))
    errors: list[Exception] = []
    lock = threading.Lock()

    def worker(call: t.Callable[[], object]) -> None:
        barrier.wait()
        try:
            call()
        except Exception as exc:  # asserted empty by the caller
            with lock:
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=(c,)) for c in calls]
    for th in threads:
        th.start()
    for th in threads:
        th.join(timeout=60)
    return errors


def _positions(list_key: str) -> list[int]:
    return [i["position"] for i in list_items(list_key)]


def test_concurrent_appends_get_distinct_positions(clean_items) -> None:
    errors = _run_together([lambda n=n: create_item("race", f"item-{n}") for n in range(WORKERS)])
    assert errors == []
    assert _positions("race") == list(range(WORKERS))


def test_concurrent_inserts_at_front_stay_dense(clean_items) -> None:
    for n in range(3):
        create_item("race", f"seed-{n}")
    errors = _run_together([lambda n=n: create_item("race", f"front-{n}", position=0) for n in range(WORKERS)])
    assert errors == []
    assert _positions("race") == list(range(WORKERS + 3))
    assert {i["title"] for i in list_items("race")[WORKERS:]} == {"seed-0", "seed-1", "seed-2"}


def test_concurrent_moves_and_deletes_stay_dense(clean_items) -> None:
    ids = [create_item("race", f"item-{n}")["id"] for n in range(WORKERS * 2)]
    calls: list[t.Callable[[], object]] = []
    for n, item_id in enumerate(ids[:WORKERS]):
        if n % 2:
            calls.append(lambda i=item_id: delete_item(i))
        else:
            calls.append(lambda i=item_id: update_item(i, position=0))
    errors = _run_together(calls)
    assert errors == []
    assert _positions("race") == list(range(len(ids) - WORKERS // 2))


def test_concurrent_moves_between_lists_keep_both_dense(clean_items) -> None:
    ids = [create_item("left", f"item-{n}")["id"] for n in range(WORKERS)]
    create_item("right", "anchor")
    errors = _run_together(
        [lambda i=item_id: update_item(i, list_key="right") for item_id in ids[: WORKERS // 2]]
        + [lambda n=n: create_item("left", f"late-{n}") for n in range(WORKERS // 2)]
    )
    assert errors == []
    assert _positions("left") == list(range(WORKERS))
    assert _positions("right") == list(range(1 + WORKERS // 2))
