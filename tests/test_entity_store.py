from __future__ import annotations

import threading

import pytest

from pyretain.config import RetainConfig
from pyretain.exceptions import InvalidKeyError, StoreClosedError
from pyretain.state.store import EntityStore


def test_upsert_then_get_round_trips_state() -> None:
    store = EntityStore()

    store.upsert("A", {"input": "hi"})
    store.upsert(7, [1, 2, 3])

    assert store.get("A") == {"input": "hi"}
    assert store.get(7) == [1, 2, 3]


def test_get_missing_key_returns_default() -> None:
    store = EntityStore()

    assert store.get("never-written") is None
    assert store.get("never-written", "fallback") == "fallback"


def test_upsert_replaces_state_without_merging() -> None:
    store = EntityStore()

    store.upsert("A", {"input": "hi", "cursor": 2})
    store.upsert("A", {"input": "bye"})

    assert store.get("A") == {"input": "bye"}
    assert len(store) == 1


def test_revisions_increase_across_writes_and_rewrites() -> None:
    store = EntityStore()

    first = store.upsert("A", 1)
    second = store.upsert("A", 2)
    store.remove("A")
    third = store.upsert("A", 3)

    assert first.revision < second.revision < third.revision
    assert store.revision_of("A") == third.revision
    assert store.revision == third.revision


def test_remove_is_idempotent_and_silent() -> None:
    store = EntityStore()
    received: list[object] = []
    store.upsert("A", "x")
    store.observe("A", received.append)

    store.remove("A")
    store.remove("A")

    assert store.get("A") is None
    assert "A" not in store
    assert received == ["x"]


@pytest.mark.parametrize("key", ["", "   ", None, True, 1.5, ("a",)])
def test_invalid_keys_rejected(key: object) -> None:
    store = EntityStore()

    with pytest.raises(InvalidKeyError):
        store.upsert(key, "state")  # type: ignore[arg-type]
    with pytest.raises(InvalidKeyError):
        store.observe(key, lambda _state: None)  # type: ignore[arg-type]


def test_keys_are_not_normalized() -> None:
    store = EntityStore()

    store.upsert(" A", 1)

    assert store.get("A") is None
    assert store.get(" A") == 1


def test_slots_are_independent() -> None:
    store = EntityStore()

    store.upsert("A", {"input": "hi"})

    assert store.get("B") is None


def test_states_are_copied_in_and_out() -> None:
    store = EntityStore()
    state = {"items": [1]}

    store.upsert("A", state)
    state["items"].append(2)
    fetched = store.get("A")
    fetched["items"].append(3)

    assert store.get("A") == {"items": [1]}


def test_copy_states_disabled_shares_reference() -> None:
    store = EntityStore(config=RetainConfig(copy_states=False))
    state = {"items": [1]}

    store.upsert("A", state)

    assert store.get("A") is state


def test_clear_drops_records_but_keeps_subscriptions() -> None:
    store = EntityStore()
    received: list[object] = []
    store.observe("A", received.append)
    store.upsert("A", 1)

    store.clear()
    store.upsert("A", 2)

    assert len(store) == 1
    assert received == [1, 2]


def test_close_rejects_further_operations() -> None:
    store = EntityStore()
    received: list[object] = []
    subscription = store.observe("A", received.append)

    store.close()
    store.close()

    assert store.closed
    assert not subscription.active
    with pytest.raises(StoreClosedError):
        store.upsert("A", 1)
    with pytest.raises(StoreClosedError):
        store.get("A")
    with pytest.raises(StoreClosedError):
        store.observe("A", received.append)
    with pytest.raises(StoreClosedError):
        store.query("A")
    assert received == []


def test_thread_safe_store_allows_reentrant_writes() -> None:
    store = EntityStore(config=RetainConfig(thread_safe=True))
    store.observe("A", lambda state: store.upsert("mirror", state))

    store.upsert("A", "x")

    assert store.get("mirror") == "x"


def test_snapshot_and_restore_into_fresh_store() -> None:
    source = EntityStore()
    source.upsert("A", {"input": "hi"})
    source.upsert("B", {"input": "there"})

    snapshot = source.snapshot()
    payload = snapshot.model_dump_json()

    target = EntityStore()
    received: list[object] = []
    target.observe("A", received.append)
    target.restore(type(snapshot).model_validate_json(payload))

    assert target.get("A") == {"input": "hi"}
    assert target.get("B") == {"input": "there"}
    assert received == [{"input": "hi"}]
    assert snapshot.as_mapping() == {"A": {"input": "hi"}, "B": {"input": "there"}}


def test_thread_safe_store_under_parallel_writers_and_subscribers() -> None:
    store = EntityStore(config=RetainConfig(thread_safe=True))
    writers = 4
    writes_per_writer = 200
    received: list[object] = []
    late_calls: list[object] = []
    store.observe("A", received.append)

    def write(n: int) -> None:
        for i in range(writes_per_writer):
            store.upsert("A", (n, i))

    def churn() -> None:
        for _ in range(100):
            unsubscribed = threading.Event()

            def callback(state: object, unsubscribed: threading.Event = unsubscribed) -> None:
                if unsubscribed.is_set():
                    late_calls.append(state)

            subscription = store.observe("A", callback)
            subscription.unsubscribe()
            unsubscribed.set()

    threads = [threading.Thread(target=write, args=(n,)) for n in range(writers)]
    threads += [threading.Thread(target=churn) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.revision == writers * writes_per_writer
    assert len(received) == writers * writes_per_writer
    assert late_calls == []
    assert store.subscriber_count("A") == 1
