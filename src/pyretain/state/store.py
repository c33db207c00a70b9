"""In-memory entity store with push-based per-key subscriptions.

This is the only component that owns state records. Writes are
last-write-wins: an ``upsert`` fully replaces the prior state for its key
and synchronously notifies that key's subscribers, in registration order,
before returning.
"""

from __future__ import annotations

import contextlib
import copy
import logging
import threading
from collections.abc import Iterator
from typing import Any

from pyretain._redact import redact_for_log
from pyretain.config import RetainConfig
from pyretain.exceptions import StoreClosedError
from pyretain.state.query import ObservableQuery, StateCallback, Subscription
from pyretain.state.records import Key, Record, StoreSnapshot, validate_key

_logger = logging.getLogger(__name__)


class EntityStore:
    """Keyed table of state records plus per-key subscriber registry.

    Construct once per process (or per test) and pass it explicitly to the
    consumers that need it.
    """

    def __init__(self, *, config: RetainConfig | None = None) -> None:
        self._config = config or RetainConfig()
        self._records: dict[Key, Record] = {}
        self._subscribers: dict[Key, list[Subscription]] = {}
        self._revision = 0
        self._closed = False
        # Re-entrant: callbacks may write or unsubscribe from inside a fan-out.
        self._lock: threading.RLock | None = threading.RLock() if self._config.thread_safe else None

    @property
    def config(self) -> RetainConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def revision(self) -> int:
        """Store-wide write counter (revision of the most recent upsert)."""
        return self._revision

    def _guard(self) -> contextlib.AbstractContextManager[Any]:
        if self._lock is None:
            return contextlib.nullcontext()
        return self._lock

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("entity store is closed")

    def _copy(self, state: Any) -> Any:
        if not self._config.copy_states:
            return state
        return copy.deepcopy(state)

    def _describe(self, state: Any) -> Any:
        if not self._config.log_states:
            return "<hidden>"
        return redact_for_log(state, max_string=self._config.log_max_string)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def upsert(self, key: Key, state: Any) -> Record:
        """Insert or replace the state for *key* and notify its subscribers.

        Delivery is immediate and unbuffered. If a subscriber writes the same
        key again from inside its callback, the nested fan-out runs first;
        subscribers later in the outer fan-out then only see the newer state,
        since a subscription never receives a revision older than one it has
        already seen. Every subscriber ends on the latest state.
        """
        validate_key(key)
        with self._guard():
            self._ensure_open()
            self._revision += 1
            record = Record(key=key, state=self._copy(state), revision=self._revision)
            self._records[key] = record
            # Snapshot so subscribers may unsubscribe (or subscribe) mid fan-out.
            subscribers = list(self._subscribers.get(key, ()))
            _logger.debug(
                "upsert key=%r revision=%d subscribers=%d state=%s",
                key,
                record.revision,
                len(subscribers),
                self._describe(state),
            )
            for subscription in subscribers:
                self._notify(subscription, record)
        return record

    def get(self, key: Key, default: Any = None) -> Any:
        """Return the current state for *key*, or *default* when there is none."""
        with self._guard():
            self._ensure_open()
            record = self._records.get(key)
            if record is None:
                return default
            return self._copy(record.state)

    def get_record(self, key: Key) -> Record | None:
        with self._guard():
            self._ensure_open()
            record = self._records.get(key)
            if record is None or not self._config.copy_states:
                return record
            return record.model_copy(update={"state": copy.deepcopy(record.state)})

    def revision_of(self, key: Key) -> int | None:
        with self._guard():
            self._ensure_open()
            record = self._records.get(key)
            return record.revision if record is not None else None

    def remove(self, key: Key) -> None:
        """Forget *key*. Silent: subscribers are not notified. Idempotent."""
        with self._guard():
            self._ensure_open()
            if self._records.pop(key, None) is not None:
                _logger.debug("remove key=%r", key)

    def clear(self) -> None:
        """Drop every record without notifying. Subscriptions stay registered."""
        with self._guard():
            self._ensure_open()
            _logger.debug("clear records=%d", len(self._records))
            self._records.clear()

    def close(self) -> None:
        """Shut the store down; subsequent operations raise :class:`StoreClosedError`."""
        with self._guard():
            if self._closed:
                return
            for subscriptions in self._subscribers.values():
                for subscription in subscriptions:
                    subscription.active = False
            self._subscribers.clear()
            self._records.clear()
            self._closed = True
            _logger.debug("entity store closed")

    def keys(self) -> list[Key]:
        with self._guard():
            self._ensure_open()
            return list(self._records)

    def __contains__(self, key: object) -> bool:
        with self._guard():
            self._ensure_open()
            return key in self._records

    def __len__(self) -> int:
        with self._guard():
            self._ensure_open()
            return len(self._records)

    def __iter__(self) -> Iterator[Key]:
        return iter(self.keys())

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def observe(self, key: Key, callback: StateCallback) -> Subscription:
        """Subscribe *callback* to every state written to *key*.

        If a record already exists, its state is delivered synchronously
        before this method returns (replay-latest). Otherwise nothing is
        delivered until the next :meth:`upsert`.
        """
        validate_key(key)
        with self._guard():
            self._ensure_open()
            subscription = Subscription(self, key, callback)
            self._subscribers.setdefault(key, []).append(subscription)
            _logger.debug("observe key=%r subscribers=%d", key, len(self._subscribers[key]))
            record = self._records.get(key)
            if record is not None:
                self._notify(subscription, record)
        return subscription

    def query(self, key: Key) -> ObservableQuery:
        validate_key(key)
        with self._guard():
            self._ensure_open()
            return ObservableQuery(self, key)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Detach *subscription*. Idempotent, and safe from inside its own callback."""
        with self._guard():
            if not subscription.active:
                return
            subscription.active = False
            subscriptions = self._subscribers.get(subscription.key)
            if subscriptions is None:
                return
            with contextlib.suppress(ValueError):
                subscriptions.remove(subscription)
            if not subscriptions:
                del self._subscribers[subscription.key]
            _logger.debug("unsubscribe key=%r remaining=%d", subscription.key, len(subscriptions))

    def subscriber_count(self, key: Key) -> int:
        with self._guard():
            return len(self._subscribers.get(key, ()))

    def _notify(self, subscription: Subscription, record: Record) -> None:
        try:
            subscription._deliver(record, self._copy(record.state))  # noqa: SLF001
        except Exception:
            # A failing subscriber must not starve the remaining ones.
            _logger.warning(
                "Subscriber callback failed for key=%r revision=%d",
                record.key,
                record.revision,
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Host persistence hooks
    # ------------------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        """Export every record, e.g. from a host ``on_before_shutdown`` hook."""
        with self._guard():
            self._ensure_open()
            records = [
                record.model_copy(update={"state": self._copy(record.state)}) for record in self._records.values()
            ]
            return StoreSnapshot(records=records, revision=self._revision)

    def restore(self, snapshot: StoreSnapshot) -> None:
        """Re-apply a snapshot, e.g. from a host ``on_startup`` hook.

        Each record is written through :meth:`upsert`, so live subscribers
        are notified and revisions stay monotonic in this store.
        """
        _logger.debug("restore records=%d", len(snapshot.records))
        for record in sorted(snapshot.records, key=lambda r: r.revision):
            self.upsert(record.key, record.state)
