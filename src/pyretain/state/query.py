"""Subscription handles and per-key observable views."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pyretain.state.records import Key, Record

if TYPE_CHECKING:
    from pyretain.state.store import EntityStore

StateCallback = Callable[[Any], None]


class Subscription:
    """Handle for one ``(key, callback)`` registration on an entity store.

    Once :meth:`unsubscribe` returns, ``callback`` is never invoked again,
    even for a write whose fan-out is already in progress.
    """

    __slots__ = ("_store", "key", "callback", "active", "last_revision")

    def __init__(self, store: EntityStore, key: Key, callback: StateCallback) -> None:
        self._store = store
        self.key = key
        self.callback = callback
        self.active = True
        self.last_revision = 0

    def unsubscribe(self) -> None:
        """Detach from the store. Safe to call repeatedly or from the callback."""
        self._store.unsubscribe(self)

    def _deliver(self, record: Record, state: Any) -> bool:
        """Invoke the callback unless inactive or *record* was already seen."""
        if not self.active or record.revision <= self.last_revision:
            return False
        self.last_revision = record.revision
        self.callback(state)
        return True

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        status = "active" if self.active else "closed"
        return f"<Subscription key={self.key!r} {status} last_revision={self.last_revision}>"


class ObservableQuery:
    """Read view bound to a single key of an entity store."""

    def __init__(self, store: EntityStore, key: Key) -> None:
        self._store = store
        self.key = key

    @property
    def exists(self) -> bool:
        return self.key in self._store

    def get(self, default: Any = None) -> Any:
        return self._store.get(self.key, default)

    def subscribe(self, callback: StateCallback) -> Subscription:
        """Subscribe with replay-latest semantics (see :meth:`EntityStore.observe`)."""
        return self._store.observe(self.key, callback)
