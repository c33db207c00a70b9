"""Capture-on-destroy / restore-on-create glue for ephemeral consumers.

One :class:`LifecycleAdapter` is created per consumer instance:

- ``on_create(context)`` resolves the key and subscribes; a stored state is
  delivered synchronously so the consumer can apply it before it is ready.
- ``on_destroy(working_state)`` writes the final working state back and
  unsubscribes.

Phases::

    uninitialized --create--> bound --destroy--> captured --> terminated
    uninitialized --create (no identity, store closed)--> detached --destroy--> terminated
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from pyretain.exceptions import (
    BindingAlreadyTerminatedError,
    BindingStateError,
    InvalidKeyError,
    StoreClosedError,
    UnresolvedIdentityError,
)
from pyretain.lifecycle.identity import IdentityResolver
from pyretain.state.query import StateCallback, Subscription
from pyretain.state.records import Key, validate_key
from pyretain.state.store import EntityStore

_logger = logging.getLogger(__name__)


class BindingPhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    BOUND = "bound"
    CAPTURED = "captured"
    DETACHED = "detached"
    TERMINATED = "terminated"


class LifecycleAdapter:
    """Lifecycle binding for a single consumer instance."""

    def __init__(
        self,
        store: EntityStore,
        resolver: IdentityResolver,
        *,
        on_restore: StateCallback | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._on_restore = on_restore
        self._phase = BindingPhase.UNINITIALIZED
        self._key: Key | None = None
        self._subscription: Subscription | None = None
        self._restored: Any = None
        self._writing = False

    @property
    def phase(self) -> BindingPhase:
        return self._phase

    @property
    def key(self) -> Key | None:
        return self._key

    @property
    def restored(self) -> Any:
        """Latest state pushed to this binding (``None`` if nothing was stored)."""
        return self._restored

    @property
    def is_bound(self) -> bool:
        return self._phase is BindingPhase.BOUND

    def _receive(self, state: Any) -> None:
        self._restored = state
        # Our own checkpoint/capture writes are not restores.
        if self._writing or self._phase is not BindingPhase.BOUND:
            return
        if self._on_restore is not None:
            self._on_restore(state)

    def on_create(self, context: Any) -> Any:
        """Bind to the key resolved from *context* and return the restored state.

        Raises
        ------
        UnresolvedIdentityError
            No usable key could be derived; the binding is detached and its state
            will not be preserved.
        StoreClosedError
            The store was closed; the binding is detached.
        BindingAlreadyTerminatedError
            The binding was already destroyed.
        BindingStateError
            The binding already received a create signal.
        """
        if self._phase is BindingPhase.TERMINATED:
            raise BindingAlreadyTerminatedError("create signal on a terminated binding")
        if self._phase is not BindingPhase.UNINITIALIZED:
            raise BindingStateError(f"create signal on a {self._phase} binding")

        try:
            key = validate_key(self._resolver.resolve(context))
        except UnresolvedIdentityError:
            self._phase = BindingPhase.DETACHED
            raise
        except InvalidKeyError as exc:
            self._phase = BindingPhase.DETACHED
            raise UnresolvedIdentityError(f"resolver returned an unusable key: {exc}", context=context) from exc

        # Phase must be BOUND while observe replays, so restores reach on_restore.
        self._phase = BindingPhase.BOUND
        try:
            subscription = self._store.observe(key, self._receive)
        except StoreClosedError:
            self._phase = BindingPhase.DETACHED
            raise
        self._key = key
        self._subscription = subscription
        _logger.debug("bound key=%r restored=%s", key, self._restored is not None)
        return self._restored

    def try_create(self, context: Any) -> bool:
        """Fail-open variant of :meth:`on_create` for host glue code.

        Returns ``True`` when bound; logs and returns ``False`` when the
        identity could not be resolved or the store is closed.
        """
        try:
            self.on_create(context)
        except (UnresolvedIdentityError, StoreClosedError) as exc:
            _logger.warning("State will not be preserved: %s", exc)
            return False
        return True

    def checkpoint(self, working_state: Any) -> None:
        """Persist *working_state* without ending the binding."""
        if self._phase is BindingPhase.TERMINATED:
            raise BindingAlreadyTerminatedError("checkpoint on a terminated binding")
        if self._phase is BindingPhase.DETACHED:
            return
        if self._phase is not BindingPhase.BOUND or self._key is None:
            raise BindingStateError("checkpoint before create signal")
        self._writing = True
        try:
            self._store.upsert(self._key, working_state)
        finally:
            self._writing = False

    def on_destroy(self, working_state: Any) -> None:
        """Capture *working_state* under the bound key and tear the binding down.

        A repeated destroy signal is ignored, as some hosts run teardown
        hooks more than once.
        """
        if self._phase is BindingPhase.TERMINATED:
            _logger.debug("destroy signal ignored; binding key=%r already terminated", self._key)
            return
        if self._phase is BindingPhase.UNINITIALIZED:
            raise BindingStateError("destroy signal before create signal")

        try:
            if self._phase is BindingPhase.BOUND and self._key is not None:
                self._phase = BindingPhase.CAPTURED
                self._store.upsert(self._key, working_state)
                _logger.debug("captured key=%r", self._key)
        except StoreClosedError:
            _logger.warning("State for key=%r not preserved: entity store is closed", self._key)
        finally:
            if self._subscription is not None:
                self._subscription.unsubscribe()
                self._subscription = None
            self._phase = BindingPhase.TERMINATED

    def __repr__(self) -> str:
        return f"<LifecycleAdapter key={self._key!r} phase={self._phase}>"
