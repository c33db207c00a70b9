"""Custom exception hierarchy for pyretain."""

from __future__ import annotations

from typing import Any


class RetainError(Exception):
    """Base exception for all pyretain errors."""


class InvalidKeyError(RetainError, ValueError):
    """Key is empty or not a supported key type."""

    def __init__(self, message: str, *, key: Any = None) -> None:
        self.key = key
        super().__init__(message)


class StoreClosedError(RetainError):
    """Operation issued after the store was closed."""


class LifecycleError(RetainError):
    """Base for lifecycle adapter failures."""


class UnresolvedIdentityError(LifecycleError):
    """The identity resolver could not produce a key for a consumer.

    Hosts should treat this as "state not preserved" rather than a crash:
    the adapter detaches and skips persistence for that instance.
    """

    def __init__(self, message: str, *, context: Any = None) -> None:
        self.context = context
        super().__init__(message)


class BindingAlreadyTerminatedError(LifecycleError):
    """Lifecycle signal received on a binding that was already torn down."""


class BindingStateError(LifecycleError):
    """Lifecycle signal not valid in the binding's current phase.

    For example a second create signal, or a destroy before any create.
    """
