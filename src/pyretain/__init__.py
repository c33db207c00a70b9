"""pyretain - Identity-keyed reactive state store for ephemeral consumers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyretain")
except PackageNotFoundError:
    __version__ = "0+local"
from pyretain.config import RetainConfig
from pyretain.exceptions import (
    BindingAlreadyTerminatedError,
    BindingStateError,
    InvalidKeyError,
    LifecycleError,
    RetainError,
    StoreClosedError,
    UnresolvedIdentityError,
)
from pyretain.lifecycle.adapter import BindingPhase, LifecycleAdapter
from pyretain.lifecycle.identity import (
    CallableIdentityResolver,
    CompositeIdentityResolver,
    IdentityResolver,
    SlotIdentityResolver,
)
from pyretain.state.query import ObservableQuery, Subscription
from pyretain.state.records import Key, Record, StoreSnapshot
from pyretain.state.store import EntityStore

__all__ = [
    "__version__",
    "BindingAlreadyTerminatedError",
    "BindingPhase",
    "BindingStateError",
    "CallableIdentityResolver",
    "CompositeIdentityResolver",
    "EntityStore",
    "IdentityResolver",
    "InvalidKeyError",
    "Key",
    "LifecycleAdapter",
    "LifecycleError",
    "ObservableQuery",
    "Record",
    "RetainConfig",
    "RetainError",
    "SlotIdentityResolver",
    "StoreClosedError",
    "StoreSnapshot",
    "Subscription",
    "UnresolvedIdentityError",
]
