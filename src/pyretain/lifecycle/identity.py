"""Identity resolvers: map a consumer's context to a stable store key.

A consumer instance is recreated on every show/hide cycle, so its memory
identity is useless as a key. Resolvers derive the key from information
the host supplies with each create signal (slot name, position, an
explicit id, ...). They must be deterministic and side-effect free.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from pyretain.exceptions import InvalidKeyError, UnresolvedIdentityError
from pyretain.state.records import Key, validate_key


@runtime_checkable
class IdentityResolver(Protocol):
    def resolve(self, context: Any) -> Key: ...


def _lookup(context: Any, field: str) -> Any:
    if isinstance(context, Mapping):
        return context.get(field)
    return getattr(context, field, None)


def _field_value(context: Any, field: str) -> Key:
    value = _lookup(context, field)
    if value is None:
        raise UnresolvedIdentityError(f"context has no {field!r}", context=context)
    try:
        return validate_key(value)
    except InvalidKeyError as exc:
        raise UnresolvedIdentityError(f"context field {field!r} is not a usable key: {exc}", context=context) from exc


class SlotIdentityResolver:
    """Resolve the key from a single context field.

    With a ``namespace`` the key becomes ``"<namespace>:<value>"`` so two
    fragment types sharing slot names do not overwrite each other. The
    prefixed key is a string, so slot ``1`` and slot ``"1"`` resolve to the
    same key under a namespace (they stay distinct without one).
    """

    def __init__(self, field: str = "slot", *, namespace: str | None = None) -> None:
        self.field = field
        self.namespace = namespace

    def resolve(self, context: Any) -> Key:
        value = _field_value(context, self.field)
        if self.namespace:
            return f"{self.namespace}:{value}"
        return value

    def __repr__(self) -> str:
        return f"SlotIdentityResolver(field={self.field!r}, namespace={self.namespace!r})"


class CompositeIdentityResolver:
    """Resolve the key by joining several context fields, in order.

    A field value containing the separator is rejected, otherwise
    ``("x:y", "z")`` and ``("x", "y:z")`` would share one key.
    """

    def __init__(self, fields: Sequence[str], *, separator: str = ":") -> None:
        if not fields:
            raise ValueError("fields must be non-empty")
        if not separator:
            raise ValueError("separator must be non-empty")
        self.fields = tuple(fields)
        self.separator = separator

    def resolve(self, context: Any) -> Key:
        parts: list[str] = []
        for field in self.fields:
            part = str(_field_value(context, field))
            if self.separator in part:
                raise UnresolvedIdentityError(
                    f"context field {field!r} contains the separator {self.separator!r}",
                    context=context,
                )
            parts.append(part)
        return self.separator.join(parts)


class CallableIdentityResolver:
    """Adapt a plain function to the resolver protocol.

    Lookup-style failures raised by the function are reported as
    :class:`UnresolvedIdentityError`.
    """

    def __init__(self, func: Callable[[Any], Key]) -> None:
        self._func = func

    def resolve(self, context: Any) -> Key:
        try:
            return validate_key(self._func(context))
        except UnresolvedIdentityError:
            raise
        except (LookupError, ValueError, TypeError, AttributeError) as exc:
            raise UnresolvedIdentityError(f"could not resolve identity: {exc}", context=context) from exc
