"""Helpers for rendering stored states in debug logs.

States are opaque application values and may carry user input such as
passwords or tokens. Nothing is rendered unless ``log_states`` is enabled,
and even then sensitive keys are masked and long values truncated.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "authorization",
        "cookie",
        "pin",
    }
)

_MAX_DEPTH = 8


def _normalize_key(key: Any) -> str:
    return str(key).replace("_", "").replace("-", "").lower()


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a log-safe copy of *value*."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated {len(value) - max_string} chars>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): "<redacted>"
            if _normalize_key(k) in _SENSITIVE_KEYS
            else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, (Sequence, set, frozenset)):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    # Pydantic models and dataclass-like objects: show the type, not internals.
    return f"<{type(value).__name__}>"
