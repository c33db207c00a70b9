"""Store configuration for pyretain."""

from __future__ import annotations

import dataclasses
import os
from typing import Any


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class RetainConfig:
    """Entity store configuration.

    Parameters
    ----------
    thread_safe : bool
        Guard the record table and subscriber registry with a per-store
        re-entrant lock. Leave disabled for single-threaded, event-loop
        driven hosts.
    copy_states : bool
        Deep-copy states on write and on read so callers never share a
        reference with the stored record.
    log_states : bool
        Include (redacted) state values in DEBUG log lines.
    log_max_string : int
        Truncation length for strings rendered in DEBUG logs.
    """

    thread_safe: bool = False
    copy_states: bool = True
    log_states: bool = False
    log_max_string: int = 256

    @classmethod
    def from_env(cls, **overrides: Any) -> RetainConfig:
        """Create configuration from ``RETAIN_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_BOOL_MAP = {
            "RETAIN_THREAD_SAFE": ("thread_safe", False),
            "RETAIN_COPY_STATES": ("copy_states", True),
            "RETAIN_LOG_STATES": ("log_states", False),
        }
        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        max_string_env = env.get("RETAIN_LOG_MAX_STRING")
        if max_string_env is not None and "log_max_string" not in overrides:
            config_kwargs["log_max_string"] = int(max_string_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
