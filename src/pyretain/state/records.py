"""Record and snapshot models for the entity store."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyretain.exceptions import InvalidKeyError

Key = str | int


def validate_key(key: Any) -> Key:
    """Return *key* unchanged if it is usable as a store key.

    Keys are opaque: strings are not stripped or case-folded, only blank
    strings are rejected.
    """
    # bool is an int subclass but never a meaningful identifier.
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        raise InvalidKeyError(f"key must be a str or int, got {type(key).__name__}", key=key)
    if isinstance(key, str) and not key.strip():
        raise InvalidKeyError("key must be non-empty", key=key)
    return key


class Record(BaseModel):
    """Current state held for a single key."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: Key
    state: Any = None
    revision: int = Field(..., ge=1, description="Store-wide write counter at the time of this write")

    @field_validator("key", mode="before")
    @classmethod
    def _check_key(cls, value: Any) -> Key:
        return validate_key(value)


class StoreSnapshot(BaseModel):
    """Point-in-time export of every record, for host persistence hooks."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    records: list[Record] = Field(default_factory=list)
    revision: int = Field(default=0, ge=0)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("taken_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def as_mapping(self) -> dict[Key, Any]:
        return {record.key: record.state for record in self.records}
