from __future__ import annotations

import logging

import pytest

from pyretain._redact import redact_for_log
from pyretain.config import RetainConfig
from pyretain.state.store import EntityStore


def test_redact_for_log_masks_sensitive_keys() -> None:
    state = {
        "input": "hi",
        "password": "pw",
        "api_key": "k",
        "nested": {"accessToken": "t", "items": [1, {"secret": "s"}]},
    }

    redacted = redact_for_log(state)

    assert redacted["input"] == "hi"
    assert redacted["password"] == "<redacted>"
    assert redacted["api_key"] == "<redacted>"
    assert redacted["nested"]["accessToken"] == "<redacted>"
    assert redacted["nested"]["items"][1]["secret"] == "<redacted>"


def test_redact_for_log_truncates_and_summarizes() -> None:
    redacted = redact_for_log({"text": "x" * 50, "blob": b"\x00" * 4}, max_string=10)

    assert redacted["text"].startswith("x" * 10)
    assert "<truncated 40 chars>" in redacted["text"]
    assert redacted["blob"] == "<bytes:4b>"


def test_store_logs_states_only_when_enabled(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="pyretain.state.store"):
        EntityStore().upsert("A", {"input": "visible?"})
        EntityStore(config=RetainConfig(log_states=True)).upsert("B", {"input": "visible", "password": "pw"})

    assert "visible?" not in caplog.text
    assert "'input': 'visible'" in caplog.text
    assert "'pw'" not in caplog.text
