# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)
    monkeypatch.setattr(logger, "_threshold", logger.LEVELS["INFO"])
    monkeypatch.setattr(logger, "_json_lines", True)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_events_below_threshold_are_dropped(captured: list[str]) -> None:
    logger.log_event({"event_type": "NOISY", "level": "DEBUG"})
    logger.log_event({"event_type": "KEPT", "level": "WARNING"})

    assert [json.loads(line)["event_type"] for line in captured] == ["KEPT"]


def test_configure_lowers_threshold(captured: list[str]) -> None:
    logger.configure(log_level="debug")

    logger.log_event({"event_type": "NOISY", "level": "DEBUG"})

    assert len(captured) == 1


def test_unserializable_payload_falls_back(captured: list[str]) -> None:
    logger.log_event({"event_type": "BAD", "ts_ms": 5, "obj": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5


def test_plain_format(captured: list[str]) -> None:
    logger.configure(log_level="INFO", enable_json_logs=False)

    logger.log_event({"event_type": "LEVEL", "to_level": "LOW"})

    assert captured == ["LEVEL to_level=LOW"]
