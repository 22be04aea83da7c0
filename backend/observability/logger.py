"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
- Events below the configured level are dropped
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

DEFAULT_LEVEL = "INFO"


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_threshold: int = LEVELS[DEFAULT_LEVEL]
_json_lines: bool = True


def configure(*, log_level: str = DEFAULT_LEVEL, enable_json_logs: bool = True) -> None:
    """
    Set the process-wide level threshold and output format.

    Called once at startup from AppConfig. Unknown level names fall
    back to INFO rather than failing startup.
    """
    global _threshold, _json_lines  # pylint: disable=global-statement
    _threshold = LEVELS.get(log_level.upper(), LEVELS[DEFAULT_LEVEL])
    _json_lines = enable_json_logs


def is_enabled(level: str) -> bool:
    return LEVELS.get(level, LEVELS[DEFAULT_LEVEL]) >= _threshold


def _plain(event: Mapping[str, Any]) -> str:
    head = event.get("event_type", "EVENT")
    rest = " ".join(
        f"{k}={v}" for k, v in event.items() if k != "event_type"
    )
    return f"{head} {rest}".rstrip()


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, decision, etc.

    An optional "level" key (DEBUG/INFO/WARNING/ERROR, default INFO)
    is compared against the configured threshold.

    This function:
    - Serializes to JSON (or key=value when JSON logs are off)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if not is_enabled(str(event.get("level", DEFAULT_LEVEL))):
        return

    if not _json_lines:
        _print(_plain(event))
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "level": "ERROR",
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
