"""
Mutable application state mirror for one client connection.

The client reports partial state via STATE_UPDATE messages; the
controller reads frozen snapshots. Nothing here makes decisions.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from orchestrator.runtime_context import AppStateSnapshot


_BOOL_FIELDS = (
    "disable_adaptive_quality",
    "p2p",
    "start_audio_only",
    "audio_only_enabled",
)


def _is_whole_number(value: Any) -> bool:
    # JSON gives 180 or 180.0 for the same height; 180.9 is not a height
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


class AppStateStore:
    """Holds the latest AppStateSnapshot; satisfies AppStateReader."""

    def __init__(self, initial: AppStateSnapshot | None = None) -> None:
        self._snapshot = initial or AppStateSnapshot()

    def snapshot(self) -> AppStateSnapshot:
        return self._snapshot

    def set_audio_only(self, enabled: bool) -> None:
        self._snapshot = replace(self._snapshot, audio_only_enabled=enabled)

    def update(self, fields: Mapping[str, Any]) -> tuple[str, ...]:
        """
        Merge a partial update into the snapshot.

        Known keys are checked against their field types; values of the
        wrong type are skipped, never coerced. Returns the keys that were
        not applied.
        """
        changes: dict[str, Any] = {}
        rejected: list[str] = []

        for key, value in fields.items():
            if key in _BOOL_FIELDS:
                if isinstance(value, bool):
                    changes[key] = value
                else:
                    rejected.append(key)
            elif key == "preferred_video_quality":
                if value is None:
                    changes[key] = None
                elif _is_whole_number(value):
                    changes[key] = int(value)
                else:
                    rejected.append(key)
            elif key == "tracks":
                if isinstance(value, list):
                    changes[key] = tuple(t for t in value if isinstance(t, dict))
                else:
                    rejected.append(key)
            else:
                rejected.append(key)

        if changes:
            self._snapshot = replace(self._snapshot, **changes)

        return tuple(rejected)
