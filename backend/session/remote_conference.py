"""
Server-side stand-in for a client conference.

Quality reports arriving over the WebSocket are re-emitted to local
listeners; receiver constraints go back to the client as control
messages. Satisfies ConferenceProtocol.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from orchestrator.runtime_context import QualityListener


class RemoteConference:
    """One joined conference on the far side of a client connection."""

    def __init__(
        self,
        *,
        conference_id: str,
        send_control: Callable[[dict[str, Any]], None],
    ) -> None:
        self.conference_id = conference_id
        self._send_control = send_control
        self._listeners: dict[str, list[QualityListener]] = {}

    def on(self, event_name: str, listener: QualityListener) -> None:
        self._listeners.setdefault(event_name, []).append(listener)

    def off(self, event_name: str, listener: QualityListener) -> None:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        # Identity match: remove exactly the registered callable
        self._listeners[event_name] = [
            existing for existing in listeners if existing is not listener
        ]

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    async def emit(self, event_name: str, *args: Any) -> None:
        """Deliver an event to listeners in registration order."""
        for listener in list(self._listeners.get(event_name, ())):
            await listener(*args)

    def set_receiver_constraints(self, constraints: Mapping[str, Any]) -> None:
        self._send_control({
            "type": "SET_RECEIVER_CONSTRAINTS",
            "conference_id": self.conference_id,
            "constraints": dict(constraints),
        })
