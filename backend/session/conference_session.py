"""
Client session container.

- One instance per client connection
- Owns the application state mirror and the outbound control queue
- Holds the conference, runtime and subscription while a conference is joined
- Owned and mutated by QualityGateway
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from orchestrator.runtime import Runtime
from session.app_state import AppStateStore
from session.remote_conference import RemoteConference
from session.subscription import QualitySubscription


@dataclass
class ConferenceSession:
    """Mutable runtime container for a single client connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Application state mirror
    # ------------------------------------------------------------------

    app_state: AppStateStore = field(default_factory=AppStateStore)

    # ------------------------------------------------------------------
    # Conference-scoped (present only between join and leave)
    # ------------------------------------------------------------------

    conference: RemoteConference | None = None
    runtime: Runtime | None = None
    subscription: QualitySubscription | None = None

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_ready = asyncio.Event()

    # ------------------------------------------------------------------
    # Wiring helpers (called by QualityGateway)
    # ------------------------------------------------------------------

    @property
    def actions(self) -> ConferenceSession:
        """This session is its own action sink."""
        return self

    def attach_conference(
        self,
        conference: RemoteConference,
        runtime: Runtime,
        subscription: QualitySubscription,
    ) -> None:
        self.conference = conference
        self.runtime = runtime
        self.subscription = subscription

    def detach_conference(self) -> None:
        self.conference = None
        self.runtime = None
        self.subscription = None

    # ------------------------------------------------------------------
    # Action sink
    # ------------------------------------------------------------------

    def set_audio_only(self, enabled: bool) -> None:
        # Mirror optimistically; the client confirms via STATE_UPDATE
        self.app_state.set_audio_only(enabled)
        self.enqueue_control({"type": "SET_AUDIO_ONLY", "enabled": enabled})

    def show_notification(
        self,
        *,
        title_key: str,
        description_key: str,
        uid: str,
        timeout: str,
    ) -> None:
        self.enqueue_control({
            "type": "SHOW_NOTIFICATION",
            "title_key": title_key,
            "description_key": description_key,
            "uid": uid,
            "timeout": timeout,
        })

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Return standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "conference_id": self.conference.conference_id if self.conference else None,
        }

    # ------------------------------------------------------------------
    # Control queue
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)
        self._control_ready.set()

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending control messages.

        Returns a FIFO-ordered tuple, empty if nothing is pending.
        After this call, the control queue is empty.
        """
        self._control_ready.clear()
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> tuple[dict[str, Any], ...]:
        """Block until at least one control message is queued, then drain."""
        while not self._control_out:
            await self._control_ready.wait()
            self._control_ready.clear()
        return self.drain_control()
