"""
Session gateway.

Responsibilities:
- Owns ConferenceSession lifecycle (one per client connection)
- Routes inbound JSON messages:
    CONFERENCE_JOINED / CONFERENCE_LEFT / APP_WILL_UNMOUNT -> lifecycle
    STATE_UPDATE -> application state mirror
    CONNECTION_QUALITY_CHANGED -> conference listeners
- Builds a fresh Runtime per joined conference and discards it on leave
- Returns queued control messages to the transport

NOT responsible for:
- Any adaptation decisions (reducer)
- Timer management (runtime)
- Transport concerns (server.routes)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

from uuid import uuid4

from constants import CONNECTION_QUALITY_CHANGED
from observability.logger import log_event
from orchestrator.events import EventType, SessionEnded, SessionStarted
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import AppStateSnapshot, RuntimeExecutionContext
from orchestrator.state_dataclass import ControllerState
from session.app_state import AppStateStore
from session.conference_session import ConferenceSession
from session.remote_conference import RemoteConference
from session.subscription import subscribe_quality

if TYPE_CHECKING:
    from config import AppConfig

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def _new_conference_id() -> str:
    return f"conf_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to client
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# QualityGateway
# ------------------------------------------------------------------

class QualityGateway:
    """One gateway == one client connection."""

    def __init__(self, *, config: AppConfig) -> None:
        self._config = config
        self.session: ConferenceSession | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        session_id = _new_session_id()
        self.session = ConferenceSession(
            session_id=session_id,
            app_state=AppStateStore(
                AppStateSnapshot(
                    disable_adaptive_quality=self._config.disable_adaptive_quality,
                )
            ),
        )

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            "session_id": session_id,
        })

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "session_id": session_id,
            "levels": {
                level.value: {
                    "loss_threshold": cfg.loss_threshold,
                    "duration_ms": cfg.duration_ms,
                    "max_height": cfg.max_height,
                }
                for level, cfg in self._config.levels.items()
            },
        }
        return GatewayResult(outbound_json=(init_msg,))

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """Called when the WebSocket disconnects."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        await self._leave_conference(reason=reason or "ws_disconnect")

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            **self.session.log_context(),
            "reason": reason,
        })

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to lifecycle, state, or quality handling."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "JSON_DECODE_ERROR",
                **self.session.log_context(),
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "MESSAGE_NOT_OBJECT",
                **self.session.log_context(),
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        msg_type = data.get("type")

        if msg_type == "CONFERENCE_JOINED":
            conference_id = data.get("conference_id")
            await self._join_conference(
                conference_id if isinstance(conference_id, str) else _new_conference_id()
            )
        elif msg_type in ("CONFERENCE_LEFT", "APP_WILL_UNMOUNT"):
            await self._leave_conference(reason=msg_type.lower())
        elif msg_type == "STATE_UPDATE":
            self._apply_state_update(data.get("state"))
        elif msg_type == "CONNECTION_QUALITY_CHANGED":
            await self._forward_quality(data.get("quality"), data.get("stats"))
        else:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                **self.session.log_context(),
            })
            return GatewayResult()

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Conference lifecycle
    # ------------------------------------------------------------------

    async def _join_conference(self, conference_id: str) -> None:
        """
        Construct a fresh controller for the joined conference.

        A previous conference still attached is torn down first;
        no controller state crosses conference boundaries.
        """
        session = self.session
        assert session is not None

        if session.conference is not None:
            await self._leave_conference(reason="rejoined")

        conference = RemoteConference(
            conference_id=conference_id,
            send_control=session.enqueue_control,
        )
        runtime = Runtime(
            initial_state=ControllerState(levels=self._config.levels),
            context=RuntimeExecutionContext(session=session),
        )
        subscription = subscribe_quality(conference, runtime.on_quality_changed)
        session.attach_conference(conference, runtime, subscription)

        await runtime.handle_event(
            SessionStarted(
                event_type=EventType.SESSION_STARTED,
                ts_ms=_now_ms(),
                session_id=session.session_id,
            )
        )

    async def _leave_conference(self, *, reason: str) -> None:
        """
        Unsubscribe, cancel all timers, reset and discard the controller.

        Idempotent: no-op when no conference is attached.
        """
        session = self.session
        if session is None or session.runtime is None:
            return

        runtime = session.runtime

        if session.subscription is not None:
            session.subscription.release()

        await runtime.shutdown()

        await runtime.handle_event(
            SessionEnded(
                event_type=EventType.SESSION_ENDED,
                ts_ms=_now_ms(),
                session_id=session.session_id,
                reason=reason,
            )
        )

        session.detach_conference()

    # ------------------------------------------------------------------
    # State / quality routing
    # ------------------------------------------------------------------

    def _apply_state_update(self, fields: Any) -> None:
        session = self.session
        assert session is not None

        if not isinstance(fields, dict):
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "STATE_UPDATE_INVALID",
                **session.log_context(),
            })
            return

        rejected = session.app_state.update(fields)
        if rejected:
            log_event({
                "ts_ms": _now_ms(),
                "level": "WARNING",
                "event_type": "STATE_UPDATE_FIELDS_REJECTED",
                **session.log_context(),
                "fields": list(rejected),
            })

    async def _forward_quality(self, quality: Any, stats: Any) -> None:
        session = self.session
        assert session is not None

        if session.conference is None:
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "QUALITY_WITHOUT_CONFERENCE",
                **session.log_context(),
            })
            return

        await session.conference.emit(CONNECTION_QUALITY_CHANGED, quality, stats)

    async def next_control(self) -> GatewayResult:
        """
        Wait for control messages produced outside an inbound message
        (timer commits) and return them.
        """
        if self.session is None:
            return GatewayResult()
        return GatewayResult(outbound_json=await self.session.wait_control())

    def _drain_control_out(self) -> tuple[dict[str, Any], ...]:
        if self.session is None:
            return ()
        return self.session.drain_control()
