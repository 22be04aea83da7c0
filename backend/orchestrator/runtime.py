"""
Runtime execution shell for a single conference session.

Responsibilities:
- Own controller state
- Call pure reducer
- Execute commands with side effects (constraints, audio-only, notifications)
- Schedule and cancel level timers
- Convert timer expiry and conference quality reports into events

Non-responsibilities:
- Measuring network quality
- Deciding levels (reducer)
- Subscribing to the conference (session layer)
"""

from __future__ import annotations

import time
from typing import Any

from constants import receiver_constraints
from observability.logger import log_event
from orchestrator.commands import (
    CancelLevelTimer,
    Command,
    LogEvent,
    SetAudioOnly,
    SetReceiverConstraints,
    ShowNotification,
    StartLevelTimer,
)
from orchestrator.enums.level import QualityLevel
from orchestrator.events import (
    Event,
    EventType,
    LevelTimerFired,
    QualitySample,
)
from orchestrator.gate import GateContext, is_screenshare_active
from orchestrator.reducer import reduce
from orchestrator.runtime_context import AppStateSnapshot, RuntimeExecutionContext
from orchestrator.state_dataclass import ControllerState
from orchestrator.timers import LevelTimers
from protocol.stats import PacketLoss, parse_packet_loss


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def build_gate_context(snapshot: AppStateSnapshot, packet_loss: PacketLoss) -> GateContext:
    """Capture the gate inputs from an application state snapshot."""
    return GateContext(
        packet_loss=packet_loss,
        adaptive_enabled=not snapshot.disable_adaptive_quality,
        p2p=snapshot.p2p,
        start_audio_only=snapshot.start_audio_only,
        preferred_video_quality=snapshot.preferred_video_quality,
        screenshare_active=is_screenshare_active(snapshot.tracks),
    )


class Runtime:
    """
    Runtime execution boundary for a single conference session.

    Responsibilities:
    - Own the authoritative controller state
    - Act as the universal event sink for the session
      (lifecycle events, quality reports, timer expiry)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State transitions are serialized and deterministic
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    - Timers emit events back into handle_event (single entry point)
    """

    def __init__(
        self,
        *,
        initial_state: ControllerState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._timers = LevelTimers(on_expire=self._on_timer_expired)

    @property
    def state(self) -> ControllerState:
        """
        Return the current immutable controller state.

        Consumers must never modify this state directly.
        """
        return self._state

    @property
    def pending_timers(self) -> frozenset[QualityLevel]:
        """Levels whose debounce task is still in flight."""
        return self._timers.pending()

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the controller pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new controller state
        3. Execute all emitted commands sequentially

        This method is the *only* entry point for events affecting
        controller state. All event sources converge here:
        - Session layer (started/ended)
        - Conference quality listener
        - Level timers
        """
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def on_quality_changed(self, quality: Any, stats: Any) -> None:
        """
        Conference listener for connection quality reports.

        Stats are normalized here, once; the reducer only sees the
        resulting PacketLoss inside the gate context.
        """
        score = quality if isinstance(quality, (int, float)) and not isinstance(quality, bool) else None
        await self.handle_event(
            QualitySample(
                event_type=EventType.QUALITY_SAMPLE,
                ts_ms=_now_ms(),
                gate=build_gate_context(self._ctx.app_state(), parse_packet_loss(stats)),
                quality_score=score,
            )
        )

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Cancels all in-flight level timers and waits for them to finish.
        No delayed apply can fire after this returns.
        """
        await self._timers.clear_all()

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, StartLevelTimer):
            self._timers.start(level=cmd.level, duration_ms=cmd.duration_ms)

        elif isinstance(cmd, CancelLevelTimer):
            self._timers.cancel(cmd.level)
            log_event({
                "ts_ms": _now_ms(),
                "level": "DEBUG",
                "event_type": "LEVEL_TIMER_CANCELLED",
                "session_id": self._ctx.session_id,
                "timer_level": cmd.level.value,
            })

        elif isinstance(cmd, SetAudioOnly):
            self._ctx.actions.set_audio_only(cmd.enabled)
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "AUDIO_ONLY_SET",
                "session_id": self._ctx.session_id,
                "enabled": cmd.enabled,
            })

        elif isinstance(cmd, SetReceiverConstraints):
            conference = self._ctx.conference
            if conference is None:
                log_event({
                    "ts_ms": _now_ms(),
                    "level": "WARNING",
                    "event_type": "CONSTRAINTS_WITHOUT_CONFERENCE",
                    "session_id": self._ctx.session_id,
                    "max_height": cmd.max_height,
                })
                return

            conference.set_receiver_constraints(receiver_constraints(cmd.max_height))
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RECEIVER_CONSTRAINTS_SET",
                "session_id": self._ctx.session_id,
                "max_height": cmd.max_height,
            })

        elif isinstance(cmd, ShowNotification):
            self._ctx.actions.show_notification(
                title_key=cmd.title_key,
                description_key=cmd.description_key,
                uid=cmd.uid,
                timeout=cmd.timeout,
            )

        else:
            raise ValueError(f"Unknown command: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Timer expiry
    # ------------------------------------------------------------------

    async def _on_timer_expired(self, level: QualityLevel) -> None:
        """
        Construct the timer-fired event with live context and re-enter.

        This is where runtime context (conference presence, audio-only
        state) gets injected; the reducer stays pure.
        """
        await self.handle_event(
            LevelTimerFired(
                event_type=EventType.LEVEL_TIMER_FIRED,
                ts_ms=_now_ms(),
                level=level,
                session_available=self._ctx.conference is not None,
                audio_only_enabled=self._ctx.app_state().audio_only_enabled,
            )
        )
