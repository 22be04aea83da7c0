"""
Pure adaptive quality reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

# Timer ownership: reducer decides which level timers start and stop;
# runtime must not start or cancel level timers on its own, except
# unconditional cancellation on teardown.

from __future__ import annotations

from dataclasses import replace
from typing import Any

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
    LevelTimerFired,
    QualitySample,
    SessionEnded,
    SessionStarted,
)
from orchestrator.gate import drop_reason
from orchestrator.state_dataclass import ControllerState
from constants import (
    CLASSIFY_ORDER,
    DEFAULT_LEVELS,
    INITIAL_LEVEL,
    LevelTable,
    NOTIFICATION_TIMEOUT_SHORT,
    NOTIFY_CRITICAL_DESCRIPTION,
    NOTIFY_CRITICAL_TITLE,
    NOTIFY_CRITICAL_UID,
    NOTIFY_LOW_DESCRIPTION,
    NOTIFY_LOW_TITLE,
    NOTIFY_LOW_UID,
)


# =============================================================================
# Invariants
# =============================================================================
# - current_level changes ONLY inside apply_level
# - Scheduling a level cancels every other pending level timer
# - A level already pending is never rescheduled (no reset, no duplicate)
# - A commit without a session is skipped entirely (current_level untouched)

Result = tuple[ControllerState, tuple[Command, ...]]


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: ControllerState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
    *,
    level: str = "INFO",
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "level": level,
            "event_type": event.event_type.value,
            "decision": decision,
            "current_level": state.current_level.value,
            "pending_timers": sorted(lv.value for lv in state.pending_timers),
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    level_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "level_changed":
                level_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + level_change_logs)


def _ignore(
    state: ControllerState, event: Event, reason: str, *, level: str = "DEBUG"
) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}, level=level),)


def _cancel_all(state: ControllerState) -> tuple[Command, ...]:
    return tuple(
        CancelLevelTimer(level=lv)
        for lv in sorted(state.pending_timers, key=lambda lv: lv.rank)
    )


# =============================================================================
# Classification
# =============================================================================

def classify(loss: float, levels: LevelTable = DEFAULT_LEVELS) -> QualityLevel:
    """
    Map a packet-loss percentage to a target level.

    Picks the most severe level whose threshold `loss` strictly exceeds.
    Falls back to NORMAL.
    """
    for level in CLASSIFY_ORDER:
        if loss > levels[level].loss_threshold:
            return level
    return QualityLevel.NORMAL


# =============================================================================
# Scheduling (single-flight debounce)
# =============================================================================

def schedule(state: ControllerState, event: Event, target: QualityLevel) -> Result:
    """
    Debounce a move towards `target`.

    - Already pending for target: no-op
    - Otherwise cancel every other pending timer and start target's timer
    """
    if target in state.pending_timers:
        return _ignore(state, event, "already_pending")

    cancels = tuple(
        CancelLevelTimer(level=lv)
        for lv in sorted(state.pending_timers, key=lambda lv: lv.rank)
        if lv is not target
    )
    duration_ms = state.levels[target].duration_ms
    new_state = replace(state, pending_timers=frozenset({target}))

    details: dict[str, Any] = {
        "target_level": target.value,
        "duration_ms": duration_ms,
        "cancelled": [c.level.value for c in cancels],
    }
    if isinstance(event, QualitySample):
        details["packet_loss"] = event.gate.packet_loss.value
        details["quality_score"] = event.quality_score

    return new_state, _logs_last(cancels + (
        StartLevelTimer(level=target, duration_ms=duration_ms),
        _log(new_state, event, "level_scheduled", details),
    ))


# =============================================================================
# Commit
# =============================================================================

def apply_level(state: ControllerState, event: LevelTimerFired) -> Result:
    """
    Commit `event.level` and emit its side effects.

    Idempotent: committing the current level emits nothing but a log.
    Commit is atomic with its effects: with no session to receive
    constraints, current_level is left untouched.
    """
    target = event.level

    if target is state.current_level:
        return _ignore(state, event, "already_at_level")

    if not event.session_available:
        return state, (
            _log(
                state,
                event,
                "apply_skipped_no_session",
                {"target_level": target.value},
                level="WARNING",
            ),
        )

    new_state = replace(state, current_level=target)
    effects: list[Command] = []

    if target is QualityLevel.CRITICAL:
        effects.append(SetAudioOnly(enabled=True))
        effects.append(
            ShowNotification(
                title_key=NOTIFY_CRITICAL_TITLE,
                description_key=NOTIFY_CRITICAL_DESCRIPTION,
                uid=NOTIFY_CRITICAL_UID,
                timeout=NOTIFICATION_TIMEOUT_SHORT,
            )
        )
    else:
        # Restore video if a previous CRITICAL commit dropped it
        if event.audio_only_enabled:
            effects.append(SetAudioOnly(enabled=False))

        effects.append(
            SetReceiverConstraints(max_height=state.levels[target].max_height)
        )

        # STANDARD and NORMAL are silent
        if target is QualityLevel.LOW:
            effects.append(
                ShowNotification(
                    title_key=NOTIFY_LOW_TITLE,
                    description_key=NOTIFY_LOW_DESCRIPTION,
                    uid=NOTIFY_LOW_UID,
                    timeout=NOTIFICATION_TIMEOUT_SHORT,
                )
            )

    return new_state, _logs_last(tuple(effects) + (
        _log(
            new_state,
            event,
            "level_changed",
            {
                "from_level": state.current_level.value,
                "to_level": target.value,
            },
        ),
    ))


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: ControllerState, event: Event) -> Result:
    """
    Pure reducer for the adaptive quality controller.

    Given the current controller state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Stale-safe: ignores timer events for levels no longer pending
    """
    if isinstance(event, SessionStarted):
        # A fresh session always assumes best quality
        new_state = replace(
            state,
            current_level=INITIAL_LEVEL,
            pending_timers=frozenset(),
            session_active=True,
            session_id=event.session_id,
        )
        return new_state, _logs_last(_cancel_all(state) + (
            _log(new_state, event, "session_started", {"session_id": event.session_id}),
        ))

    if isinstance(event, SessionEnded):
        new_state = replace(
            state,
            current_level=INITIAL_LEVEL,
            pending_timers=frozenset(),
            session_active=False,
        )
        return new_state, _logs_last(_cancel_all(state) + (
            _log(
                new_state,
                event,
                "session_ended",
                {"session_id": event.session_id, "reason": event.reason},
            ),
        ))

    if not state.session_active:
        return _ignore(state, event, "no_active_session")

    if isinstance(event, QualitySample):
        reason = drop_reason(event.gate)
        if reason is not None:
            return _ignore(state, event, reason.value)

        loss = event.gate.packet_loss.value
        assert loss is not None  # gate guarantees a value
        target = classify(loss, state.levels)
        return schedule(state, event, target)

    if isinstance(event, LevelTimerFired):
        if event.level not in state.pending_timers:
            return _ignore(state, event, "stale_timer")

        cleared = replace(
            state,
            pending_timers=state.pending_timers - {event.level},
        )
        return apply_level(cleared, event)

    return _ignore(state, event, "unhandled_event", level="WARNING")
