"""
Unified event definitions for the quality reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer events carry the context the reducer needs to commit a level,
captured by the runtime at expiry time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.level import QualityLevel
from orchestrator.gate import GateContext


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every event_type must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"

    # ------------------------------------------------------------------
    # Quality samples
    # ------------------------------------------------------------------
    QUALITY_SAMPLE = "QUALITY_SAMPLE"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    LEVEL_TIMER_FIRED = "LEVEL_TIMER_FIRED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Session Events
# =============================================================================

@dataclass(frozen=True)
class SessionStarted(Event):
    """Conference joined; quality events are now subscribed."""
    session_id: str


@dataclass(frozen=True)
class SessionEnded(Event):
    """Conference left or host tearing down."""
    session_id: str
    reason: str | None = None


# =============================================================================
# Quality Events
# =============================================================================

@dataclass(frozen=True)
class QualitySample(Event):
    """
    One connection-quality report from the conference.

    quality_score is informational only: it is logged with the
    scheduling decision, while decisions use gate.packet_loss.
    """
    gate: GateContext
    quality_score: float | None = None


@dataclass(frozen=True)
class LevelTimerFired(Event):
    """
    Debounce window for `level` elapsed.

    session_available:
        A conference handle still exists to receive constraints.

    audio_only_enabled:
        Effective audio-only state at expiry time.
    """
    level: QualityLevel
    session_available: bool = True
    audio_only_enabled: bool = False
