"""
Side-effect command definitions for the quality reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.enums.level import QualityLevel

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Timers
    START_LEVEL_TIMER = "START_LEVEL_TIMER"
    CANCEL_LEVEL_TIMER = "CANCEL_LEVEL_TIMER"

    # Media
    SET_AUDIO_ONLY = "SET_AUDIO_ONLY"
    SET_RECEIVER_CONSTRAINTS = "SET_RECEIVER_CONSTRAINTS"

    # User feedback
    SHOW_NOTIFICATION = "SHOW_NOTIFICATION"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartLevelTimer(Command):
    """Start the debounce timer for a level."""
    level: QualityLevel
    duration_ms: int
    command_type: CommandType = CommandType.START_LEVEL_TIMER


@dataclass(frozen=True)
class CancelLevelTimer(Command):
    """Cancel a pending debounce timer (idempotent)."""
    level: QualityLevel
    command_type: CommandType = CommandType.CANCEL_LEVEL_TIMER


# =============================================================================
# Media Commands
# =============================================================================

@dataclass(frozen=True)
class SetAudioOnly(Command):
    """Turn audio-only mode on or off."""
    enabled: bool
    command_type: CommandType = CommandType.SET_AUDIO_ONLY


@dataclass(frozen=True)
class SetReceiverConstraints(Command):
    """Cap the received video height on the active conference."""
    max_height: int
    command_type: CommandType = CommandType.SET_RECEIVER_CONSTRAINTS


# =============================================================================
# Notification Commands
# =============================================================================

@dataclass(frozen=True)
class ShowNotification(Command):
    """Show a transient notification to the user."""
    title_key: str
    description_key: str
    uid: str
    timeout: str
    command_type: CommandType = CommandType.SHOW_NOTIFICATION


# =============================================================================
# Observability
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """
    Structured log payload.

    Runtime enriches with session_id before writing.
    """
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
