"""
Authoritative controller state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
- One instance per conference session; never shared across sessions.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from constants import DEFAULT_LEVELS, INITIAL_LEVEL, LevelTable
from orchestrator.enums.level import QualityLevel


@dataclass(frozen=True)
class ControllerState:
    """Immutable snapshot of all controller-owned state."""

    # ------------------------------------------------------------------
    # Tuning in force for this session
    # ------------------------------------------------------------------
    levels: LevelTable = field(default_factory=lambda: DEFAULT_LEVELS)

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------

    # Last committed level. Changes only when a level is applied.
    current_level: QualityLevel = INITIAL_LEVEL

    # Levels with a debounce timer in flight.
    # At most one at steady state (single-flight).
    pending_timers: frozenset[QualityLevel] = frozenset()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    session_active: bool = False
    session_id: str | None = None
