"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral invariants of the adaptive
quality controller.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping, Tuple

from orchestrator.enums.level import QualityLevel


# =============================================================================
# Quality Levels
# =============================================================================

@dataclass(frozen=True)
class LevelConfig:
    """
    Immutable per-level tuning.

    loss_threshold:
        Packet loss (percent) a sample must strictly exceed to qualify
        for this level or any more severe one. NORMAL's value is never
        consulted; NORMAL is the floor.

    duration_ms:
        Debounce window a tendency must persist before the level is committed.

    max_height:
        Receiver video height constraint. 0 means audio-only.
    """
    loss_threshold: float
    duration_ms: int
    max_height: int


LevelTable = Mapping[QualityLevel, LevelConfig]

# Debounce windows are deliberately asymmetric:
# STANDARD reacts fast to mild congestion, NORMAL recovers slowly.
DEFAULT_LEVELS: Final[LevelTable] = MappingProxyType({
    QualityLevel.NORMAL: LevelConfig(loss_threshold=2, duration_ms=30_000, max_height=720),
    QualityLevel.STANDARD: LevelConfig(loss_threshold=2, duration_ms=5_000, max_height=360),
    QualityLevel.LOW: LevelConfig(loss_threshold=5, duration_ms=10_000, max_height=180),
    QualityLevel.CRITICAL: LevelConfig(loss_threshold=15, duration_ms=10_000, max_height=0),
})

# Classification order: most severe first. NORMAL is the fallback.
CLASSIFY_ORDER: Final[Tuple[QualityLevel, ...]] = (
    QualityLevel.CRITICAL,
    QualityLevel.LOW,
    QualityLevel.STANDARD,
)

INITIAL_LEVEL: Final[QualityLevel] = QualityLevel.NORMAL


# =============================================================================
# User Overrides
# =============================================================================

# A user who pinned the lowest definition tier is never adapted.
PINNED_LOW_DEFINITION_HEIGHT: Final[int] = 180

# Track video type that marks an active screen-share.
SCREENSHARE_VIDEO_TYPE: Final[str] = "desktop"


# =============================================================================
# Notifications
# =============================================================================

NOTIFICATION_TIMEOUT_SHORT: Final[str] = "short"

NOTIFY_CRITICAL_UID: Final[str] = "net_critical"
NOTIFY_CRITICAL_TITLE: Final[str] = "Network Critical"
NOTIFY_CRITICAL_DESCRIPTION: Final[str] = (
    "Switched to Audio-Only to preserve call quality."
)

NOTIFY_LOW_UID: Final[str] = "net_low"
NOTIFY_LOW_TITLE: Final[str] = "Network Unstable"
NOTIFY_LOW_DESCRIPTION: Final[str] = (
    "Video quality reduced to Low to save bandwidth."
)


# =============================================================================
# Conference Events
# =============================================================================

CONNECTION_QUALITY_CHANGED: Final[str] = "conference.connectionQualityChanged"


# =============================================================================
# Helper Functions
# =============================================================================

def receiver_constraints(max_height: int) -> dict[str, dict[str, int]]:
    """
    Build the receiver constraint payload for a max height.

    Shape matches what conference clients expect from
    setReceiverConstraints().
    """
    return {"defaultConstraints": {"maxHeight": max_height}}


def with_durations(
    table: LevelTable,
    overrides: Mapping[QualityLevel, int],
) -> LevelTable:
    """
    Return a copy of `table` with debounce durations replaced.

    Raises:
        ValueError if any override is not a positive integer.
    """
    merged: dict[QualityLevel, LevelConfig] = dict(table)
    for level, duration_ms in overrides.items():
        if duration_ms <= 0:
            raise ValueError(
                f"Debounce duration for {level.value} must be positive, got {duration_ms}"
            )
        base = merged[level]
        merged[level] = LevelConfig(
            loss_threshold=base.loss_threshold,
            duration_ms=duration_ms,
            max_height=base.max_height,
        )
    return MappingProxyType(merged)
