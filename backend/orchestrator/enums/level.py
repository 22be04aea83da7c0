"""
Video quality level enumeration.

Rules:
- This enum defines ONLY the ordered set of quality tiers.
- Per-level tuning (thresholds, windows, heights) lives in constants.py.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class QualityLevel(str, Enum):
    """
    Degraded-quality tiers, ordered by severity.

    NORMAL:
        Full video quality.

    STANDARD:
        Mild congestion; receive resolution lowered.

    LOW:
        Sustained loss; lowest video tier.

    CRITICAL:
        Heavy loss; video dropped, audio-only.
    """

    NORMAL = "NORMAL"
    STANDARD = "STANDARD"
    LOW = "LOW"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        """Severity rank, NORMAL lowest."""
        return _RANKS[self]


_RANKS = {
    QualityLevel.NORMAL: 0,
    QualityLevel.STANDARD: 1,
    QualityLevel.LOW: 2,
    QualityLevel.CRITICAL: 3,
}
