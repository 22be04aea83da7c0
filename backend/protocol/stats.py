"""
Connection-stats normalization.

Quality events report packet loss in one of two shapes, depending on
the conference client version:

    {"packetLoss": 3.5}
    {"packetLoss": {"total": 3.5, "upload": 1.0, "download": 6.0}}

Anything else is "no data". The shape is resolved exactly once, here,
into a tagged union. Downstream code reads `.value` and never sniffs
the raw payload.

Usage example:

    loss = parse_packet_loss(stats)
    if loss.value is None:
        ...  # dropped by the gate
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Literal, Union


# -------------------------
# Tagged union
# -------------------------

@dataclass(frozen=True)
class FlatLoss:
    """Packet loss reported as a bare number."""
    loss: float
    kind: Literal["flat"] = "flat"

    @property
    def value(self) -> float | None:
        return self.loss


@dataclass(frozen=True)
class TotalLoss:
    """Packet loss reported as {"total": number}."""
    total: float
    kind: Literal["total"] = "total"

    @property
    def value(self) -> float | None:
        return self.total


@dataclass(frozen=True)
class MissingLoss:
    """No usable packet loss in the stats payload."""
    reason: str
    kind: Literal["missing"] = "missing"

    @property
    def value(self) -> float | None:
        return None


PacketLoss = Union[FlatLoss, TotalLoss, MissingLoss]


# -------------------------
# Low-level helpers
# -------------------------

def is_well_formed_loss(raw: Any) -> bool:
    """
    Return True if `raw` is a usable loss percentage.

    bool is rejected even though it subclasses int.
    NaN, infinities and negative values are rejected.
    """
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return False
    return math.isfinite(raw) and raw >= 0


# -------------------------
# Boundary
# -------------------------

def parse_packet_loss(stats: Any) -> PacketLoss:
    """
    Normalize a raw stats payload into a PacketLoss.

    Never raises. Malformed input yields MissingLoss with a short reason.
    """
    if not isinstance(stats, dict):
        return MissingLoss(reason="stats_not_object")

    raw = stats.get("packetLoss")
    if raw is None:
        return MissingLoss(reason="packet_loss_absent")

    if isinstance(raw, dict):
        total = raw.get("total")
        if is_well_formed_loss(total):
            return TotalLoss(total=float(total))
        return MissingLoss(reason="packet_loss_total_invalid")

    if is_well_formed_loss(raw):
        return FlatLoss(loss=float(raw))

    return MissingLoss(reason="packet_loss_invalid")
