"""
Sample gate for the adaptive quality reducer.

Purpose:
- Decide whether a packet-loss sample may influence the controller at all
- Keep reducer transitions free of context checks

This module contains NO timers, NO async, NO side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Sequence

from constants import PINNED_LOW_DEFINITION_HEIGHT, SCREENSHARE_VIDEO_TYPE
from protocol.stats import MissingLoss, PacketLoss


# =============================================================================
# Drop Reasons
# =============================================================================

class GateDropReason(str, Enum):
    """
    Why a sample was dropped before classification.

    Values are stable and appear verbatim in log events.
    Declaration order is evaluation order.
    """

    ADAPTIVE_DISABLED = "adaptive_disabled"
    PEER_TO_PEER = "peer_to_peer"
    NO_LOSS_DATA = "no_loss_data"
    USER_AUDIO_ONLY = "user_audio_only"
    USER_PINNED_LOW_DEFINITION = "user_pinned_low_definition"
    SCREENSHARE_ACTIVE = "screenshare_active"


# =============================================================================
# Context
# =============================================================================

@dataclass(frozen=True)
class GateContext:
    """
    Everything the gate needs, captured at sample arrival.

    Built by the runtime from the application state snapshot;
    the reducer only ever sees this frozen copy.
    """

    packet_loss: PacketLoss = MissingLoss(reason="unset")
    adaptive_enabled: bool = True
    p2p: bool = False
    start_audio_only: bool = False
    preferred_video_quality: int | None = None
    screenshare_active: bool = False


def is_screenshare_active(tracks: Sequence[Mapping[str, Any]] | None) -> bool:
    """Return True if any track is a desktop (screen-share) video track."""
    if not tracks:
        return False
    return any(
        isinstance(t, Mapping) and t.get("video_type") == SCREENSHARE_VIDEO_TYPE
        for t in tracks
    )


# =============================================================================
# Predicate
# =============================================================================

def drop_reason(ctx: GateContext) -> GateDropReason | None:
    """
    Return the first rule that rejects the sample, or None to accept it.

    Explicit user intent always wins over automatic adaptation,
    and screen-share sessions are never downgraded.
    """
    if not ctx.adaptive_enabled:
        return GateDropReason.ADAPTIVE_DISABLED

    # Receiver constraints are not applied on direct peer sessions
    if ctx.p2p:
        return GateDropReason.PEER_TO_PEER

    if ctx.packet_loss.value is None:
        return GateDropReason.NO_LOSS_DATA

    if ctx.start_audio_only:
        return GateDropReason.USER_AUDIO_ONLY

    if ctx.preferred_video_quality == PINNED_LOW_DEFINITION_HEIGHT:
        return GateDropReason.USER_PINNED_LOW_DEFINITION

    if ctx.screenshare_active:
        return GateDropReason.SCREENSHARE_ACTIVE

    return None


def should_evaluate(ctx: GateContext) -> bool:
    """Return True if the sample should be classified."""
    return drop_reason(ctx) is None
