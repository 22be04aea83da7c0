"""
Owned subscription handle for conference quality events.

The handle remembers the exact listener it registered, so release()
always removes what subscribe() added.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import CONNECTION_QUALITY_CHANGED
from orchestrator.runtime_context import ConferenceProtocol, QualityListener


@dataclass
class QualitySubscription:
    """Handle returned by subscribe_quality(); release exactly once."""

    conference: ConferenceProtocol
    listener: QualityListener
    event_name: str = CONNECTION_QUALITY_CHANGED
    active: bool = True

    def release(self) -> None:
        """Unsubscribe. Idempotent."""
        if not self.active:
            return
        self.conference.off(self.event_name, self.listener)
        self.active = False


def subscribe_quality(
    conference: ConferenceProtocol,
    listener: QualityListener,
) -> QualitySubscription:
    conference.on(CONNECTION_QUALITY_CHANGED, listener)
    return QualitySubscription(conference=conference, listener=listener)
