"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution and side effects (conference, application
state, action sinks).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- The application state snapshot read at sample and expiry time
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol, runtime_checkable


QualityListener = Callable[[Any, Any], Awaitable[None]]


# ---------------------------------------------------------------------
# Conference Protocol
# ---------------------------------------------------------------------

@runtime_checkable
class ConferenceProtocol(Protocol):
    """
    The slice of a conference the controller touches.

    Listeners are removed by the exact callable passed to on().
    """

    def on(self, event_name: str, listener: QualityListener) -> None: ...
    def off(self, event_name: str, listener: QualityListener) -> None: ...
    def set_receiver_constraints(self, constraints: Mapping[str, Any]) -> None: ...


# ---------------------------------------------------------------------
# Application State
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class AppStateSnapshot:
    """
    Read-only view of the application state the controller consults.

    disable_adaptive_quality:
        Feature flag; True turns the controller off.

    start_audio_only / preferred_video_quality:
        Explicit user choices the controller must never override.

    tracks:
        Local/remote track descriptors; a "desktop" video_type means
        screen-share.

    audio_only_enabled:
        Effective audio-only state right now.
    """

    disable_adaptive_quality: bool = False
    p2p: bool = False
    start_audio_only: bool = False
    preferred_video_quality: int | None = None
    tracks: tuple[Mapping[str, Any], ...] = ()
    audio_only_enabled: bool = False


@runtime_checkable
class AppStateReader(Protocol):
    def snapshot(self) -> AppStateSnapshot: ...


# ---------------------------------------------------------------------
# Action Sinks
# ---------------------------------------------------------------------

@runtime_checkable
class ActionSinkProtocol(Protocol):
    """
    Application-level actions the controller may request.

    Contract:
    - Both calls are synchronous and must not raise
    - Rendering and media switching happen elsewhere
    """

    def set_audio_only(self, enabled: bool) -> None: ...

    def show_notification(
        self,
        *,
        title_key: str,
        description_key: str,
        uid: str,
        timeout: str,
    ) -> None: ...


# ---------------------------------------------------------------------
# Session Protocol
# ---------------------------------------------------------------------

class SessionProtocol(Protocol):
    session_id: str
    conference: ConferenceProtocol | None
    app_state: AppStateReader
    actions: ActionSinkProtocol


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Push constraints to the conference
    - Call action sinks
    - Read application state

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: SessionProtocol) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ----------------------------
    # Collaborators
    # ----------------------------

    @property
    def conference(self) -> ConferenceProtocol | None:
        return self.session.conference

    @property
    def actions(self) -> ActionSinkProtocol:
        return self.session.actions

    def app_state(self) -> AppStateSnapshot:
        return self.session.app_state.snapshot()
