"""
Level debounce timers.

Responsibilities:
- Hold at most one asyncio task per quality level
- Sleep for the level's debounce window
- Emit a timer-fired event back into the runtime on expiry
- Cancel single timers or all timers on teardown

Non-responsibilities:
- NO decisions about which level to schedule
- NO knowledge of reducer transitions
- NO side effects beyond emitting the expiry event

This module is infrastructure only.
"""

from __future__ import annotations

import asyncio
from asyncio import Task
from typing import Awaitable, Callable

from orchestrator.enums.level import QualityLevel


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

ExpiryFn = Callable[[QualityLevel], Awaitable[None]]


# ---------------------------------------------------------------------
# Level Timers
# ---------------------------------------------------------------------

class LevelTimers:
    """
    Runtime manager for per-level debounce timers.

    Lifecycle:
    1. Reducer emits StartLevelTimer(level, duration_ms)
    2. Runtime calls start(level, duration_ms)
    3a. A different level is scheduled -> reducer emits CancelLevelTimer
    3b. Timer fires -> entry removed, on_expire(level) awaited

    This class never decides what happens next.
    """

    def __init__(self, *, on_expire: ExpiryFn) -> None:
        self._on_expire = on_expire
        self._timers: dict[QualityLevel, Task[None]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self, *, level: QualityLevel, duration_ms: int) -> None:
        """
        Start the timer for `level`.

        Idempotent: a running timer for the same level is left alone.
        """
        existing = self._timers.get(level)
        if existing is not None and not existing.done():
            return

        self._timers[level] = asyncio.create_task(
            self._timer_task(level=level, duration_ms=duration_ms)
        )

    def cancel(self, level: QualityLevel) -> None:
        """
        Cancel the timer for `level` if it exists.

        Idempotent: safe to call even if no timer is pending.
        """
        task = self._timers.pop(level, None)
        if task is not None and not task.done():
            task.cancel()

    def pending(self) -> frozenset[QualityLevel]:
        """Levels with a timer still in flight."""
        return frozenset(
            level for level, task in self._timers.items() if not task.done()
        )

    async def clear_all(self) -> None:
        """
        Cancel all outstanding timers and wait for them to finish.
        Used on session teardown.
        """
        tasks = list(self._timers.values())
        self._timers.clear()

        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _timer_task(self, *, level: QualityLevel, duration_ms: int) -> None:
        """
        Wait for the debounce window; hand expiry back to the runtime.
        """
        try:
            await asyncio.sleep(duration_ms / 1000.0)
        except asyncio.CancelledError:
            return

        # Entry must be gone before re-entry: expiry never cancels itself
        if self._timers.get(level) is asyncio.current_task():
            self._timers.pop(level, None)

        await self._on_expire(level)
