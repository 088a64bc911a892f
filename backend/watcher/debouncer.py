"""
HotReload Debouncer.

Leading-edge, per-key coalescing of rapid repeated signals.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from utils.logger import LoggerMixin


class DebounceState(str, Enum):
    """States of a single debounced key."""

    IDLE = "idle"
    COOLING_DOWN = "cooling_down"


@dataclass
class PendingTrigger:
    """Debounce state for one key, created on first trigger and reused."""

    key: Hashable
    state: DebounceState = DebounceState.IDLE
    timer: asyncio.TimerHandle | None = None
    fired: int = 0
    suppressed: int = 0


class Debouncer(LoggerMixin):
    """
    Fires a callback on the first trigger of a burst and ignores the rest.

    Each key moves through two states:

        idle         --trigger--> fire callback, cooling_down
        cooling_down --trigger--> suppressed
        cooling_down --timeout--> idle

    With ``reset_timer`` enabled a suppressed trigger restarts the
    cooldown, so the key only becomes idle again once the burst has
    been quiet for the whole delay.
    """

    def __init__(
        self,
        delay_ms: int = 750,
        callback: Callable[[Any], Any] | None = None,
        reset_timer: bool = True,
    ) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Cooldown in milliseconds after each fired trigger
            callback: Function called with the key when a trigger fires
            reset_timer: Whether suppressed triggers restart the cooldown
        """
        self._delay = delay_ms / 1000.0
        self._callback = callback
        self._reset_timer = reset_timer
        self._pending: dict[Hashable, PendingTrigger] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def trigger(self, key: Hashable = None) -> bool:
        """
        Signal the key.

        Must be called from a running event loop.

        Args:
            key: What the signal is about (an extension id, or None)

        Returns:
            True if the callback fired, False if the signal was suppressed
        """
        loop = asyncio.get_running_loop()
        pending = self._pending.get(key)
        if pending is None:
            pending = self._pending[key] = PendingTrigger(key=key)

        if pending.state is DebounceState.COOLING_DOWN:
            pending.suppressed += 1
            if self._reset_timer and pending.timer is not None:
                pending.timer.cancel()
                pending.timer = loop.call_later(self._delay, self._cool_down, pending)
            return False

        # Enter cooldown before firing so re-entrant triggers are suppressed
        pending.state = DebounceState.COOLING_DOWN
        pending.timer = loop.call_later(self._delay, self._cool_down, pending)
        pending.fired += 1
        self._fire(key)
        return True

    def _fire(self, key: Hashable) -> None:
        if self._callback is None:
            return
        try:
            result = self._callback(key)
        except Exception as e:
            self.log.error("debounce_callback_failed", key=key, error=str(e))
            return

        if asyncio.iscoroutine(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(lambda t: self._on_task_done(key, t))

    def _on_task_done(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.log.error("debounce_callback_failed", key=key, error=str(task.exception()))

    def _cool_down(self, pending: PendingTrigger) -> None:
        pending.state = DebounceState.IDLE
        pending.timer = None
        if pending.suppressed:
            self.log.debug(
                "debounce_burst_coalesced",
                key=pending.key,
                suppressed=pending.suppressed,
            )
        pending.suppressed = 0

    def state(self, key: Hashable = None) -> DebounceState:
        """Get the current state of a key."""
        pending = self._pending.get(key)
        return pending.state if pending is not None else DebounceState.IDLE

    def fired_count(self, key: Hashable = None) -> int:
        """How many times the callback has fired for a key."""
        pending = self._pending.get(key)
        return pending.fired if pending is not None else 0

    def clear(self) -> None:
        """Cancel all cooldowns and return every key to idle."""
        for pending in self._pending.values():
            if pending.timer is not None:
                pending.timer.cancel()
                pending.timer = None
            pending.state = DebounceState.IDLE
            pending.suppressed = 0

    @property
    def pending_count(self) -> int:
        """Get number of keys currently cooling down."""
        return sum(
            1 for p in self._pending.values() if p.state is DebounceState.COOLING_DOWN
        )

    @property
    def keys(self) -> list[Hashable]:
        """Get every key that has been triggered at least once."""
        return list(self._pending.keys())

    @property
    def running_callbacks(self) -> int:
        """Get number of async callbacks still running."""
        return len(self._tasks)
