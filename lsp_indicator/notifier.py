"""
Leading+trailing debounce for the "something changed" callback.

State machine:

    IDLE --signal, interval elapsed--> fire now, IDLE
    IDLE --signal, too soon---------> schedule one trailing fire, PENDING
    PENDING --signal----------------> (coalesced)
    PENDING --timer-----------------> fire, IDLE

Fires are spaced at least ``interval_ms`` apart and the last signal of a
burst is always followed by a fire. ``configure`` cancels a pending fire
and re-schedules it under the new settings, so at most one fire is ever
scheduled and a pending change is not lost.

Transitions are guarded by a lock because ThreadingScheduler fires on a
timer thread. The callback itself runs outside the lock.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING

from lsp_indicator.settings import DEFAULT_INTERVAL_MS

if TYPE_CHECKING:
    from collections.abc import Callable

    from lsp_indicator.clock import Clock, Handle, Scheduler

logger = logging.getLogger(__name__)

__all__ = ["DebouncedNotifier", "NotifierState"]


class NotifierState(str, Enum):
    """Whether a trailing fire is scheduled."""

    idle = "idle"
    pending = "pending"


class DebouncedNotifier:
    """Rate-limit calls to a user callback.

    Args:
        clock: Monotonic millisecond clock
        scheduler: One-shot timer facility
        callback: Called on fire; None disables the notifier entirely
        interval_ms: Minimum spacing between fires
    """

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        callback: Callable[[], None] | None = None,
        interval_ms: float = DEFAULT_INTERVAL_MS,
    ) -> None:
        self._clock = clock
        self._scheduler = scheduler
        self._callback = callback
        self._interval_ms = interval_ms
        self._state = NotifierState.idle
        self._handle: Handle | None = None
        self._generation = 0
        self._last_fire: float | None = None
        self._fire_count = 0
        self._lock = threading.RLock()

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is NotifierState.pending

    @property
    def last_fire(self) -> float | None:
        """Clock reading of the most recent fire, None before the first."""
        return self._last_fire

    @property
    def fire_count(self) -> int:
        return self._fire_count

    @property
    def interval_ms(self) -> float:
        return self._interval_ms

    def configure(
        self, callback: Callable[[], None] | None, interval_ms: float
    ) -> None:
        """Replace callback and interval.

        A pending fire is cancelled first and, if a callback remains,
        re-scheduled against the new interval.

        Raises:
            ValueError: If ``interval_ms`` is negative.
        """
        if interval_ms < 0:
            raise ValueError(f"interval_ms must be >= 0, got {interval_ms}")
        with self._lock:
            was_pending = self._cancel_locked()
            self._callback = callback
            self._interval_ms = interval_ms
            fire_now = self._signal_locked() if was_pending else None
        if fire_now is not None:
            self._invoke(fire_now)

    def cancel(self) -> bool:
        """Drop a pending fire. Returns True if one was pending."""
        with self._lock:
            return self._cancel_locked()

    def signal(self) -> None:
        """Report a change. Fires now, schedules a trailing fire, or coalesces."""
        with self._lock:
            fire_now = self._signal_locked()
        if fire_now is not None:
            self._invoke(fire_now)

    def _cancel_locked(self) -> bool:
        # Bumping the generation also neutralizes a timer thread that has
        # already started and is waiting on the lock.
        self._generation += 1
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._state = NotifierState.idle
        return True

    def _signal_locked(self) -> Callable[[], None] | None:
        """Advance the state machine; return the callback if it must fire now."""
        callback = self._callback
        if callback is None or self._state is NotifierState.pending:
            return None
        now = self._clock.now()
        if self._last_fire is None:
            wait = 0.0
        else:
            wait = self._interval_ms - (now - self._last_fire)
        if wait > 0:
            self._state = NotifierState.pending
            self._handle = self._scheduler.after(
                wait, partial(self._on_timer, self._generation)
            )
            logger.debug("Trailing update scheduled in %.0f ms", wait)
            return None
        self._mark_fired(now)
        return callback

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self.pending:
                return
            callback = self._callback
            self._handle = None
            self._state = NotifierState.idle
            self._mark_fired(self._clock.now())
        if callback is not None:
            self._invoke(callback)

    def _mark_fired(self, now: float) -> None:
        # Set before the callback runs; re-entrant signal() calls read it.
        self._last_fire = now
        self._fire_count += 1

    @staticmethod
    def _invoke(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception("on_update callback failed")
