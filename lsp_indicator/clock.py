"""Clock and deferred-callback facades.

The indicator never reads wall time or creates timers itself. It is handed
a :class:`Clock` (monotonic milliseconds) and a :class:`Scheduler` (one-shot
callbacks after N milliseconds) so that hosts can plug in their own event
loop, and replays and tests can drive time explicitly.

Implementations:
- :class:`SystemClock` - ``time.monotonic`` in milliseconds
- :class:`ThreadingScheduler` - ``threading.Timer`` (callback on timer thread)
- :class:`AsyncioScheduler` - ``loop.call_later`` (callback on the loop)
- :class:`VirtualClock` - deterministic clock *and* scheduler, advanced by hand

Usage::

    clock = VirtualClock()
    handle = clock.after(500, lambda: print("fired"))
    clock.advance(499)  # nothing
    clock.advance(1)  # prints "fired"
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "AsyncioScheduler",
    "Clock",
    "Handle",
    "Scheduler",
    "SystemClock",
    "ThreadingScheduler",
    "VirtualClock",
    "VirtualTimer",
]


class Handle(Protocol):
    """A cancellable scheduled callback."""

    def cancel(self) -> None: ...


class Clock(Protocol):
    """Monotonic time source in milliseconds."""

    def now(self) -> float: ...


class Scheduler(Protocol):
    """Run a callback once after a delay in milliseconds."""

    def after(self, ms: float, callback: Callable[[], None]) -> Handle: ...


class SystemClock:
    """Process monotonic clock, in milliseconds."""

    def now(self) -> float:
        return time.monotonic() * 1000.0


class ThreadingScheduler:
    """Scheduler backed by :class:`threading.Timer`.

    Callbacks run on the timer's own thread, so anything they touch must
    be guarded by a lock.
    """

    def after(self, ms: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(ms, 0.0) / 1000.0, callback)
        timer.daemon = True
        timer.start()
        return timer


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Loop to schedule on. Defaults to the running loop at the time
            :meth:`after` is called.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def after(self, ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(ms, 0.0) / 1000.0, callback)


@dataclass(order=True)
class VirtualTimer:
    """Pending callback on a :class:`VirtualClock`."""

    due: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock:
    """Deterministic clock and scheduler.

    Time only moves when :meth:`advance` or :meth:`advance_to` is called.
    Due timers fire in (due time, scheduling order) and the clock reads the
    timer's due time while its callback runs, so callbacks observe the same
    ``now()`` a real event loop would give them.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[VirtualTimer] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def after(self, ms: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self._now + max(ms, 0.0), next(self._seq), callback)
        heapq.heappush(self._queue, timer)
        return timer

    @property
    def pending(self) -> int:
        """Number of scheduled, not cancelled, timers."""
        return sum(1 for timer in self._queue if not timer.cancelled)

    def advance(self, ms: float) -> int:
        """Move time forward by ``ms``. Returns the number of callbacks fired."""
        return self.advance_to(self._now + ms)

    def advance_to(self, target: float) -> int:
        """Move time forward to ``target``, firing every timer due on the way.

        Raises:
            ValueError: If ``target`` is in the past.
        """
        if target < self._now:
            raise ValueError(f"Cannot move clock backwards ({target} < {self._now})")
        fired = 0
        while self._queue and self._queue[0].due <= target:
            timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = timer.due
            timer.callback()
            fired += 1
        self._now = target
        return fired
