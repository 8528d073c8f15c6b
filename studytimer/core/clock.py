"""
Clock — time source plus cancellable deferred callbacks.

AsyncioClock runs callbacks on an asyncio event loop (the API process).
SimulatedClock only moves when told to, for tests and offline simulation.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol


class Clock(Protocol):

    def now(self) -> float:
        """Seconds since the epoch."""
        ...

    def after(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run *callback* once after *delay* seconds; returns a cancel handle."""
        ...

    def cancel(self, handle: Any) -> None:
        ...


class AsyncioClock:
    """Wall clock with callbacks scheduled via loop.call_later."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return time.time()

    def after(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._loop.call_later(max(0.0, delay), callback)

    def cancel(self, handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()


@dataclass(order=True)
class _Pending:
    when: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)


class SimulatedClock:
    """
    Deterministic clock. Time only changes through advance() and jump().

    advance(s) walks time forward firing each due callback at its own
    scheduled instant. jump(s) moves time without firing anything, like a
    suspended laptop or a throttled background tab; the overdue callbacks
    fire on the next advance().
    """

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = float(start)
        self._queue: List[_Pending] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def after(self, delay: float, callback: Callable[[], None]) -> _Pending:
        entry = _Pending(self._now + max(0.0, delay), next(self._seq), callback)
        heapq.heappush(self._queue, entry)
        return entry

    def cancel(self, handle: Optional[_Pending]) -> None:
        if handle is not None:
            handle.cancelled = True

    def pending(self) -> int:
        return sum(1 for e in self._queue if not e.cancelled)

    def jump(self, seconds: float) -> None:
        self._now += seconds

    def advance(self, seconds: float = 0.0) -> int:
        """Move forward, firing due callbacks in order. Returns how many fired."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0].when <= target:
            entry = heapq.heappop(self._queue)
            if entry.cancelled:
                continue
            self._now = max(self._now, entry.when)
            entry.callback()
            fired += 1
        self._now = max(self._now, target)
        return fired
