# chuk_ai_orchestrator/scheduling.py
"""
Clock and one-shot timer abstraction.

The circuit breaker schedules its cooldown through a Scheduler instead of
calling ``loop.call_later`` directly, so tests can swap in ManualScheduler
and advance simulated time.

Usage::

    scheduler = ManualScheduler()
    scheduler.call_later(300, lambda: print("cooldown over"))
    scheduler.advance(299)  # nothing
    scheduler.advance(1)    # fires
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    """Source of time plus one-shot delayed callbacks."""

    def now(self) -> float:
        """Current time in seconds."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""
        ...


class AsyncioScheduler:
    """Wall-clock scheduler backed by the running asyncio event loop."""

    def now(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        # Requires a running loop; the breaker only trips from async call paths.
        loop = asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)


class _ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self._cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """Deterministic scheduler whose clock only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (timer.due, next(self._seq), timer))
        return timer

    @property
    def pending(self) -> int:
        """Number of timers that have neither fired nor been cancelled."""
        return sum(1 for _, _, t in self._queue if not t.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that comes due. Returns fired count."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = due
            timer.fired = True
            timer.callback()
            fired += 1
        self._now = target
        return fired
