"""
Clocks, cancellable scheduled tasks and a debouncer.

Production code runs on the asyncio loop (LoopTaskScheduler + MonotonicClock);
tests drive simulated time with ManualTaskScheduler + ManualClock.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, Optional, Protocol


logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Clock(Protocol):
    def now(self) -> float:
        ...


class ScheduledTask(Protocol):
    def cancel(self) -> None:
        ...

    def cancelled(self) -> bool:
        ...


class TaskScheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callback) -> ScheduledTask:
        ...


class MonotonicClock:
    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += seconds


class LoopTaskScheduler:
    """
    Schedules callbacks on the running asyncio loop.

    Outside a loop (synchronous callers) the callback runs immediately.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callback) -> ScheduledTask:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.debug("No running event loop, running callback immediately")
                task = _ManualTask(0.0, callback)
                callback()
                return task
        return loop.call_later(max(0.0, delay_s), callback)


class _ManualTask:
    def __init__(self, due: float, callback: Callback) -> None:
        self.due = due
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualTaskScheduler:
    """
    Deterministic scheduler over a ManualClock.

    Callbacks run only from advance() / run_due(), in due-time order
    (ties in scheduling order).
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self.clock = clock or ManualClock()
        self._seq = itertools.count()
        self._heap: list[tuple[float, int, _ManualTask]] = []

    def call_later(self, delay_s: float, callback: Callback) -> ScheduledTask:
        task = _ManualTask(self.clock.now() + max(0.0, delay_s), callback)
        heapq.heappush(self._heap, (task.due, next(self._seq), task))
        return task

    @property
    def pending(self) -> int:
        return sum(1 for _, _, task in self._heap if not task.cancelled())

    def run_due(self) -> int:
        ran = 0
        while self._heap and self._heap[0][0] <= self.clock.now():
            _, _, task = heapq.heappop(self._heap)
            if task.cancelled():
                continue
            task.callback()
            ran += 1
        return ran

    def advance(self, seconds: float) -> int:
        self.clock.advance(seconds)
        return self.run_due()


class Debouncer:
    """
    Coalesces bursts of trigger() calls into one callback after a quiet window.

    Every trigger() restarts the window; cancel() drops a pending call.
    """

    def __init__(self, callback: Callback, *, delay_s: float, scheduler: TaskScheduler) -> None:
        self._callback = callback
        self._delay_s = delay_s
        self._scheduler = scheduler
        self._pending: Optional[ScheduledTask] = None
        self.fired_count = 0

    @property
    def delay_s(self) -> float:
        return self._delay_s

    @delay_s.setter
    def delay_s(self, value: float) -> None:
        self._delay_s = max(0.0, float(value))

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.cancelled()

    def trigger(self) -> None:
        self.cancel()
        fired = self.fired_count
        task = self._scheduler.call_later(self._delay_s, self._fire)
        if self.fired_count == fired:
            self._pending = task

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def flush(self) -> bool:
        """Run a pending callback now. Returns False if nothing was pending."""
        if not self.pending:
            return False
        self.cancel()
        self._fire()
        return True

    def _fire(self) -> None:
        self._pending = None
        self.fired_count += 1
        try:
            self._callback()
        except Exception:  # noqa: BLE001
            logger.exception("Debounced callback failed")
