# =========  timing.py  =========
"""
Deadline scheduler polled from the main loop.

Every row owns one Scheduler.  Nothing here sleeps or spawns threads: the
pygame loop calls `run_due()` once per frame and whatever is due fires on
the caller's thread.  Tests swap the clock for a fake one.
"""
from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, List, Optional, Tuple

import config

Clock = Callable[[], float]


class TimerHandle:
    """One pending callback.  `cancel()` is idempotent."""

    __slots__ = ("deadline", "callback", "cancelled", "_owner")

    def __init__(self, deadline: float, callback: Callable[[], None], owner: "Scheduler"):
        self.deadline  = deadline
        self.callback  = callback
        self.cancelled = False
        self._owner    = owner

    def cancel(self) -> None:
        if not self.cancelled:
            self.cancelled = True
            self._owner._live -= 1

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else f"at {self.deadline:.3f}"
        return f"<TimerHandle {state}>"


class Scheduler:
    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or time.monotonic
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._seq  = itertools.count()
        self._live = 0

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"negative delay: {delay!r}")
        handle = TimerHandle(self.now() + delay, callback, self)
        heapq.heappush(self._heap, (handle.deadline, next(self._seq), handle))
        self._live += 1
        return handle

    def run_due(self, now: Optional[float] = None) -> int:
        """
        Fire every non-cancelled callback whose deadline is <= *now*.
        Returns the number of callbacks that ran.
        """
        now = self.now() if now is None else now
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            # mark spent before running so the callback may re-arm freely
            handle.cancel()
            handle.callback()
            fired += 1
        return fired

    def pending(self) -> int:
        """Number of live (scheduled, not cancelled, not fired) timers."""
        return self._live

    def cancel_all(self) -> None:
        for _, _, handle in self._heap:
            handle.cancel()
        self._heap.clear()

    def next_deadline(self) -> Optional[float]:
        for deadline, _, handle in sorted(self._heap):
            if not handle.cancelled:
                return deadline
        return None


def display_seconds(value: Optional[float]) -> float:
    """Clamp an image duration to the configured floor."""
    floor = getattr(config, "MIN_DISPLAY_SEC", 0.5)
    try:
        sec = float(value)
    except (TypeError, ValueError):
        return floor
    return sec if sec > floor else floor     # NaN lands on the floor too
