"""
Tick scheduler - the planner's only notion of time.

The host drives it by calling run_until(now) (through DayPlanner.tick) about
once a second. Due events fire in time order, ties in scheduling order.
Every event is returned as a TimerHandle that can be cancelled.
"""

import heapq
import itertools
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Clock:
    """Wall clock in seconds since epoch."""

    def now(self) -> float:
        return time.time()


class FakeClock:
    """Manually advanced clock for tests."""

    def __init__(self, start_time: float = 0.0):
        self._time = start_time

    def now(self) -> float:
        return self._time

    def advance(self, delta: float) -> float:
        self._time += delta
        return self._time

    def set(self, value: float) -> None:
        self._time = value


class TimerHandle:
    """Cancellation token for one scheduled event (one-shot or repeating)."""

    def __init__(self, when: float, callback: Callable[[], None], interval: float | None = None):
        self.when = when
        self.callback = callback
        self.interval = interval
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled


class TickScheduler:
    """
    Heap of pending events keyed by due time.

    With an injected clock, times are read from it. Without one, the first
    explicit run_until(now) sets the time base: events scheduled before it
    keep their delays relative to that moment, so a host that drives the
    scheduler with its own timestamps never sees them fire early or late.
    """

    def __init__(self, clock: Clock | FakeClock | None = None):
        self.clock = clock or Clock()
        self._anchored = clock is not None
        self._now = self.clock.now()
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def __len__(self) -> int:
        return sum(1 for _, _, h in self._queue if h.active)

    def _push(self, handle: TimerHandle) -> TimerHandle:
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def _anchor(self, now: float) -> None:
        delta = now - self._now
        if delta:
            for _, _, handle in self._queue:
                handle.when += delta
            self._queue = [(h.when, seq, h) for _, seq, h in self._queue]
            heapq.heapify(self._queue)
            logger.debug("Scheduler time base moved by %.3fs", delta)
        self._now = now
        self._anchored = True

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._push(TimerHandle(self._now + max(delay, 0.0), callback))

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._push(TimerHandle(self._now + interval, callback, interval))

    def run_until(self, now: float | None = None) -> int:
        """
        Fire every event due at or before `now` (default: the clock's time).

        Returns the number of callbacks run. Callbacks may schedule or cancel
        other events; anything they schedule that is already due also fires.
        """
        if now is None:
            now = self.clock.now()
            self._anchored = True
        elif not self._anchored:
            self._anchor(now)
        fired = 0
        while self._queue and self._queue[0][0] <= now:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = when
            if handle.interval is not None:
                handle.when = when + handle.interval
                self._push(handle)
            handle.callback()
            fired += 1
        self._now = max(self._now, now)
        return fired

    def advance(self, seconds: float) -> int:
        self._anchored = True
        return self.run_until(self._now + seconds)

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()
