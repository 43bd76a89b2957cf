"""
Cooperative, single-threaded scheduling: timers, animation frames, debounce.

All timeline work runs as callbacks interleaved on one queue. Two schedulers
implement the :class:`Scheduler` protocol:

- :class:`ManualScheduler`  : a virtual clock advanced explicitly. Tests and
  one-shot CLI renders use it to make debounce windows, transition delays and
  poll intervals deterministic.
- :class:`AsyncioScheduler` : delegates to an asyncio event loop for live use.

A callback that raises is logged and the queue keeps going, the way a browser
event loop survives a throwing handler.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Generic, Protocol, TypeVar

from castimeline.core.settings import get_logger

T = TypeVar("T")

FRAME_SECONDS = 1 / 60

logger = get_logger("castimeline.scheduler")


class TimerHandle:
    """Cancellable reference to a scheduled callback."""

    __slots__ = ("callback", "due", "interval", "cancelled", "_inner")

    def __init__(
        self,
        callback: Callable[[], None],
        due: float,
        interval: float | None = None,
    ) -> None:
        self.callback = callback
        self.due = due
        self.interval = interval
        self.cancelled = False
        self._inner: asyncio.TimerHandle | None = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._inner is not None:
            self._inner.cancel()
            self._inner = None


class Scheduler(Protocol):
    """Deferred-execution surface the timeline depends on."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle: ...


def _run_safely(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback %r failed", callback)


class ManualScheduler:
    """Virtual-time scheduler driven by :meth:`advance`."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, handle: TimerHandle) -> TimerHandle:
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        return handle

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._push(TimerHandle(callback, self._now + max(0.0, delay)))

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._push(TimerHandle(callback, self._now + interval, interval))

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        return self.call_later(FRAME_SECONDS, callback)

    def pending(self) -> int:
        """Number of live (non-cancelled) timers."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that falls due.

        Callbacks run in due order (FIFO for equal due times); timers scheduled
        by a callback run in the same call if they fall inside the window.
        Returns the number of callbacks executed.
        """
        target = self._now + max(0.0, seconds)
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if handle.interval is not None:
                handle.due = due + handle.interval
                self._push(handle)
            _run_safely(handle.callback)
            ran += 1
        self._now = target
        return ran

    def run_frame(self) -> int:
        """Advance by one animation frame."""
        return self.advance(FRAME_SECONDS)


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(callback, self.now() + delay)

        def fire() -> None:
            handle._inner = None
            if not handle.cancelled:
                _run_safely(callback)

        handle._inner = self._loop.call_later(max(0.0, delay), fire)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        handle = TimerHandle(callback, self.now() + interval, interval)

        def tick() -> None:
            if handle.cancelled:
                return
            handle.due = self.now() + interval
            handle._inner = self._loop.call_later(interval, tick)
            _run_safely(callback)

        handle._inner = self._loop.call_later(interval, tick)
        return handle

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        return self.call_later(FRAME_SECONDS, callback)


class Debouncer(Generic[T]):
    """Run ``callback`` with the last value once input has been quiet for ``delay``."""

    def __init__(self, scheduler: Scheduler, delay: float, callback: Callable[[T], None]) -> None:
        self._scheduler = scheduler
        self.delay = delay
        self._callback = callback
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def __call__(self, value: T) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            self._callback(value)

        self._handle = self._scheduler.call_later(self.delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


__all__ = [
    "AsyncioScheduler",
    "Debouncer",
    "FRAME_SECONDS",
    "ManualScheduler",
    "Scheduler",
    "TimerHandle",
]
