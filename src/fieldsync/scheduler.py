"""
Cancelable single-shot timers for debounce windows.

The synchronization core never sleeps or polls. It asks a Scheduler to call
it back after a delay and keeps the returned TimerHandle so the callback can
be cancelled. Implementations:

- ManualScheduler: virtual clock advanced explicitly (headless hosts, tests)
- AsyncioScheduler: asyncio event loop
- QtTimerScheduler: Qt event loop (see fieldsync.qt)

All delays are in milliseconds.
"""

from abc import ABC, abstractmethod
import asyncio
import heapq
import itertools
import logging
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """A scheduled, not yet fired callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer. Cancelling an inactive timer is a no-op."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is still due to fire."""


class Scheduler(ABC):
    """Source of cancelable single-shot timers."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """Schedule callback to run once after delay_ms milliseconds."""


class _ManualTimerHandle(TimerHandle):

    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self._active = True

    def cancel(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def fire(self) -> None:
        self._active = False
        self.callback()


class ManualScheduler(Scheduler):
    """Scheduler driven by a virtual clock.

    Time only moves when advance() or advance_to() is called. Timers due at
    the same instant fire in the order they were scheduled. A timer
    scheduled by a firing callback fires within the same advance() if it is
    due before the target time.

    Example:
        scheduler = ManualScheduler()
        scheduler.call_later(250, commit)
        scheduler.advance(249)   # nothing
        scheduler.advance(1)     # commit() runs at t=250
    """

    def __init__(self, start: float = 0):
        self._now = start
        self._queue: List[Tuple[float, int, _ManualTimerHandle]] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> float:
        """Current virtual time in milliseconds."""
        return self._now

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        if delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
        handle = _ManualTimerHandle(self._now + delay_ms, callback)
        heapq.heappush(self._queue, (handle.due, next(self._sequence), handle))
        return handle

    def pending_count(self) -> int:
        """Number of timers still due to fire."""
        return sum(1 for _, _, handle in self._queue if handle.active)

    def next_due(self) -> Optional[float]:
        """Time of the earliest active timer, or None."""
        self._discard_cancelled()
        return self._queue[0][0] if self._queue else None

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward by delta_ms, firing due timers.

        Returns:
            Number of callbacks fired
        """
        if delta_ms < 0:
            raise ValueError(f"Cannot move the clock backwards (delta={delta_ms})")
        return self.advance_to(self._now + delta_ms)

    def advance_to(self, target: float) -> int:
        """Move the clock to an absolute time, firing due timers.

        Returns:
            Number of callbacks fired
        """
        if target < self._now:
            raise ValueError(f"Cannot move the clock backwards ({self._now} -> {target})")
        fired = 0
        while True:
            self._discard_cancelled()
            if not self._queue or self._queue[0][0] > target:
                break
            due, _, handle = heapq.heappop(self._queue)
            self._now = due
            handle.fire()
            fired += 1
        self._now = target
        return fired

    def run_pending(self) -> int:
        """Fire every active timer, moving the clock as far as needed."""
        fired = 0
        while True:
            due = self.next_due()
            if due is None:
                return fired
            fired += self.advance_to(due)

    def _discard_cancelled(self) -> None:
        while self._queue and not self._queue[0][2].active:
            heapq.heappop(self._queue)


class _AsyncioTimerHandle(TimerHandle):

    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle
        self._fired = False

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def active(self) -> bool:
        return not (self._fired or self._handle.cancelled())

    def _mark_fired(self) -> None:
        self._fired = True


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    Args:
        loop: Loop to schedule on. Defaults to the running loop at call time.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        wrapper: Optional[_AsyncioTimerHandle] = None

        def _run():
            wrapper._mark_fired()
            callback()

        wrapper = _AsyncioTimerHandle(loop.call_later(delay_ms / 1000.0, _run))
        return wrapper
