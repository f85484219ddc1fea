"""
Schedulers - where chat timers actually run.

The chat engine never sleeps. It asks a Scheduler to call it back later
and keeps the returned handle so the call can be cancelled:

    handle = scheduler.call_later(1.5, callback)
    handle.cancel()

AsyncioScheduler runs callbacks on the running event loop.
ManualScheduler keeps a virtual millisecond clock that only moves when a
test advances it, so a 60 second follow-up timeout runs instantly:

    scheduler = ManualScheduler()
    controller.submit("hi")
    await scheduler.advance_async(12_000)
"""

import asyncio
import heapq
from itertools import count
from typing import Any, Callable, Coroutine, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...

    def now_ms(self) -> int: ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task": ...


class AsyncioScheduler:
    """Scheduler backed by the asyncio event loop (looked up at call time)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(delay_s, 0.0), callback)

    def now_ms(self) -> int:
        return int(self._get_loop().time() * 1000)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task":
        return self._get_loop().create_task(coro)


class ManualTimer:
    """Handle returned by ManualScheduler.call_later."""

    __slots__ = ("due_ms", "callback", "cancelled")

    def __init__(self, due_ms: int, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Deterministic scheduler with a virtual clock (milliseconds).

    Timers due at the same instant fire in the order they were scheduled.
    Callbacks may schedule more timers; those fire within the same
    advance() call if they fall due before its target time.
    """

    def __init__(self, start_ms: int = 0):
        self._now_ms = start_ms
        self._seq = count()
        self._queue: List[Tuple[int, int, ManualTimer]] = []

    def now_ms(self) -> int:
        return self._now_ms

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualTimer:
        due = self._now_ms + max(int(round(delay_s * 1000)), 0)
        timer = ManualTimer(due, callback)
        heapq.heappush(self._queue, (due, next(self._seq), timer))
        return timer

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "asyncio.Task":
        """Run a coroutine on the running loop (tests drive it via advance_async)."""
        return asyncio.get_running_loop().create_task(coro)

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, t in self._queue if not t.cancelled)

    def next_due_ms(self) -> Optional[int]:
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)

    def _pop_due(self, target_ms: int) -> Optional[ManualTimer]:
        self._drop_cancelled()
        if self._queue and self._queue[0][0] <= target_ms:
            _, _, timer = heapq.heappop(self._queue)
            self._now_ms = max(self._now_ms, timer.due_ms)
            return timer
        return None

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing due timers. Returns how many fired."""
        target = self._now_ms + ms
        fired = 0
        while True:
            timer = self._pop_due(target)
            if timer is None:
                break
            timer.callback()
            fired += 1
        self._now_ms = target
        return fired

    async def advance_async(self, ms: int, yields: int = 10) -> int:
        """
        Like advance(), but lets spawned tasks run after every timer.

        Must be awaited inside a running event loop. `yields` bounds how
        many loop iterations a task gets to finish between timers.
        """
        target = self._now_ms + ms
        fired = 0
        await self.settle(yields)
        while True:
            timer = self._pop_due(target)
            if timer is None:
                break
            timer.callback()
            fired += 1
            await self.settle(yields)
        self._now_ms = target
        return fired

    @staticmethod
    async def settle(yields: int = 10) -> None:
        for _ in range(yields):
            await asyncio.sleep(0)
