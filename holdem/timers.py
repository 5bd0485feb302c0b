from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple

LOGGER = logging.getLogger("holdem.timers")

# Timer services hand out cancellable handles. Engine code never sleeps; it arms
# a callback and re-validates its target when the callback fires.


class InlineRunner:
    """Runs background jobs immediately on the caller's stack."""

    def run_in_background(self, job: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        on_done(job())


class ThreadRunner:
    """Runs background jobs on a worker pool; ``on_done`` is called from the worker thread."""

    def __init__(self, executor: Optional[Executor] = None) -> None:
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="equity")

    def run_in_background(self, job: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        future = self.executor.submit(job)

        def finished(fut: "Future[Any]") -> None:
            exc = fut.exception()
            if exc is not None:
                LOGGER.error("Background job failed: %r", exc)
                return
            on_done(fut.result())

        future.add_done_callback(finished)


class AsyncioTimers:
    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        self.loop = loop or asyncio.get_running_loop()
        self.executor = executor

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(0.0, delay_s), callback)

    def run_in_background(self, job: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        future = self.loop.run_in_executor(self.executor, job)

        def finished(fut: "asyncio.Future[Any]") -> None:
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                LOGGER.error("Background job failed: %r", exc)
                return
            on_done(fut.result())

        future.add_done_callback(finished)


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """Virtual clock for tests: nothing fires until ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, ManualHandle, Callable[[], None]]] = []
        self._counter = itertools.count()
        self.background: List[Tuple[Callable[[], Any], Callable[[Any], None]]] = []

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle()
        heapq.heappush(self._queue, (self.now + max(0.0, delay_s), next(self._counter), handle, callback))
        return handle

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward and fire everything due, including timers armed while firing."""
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = max(self.now, due)
            if handle.cancelled:
                continue
            callback()
            fired += 1
        self.now = target
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)

    def run_in_background(self, job: Callable[[], Any], on_done: Callable[[Any], None]) -> None:
        self.background.append((job, on_done))

    def run_background(self) -> int:
        ran = 0
        while self.background:
            job, on_done = self.background.pop(0)
            on_done(job())
            ran += 1
        return ran
