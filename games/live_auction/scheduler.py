"""
Delayed-callback scheduling keyed by room code.

Sessions never call asyncio directly. They ask a Scheduler for
call_later(key, delay, callback) and keep the returned ScheduledTask if they
may need to cancel it. cancel_all(key) drops everything a room still has
pending, which is how a concluded or evicted room goes quiet.

AsyncioScheduler runs on the server's event loop. VirtualScheduler keeps its
own clock and only moves when advance() is called, for tests and headless
simulations.
"""

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set


class ScheduledTask:
    """Handle for one pending callback."""

    def __init__(self, key: str, due: float, callback: Callable, args: tuple,
                 scheduler: "Scheduler" = None):
        self.key = key
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.done = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._scheduler = scheduler

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def cancel(self):
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
        if self._scheduler is not None:
            self._scheduler._forget(self)

    def run(self):
        if not self.pending:
            return
        self.done = True
        self.callback(*self.args)


class Scheduler(ABC):
    """Abstract scheduler. Subclasses decide what "later" means."""

    def __init__(self):
        self._tasks: Dict[str, Set[ScheduledTask]] = defaultdict(set)

    @abstractmethod
    def now(self) -> float:
        """Current time on this scheduler's clock, in seconds."""
        pass

    @abstractmethod
    def _arm(self, task: ScheduledTask, delay: float):
        pass

    def call_later(self, key: str, delay: float, callback: Callable, *args) -> ScheduledTask:
        """Run callback(*args) after delay seconds unless cancelled first."""
        task = ScheduledTask(key, self.now() + max(delay, 0.0), callback, args, self)
        self._tasks[key].add(task)
        self._arm(task, max(delay, 0.0))
        return task

    def cancel_all(self, key: str) -> int:
        """Cancel every pending task for key. Returns how many were cancelled."""
        tasks = self._tasks.pop(key, set())
        count = 0
        for task in tasks:
            if task.pending:
                task.cancel()
                count += 1
        return count

    def pending_count(self, key: str) -> int:
        return sum(1 for task in self._tasks.get(key, ()) if task.pending)

    def tracked_count(self, key: str) -> int:
        """Tasks still held for key, pending or not."""
        return len(self._tasks.get(key, ()))

    def _forget(self, task: ScheduledTask):
        tasks = self._tasks.get(task.key)
        if tasks is not None:
            tasks.discard(task)
            if not tasks:
                del self._tasks[task.key]

    def _fire(self, task: ScheduledTask):
        self._forget(task)
        task.run()


class AsyncioScheduler(Scheduler):
    """Schedules onto the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop = None):
        super().__init__()
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def _arm(self, task: ScheduledTask, delay: float):
        task._handle = self.loop.call_later(delay, self._fire, task)


class VirtualScheduler(Scheduler):
    """Deterministic scheduler driven by advance()."""

    def __init__(self, start: float = 0.0):
        super().__init__()
        self._now = start
        self._queue: List[tuple] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def _arm(self, task: ScheduledTask, delay: float):
        heapq.heappush(self._queue, (task.due, next(self._seq), task))

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every task that falls due on the way.

        Tasks scheduled by callbacks during the advance also run if they fall
        inside the window. Returns the number of callbacks run.
        """
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            if not task.pending:
                continue
            self._now = max(self._now, due)
            self._fire(task)
            ran += 1
        self._now = target
        return ran

    def run_until_idle(self, limit: float = 3600.0) -> int:
        """Advance until nothing is pending or limit seconds have passed."""
        ran = 0
        deadline = self._now + limit
        while self._queue and self._now < deadline:
            due = self._queue[0][0]
            if due > deadline:
                break
            ran += self.advance(max(due - self._now, 0.0))
        return ran
