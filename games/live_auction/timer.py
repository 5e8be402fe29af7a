"""
Per-room bid window countdown.

A room owns exactly one BidWindow. start() always supersedes whatever
countdown was running, so two countdowns can never settle the same lot.
"""

from typing import Callable, Optional

from .game import AuctionConfig
from .scheduler import ScheduledTask, Scheduler


class BidWindow:
    """Counts down bid_window_ticks, reporting each tick, then expires."""

    def __init__(self, scheduler: Scheduler, key: str, config: AuctionConfig,
                 on_tick: Callable[[int], None], on_expire: Callable[[], None]):
        self.scheduler = scheduler
        self.key = key
        self.config = config
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.remaining: Optional[int] = None
        self.starts = 0
        self._task: Optional[ScheduledTask] = None

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.pending

    def start(self):
        """(Re)start the countdown from the full duration."""
        self.cancel()
        self.starts += 1
        self.remaining = self.config.bid_window_ticks
        self._schedule_tick()

    def cancel(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _schedule_tick(self):
        self._task = self.scheduler.call_later(self.key, self.config.tick_seconds, self._tick)

    def _tick(self):
        self._task = None
        self.remaining -= 1
        self.on_tick(self.remaining)
        if self._task is not None:
            # on_tick restarted the window
            return
        if self.remaining <= 0:
            self.remaining = None
            self.on_expire()
            return
        self._schedule_tick()
