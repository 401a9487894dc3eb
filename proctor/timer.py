"""
Exam countdown owned by one session state machine.

Remaining time is derived from the deadline (`started_at + time limit`),
not from counting ticks, so a resumed session continues the original
deadline instead of re-arming a fresh one.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from .models import utcnow

logger = logging.getLogger(__name__)


class Countdown:
    """Ticks while running and calls `on_expire` once when time is up."""

    def __init__(
        self,
        duration_seconds: int,
        on_expire: Callable[[], Awaitable[None]],
        interval: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_tick: Optional[Callable[[int], None]] = None
    ):
        self.duration_seconds = duration_seconds
        self.on_expire = on_expire
        self.interval = interval
        self.on_tick = on_tick
        self._clock = clock
        self._sleep = sleep

        self.deadline: Optional[datetime] = None
        self.running = False
        self.expired = False
        self._task: Optional[asyncio.Task] = None

    def start(self, started_at: datetime):
        """Arm the countdown against `started_at` and start ticking."""
        if self.running:
            return
        self.deadline = started_at + timedelta(seconds=self.duration_seconds)
        self.running = True
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self):
        """Stop ticking. Safe to call from inside the expiry callback."""
        self.running = False
        task = self._task
        self._task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def remaining_seconds(self) -> int:
        """Whole seconds left, never negative."""
        if self.deadline is None:
            return self.duration_seconds
        remaining = (self.deadline - self._clock()).total_seconds()
        return max(int(remaining), 0)

    def format_remaining(self) -> str:
        """Format remaining time as HH:MM:SS."""
        total_seconds = self.remaining_seconds()
        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        seconds = total_seconds % 60
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"

    async def check(self) -> bool:
        """
        Fire `on_expire` if the deadline has passed.

        Returns:
            True if this call fired the expiry
        """
        if not self.running or self.expired:
            return False

        remaining = self.remaining_seconds()
        if self.on_tick:
            self.on_tick(remaining)
        if remaining > 0:
            return False

        self.expired = True
        self.running = False
        logger.info("Countdown expired")
        await self.on_expire()
        return True

    async def _run(self):
        # An already-passed deadline (late resume) fires on the first check
        if await self.check():
            return
        while self.running:
            await self._sleep(self.interval)
            if await self.check():
                return
