"""
Daily Scheduler — the timer tick for reminder passes.

Runs as a background task inside the FastAPI lifespan and fires the
runner once per day at `schedule.run_at` (UTC+9).
"""
from __future__ import annotations

import asyncio
import structlog
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable, Optional

from utils.clock import JST, Clock, SystemClock

logger = structlog.get_logger()

Tick = Callable[[], Awaitable[object]]


def parse_run_at(value: str) -> time:
    """Parse 'HH:MM' into a time of day."""
    try:
        hour, minute = (int(part) for part in value.strip().split(":"))
        return time(hour, minute)
    except (ValueError, TypeError) as e:
        raise ValueError(f"invalid run_at {value!r}, expected HH:MM") from e


def seconds_until_next_run(now: datetime, run_at: time) -> float:
    """Seconds from `now` to the next occurrence of run_at in UTC+9 (never 0)."""
    local = now.astimezone(JST)
    next_run = local.replace(hour=run_at.hour, minute=run_at.minute, second=0, microsecond=0)
    if next_run <= local:
        next_run += timedelta(days=1)
    return (next_run - local).total_seconds()


class DailyScheduler:
    """
    Fires `tick` once a day.

    A failing tick is logged and the loop keeps going; the next attempt is
    the following day.
    """

    def __init__(
        self,
        tick: Tick,
        run_at: str = "08:00",
        clock: Optional[Clock] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self._tick = tick
        self.run_at = parse_run_at(run_at)
        self.clock = clock or SystemClock()
        self._sleep = sleep or asyncio.sleep
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the scheduling loop as a background task."""
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="daily_reminder_scheduler")
        logger.info("scheduler_started", run_at=self.run_at.strftime("%H:%M"))

    async def stop(self) -> None:
        """Gracefully stop the scheduler."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("scheduler_stopped")

    def next_delay(self) -> float:
        return seconds_until_next_run(self.clock.now(), self.run_at)

    async def _loop(self) -> None:
        while self._running:
            delay = self.next_delay()
            logger.debug("scheduler_waiting", seconds=round(delay, 1))
            await self._sleep(delay)
            if not self._running:
                break
            await self.run_tick()

    async def run_tick(self) -> None:
        try:
            await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("scheduled_run_failed", error=str(e))
