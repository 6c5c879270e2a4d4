"""
Daily collection scheduler.

Runs exactly one collection cycle per calendar day at a fixed local time
(00:30 by default), with catch-up when the process was not running then.

States:
- STOPPED: not started (or stopped); manual triggers still run
- IDLE: waiting for the next due time
- RUNNING: a cycle is in progress; further triggers are no-ops

Two timers are armed after the startup catch-up check:
- daily: one-shot at the next collection time, re-armed for the following day
- catch-up: every ``catchup_interval_seconds``, re-checks whether today's
  cycle has run (covers a process that stays up across midnight)

Both are driven by ``tick()``; ``run_forever()`` sleeps until the next due
time and ticks. Tests call ``tick()`` directly after advancing a fake clock.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from colorado_air_quality.collection.collector import CycleReport, HistoricalCollector
from colorado_air_quality.metrics import CollectionMetrics, get_metrics
from colorado_air_quality.utils.clock import Clock

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    """Scheduler states."""

    STOPPED = "stopped"
    IDLE = "idle"
    RUNNING = "running"


def next_collection_time(now: datetime, hour: int = 0, minute: int = 30) -> datetime:
    """Next occurrence of hour:minute strictly after ``now`` (later today or tomorrow)."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate = (now + timedelta(days=1)).replace(
            hour=hour, minute=minute, second=0, microsecond=0
        )
    return candidate


class CollectionScheduler:
    """Explicit state machine around the collector."""

    def __init__(
        self,
        collector: HistoricalCollector,
        clock: Clock,
        collection_hour: int = 0,
        collection_minute: int = 30,
        catchup_interval_seconds: float = 60 * 60,
        metrics: Optional[CollectionMetrics] = None,
    ):
        self._collector = collector
        self._clock = clock
        self._hour = collection_hour
        self._minute = collection_minute
        self._catchup_interval = timedelta(seconds=catchup_interval_seconds)
        self._metrics = metrics or get_metrics()

        self._state = SchedulerState.STOPPED
        self._started = False
        self._stop_event = asyncio.Event()
        self._next_collection_at: Optional[datetime] = None
        self._next_catchup_at: Optional[datetime] = None

        self.last_report: Optional[CycleReport] = None
        self.last_error: Optional[str] = None
        self.cycles_run = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._started

    @property
    def next_collection_at(self) -> datetime:
        if self._next_collection_at is not None:
            return self._next_collection_at
        return next_collection_time(self._clock.now(), self._hour, self._minute)

    @property
    def next_catchup_at(self) -> Optional[datetime]:
        return self._next_catchup_at

    def collection_due(self) -> Optional[str]:
        """
        Why a cycle should run now, or None if today's cycle already ran.
        """
        today = self._clock.today()
        last = self._collector.get_status().last_collection_date

        if last is None:
            return "no collection has run yet"
        if last == today:
            return None
        if last > today:
            logger.warning(
                "Last collection date %s is after today (%s), not collecting",
                last.isoformat(),
                today.isoformat(),
            )
            return None
        return f"last collection was {last.isoformat()}"

    async def start(self) -> None:
        """Catch-up check, then arm the daily and catch-up timers."""
        if self._started:
            return
        self._started = True
        self._stop_event.clear()
        logger.info(
            "Initializing automatic collection (daily at %02d:%02d)", self._hour, self._minute
        )

        # Idle only once the catch-up check has finished
        await self.check_and_collect(trigger="startup")
        if self._started:
            self._state = SchedulerState.IDLE

        now = self._clock.now()
        self._next_catchup_at = now + self._catchup_interval
        self._arm_daily(now)

    def stop(self) -> None:
        self._started = False
        self._stop_event.set()
        if self._state is not SchedulerState.RUNNING:
            self._state = SchedulerState.STOPPED
        logger.info("Automatic collection stopped")

    async def tick(self) -> None:
        """Fire whichever timers are due."""
        if not self._started:
            return
        now = self._clock.now()

        if self._next_collection_at is not None and now >= self._next_collection_at:
            logger.info("Scheduled collection time reached")
            self._arm_daily(now)
            await self.trigger("scheduled")

        if self._next_catchup_at is not None and now >= self._next_catchup_at:
            self._next_catchup_at = now + self._catchup_interval
            await self.check_and_collect(trigger="catchup")

    async def check_and_collect(self, trigger: str = "catchup") -> bool:
        reason = self.collection_due()
        if reason is None:
            logger.info("Data already collected today, skipping")
            return False
        logger.info("Triggering %s collection: %s", trigger, reason)
        return await self.trigger(trigger)

    async def trigger(self, reason: str = "manual") -> bool:
        """
        Run one cycle unless one is already running.

        Returns:
            True if a cycle ran to completion, False if skipped or failed.
        """
        if self._state is SchedulerState.RUNNING:
            logger.info("Collection already running, ignoring %s trigger", reason)
            self._metrics.record_cycle(reason, "skipped")
            return False

        self._state = SchedulerState.RUNNING
        try:
            self.last_report = await self._collector.run_cycle()
        except Exception as e:
            self.last_error = str(e)
            logger.exception("Collection cycle (%s) failed", reason)
            self._metrics.record_cycle(reason, "failed")
            return False
        finally:
            self._state = SchedulerState.IDLE if self._started else SchedulerState.STOPPED
            self.cycles_run += 1

        self.last_error = None
        self._metrics.record_cycle(reason, "completed")
        return True

    def seconds_until_next_wake(self) -> float:
        due = [t for t in (self._next_collection_at, self._next_catchup_at) if t is not None]
        if not due:
            return self._catchup_interval.total_seconds()
        return max(0.0, (min(due) - self._clock.now()).total_seconds())

    async def run_forever(self) -> None:
        """Production loop: start, then sleep until the next due time and tick."""
        await self.start()
        while self._started:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.seconds_until_next_wake()
                )
            except asyncio.TimeoutError:
                await self.tick()

    def _arm_daily(self, now: datetime) -> None:
        self._next_collection_at = next_collection_time(now, self._hour, self._minute)
        minutes = (self._next_collection_at - now).total_seconds() / 60
        logger.info(
            "Next collection scheduled for %s (in %d minutes)",
            self._next_collection_at.isoformat(timespec="minutes"),
            round(minutes),
        )
