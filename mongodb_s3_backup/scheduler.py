"""Recurring backup scheduler.

Fires a backup job on every match of a cron expression, evaluated in the
configured timezone. Runs share a working directory, so a trigger that
fires while the previous run is still in progress is skipped rather than
started alongside it.

Usage:
    scheduler = Scheduler(pipeline.run, resolve_schedule(settings.cron), name="app")
    await scheduler.start()
    ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from mongodb_s3_backup.cron import ScheduleSpec
from mongodb_s3_backup.models import RunOutcome

logger = logging.getLogger(__name__)


def _seconds_between(start: datetime, end: datetime) -> float:
    # Wall-clock subtraction within one zone ignores DST shifts
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()


class Scheduler:
    """Owns the timer loop and the in-flight run for one backup job."""

    def __init__(
        self,
        job: Callable[[], Awaitable[RunOutcome]],
        schedule: ScheduleSpec | None = None,
        name: str = "backup",
        *,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            job: Coroutine function performing one run
            schedule: When to run (defaults to midnight America/New_York)
            name: Label used in log messages
            clock: Returns the current time (defaults to now in the schedule's zone)
            sleep: Awaitable sleep, replaceable in tests
        """
        self._job = job
        self.schedule = schedule or ScheduleSpec()
        self.name = name
        self._clock = clock or (lambda: datetime.now(self.schedule.zone))
        self._sleep = sleep

        self._loop_task: asyncio.Task[None] | None = None
        self._current: asyncio.Task[RunOutcome | None] | None = None
        self._running = False

        self.next_run: datetime | None = None
        self.last_outcome: RunOutcome | None = None
        self.run_count = 0
        self.skipped_count = 0

    @property
    def is_running(self) -> bool:
        """True while the timer loop is active."""
        return self._running

    @property
    def run_in_progress(self) -> bool:
        return self._current is not None and not self._current.done()

    async def start(self) -> None:
        """Start the timer loop. Returns immediately."""
        if self._running:
            return

        self._running = True
        self.next_run = self.schedule.next_run(self._clock())
        self._loop_task = asyncio.create_task(self._scheduler_loop())
        logger.info(
            f"[{self.name}] Scheduled ({self.schedule.expression}, {self.schedule.timezone}), "
            f"next run at {self.next_run.strftime('%Y-%m-%d %H:%M %Z')}"
        )

    async def stop(self) -> None:
        """Stop the timer loop and cancel an in-flight run."""
        self._running = False

        if self._loop_task:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self.run_in_progress:
            logger.warning(f"[{self.name}] Cancelling in-flight backup")
            self._current.cancel()
            try:
                await self._current
            except asyncio.CancelledError:
                pass
        self._current = None
        self.next_run = None

        logger.info(f"[{self.name}] Scheduler stopped")

    def trigger(self) -> asyncio.Task[RunOutcome | None] | None:
        """Start a run in the background.

        Returns the run's task, or None if the previous run is still active.
        """
        if self.run_in_progress:
            self.skipped_count += 1
            logger.warning(f"[{self.name}] Previous backup still running, skipping this trigger")
            return None

        self._current = asyncio.create_task(self._execute())
        return self._current

    async def run_now(self) -> RunOutcome | None:
        """Run immediately and wait for the outcome (None if skipped or crashed)."""
        task = self.trigger()
        if task is None:
            return None
        return await task

    async def _execute(self) -> RunOutcome | None:
        start = datetime.now()
        logger.info(f"[{self.name}] Cron trigger: starting backup")

        try:
            outcome = await self._job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"[{self.name}] Backup crashed")
            return None
        finally:
            self.run_count += 1

        self.last_outcome = outcome
        logger.debug(f"[{self.name}] Outcome: {outcome.to_dict()}")
        duration_ms = int((datetime.now() - start).total_seconds() * 1000)
        if outcome.success:
            logger.info(f"[{self.name}] Backup completed in {duration_ms}ms")
        else:
            logger.warning(f"[{self.name}] Backup failed at {outcome.failed_step}: {outcome.error}")
        return outcome

    async def _scheduler_loop(self) -> None:
        while self._running:
            target = self.next_run or self.schedule.next_run(self._clock())
            self.next_run = target

            wait_seconds = _seconds_between(self._clock(), target)
            if wait_seconds > 0:
                await self._sleep(wait_seconds)

            now = self._clock()
            if _seconds_between(now, target) > 0:
                # Woke early; sleep the remainder
                continue

            self.trigger()
            self.next_run = self.schedule.next_run(now)
            logger.info(f"[{self.name}] Next backup at {self.next_run.strftime('%Y-%m-%d %H:%M %Z')}")
