"""Tests for the recurring backup scheduler."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from mongodb_s3_backup.cron import ScheduleSpec
from mongodb_s3_backup.models import RunOutcome
from mongodb_s3_backup.scheduler import Scheduler

ZONE = ZoneInfo("America/New_York")


def _outcome(success=True, error=None, failed_step=None):
    return RunOutcome(
        database="app",
        success=success,
        archive_name="app.tar.gz",
        started_at=datetime.now(),
        error=error,
        failed_step=failed_step,
    )


class FakeClock:
    """Manual clock; the fake sleep advances it."""

    def __init__(self, start: datetime):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        utc = self.now.astimezone(timezone.utc) + timedelta(seconds=seconds)
        self.now = utc.astimezone(self.now.tzinfo)
        await asyncio.sleep(0)


class TestTrigger:
    @pytest.mark.asyncio
    async def test_run_now_returns_outcome(self):
        async def job():
            return _outcome()

        scheduler = Scheduler(job, name="app")
        outcome = await scheduler.run_now()

        assert outcome.success
        assert scheduler.run_count == 1
        assert scheduler.last_outcome is outcome

    @pytest.mark.asyncio
    async def test_overlapping_trigger_is_skipped(self):
        release = asyncio.Event()
        started = 0

        async def job():
            nonlocal started
            started += 1
            await release.wait()
            return _outcome()

        scheduler = Scheduler(job, name="app")
        first = scheduler.trigger()
        await asyncio.sleep(0)

        assert scheduler.run_in_progress
        assert scheduler.trigger() is None
        assert await scheduler.run_now() is None
        assert scheduler.skipped_count == 2

        release.set()
        await first
        assert started == 1
        assert not scheduler.run_in_progress

        # Once the previous run finished a new one may start
        assert await scheduler.run_now() is not None
        assert started == 2

    @pytest.mark.asyncio
    async def test_failed_run_is_logged_not_raised(self, caplog):
        async def job():
            return _outcome(success=False, error="Mongodump exited with code 1", failed_step="dump")

        scheduler = Scheduler(job, name="app")
        with caplog.at_level(logging.DEBUG, logger="mongodb_s3_backup.scheduler"):
            outcome = await scheduler.run_now()

        assert not outcome.success
        assert "Backup failed at dump" in caplog.text
        assert "'failed_step': 'dump'" in caplog.text
        assert "'error': 'Mongodump exited with code 1'" in caplog.text

    @pytest.mark.asyncio
    async def test_crashing_job_does_not_propagate(self, caplog):
        async def job():
            raise RuntimeError("boom")

        scheduler = Scheduler(job, name="app")

        assert await scheduler.run_now() is None
        assert scheduler.run_count == 1
        assert "Backup crashed" in caplog.text


class TestLoop:
    @pytest.mark.asyncio
    async def test_fires_on_each_match(self):
        clock = FakeClock(datetime(2024, 1, 15, 23, 59, 30, tzinfo=ZONE))
        fired = []

        async def job():
            fired.append(True)
            return _outcome()

        scheduler = Scheduler(job, ScheduleSpec("0 0 * * *", "America/New_York"), clock=clock, sleep=clock.sleep)
        await scheduler.start()
        assert scheduler.is_running
        assert scheduler.next_run == datetime(2024, 1, 16, 0, 0, tzinfo=ZONE)

        for _ in range(20):
            await asyncio.sleep(0)
            if len(fired) >= 2:
                break
        await scheduler.stop()

        assert len(fired) >= 2
        assert clock.sleeps[:2] == [30, 86400]
        assert not scheduler.is_running
        assert scheduler.next_run is None

    @pytest.mark.asyncio
    async def test_loop_survives_failed_runs(self):
        clock = FakeClock(datetime(2024, 1, 15, 12, 0, tzinfo=ZONE))
        calls = 0

        async def job():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("first run explodes")
            return _outcome(success=False, error="upload failed", failed_step="upload")

        scheduler = Scheduler(job, ScheduleSpec("* * * * *", "America/New_York"), clock=clock, sleep=clock.sleep)
        await scheduler.start()
        for _ in range(20):
            await asyncio.sleep(0)
            if calls >= 3:
                break
        await scheduler.stop()

        assert calls >= 3

    @pytest.mark.asyncio
    async def test_stop_cancels_in_flight_run(self):
        clock = FakeClock(datetime(2024, 1, 15, 12, 0, 59, tzinfo=ZONE))
        cancelled = asyncio.Event()

        async def job():
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        scheduler = Scheduler(job, ScheduleSpec("* * * * *", "America/New_York"), clock=clock, sleep=clock.sleep)
        await scheduler.start()
        for _ in range(10):
            await asyncio.sleep(0)
            if scheduler.run_in_progress:
                break
        await asyncio.sleep(0)

        assert scheduler.run_in_progress
        await scheduler.stop()

        assert cancelled.is_set()
        assert not scheduler.run_in_progress

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        async def job():
            return _outcome()

        scheduler = Scheduler(job)
        await scheduler.start()
        first_task = scheduler._loop_task
        await scheduler.start()

        assert scheduler._loop_task is first_task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_sleeps_real_time_across_spring_forward(self):
        # 2024-03-10 02:00 EST jumps to 03:00 EDT: 01:00 -> 03:30 is 90 real minutes
        clock = FakeClock(datetime(2024, 3, 10, 1, 0, tzinfo=ZONE))
        fired = []

        async def job():
            fired.append(True)
            return _outcome()

        scheduler = Scheduler(job, ScheduleSpec("30 3 * * *", "America/New_York"), clock=clock, sleep=clock.sleep)
        await scheduler.start()
        for _ in range(10):
            await asyncio.sleep(0)
            if fired:
                break
        await scheduler.stop()

        assert fired
        assert clock.sleeps[:2] == [5400, 86400]
