"""Cron expressions and schedule resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from mongodb_s3_backup.config import CronSettings

logger = logging.getLogger(__name__)

DEFAULT_CRONTAB = "0 0 * * *"
DEFAULT_TIMEZONE = "America/New_York"


class CronParser:
    """Five-field cron expression parser.

    Supports: minute hour day_of_month month day_of_week
    Examples:
        "0 0 * * *"       - Midnight daily
        "30 2 * * *"      - 02:30 daily
        "0 3 * * 1-5"     - 03:00 on weekdays
        "*/15 * * * *"    - Every 15 minutes
        "0 4 1 * *"       - First of every month
    Day of week 0 and 7 are Sunday.
    """

    @staticmethod
    def parse(expression: str) -> tuple[set[int], set[int], set[int], set[int], set[int]]:
        """Parse a cron expression.

        Args:
            expression: Cron expression (5 fields)

        Returns:
            Tuple of (minutes, hours, days, months, weekdays) as sets

        Raises:
            ValueError: If the expression is malformed or out of range
        """
        parts = expression.strip().split()
        if len(parts) != 5:
            raise ValueError(f"Expected 5 cron fields, got {len(parts)}: {expression!r}")

        weekdays = CronParser._parse_field(parts[4], 0, 7)
        if 7 in weekdays:
            weekdays = (weekdays - {7}) | {0}

        return (
            CronParser._parse_field(parts[0], 0, 59),  # minutes
            CronParser._parse_field(parts[1], 0, 23),  # hours
            CronParser._parse_field(parts[2], 1, 31),  # days
            CronParser._parse_field(parts[3], 1, 12),  # months
            weekdays,  # 0=Sunday
        )

    @staticmethod
    def _parse_field(field: str, min_val: int, max_val: int) -> set[int]:
        """Parse a single cron field (*, */N, N, N-M, N-M/S, N,M,...)."""
        result: set[int] = set()

        for part in field.split(","):
            step = 1
            if "/" in part:
                part, step_str = part.split("/", 1)
                step = int(step_str)
                if step < 1:
                    raise ValueError(f"Invalid step in cron field: {field!r}")

            if part == "*":
                start, end = min_val, max_val
            elif "-" in part:
                start_str, end_str = part.split("-", 1)
                start, end = int(start_str), int(end_str)
            else:
                start = end = int(part)

            if start < min_val or end > max_val or start > end:
                raise ValueError(f"Cron field {field!r} out of range {min_val}-{max_val}")

            result.update(range(start, end + 1, step))

        return result

    @staticmethod
    def is_valid(expression: str) -> bool:
        try:
            CronParser.parse(expression)
        except ValueError:
            return False
        return True

    @staticmethod
    def next_run(expression: str, after: datetime | None = None, tz: str | ZoneInfo | None = None) -> datetime:
        """Calculate the next run time for a cron expression.

        Args:
            expression: Cron expression
            after: Start searching after this time (defaults to now)
            tz: Timezone the expression is evaluated in

        Returns:
            Next matching datetime, timezone-aware when tz is given
        """
        minutes, hours, days, months, weekdays = CronParser.parse(expression)
        day_restricted = days != set(range(1, 32))
        weekday_restricted = weekdays != set(range(7))

        zone = ZoneInfo(tz) if isinstance(tz, str) else tz
        if after is None:
            after = datetime.now(zone)
        elif zone is not None:
            after = after.astimezone(zone) if after.tzinfo else after.replace(tzinfo=zone)

        # Start from the next minute
        candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)

        # Search up to 1 year ahead
        max_iterations = 527040  # Minutes in a leap year
        for _ in range(max_iterations):
            cron_weekday = (candidate.weekday() + 1) % 7  # Python: 0=Monday
            day_ok = candidate.day in days
            weekday_ok = cron_weekday in weekdays
            if day_restricted and weekday_restricted:
                date_ok = day_ok or weekday_ok
            else:
                date_ok = day_ok and weekday_ok

            if (
                date_ok
                and candidate.month in months
                and candidate.hour in hours
                and candidate.minute in minutes
            ):
                return candidate
            candidate += timedelta(minutes=1)

        raise ValueError(f"Could not find next run time for: {expression}")


@dataclass(frozen=True)
class ScheduleSpec:
    """Effective cron expression and the timezone it is evaluated in."""

    expression: str = DEFAULT_CRONTAB
    timezone: str = DEFAULT_TIMEZONE

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def next_run(self, after: datetime | None = None) -> datetime:
        return CronParser.next_run(self.expression, after, self.zone)


def crontab_from_time(time_str: str) -> str:
    """Translate a daily ``HH:MM`` into ``"M H * * *"``."""
    hour_str, minute_str = time_str.strip().split(":")
    return f"{int(minute_str)} {int(hour_str)} * * *"


def resolve_schedule(cron: CronSettings | None) -> ScheduleSpec:
    """Pick the effective schedule: crontab, then daily time, then the default.

    Raises:
        ValueError: If the resulting expression is not valid cron
    """
    expression = DEFAULT_CRONTAB
    timezone = DEFAULT_TIMEZONE

    if cron is not None:
        if cron.crontab:
            expression = cron.crontab.strip()
        elif cron.time:
            expression = crontab_from_time(cron.time)

        if cron.timezone:
            timezone = cron.timezone
            logger.info(f'Overriding default timezone with "{timezone}"')

    CronParser.parse(expression)
    return ScheduleSpec(expression=expression, timezone=timezone)
