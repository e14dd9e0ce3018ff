"""
Cron helpers for the snapshot schedule.

Expressions use the five standard fields and are parsed with Celery's
``crontab`` so that the beat schedule and the "next snapshot" shown to
users always agree. As in Celery, day-of-month and day-of-week must both
match.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from celery.schedules import ParseException, crontab

from src.utils import utcnow


logger = logging.getLogger(__name__)

# Four years covers every satisfiable expression, including Feb 29
SEARCH_HORIZON = timedelta(days=366 * 4)


def parse_cron(expression: str) -> crontab:
    """Build a Celery crontab from a 5-field cron expression."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Invalid cron expression: {expression!r}")

    minute, hour, day_of_month, month_of_year, day_of_week = fields
    try:
        return crontab(
            minute=minute,
            hour=hour,
            day_of_month=day_of_month,
            month_of_year=month_of_year,
            day_of_week=day_of_week,
        )
    except (ValueError, ParseException) as e:
        raise ValueError(
            f"Invalid cron expression: {expression!r} ({e})"
        ) from e


def runs_per_day(expression: str) -> int:
    """Number of times the schedule fires on a day it is active."""
    schedule = parse_cron(expression)
    return len(schedule.hour) * len(schedule.minute)


def warn_if_subdaily(expression: str) -> bool:
    """
    Log a warning when the schedule fires more than once a day.

    Users are snapshotted at most once per UTC day, so later fires on the
    same day only accrue for users skipped by the earlier ones.

    Returns:
        bool: Whether the schedule fires more than once a day
    """
    fires = runs_per_day(expression)
    if fires <= 1:
        return False

    logger.warning(
        "Snapshot cron %r fires %s times a day, but each user is "
        "snapshotted and rewarded at most once per UTC day",
        expression,
        fires,
    )
    return True


def _day_matches(schedule: crontab, moment: datetime) -> bool:
    # crontab counts weekdays from Sunday=0, Python from Monday=0
    weekday = (moment.weekday() + 1) % 7
    return (
        moment.day in schedule.day_of_month
        and weekday in schedule.day_of_week
    )


def next_run_after(
    expression: str, now: Optional[datetime] = None
) -> datetime:
    """
    Compute the first fire time strictly after ``now``.

    Args:
        expression: 5-field cron expression, evaluated in UTC
        now: Reference time (naive UTC), defaults to the current time

    Returns:
        datetime: Next fire time (naive UTC)
    """
    schedule = parse_cron(expression)
    now = now or utcnow()
    candidate = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    horizon = candidate + SEARCH_HORIZON

    while candidate < horizon:
        if candidate.month not in schedule.month_of_year:
            year = candidate.year + candidate.month // 12
            month = candidate.month % 12 + 1
            candidate = candidate.replace(
                year=year, month=month, day=1, hour=0, minute=0
            )
            continue

        if not _day_matches(schedule, candidate):
            candidate = candidate.replace(hour=0, minute=0) + timedelta(
                days=1
            )
            continue

        if candidate.hour not in schedule.hour:
            candidate = candidate.replace(minute=0) + timedelta(hours=1)
            continue

        if candidate.minute not in schedule.minute:
            candidate += timedelta(minutes=1)
            continue

        return candidate

    raise ValueError(f"Cron expression never fires: {expression!r}")


def describe_interval(expression: str) -> str:
    """Human readable interval for the snapshot schedule."""
    fields = expression.split()
    minute, hour, rest = fields[0], fields[1], fields[2:]

    if minute.isdigit() and hour.isdigit() and rest == ["*", "*", "*"]:
        return "24 hours"
    if minute.isdigit() and hour == "*" and rest == ["*", "*", "*"]:
        return "1 hour"
    return f"cron: {expression}"
