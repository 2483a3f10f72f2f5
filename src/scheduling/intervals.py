"""
Interval and cron-like schedule arithmetic for recurring workflows.

Intervals come from a small fixed table of ISO-8601-duration-like tokens.
Months and years are fixed day counts (a "quarter" is 90 days), so a
quarterly workflow drifts from calendar quarters over many cycles.

Schedules are 5-field ``minute hour dayOfMonth month dayOfWeek`` strings.
Only numeric fields and a ``*/N`` month step are honoured; every other
field is left unconstrained.
"""

import calendar
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from src.config import settings

logger = logging.getLogger(__name__)

INTERVAL_TABLE: dict[str, timedelta] = {
    "P1D": timedelta(days=1),
    "P1W": timedelta(weeks=1),
    "P2W": timedelta(weeks=2),
    "P1M": timedelta(days=30),
    "P3M": timedelta(days=90),
    "P6M": timedelta(days=180),
    "P1Y": timedelta(days=365),
    # Sub-day tokens for demos
    "PT1M": timedelta(minutes=1),
    "PT5M": timedelta(minutes=5),
    "PT1H": timedelta(hours=1),
}

INTERVAL_LABELS: dict[str, str] = {
    "P1D": "daily",
    "P1W": "weekly",
    "P2W": "biweekly",
    "P1M": "monthly",
    "P3M": "quarterly",
    "P6M": "semiannual",
    "P1Y": "yearly",
    "PT1M": "every minute",
    "PT5M": "every 5 minutes",
    "PT1H": "every hour",
}

DEFAULT_INTERVAL = "P3M"
CRON_FIELD_COUNT = 5


def _fallback_period() -> timedelta:
    return timedelta(days=settings.scheduler.fallback_period_days)


def parse_interval(token: str) -> timedelta:
    """Translate an interval token into a duration.

    Unknown tokens fall back to the 3-month period with a warning.
    """
    period = INTERVAL_TABLE.get((token or "").strip().upper())
    if period is not None:
        return period
    logger.warning("Unknown interval %r, defaulting to %s", token, DEFAULT_INTERVAL)
    return INTERVAL_TABLE[DEFAULT_INTERVAL]


def interval_to_ms(token: str) -> int:
    """Interval length in whole milliseconds."""
    return int(parse_interval(token).total_seconds() * 1000)


def is_known_interval(token: Optional[str]) -> bool:
    return bool(token) and token.strip().upper() in INTERVAL_TABLE


def interval_to_human(token: str) -> str:
    """Readable label for an interval token; unknown tokens pass through."""
    return INTERVAL_LABELS.get((token or "").strip().upper(), token)


def _add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    index = value.month - 1 + months
    year = value.year + index // 12
    month = index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _set_day(value: datetime, day: int) -> datetime:
    last = calendar.monthrange(value.year, value.month)[1]
    return value.replace(day=max(1, min(day, last)))


def _month_step(field: str) -> Optional[int]:
    """Return N for a ``*/N`` month field, None when the field has no step.

    Raises:
        ValueError: When the step is not a positive integer.
    """
    if not field.startswith("*/"):
        return None
    step = int(field[2:])
    if step < 1:
        raise ValueError(f"month step must be >= 1, got {step}")
    return step


def next_run_from_cron(schedule: str, from_time: datetime) -> datetime:
    """Compute the next occurrence of ``schedule`` strictly after ``from_time``.

    Malformed schedules fall back to ``from_time`` plus the fallback period
    with a warning instead of raising.
    """
    parts = (schedule or "").split()
    if len(parts) != CRON_FIELD_COUNT:
        logger.warning("Invalid schedule %r, defaulting to %s days", schedule,
                       settings.scheduler.fallback_period_days)
        return from_time + _fallback_period()

    minute, hour, day_of_month, month, _day_of_week = parts
    try:
        step = _month_step(month)
    except ValueError as exc:
        logger.warning("Invalid month field in schedule %r (%s), defaulting to %s days",
                       schedule, exc, settings.scheduler.fallback_period_days)
        return from_time + _fallback_period()

    next_run = from_time.replace(second=0, microsecond=0)

    if minute.isdigit():
        next_run = next_run.replace(minute=min(int(minute), 59))
    if hour.isdigit():
        next_run = next_run.replace(hour=min(int(hour), 23))

    if step is not None:
        current = next_run.month - 1
        target = math.ceil((current + 1) / step) * step
        next_run = _add_months(next_run, target - current)

    if day_of_month.isdigit():
        next_run = _set_day(next_run, int(day_of_month))

    while next_run <= from_time:
        if step is not None:
            next_run = _add_months(next_run, step)
            if day_of_month.isdigit():
                next_run = _set_day(next_run, int(day_of_month))
        else:
            next_run = next_run + timedelta(days=1)

    return next_run


def compute_next_run(
    schedule: Optional[str], interval: Optional[str], from_time: datetime
) -> datetime:
    """Next run after ``from_time``: schedule first, then interval, then 3 months."""
    if schedule:
        return next_run_from_cron(schedule, from_time)
    if interval:
        return from_time + parse_interval(interval)
    return from_time + INTERVAL_TABLE[DEFAULT_INTERVAL]
