"""
Mock automation routines for booking and form-filling.

In production, these would drive a headless browser against the provider's
booking page and read the confirmation back from it. Here they compute the
same appointment time the real flow would submit and return a confirmation.
"""

import calendar
import logging
import re
from datetime import datetime, timedelta
from typing import Optional

from src.config import settings
from src.schemas.intent_schema import IntentTask
from src.schemas.profile_schema import Profile
from src.schemas.workflow_schema import ExecutionResult
from src.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

_EXPLICIT_DATETIME = re.compile(r"(\d{4}-\d{2}-\d{2})[ T](\d{1,2}):(\d{2})")


def _add_one_month(value: datetime) -> datetime:
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def generate_appointment_datetime(
    preference: Optional[str] = None, now: Optional[datetime] = None
) -> datetime:
    """Pick the appointment time to submit for a free-form preference.

    An explicit ``YYYY-MM-DD HH:MM`` is used as-is. Otherwise the default is
    tomorrow at 09:00, shifted by the first matching keyword, and moved off
    weekends.

    Examples:
        >>> generate_appointment_datetime("2025-01-02 14:30").strftime("%Y-%m-%d %H:%M")
        '2025-01-02 14:30'
    """
    now = now or utc_now()
    if preference:
        explicit = _EXPLICIT_DATETIME.search(preference)
        if explicit:
            day, hour, minute = explicit.groups()
            return datetime.fromisoformat(day).replace(
                hour=int(hour), minute=int(minute), tzinfo=now.tzinfo
            )

    target = (now + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)

    pref = (preference or "").lower()
    if "volgende week" in pref or "next week" in pref:
        target += timedelta(days=7)
    elif "morgen" in pref or "tomorrow" in pref:
        pass
    elif "ochtend" in pref or "morning" in pref:
        target = target.replace(hour=9)
    elif "middag" in pref or "afternoon" in pref:
        target = target.replace(hour=14)
    elif "maand" in pref or "month" in pref:
        target = _add_one_month(target)

    while target.weekday() >= 5:
        target += timedelta(days=1)
    return target


async def _book_appointment(
    page: str, service: str, task: IntentTask, profile: Profile
) -> ExecutionResult:
    appointment = generate_appointment_datetime(task.datetime_preference)
    logger.info(
        "Booking %s appointment at %s/%s for %s on %s (headless=%s)",
        service, settings.integrations.automation_base_url, page, profile.name,
        appointment.strftime("%Y-%m-%d %H:%M"), settings.integrations.headless,
    )
    reference = generate_id("apt")
    return ExecutionResult(
        success=True,
        message=f"{service.capitalize()} appointment booked successfully",
        confirmation_text=(
            f"Appointment confirmed for {profile.name} on "
            f"{appointment.strftime('%Y-%m-%d at %H:%M')}. Reference: {reference}."
        ),
    )


async def book_dentist_appointment(task: IntentTask, profile: Profile) -> ExecutionResult:
    """Submit the dentist appointment form for ``profile``."""
    return await _book_appointment("tandarts.html", "dentist", task, profile)


async def book_gp_appointment(task: IntentTask, profile: Profile) -> ExecutionResult:
    """Submit the GP appointment form for ``profile``."""
    return await _book_appointment("huisarts.html", "GP", task, profile)


async def fill_event_form(task: IntentTask, profile: Profile) -> ExecutionResult:
    """Register ``profile`` on the event sign-up form."""
    event_name = task.label or "event"
    logger.info(
        "Filling event form at %s/event.html for %s (%s)",
        settings.integrations.automation_base_url, profile.name, event_name,
    )
    return ExecutionResult(
        success=True,
        message="Event registration completed",
        confirmation_text=f"{profile.name} is registered for {event_name}.",
    )
