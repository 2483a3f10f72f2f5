"""
Deterministic resolution of provider and time selections.

Free-form selections are matched against a small fixed vocabulary (Dutch
and English). A failed match returns None; the caller decides how to
re-prompt.
"""

import re
from datetime import date, timedelta
from typing import Optional, Union

from src.schemas.provider_schema import Provider, SelectedDateTime, TimeSlotDay

BEST_KEYWORDS = ("beste", "best")
FIRST_KEYWORDS = ("eerste", "first")
TOMORROW_KEYWORDS = ("morgen", "tomorrow")
DAY_AFTER_TOMORROW_KEYWORDS = ("overmorgen", "day after tomorrow")

_TIME_TOKEN = re.compile(r"\b(\d{1,2}:\d{2})\b")


def resolve_provider(
    providers: list[Provider], selection: Optional[Union[int, str]]
) -> Optional[Provider]:
    """Pick a provider by keyword, 1-based position or name fragment."""
    if not providers or selection is None:
        return None

    if isinstance(selection, bool):
        return None
    if isinstance(selection, int):
        index = selection
    else:
        text = str(selection).strip().lower()
        if not text:
            return None
        if text in BEST_KEYWORDS:
            return providers[0]
        if not text.isdigit():
            return next((p for p in providers if text in p.name.lower()), None)
        index = int(text)

    if 1 <= index <= len(providers):
        return providers[index - 1]
    return None


def _extract_time(time_slot: Optional[str], preference: str) -> Optional[str]:
    if time_slot and time_slot.strip():
        return time_slot.strip()
    match = _TIME_TOKEN.search(preference)
    if match:
        hours, minutes = match.group(1).split(":")
        return f"{int(hours):02d}:{minutes}"
    return None


def resolve_datetime(
    slots: list[TimeSlotDay],
    preference: Optional[Union[int, str]],
    time_slot: Optional[str],
    today: date,
) -> Optional[SelectedDateTime]:
    """Turn a spoken time preference into a concrete date and time.

    Returns None only when there are no slots to choose from; any
    preference that cannot be matched falls back to the first available
    slot.
    """
    days = [d for d in slots if d.slots]
    if not days:
        return None
    first = SelectedDateTime(date=days[0].date, time=days[0].slots[0])

    text = str(preference or "").strip().lower()
    if any(k in text for k in FIRST_KEYWORDS):
        return first

    if any(k in text for k in DAY_AFTER_TOMORROW_KEYWORDS):
        target_date = (today + timedelta(days=2)).isoformat()
    elif any(k in text for k in TOMORROW_KEYWORDS):
        target_date = (today + timedelta(days=1)).isoformat()
    else:
        target_date = days[0].date

    day = next((d for d in days if d.date == target_date), None)
    if day is None:
        return first

    time = _extract_time(time_slot, text) or day.slots[0]
    return SelectedDateTime(date=day.date, time=time)
