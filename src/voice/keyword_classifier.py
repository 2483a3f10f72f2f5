"""
Offline rule-based intent classifier.

Recognises the same Dutch and English phrases the model prompt lists, with
no network access. Used by the console demo and as a stand-in classifier
in tests.
"""

import logging
import re
from typing import Optional

from src.schemas.intent_schema import (
    DialogContext,
    Intent,
    IntentTask,
    IntentType,
    TaskKind,
)
from src.tools.providers import match_category
from src.voice.intent_parser import IntentParseError

logger = logging.getLogger(__name__)

CANCEL_WORDS = {"nee", "no", "stop", "annuleer", "annuleren", "cancel"}
CONFIRM_WORDS = {"ja", "yes", "bevestig", "confirm", "ok", "oke", "okay", "prima"}
CONFIRM_PHRASES = ("doe maar", "go ahead")
SEARCH_WORDS = {
    "zoek", "vind", "find", "search", "boek", "book", "regel", "afspraak",
    "appointment", "plan", "schedule",
}
EVENT_WORDS = {"event", "evenement", "inschrijven", "aanmelden", "register"}
BEST_WORDS = {"beste", "best"}
ORDINALS = {
    "eerste": 1, "first": 1,
    "tweede": 2, "second": 2,
    "derde": 3, "third": 3,
    "vierde": 4, "fourth": 4,
    "vijfde": 5, "fifth": 5,
}

# Longest phrases first so "every 6 months" wins over "month"
RECURRENCE_PHRASES: list[tuple[str, str]] = [
    ("elk half jaar", "P6M"), ("every 6 months", "P6M"), ("halfjaarlijks", "P6M"),
    ("elk kwartaal", "P3M"), ("every 3 months", "P3M"), ("quarterly", "P3M"),
    ("elke twee weken", "P2W"), ("every two weeks", "P2W"), ("biweekly", "P2W"),
    ("elke week", "P1W"), ("every week", "P1W"), ("weekly", "P1W"), ("wekelijks", "P1W"),
    ("elke maand", "P1M"), ("every month", "P1M"), ("monthly", "P1M"), ("maandelijks", "P1M"),
    ("elk jaar", "P1Y"), ("every year", "P1Y"), ("yearly", "P1Y"), ("jaarlijks", "P1Y"),
    ("elke dag", "P1D"), ("every day", "P1D"), ("daily", "P1D"), ("dagelijks", "P1D"),
]

_WORD = re.compile(r"[a-z0-9:]+")
_CLOCK_TIME = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_HOUR_TIME = re.compile(r"\b(?:om|at)\s+(\d{1,2})(?:\s*uur)?\b")
_LOCATION = re.compile(r"\bin\s+([A-Z][\w-]+(?:\s+[A-Z][\w-]+)*)")
_NUMBER = re.compile(r"\b(\d{1,2})\b")

GREETING_RESPONSE = (
    "Hi! I can find and book appointments for you, for example at the dentist. "
    "What can I do for you?"
)


def _recurrence(text: str) -> Optional[str]:
    for phrase, token in RECURRENCE_PHRASES:
        if phrase in text:
            return token
    return None


def _time_slot(text: str) -> Optional[str]:
    clock = _CLOCK_TIME.search(text)
    if clock:
        return f"{int(clock.group(1)):02d}:{clock.group(2)}"
    hour = _HOUR_TIME.search(text)
    if hour and int(hour.group(1)) < 24:
        return f"{int(hour.group(1)):02d}:00"
    return None


class KeywordIntentClassifier:
    """Deterministic classifier driven by keyword tables."""

    async def classify(self, text: str, context: Optional[DialogContext] = None) -> Intent:
        if not text or not text.strip():
            raise IntentParseError("Input text is empty")
        context = context or DialogContext()
        intent = self._classify(text.strip(), context)
        logger.info("Keyword intent: %s", intent.type.value)
        return intent

    def _classify(self, original: str, context: DialogContext) -> Intent:
        text = original.lower()
        words = set(_WORD.findall(text))

        if words & CANCEL_WORDS:
            return Intent(type=IntentType.CANCEL_ACTION)
        if words & CONFIRM_WORDS or any(p in text for p in CONFIRM_PHRASES):
            return Intent(type=IntentType.CONFIRM_ACTION)

        search = self._search_intent(original, text, words)
        if search is not None:
            return search

        if context.has_selected_provider:
            return self._datetime_intent(text, words)
        if context.has_providers:
            return self._provider_intent(original, text, words)

        return Intent(type=IntentType.CONVERSATION, response=GREETING_RESPONSE, topic="general")

    def _search_intent(self, original: str, text: str, words: set[str]) -> Optional[Intent]:
        interval = _recurrence(text)
        is_event = bool(words & EVENT_WORDS)
        category = match_category(text)
        if not is_event and category is None:
            return None
        if not is_event and not (words & SEARCH_WORDS) and interval is None and len(words) > 3:
            return None

        location = _LOCATION.search(original)
        if is_event:
            task = IntentTask(
                kind=TaskKind.FORM_FILL,
                provider_type="event",
                recurring=interval is not None,
                interval=interval,
                label="Event registration",
            )
        else:
            task = IntentTask(
                kind=TaskKind.BOOKING,
                provider_type=category,
                search_query=location.group(1) if location else None,
                recurring=interval is not None,
                interval=interval,
            )
        return Intent(type=IntentType.SEARCH_PROVIDERS, task=task, topic=task.provider_type)

    def _provider_intent(self, original: str, text: str, words: set[str]) -> Intent:
        if words & BEST_WORDS:
            return Intent(type=IntentType.SELECT_PROVIDER, selection="beste")
        for word, position in ORDINALS.items():
            if word in words:
                return Intent(type=IntentType.SELECT_PROVIDER, selection=position)
        number = _NUMBER.search(text)
        if number:
            return Intent(type=IntentType.SELECT_PROVIDER, selection=int(number.group(1)))
        return Intent(type=IntentType.SELECT_PROVIDER, selection=original)

    def _datetime_intent(self, text: str, words: set[str]) -> Intent:
        if words & {"eerste", "first"}:
            return Intent(type=IntentType.SELECT_DATETIME, selection="eerste")

        preference = None
        if "overmorgen" in text or "day after tomorrow" in text:
            preference = "overmorgen"
        elif "morgen" in text or "tomorrow" in text:
            preference = "morgen"

        return Intent(
            type=IntentType.SELECT_DATETIME,
            task=IntentTask(datetime_preference=preference, time_slot=_time_slot(text)),
        )
