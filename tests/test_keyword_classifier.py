"""Tests for the offline keyword intent classifier."""

import pytest

from src.schemas.intent_schema import DialogContext, IntentType, TaskKind
from src.voice.intent_parser import IntentParseError
from src.voice.keyword_classifier import KeywordIntentClassifier

LISTED = DialogContext(has_providers=True)
SELECTED = DialogContext(has_providers=True, has_selected_provider=True)


@pytest.fixture
def classifier():
    return KeywordIntentClassifier()


class TestSearch:
    @pytest.mark.asyncio
    async def test_dentist_with_location(self, classifier):
        intent = await classifier.classify("Zoek een tandarts in Amsterdam")
        assert intent.type == IntentType.SEARCH_PROVIDERS
        assert intent.task.provider_type == "tandarts"
        assert intent.task.search_query == "Amsterdam"
        assert intent.task.recurring is False

    @pytest.mark.asyncio
    async def test_english_alias(self, classifier):
        intent = await classifier.classify("Find me a dentist")
        assert intent.task.provider_type == "tandarts"

    @pytest.mark.asyncio
    async def test_bare_category(self, classifier):
        intent = await classifier.classify("huisarts")
        assert intent.type == IntentType.SEARCH_PROVIDERS
        assert intent.task.provider_type == "huisarts"

    @pytest.mark.asyncio
    async def test_recurring_search(self, classifier):
        intent = await classifier.classify("Plan elk kwartaal een tandartscontrole")
        assert intent.task.recurring is True
        assert intent.task.interval == "P3M"

    @pytest.mark.asyncio
    async def test_event_registration(self, classifier):
        intent = await classifier.classify("Schrijf me elke maand in voor het evenement")
        assert intent.type == IntentType.SEARCH_PROVIDERS
        assert intent.task.kind == TaskKind.FORM_FILL
        assert intent.task.provider_type == "event"
        assert intent.task.interval == "P1M"

    @pytest.mark.asyncio
    async def test_search_overrides_dialog_position(self, classifier):
        intent = await classifier.classify("Zoek een huisarts", SELECTED)
        assert intent.type == IntentType.SEARCH_PROVIDERS


class TestConfirmCancel:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["Ja", "yes please", "Ja, doe maar", "Oké prima"])
    async def test_confirm(self, classifier, text):
        assert (await classifier.classify(text)).type == IntentType.CONFIRM_ACTION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["Nee", "Annuleer", "cancel that", "stop"])
    async def test_cancel(self, classifier, text):
        assert (await classifier.classify(text)).type == IntentType.CANCEL_ACTION


class TestProviderSelection:
    @pytest.mark.asyncio
    async def test_number(self, classifier):
        intent = await classifier.classify("Nummer 2", LISTED)
        assert intent.type == IntentType.SELECT_PROVIDER
        assert intent.selection == 2

    @pytest.mark.asyncio
    async def test_ordinal(self, classifier):
        assert (await classifier.classify("De derde", LISTED)).selection == 3

    @pytest.mark.asyncio
    async def test_best(self, classifier):
        assert (await classifier.classify("Kies de beste", LISTED)).selection == "beste"

    @pytest.mark.asyncio
    async def test_name_passes_through(self, classifier):
        intent = await classifier.classify("Mondzorg Centrum Oost", LISTED)
        assert intent.selection == "Mondzorg Centrum Oost"


class TestDateTimeSelection:
    @pytest.mark.asyncio
    async def test_first_slot(self, classifier):
        intent = await classifier.classify("De eerste", SELECTED)
        assert intent.type == IntentType.SELECT_DATETIME
        assert intent.selection == "eerste"

    @pytest.mark.asyncio
    async def test_tomorrow_at_hour(self, classifier):
        intent = await classifier.classify("Morgen om 10 uur", SELECTED)
        assert intent.task.datetime_preference == "morgen"
        assert intent.task.time_slot == "10:00"

    @pytest.mark.asyncio
    async def test_day_after_tomorrow_with_clock_time(self, classifier):
        intent = await classifier.classify("overmorgen 9:30", SELECTED)
        assert intent.task.datetime_preference == "overmorgen"
        assert intent.task.time_slot == "09:30"


class TestFallback:
    @pytest.mark.asyncio
    async def test_greeting(self, classifier):
        intent = await classifier.classify("Hoi")
        assert intent.type == IntentType.CONVERSATION
        assert intent.response

    @pytest.mark.asyncio
    async def test_empty_text(self, classifier):
        with pytest.raises(IntentParseError):
            await classifier.classify("   ")
