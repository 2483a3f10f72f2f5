"""End-to-end dialog tests for the booking orchestrator."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from src.conversation.orchestrator import BookingOrchestrator
from src.conversation.state_machine import DialogState
from src.prompts import prompt_templates as replies
from src.schemas.intent_schema import IntentType, TaskKind
from src.schemas.session_schema import BookingSession, PendingAction
from src.schemas.workflow_schema import ExecutionResult
from tests.conftest import FakeExecutor, FakeNotifier, make_intent

SID = "test-session"

# 23:30 UTC on Wednesday is already Thursday 00:30 in Amsterdam
LATE_EVENING_UTC = datetime(2025, 1, 1, 23, 30, tzinfo=timezone.utc)


async def _search(orchestrator, **task):
    task.setdefault("provider_type", "tandarts")
    return await orchestrator.handle(SID, make_intent(IntentType.SEARCH_PROVIDERS, **task))


async def _walk_to_time_selected(orchestrator, **task):
    await _search(orchestrator, **task)
    await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=2))
    return await orchestrator.handle(SID, make_intent(IntentType.SELECT_DATETIME, selection="eerste"))


def _confirm():
    return make_intent(IntentType.CONFIRM_ACTION)


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_lists_providers(self, orchestrator):
        log = []
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SEARCH_PROVIDERS, provider_type="tandarts"), log
        )
        assert result.state == DialogState.PROVIDERS_LISTED
        assert result.providers
        ratings = [p.rating for p in result.providers]
        assert ratings == sorted(ratings, reverse=True)
        assert result.session["kind"] == "booking_flow"
        assert log[0].startswith("Search: tandarts")

    @pytest.mark.asyncio
    async def test_providers_carry_slot_summary(self, orchestrator):
        result = await _search(orchestrator)
        assert all(p.available_slots_summary for p in result.providers)

    @pytest.mark.asyncio
    async def test_alias_resolves_to_catalog(self, orchestrator):
        result = await _search(orchestrator, provider_type="dentist")
        assert {p.category for p in result.providers} == {"tandarts"}

    @pytest.mark.asyncio
    async def test_no_results_leaves_no_session(self, orchestrator):
        result = await _search(orchestrator, provider_type="fysiotherapeut")
        assert result.state == DialogState.EMPTY
        assert result.providers == []
        assert SID not in orchestrator.sessions

    @pytest.mark.asyncio
    async def test_new_search_replaces_previous(self, orchestrator):
        await _walk_to_time_selected(orchestrator)
        result = await _search(orchestrator, provider_type="huisarts")
        assert result.state == DialogState.PROVIDERS_LISTED
        session = orchestrator.sessions.get(SID)
        assert session.provider_type == "huisarts"
        assert session.selected_provider is None

    @pytest.mark.asyncio
    async def test_recurring_search_defaults_interval(self, orchestrator):
        await _search(orchestrator, recurring=True)
        assert orchestrator.sessions.get(SID).recurring_interval == "P3M"

    @pytest.mark.asyncio
    async def test_unsupported_interval_falls_back(self, orchestrator):
        await _search(orchestrator, recurring=True, interval="P7Q")
        assert orchestrator.sessions.get(SID).recurring_interval == "P3M"

    @pytest.mark.asyncio
    async def test_search_without_category_uses_default(self, orchestrator):
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SEARCH_PROVIDERS, search_query="Amsterdam")
        )
        assert result.state == DialogState.PROVIDERS_LISTED
        assert orchestrator.sessions.get(SID).provider_type == "tandarts"

    @pytest.mark.asyncio
    async def test_target_url_alone_selects_category(self, orchestrator):
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SEARCH_PROVIDERS, target_url="huisarts")
        )
        assert {p.category for p in result.providers} == {"huisarts"}


class TestSelectProvider:
    @pytest.mark.asyncio
    async def test_select_by_number(self, orchestrator):
        listed = await _search(orchestrator)
        result = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=2))
        assert result.state == DialogState.PROVIDER_SELECTED
        assert result.selected_provider.id == listed.providers[1].id
        assert result.available_slots
        assert all(day.slots for day in result.available_slots)

    @pytest.mark.asyncio
    async def test_select_by_provider_id(self, orchestrator):
        await _search(orchestrator)
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_PROVIDER, provider_id="tand-003")
        )
        assert result.selected_provider.id == "tand-003"

    @pytest.mark.asyncio
    async def test_out_of_range_reprompts(self, orchestrator):
        listed = await _search(orchestrator)
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_PROVIDER, selection=len(listed.providers) + 1)
        )
        assert result.state == DialogState.PROVIDERS_LISTED
        assert result.selected_provider is None
        assert "didn't catch" in result.message

    @pytest.mark.asyncio
    async def test_without_search(self, orchestrator):
        result = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        assert result.state == DialogState.EMPTY
        assert result.message == replies.build_search_first_message()

    @pytest.mark.asyncio
    async def test_second_selection_is_rejected(self, orchestrator):
        await _search(orchestrator)
        first = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        again = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=2))
        assert again.state == DialogState.PROVIDER_SELECTED
        assert again.selected_provider.id == first.selected_provider.id
        assert "already picked" in again.message


class TestSelectDateTime:
    @pytest.mark.asyncio
    async def test_first_slot(self, orchestrator):
        await _search(orchestrator)
        selected = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        result = await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_DATETIME, selection="eerste")
        )
        assert result.state == DialogState.TIME_SELECTED
        when = orchestrator.sessions.get(SID).selected_datetime
        first_day = selected.available_slots[0]
        assert (when.date, when.time) == (first_day.date, first_day.slots[0])
        assert "Shall I book" in result.message

    @pytest.mark.asyncio
    async def test_preference_from_task(self, orchestrator):
        await _search(orchestrator)
        await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_DATETIME, datetime_preference="morgen", time_slot="10:00")
        )
        when = orchestrator.sessions.get(SID).selected_datetime
        assert (when.date, when.time) == ("2025-01-02", "10:00")

    @pytest.mark.asyncio
    async def test_before_provider(self, orchestrator):
        await _search(orchestrator)
        result = await orchestrator.handle(SID, make_intent(IntentType.SELECT_DATETIME, selection="eerste"))
        assert result.state == DialogState.PROVIDERS_LISTED
        assert result.message == replies.build_select_provider_first_message()

    @pytest.mark.asyncio
    async def test_recurring_prompt_mentions_interval(self, orchestrator):
        result = await _walk_to_time_selected(orchestrator, recurring=True, interval="P6M")
        assert "semiannual" in result.message


class TestLocalCalendar:
    @pytest.mark.asyncio
    async def test_relative_day_uses_local_date(
        self, session_store, executor, workflow_store, profile_store, clock
    ):
        clock.now = LATE_EVENING_UTC
        orchestrator = BookingOrchestrator(
            session_store, executor, workflow_store, profile_store,
            clock=clock, local_tz=ZoneInfo("Europe/Amsterdam"),
        )
        await _search(orchestrator)
        selected = await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        assert selected.available_slots[0].date == "2025-01-03"

        await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_DATETIME, datetime_preference="morgen", time_slot="10:00")
        )
        when = orchestrator.sessions.get(SID).selected_datetime
        assert (when.date, when.time) == ("2025-01-03", "10:00")

    @pytest.mark.asyncio
    async def test_utc_zone_keeps_utc_date(
        self, session_store, executor, workflow_store, profile_store, clock
    ):
        clock.now = LATE_EVENING_UTC
        orchestrator = BookingOrchestrator(
            session_store, executor, workflow_store, profile_store,
            clock=clock, local_tz=timezone.utc,
        )
        await _search(orchestrator)
        await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        await orchestrator.handle(
            SID, make_intent(IntentType.SELECT_DATETIME, datetime_preference="morgen", time_slot="10:00")
        )
        assert orchestrator.sessions.get(SID).selected_datetime.date == "2025-01-02"


class TestConfirmBooking:
    @pytest.mark.asyncio
    async def test_success_closes_session(self, orchestrator, executor, notifier):
        await _walk_to_time_selected(orchestrator)
        log = []
        result = await orchestrator.handle(SID, _confirm(), log)

        assert result.state == DialogState.EMPTY
        assert result.action_executed is True
        assert result.execution_result.success is True
        assert "Confirmation #123" in result.message
        assert SID not in orchestrator.sessions
        assert executor.tasks[0].provider_id == "tand-002"
        assert len(notifier.events) == 1
        assert "Calendar updated" in log

    @pytest.mark.asyncio
    async def test_executor_receives_concrete_datetime(self, orchestrator, executor):
        await _walk_to_time_selected(orchestrator)
        session = orchestrator.sessions.get(SID)
        await orchestrator.handle(SID, _confirm())
        when = session.selected_datetime
        assert executor.tasks[0].datetime_preference == f"{when.date} {when.time}"

    @pytest.mark.asyncio
    async def test_failure_keeps_time_selected(
        self, session_store, workflow_store, profile_store, clock
    ):
        failing = FakeExecutor(result=ExecutionResult(success=False, message="Booking failed", error="timeout"))
        orchestrator = BookingOrchestrator(
            session_store, failing, workflow_store, profile_store, clock=clock
        )
        await _walk_to_time_selected(orchestrator)
        result = await orchestrator.handle(SID, _confirm())

        assert result.state == DialogState.TIME_SELECTED
        assert "timeout" in result.message
        assert result.execution_result.success is False
        assert orchestrator.sessions.get(SID) is not None

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, session_store, workflow_store, profile_store, clock):
        executor = FakeExecutor(result=ExecutionResult(success=False, error="timeout"))
        orchestrator = BookingOrchestrator(
            session_store, executor, workflow_store, profile_store, clock=clock
        )
        await _walk_to_time_selected(orchestrator)
        await orchestrator.handle(SID, _confirm())
        executor.result = ExecutionResult(success=True, message="Booked")
        result = await orchestrator.handle(SID, _confirm())
        assert result.state == DialogState.EMPTY
        assert len(executor.tasks) == 2

    @pytest.mark.asyncio
    async def test_notifier_error_does_not_flip_booking(
        self, session_store, executor, workflow_store, profile_store, clock
    ):
        orchestrator = BookingOrchestrator(
            session_store, executor, workflow_store, profile_store,
            notifier=FakeNotifier(error=RuntimeError("webhook down")), clock=clock,
        )
        await _walk_to_time_selected(orchestrator)
        log = []
        result = await orchestrator.handle(SID, _confirm(), log)
        assert result.execution_result.success is True
        assert result.state == DialogState.EMPTY
        assert "Calendar update failed" in log

    @pytest.mark.asyncio
    async def test_recurring_booking_creates_workflow(self, orchestrator, workflow_store):
        await _walk_to_time_selected(orchestrator, recurring=True, interval="P6M")
        result = await orchestrator.handle(SID, _confirm())

        assert result.workflow is not None
        assert result.workflow.category == "tandarts"
        assert result.workflow.interval == "P6M"
        assert result.workflow.label == "Dentist appointment"
        assert workflow_store.get(result.workflow.id) is not None
        assert "recurring task" in result.message

    @pytest.mark.asyncio
    async def test_one_off_booking_creates_no_workflow(self, orchestrator, workflow_store):
        await _walk_to_time_selected(orchestrator)
        result = await orchestrator.handle(SID, _confirm())
        assert result.workflow is None
        assert workflow_store.all_workflows() == []


class TestNothingToConfirm:
    @pytest.mark.asyncio
    async def test_confirm_without_conversation(self, orchestrator, executor):
        result = await orchestrator.handle(SID, _confirm())
        assert result.message == replies.NOTHING_TO_CONFIRM_MESSAGE
        assert executor.tasks == []

    @pytest.mark.asyncio
    async def test_confirm_before_time_selected(self, orchestrator, executor):
        await _search(orchestrator)
        result = await orchestrator.handle(SID, _confirm())
        assert result.state == DialogState.PROVIDERS_LISTED
        assert executor.tasks == []

    @pytest.mark.asyncio
    async def test_confirm_after_cancel(self, orchestrator, executor):
        await _walk_to_time_selected(orchestrator)
        await orchestrator.handle(SID, make_intent(IntentType.CANCEL_ACTION))
        result = await orchestrator.handle(SID, _confirm())
        assert result.message == replies.NOTHING_TO_CONFIRM_MESSAGE
        assert executor.tasks == []

    @pytest.mark.asyncio
    async def test_confirm_after_expiry(self, orchestrator, executor, clock):
        await _walk_to_time_selected(orchestrator)
        clock.advance(minutes=10)
        result = await orchestrator.handle(SID, _confirm())
        assert result.message == replies.NOTHING_TO_CONFIRM_MESSAGE
        assert executor.tasks == []


class TestPendingAction:
    @pytest.mark.asyncio
    async def test_event_search_proposes_action(self, orchestrator, executor):
        result = await _search(
            orchestrator, provider_type="event", kind=TaskKind.FORM_FILL, label="Event registration"
        )
        assert result.state == DialogState.AWAITING_CONFIRMATION
        assert isinstance(orchestrator.sessions.get(SID), PendingAction)
        assert result.session["kind"] == "pending_confirmation"
        assert executor.tasks == []

    @pytest.mark.asyncio
    async def test_confirm_runs_one_off_action(self, orchestrator, executor):
        await _search(orchestrator, provider_type="event", kind=TaskKind.FORM_FILL)
        result = await orchestrator.handle(SID, _confirm())
        assert result.action_executed is True
        assert executor.tasks[0].kind == TaskKind.FORM_FILL
        assert SID not in orchestrator.sessions

    @pytest.mark.asyncio
    async def test_confirm_recurring_creates_workflow_without_running(
        self, orchestrator, executor, workflow_store
    ):
        await _search(
            orchestrator, provider_type="event", kind=TaskKind.FORM_FILL,
            recurring=True, interval="P1M", label="Monthly meetup",
        )
        result = await orchestrator.handle(SID, _confirm())
        assert executor.tasks == []
        assert result.workflow.type == TaskKind.FORM_FILL
        assert result.workflow.category == "event"
        assert workflow_store.get(result.workflow.id).label == "Monthly meetup"
        assert "monthly" in result.message

    @pytest.mark.asyncio
    async def test_failed_action_is_kept(self, session_store, workflow_store, profile_store, clock):
        executor = FakeExecutor(result=ExecutionResult(success=False, error="form closed"))
        orchestrator = BookingOrchestrator(
            session_store, executor, workflow_store, profile_store, clock=clock
        )
        await _search(orchestrator, provider_type="event", kind=TaskKind.FORM_FILL)
        result = await orchestrator.handle(SID, _confirm())
        assert result.state == DialogState.AWAITING_CONFIRMATION
        assert "form closed" in result.message

    @pytest.mark.asyncio
    async def test_cancel_discards(self, orchestrator, executor, workflow_store):
        await _search(orchestrator, provider_type="event", recurring=True)
        result = await orchestrator.handle(SID, make_intent(IntentType.CANCEL_ACTION))
        assert result.message == replies.CANCELLED_MESSAGE
        assert SID not in orchestrator.sessions
        assert workflow_store.all_workflows() == []
        assert executor.tasks == []


class TestCancelAndConversation:
    @pytest.mark.asyncio
    async def test_cancel_booking_flow(self, orchestrator):
        await _search(orchestrator)
        session = orchestrator.sessions.get(SID)
        result = await orchestrator.handle(SID, make_intent(IntentType.CANCEL_ACTION))
        assert result.state == DialogState.EMPTY
        assert session.machine.is_closed()
        assert SID not in orchestrator.sessions

    @pytest.mark.asyncio
    async def test_cancel_without_conversation(self, orchestrator):
        result = await orchestrator.handle(SID, make_intent(IntentType.CANCEL_ACTION))
        assert result.message == replies.NOTHING_TO_CANCEL_MESSAGE

    @pytest.mark.asyncio
    async def test_conversation_passes_response_through(self, orchestrator):
        result = await orchestrator.handle(
            SID, make_intent(IntentType.CONVERSATION, response="Hallo! Waarmee kan ik helpen?")
        )
        assert result.message == "Hallo! Waarmee kan ik helpen?"

    @pytest.mark.asyncio
    async def test_conversation_keeps_session(self, orchestrator):
        await _search(orchestrator)
        result = await orchestrator.handle(SID, make_intent(IntentType.CONVERSATION))
        assert result.message == replies.CONVERSATION_FALLBACK
        assert result.state == DialogState.PROVIDERS_LISTED

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, orchestrator):
        await _search(orchestrator)
        result = await orchestrator.handle("other", make_intent(IntentType.SELECT_PROVIDER, selection=1))
        assert result.state == DialogState.EMPTY


class TestDialogContext:
    @pytest.mark.asyncio
    async def test_progression(self, orchestrator):
        assert orchestrator.dialog_context(SID).has_providers is False

        await _search(orchestrator)
        ctx = orchestrator.dialog_context(SID)
        assert ctx.has_providers and not ctx.has_selected_provider

        await orchestrator.handle(SID, make_intent(IntentType.SELECT_PROVIDER, selection=1))
        assert orchestrator.dialog_context(SID).has_selected_provider

        await orchestrator.handle(SID, make_intent(IntentType.SELECT_DATETIME, selection="eerste"))
        assert orchestrator.dialog_context(SID).awaiting_confirmation

    @pytest.mark.asyncio
    async def test_pending_action(self, orchestrator):
        await _search(orchestrator, provider_type="event")
        ctx = orchestrator.dialog_context(SID)
        assert ctx.awaiting_confirmation and not ctx.has_providers

    @pytest.mark.asyncio
    async def test_session_type(self, orchestrator):
        await _search(orchestrator)
        assert isinstance(orchestrator.sessions.get(SID), BookingSession)
