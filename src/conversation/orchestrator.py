"""
Dialog orchestrator: turns classified intents into replies and actions.

Each session id maps to at most one live conversation: either a booking
flow (search -> provider -> time -> confirm) or a single pending action
awaiting yes/no. Transitions go through the conversation's state machine;
anything the state machine does not allow is answered with a re-prompt
instead of an error.

Usage:
    orchestrator = BookingOrchestrator(sessions, executor, workflows, profiles)
    result = await orchestrator.handle("kitchen", intent, actions_log)
    print(result.message)
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from src.config import settings
from src.conversation.selection import resolve_datetime, resolve_provider
from src.conversation.session_store import (
    SessionStore,
    new_booking_session,
    new_pending_action,
)
from src.conversation.state_machine import DialogState, DialogTrigger
from src.logging_context import get_session_logger
from src.prompts import prompt_templates as replies
from src.scheduling.intervals import is_known_interval
from src.scheduling.workflow_store import WorkflowStore
from src.schemas.intent_schema import (
    DialogContext,
    Intent,
    IntentTask,
    IntentType,
    TaskKind,
)
from src.schemas.provider_schema import Provider, TimeSlotDay
from src.schemas.session_schema import BookingSession, Conversation, PendingAction
from src.schemas.workflow_schema import ExecutionResult, Workflow, WorkflowCreate
from src.storage.profile_store import ProfileStore
from src.tools.calendar import BookingNotifier, NullNotifier, build_booking_event
from src.tools.executor import TaskExecutor
from src.tools.providers import (
    DEFAULT_CATEGORY,
    PROVIDER_CATALOG,
    get_available_slots,
    match_category,
    search_with_fallback,
    summarize_slots,
)
from src.utils import utc_now

logger = get_session_logger(__name__)


def _recurring_interval(task: IntentTask) -> str:
    """The task's interval when it is a known token, else the default."""
    if is_known_interval(task.interval):
        return task.interval.strip().upper()
    if task.interval:
        logger.warning("Unsupported interval %r, using %s", task.interval,
                       settings.scheduler.default_interval)
    return settings.scheduler.default_interval


@dataclass
class DialogResult:
    """Everything one command produced, for the pipeline response."""

    message: str
    state: DialogState = DialogState.EMPTY
    providers: list[Provider] = field(default_factory=list)
    selected_provider: Optional[Provider] = None
    available_slots: list[TimeSlotDay] = field(default_factory=list)
    session: Optional[dict[str, Any]] = None
    action_executed: bool = False
    execution_result: Optional[ExecutionResult] = None
    workflow: Optional[Workflow] = None


class BookingOrchestrator:
    """Routes intents through the per-session dialog state machine."""

    def __init__(
        self,
        sessions: SessionStore,
        executor: TaskExecutor,
        workflows: WorkflowStore,
        profiles: ProfileStore,
        notifier: Optional[BookingNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
        local_tz: Optional[tzinfo] = None,
    ) -> None:
        self.sessions = sessions
        self._executor = executor
        self._workflows = workflows
        self._profiles = profiles
        self._notifier = notifier or NullNotifier()
        self._clock = clock
        self._tz = local_tz or ZoneInfo(settings.session.timezone)

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    async def handle(
        self,
        session_id: str,
        intent: Intent,
        actions_log: Optional[list[str]] = None,
    ) -> DialogResult:
        """Apply one intent to the conversation identified by ``session_id``."""
        log = actions_log if actions_log is not None else []
        now = self._clock()
        conversation = self.sessions.get(session_id, now)
        logger.info(
            "Handling %s (state: %s)", intent.type.value,
            conversation.state.value if conversation else DialogState.EMPTY.value,
        )

        if intent.type == IntentType.SEARCH_PROVIDERS:
            return await self._search(session_id, intent, log, now)
        if intent.type == IntentType.SELECT_PROVIDER:
            return self._select_provider(conversation, intent, log, now)
        if intent.type == IntentType.SELECT_DATETIME:
            return self._select_datetime(conversation, intent, log, now)
        if intent.type == IntentType.CONFIRM_ACTION:
            return await self._confirm(session_id, conversation, log, now)
        if intent.type == IntentType.CANCEL_ACTION:
            return self._cancel(session_id, conversation, log)
        return self._conversation(conversation, intent)

    def dialog_context(self, session_id: str) -> DialogContext:
        """Hint for the intent classifier about the current dialog position."""
        conversation = self.sessions.get(session_id)
        if isinstance(conversation, PendingAction):
            return DialogContext(awaiting_confirmation=True)
        if isinstance(conversation, BookingSession):
            return DialogContext(
                has_providers=bool(conversation.providers),
                has_selected_provider=conversation.selected_provider is not None,
                awaiting_confirmation=conversation.state == DialogState.TIME_SELECTED,
            )
        return DialogContext()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _result(message: str, conversation: Optional[Conversation], **extra: Any) -> DialogResult:
        if isinstance(conversation, BookingSession):
            extra.setdefault("providers", list(conversation.providers))
            extra.setdefault("selected_provider", conversation.selected_provider)
            extra.setdefault("available_slots", list(conversation.available_slots))
        return DialogResult(
            message=message,
            state=conversation.state if conversation else DialogState.EMPTY,
            session=conversation.summary() if conversation else None,
            **extra,
        )

    def _local_date(self, now: datetime) -> date:
        """Local calendar day at ``now``."""
        return now.astimezone(self._tz).date()

    # ------------------------------------------------------------------ #
    # Search
    # ------------------------------------------------------------------ #

    async def _search(
        self, session_id: str, intent: Intent, log: list[str], now: datetime
    ) -> DialogResult:
        task = intent.task or IntentTask()
        category = match_category(task.target) or task.target.lower() or DEFAULT_CATEGORY

        if self.sessions.remove(session_id) is not None:
            logger.info("Previous conversation replaced by a new search")

        if category not in PROVIDER_CATALOG and self._executor.supports(category):
            return self._propose_action(session_id, task, log, now)

        providers = search_with_fallback(category, task.search_query)
        log.append(f"Search: {category} ({len(providers)} found)")
        if not providers:
            logger.info("No providers for %s (query=%r)", category, task.search_query)
            return DialogResult(message=replies.build_no_providers_message(category, task.search_query))

        today = self._local_date(now)
        providers = [
            p.model_copy(update={
                "available_slots_summary": summarize_slots(get_available_slots(p.id, today))[:2],
            })
            for p in providers
        ]

        interval = _recurring_interval(task) if task.recurring else None

        session = new_booking_session(
            category, now, self.sessions.ttl,
            providers=providers,
            use_profile=task.use_profile,
            recurring_interval=interval,
            label=task.label,
        )
        session.machine.transition(DialogTrigger.PROVIDERS_FOUND)
        self.sessions.put(session_id, session)
        logger.info("Session %s created with %d providers", session.id, len(providers))

        return self._result(replies.build_providers_message(providers, category), session)

    def _propose_action(
        self, session_id: str, task: IntentTask, log: list[str], now: datetime
    ) -> DialogResult:
        if task.recurring:
            task = task.model_copy(update={"interval": _recurring_interval(task)})
        pending = new_pending_action(task, now, self.sessions.ttl)
        pending.machine.transition(DialogTrigger.ACTION_PROPOSED)
        self.sessions.put(session_id, pending)
        log.append(f"Awaiting confirmation: {task.label or task.target}")
        logger.info("Pending action %s for %s", pending.id, task.target)
        return self._result(replies.build_pending_action_prompt(task), pending)

    # ------------------------------------------------------------------ #
    # Selection
    # ------------------------------------------------------------------ #

    def _select_provider(
        self,
        conversation: Optional[Conversation],
        intent: Intent,
        log: list[str],
        now: datetime,
    ) -> DialogResult:
        if not isinstance(conversation, BookingSession):
            return self._result(replies.build_search_first_message(), conversation)
        if conversation.state != DialogState.PROVIDERS_LISTED:
            if conversation.selected_provider is not None:
                message = replies.build_provider_already_selected_message(
                    conversation.selected_provider
                )
            else:
                message = replies.build_search_first_message()
            return self._result(message, conversation)

        selection = intent.selection
        provider = None
        if selection is None and intent.task and intent.task.provider_id:
            provider = next(
                (p for p in conversation.providers if p.id == intent.task.provider_id), None
            )
        else:
            provider = resolve_provider(conversation.providers, selection)

        if provider is None:
            log.append(f"Provider selection not resolved: {selection!r}")
            return self._result(
                replies.build_provider_not_found_message(conversation.providers), conversation
            )

        conversation.selected_provider = provider
        conversation.available_slots = get_available_slots(provider.id, self._local_date(now))
        conversation.machine.transition(DialogTrigger.PROVIDER_RESOLVED)
        log.append(f"Provider selected: {provider.name}")
        logger.info("Provider selected: %s", provider.id)

        return self._result(
            replies.build_slots_message(provider, conversation.available_slots), conversation
        )

    def _select_datetime(
        self,
        conversation: Optional[Conversation],
        intent: Intent,
        log: list[str],
        now: datetime,
    ) -> DialogResult:
        if not isinstance(conversation, BookingSession):
            return self._result(replies.build_search_first_message(), conversation)
        if conversation.state not in (DialogState.PROVIDER_SELECTED, DialogState.TIME_SELECTED):
            return self._result(replies.build_select_provider_first_message(), conversation)

        task = intent.task
        preference = intent.selection
        if preference is None and task is not None:
            preference = task.datetime_preference
        when = resolve_datetime(
            conversation.available_slots,
            preference,
            task.time_slot if task else None,
            self._local_date(now),
        )
        if when is None:
            log.append("No time slots available")
            return self._result(
                replies.build_slots_message(conversation.selected_provider, []), conversation
            )

        conversation.selected_datetime = when
        conversation.machine.transition(DialogTrigger.TIME_RESOLVED)
        log.append(f"Time selected: {when.label()}")
        logger.info("Time selected: %s", when.label())

        return self._result(
            replies.build_time_confirmation_prompt(
                conversation.selected_provider, when, conversation.recurring_interval
            ),
            conversation,
        )

    # ------------------------------------------------------------------ #
    # Confirmation
    # ------------------------------------------------------------------ #

    async def _confirm(
        self,
        session_id: str,
        conversation: Optional[Conversation],
        log: list[str],
        now: datetime,
    ) -> DialogResult:
        if isinstance(conversation, PendingAction):
            return await self._confirm_pending(session_id, conversation, log, now)
        if not isinstance(conversation, BookingSession) or conversation.state != DialogState.TIME_SELECTED:
            log.append("Nothing to confirm")
            return self._result(replies.build_nothing_to_confirm_message(), conversation)
        return await self._confirm_booking(session_id, conversation, log, now)

    async def _confirm_booking(
        self, session_id: str, session: BookingSession, log: list[str], now: datetime
    ) -> DialogResult:
        provider = session.selected_provider
        when = session.selected_datetime
        task = IntentTask(
            kind=TaskKind.BOOKING,
            provider_type=session.provider_type,
            provider_id=provider.id,
            datetime_preference=f"{when.date} {when.time}",
            time_slot=when.time,
            use_profile=session.use_profile,
            label=session.label,
        )

        log.append(f"Executing booking: {provider.name} on {when.label()}")
        result = await self._executor.run_task(task)

        if not result.success:
            session.machine.transition(DialogTrigger.BOOKING_FAILED)
            log.append(f"Booking failed: {result.error or result.message}")
            logger.warning("Booking failed, session kept for retry: %s", result.error)
            return self._result(
                replies.build_execution_failure_message(session.provider_type, result),
                session,
                action_executed=True,
                execution_result=result,
            )

        session.machine.transition(DialogTrigger.BOOKING_CONFIRMED)
        self.sessions.remove(session_id)
        log.append(f"Booking completed: {result.confirmation_text or result.message}")
        logger.info("Booking confirmed, session %s closed", session.id)

        await self._notify_calendar(session, log, now)

        message = replies.build_booking_success_message(provider, when, result)
        workflow = None
        if session.recurring_interval:
            label = session.label or f"{replies.service_name(session.provider_type).capitalize()} appointment"
            workflow = self._create_workflow(
                WorkflowCreate(
                    type=TaskKind.BOOKING,
                    category=session.provider_type,
                    interval=session.recurring_interval,
                    label=label,
                    use_profile=session.use_profile,
                ),
                log,
                now,
            )
            message += " " + replies.build_recurring_created_message(label, session.recurring_interval)

        return DialogResult(
            message=message,
            state=DialogState.EMPTY,
            selected_provider=provider,
            action_executed=True,
            execution_result=result,
            workflow=workflow,
        )

    async def _notify_calendar(
        self, session: BookingSession, log: list[str], now: datetime
    ) -> None:
        """Best-effort calendar update; never affects the booking outcome."""
        try:
            profile = self._profiles.get_profile()
            event = build_booking_event(
                session.selected_provider,
                session.selected_datetime,
                profile,
                session.provider_type,
                booked_at=now,
            )
            delivered = await self._notifier.notify(event)
        except Exception:
            logger.exception("Calendar notification failed")
            log.append("Calendar update failed")
            return
        log.append("Calendar updated" if delivered else "Calendar not updated")

    async def _confirm_pending(
        self, session_id: str, pending: PendingAction, log: list[str], now: datetime
    ) -> DialogResult:
        task = pending.task

        if task.recurring:
            label = task.label or replies.service_name(task.target).capitalize()
            workflow = self._create_workflow(
                WorkflowCreate(
                    type=task.kind,
                    category=task.target,
                    interval=task.interval,
                    label=label,
                    use_profile=task.use_profile,
                ),
                log,
                now,
            )
            pending.machine.transition(DialogTrigger.ACTION_CONFIRMED)
            self.sessions.remove(session_id)
            return DialogResult(
                message=replies.build_recurring_created_message(label, workflow.interval),
                workflow=workflow,
            )

        log.append(f"Executing {task.kind.value}: {task.label or task.target}")
        result = await self._executor.run_task(task)
        if not result.success:
            log.append(f"Action failed: {result.error or result.message}")
            return self._result(
                replies.build_execution_failure_message(task.target, result),
                pending,
                action_executed=True,
                execution_result=result,
            )

        pending.machine.transition(DialogTrigger.ACTION_CONFIRMED)
        self.sessions.remove(session_id)
        log.append(f"Action completed: {result.confirmation_text or result.message}")
        return DialogResult(
            message=replies.build_action_success_message(task, result),
            action_executed=True,
            execution_result=result,
        )

    def _create_workflow(
        self, params: WorkflowCreate, log: list[str], now: datetime
    ) -> Workflow:
        workflow = self._workflows.create(params, now=now)
        log.append(f"Workflow saved: {workflow.id} ({workflow.interval})")
        return workflow

    # ------------------------------------------------------------------ #
    # Cancel / conversation
    # ------------------------------------------------------------------ #

    def _cancel(
        self, session_id: str, conversation: Optional[Conversation], log: list[str]
    ) -> DialogResult:
        if conversation is None:
            return DialogResult(message=replies.NOTHING_TO_CANCEL_MESSAGE)
        conversation.machine.transition(DialogTrigger.CANCELLED)
        self.sessions.remove(session_id)
        log.append(f"Cancelled: {conversation.id}")
        logger.info("Conversation %s cancelled", conversation.id)
        return DialogResult(message=replies.CANCELLED_MESSAGE)

    def _conversation(
        self, conversation: Optional[Conversation], intent: Intent
    ) -> DialogResult:
        return self._result(intent.response or replies.CONVERSATION_FALLBACK, conversation)
