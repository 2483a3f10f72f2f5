"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from src.conversation.orchestrator import BookingOrchestrator
from src.conversation.session_store import SessionStore
from src.conversation.state_machine import DialogStateMachine
from src.scheduling.workflow_store import WorkflowStore
from src.schemas.intent_schema import Intent, IntentTask, IntentType
from src.schemas.workflow_schema import ExecutionResult
from src.storage.profile_store import ProfileStore
from src.tools.calendar import BookingEvent

# Wednesday; the next five days hold three weekdays (Thu 2, Fri 3, Mon 6)
FIXED_NOW = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock passed wherever a ``clock`` callable is accepted."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeExecutor:
    """Records tasks and returns a canned result (or raises)."""

    def __init__(
        self,
        result: Optional[ExecutionResult] = None,
        error: Optional[Exception] = None,
        targets: tuple[str, ...] = ("tandarts", "dentist", "huisarts", "event"),
    ) -> None:
        self.result = result or ExecutionResult(
            success=True, message="Booked", confirmation_text="Confirmation #123"
        )
        self.error = error
        self.targets = targets
        self.tasks: list[IntentTask] = []

    def supports(self, target: str) -> bool:
        return (target or "").lower() in self.targets

    async def run_task(self, task: IntentTask) -> ExecutionResult:
        self.tasks.append(task)
        if self.error is not None:
            raise self.error
        return self.result


class FakeNotifier:
    def __init__(self, delivered: bool = True, error: Optional[Exception] = None) -> None:
        self.delivered = delivered
        self.error = error
        self.events: list[BookingEvent] = []

    async def notify(self, event: BookingEvent) -> bool:
        self.events.append(event)
        if self.error is not None:
            raise self.error
        return self.delivered


def make_intent(
    intent_type: IntentType,
    selection=None,
    response: Optional[str] = None,
    **task_fields,
) -> Intent:
    """Helper to create an Intent, with a task only when fields are given."""
    return Intent(
        type=intent_type,
        selection=selection,
        response=response,
        task=IntentTask(**task_fields) if task_fields else None,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state_machine():
    return DialogStateMachine()


@pytest.fixture
def profile_store(tmp_path):
    return ProfileStore(tmp_path)


@pytest.fixture
def workflow_store(tmp_path):
    return WorkflowStore(tmp_path)


@pytest.fixture
def session_store(clock):
    return SessionStore(ttl=timedelta(minutes=10), clock=clock)


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def orchestrator(session_store, executor, workflow_store, profile_store, notifier, clock):
    return BookingOrchestrator(
        session_store, executor, workflow_store, profile_store,
        notifier=notifier, clock=clock,
    )
