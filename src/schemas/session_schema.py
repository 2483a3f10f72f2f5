"""Per-conversation dialog state.

A conversation is one of two variants sharing the same expiry discipline:

- ``BookingSession`` tracks the multi-step provider/time selection flow.
- ``PendingAction`` holds a single task awaiting a yes/no answer.

The ``kind`` field is the discriminator; handlers branch on it instead of
guessing which model is active.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional, Union

from src.conversation.state_machine import DialogState, DialogStateMachine
from src.schemas.intent_schema import IntentTask
from src.schemas.provider_schema import Provider, SelectedDateTime, TimeSlotDay


@dataclass
class _ConversationBase:
    id: str
    created_at: datetime
    expires_at: datetime
    machine: DialogStateMachine = field(default_factory=DialogStateMachine)

    @property
    def state(self) -> DialogState:
        return self.machine.current_state

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass
class BookingSession(_ConversationBase):
    """In-progress provider/time selection for one conversation."""

    provider_type: str = ""
    providers: list[Provider] = field(default_factory=list)
    selected_provider: Optional[Provider] = None
    available_slots: list[TimeSlotDay] = field(default_factory=list)
    selected_datetime: Optional[SelectedDateTime] = None
    use_profile: bool = True
    recurring_interval: Optional[str] = None
    label: Optional[str] = None
    kind: Literal["booking_flow"] = "booking_flow"

    def summary(self) -> dict[str, Any]:
        """Serializable view for the command response."""
        return {
            "id": self.id,
            "kind": self.kind,
            "state": self.state.value,
            "provider_type": self.provider_type,
            "providers": [p.model_dump() for p in self.providers],
            "selected_provider": (
                self.selected_provider.model_dump() if self.selected_provider else None
            ),
            "available_slots": [d.model_dump() for d in self.available_slots],
            "selected_datetime": (
                self.selected_datetime.model_dump() if self.selected_datetime else None
            ),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


@dataclass
class PendingAction(_ConversationBase):
    """A single task waiting for the user to confirm or cancel."""

    task: Optional[IntentTask] = None
    kind: Literal["pending_confirmation"] = "pending_confirmation"

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "state": self.state.value,
            "task": self.task.model_dump(mode="json") if self.task else None,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }


Conversation = Union[BookingSession, PendingAction]
