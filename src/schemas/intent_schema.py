"""Intent models produced by the classifier and consumed by the orchestrator."""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


class IntentType(str, Enum):
    CONVERSATION = "conversation"
    SEARCH_PROVIDERS = "search_providers"
    SELECT_PROVIDER = "select_provider"
    SELECT_DATETIME = "select_datetime"
    CONFIRM_ACTION = "confirm_action"
    CANCEL_ACTION = "cancel_action"


class TaskKind(str, Enum):
    BOOKING = "booking"
    FORM_FILL = "form_fill"


class IntentTask(BaseModel):
    """Task details attached to an intent, and the executor's input."""

    kind: TaskKind = TaskKind.BOOKING
    provider_type: Optional[str] = None
    provider_id: Optional[str] = None
    search_query: Optional[str] = None
    interval: Optional[str] = None
    use_profile: bool = True
    label: Optional[str] = None
    datetime_preference: Optional[str] = None
    time_slot: Optional[str] = None
    recurring: bool = False
    target_url: Optional[str] = None

    @property
    def target(self) -> str:
        """Automation target: the provider category, or the legacy target_url."""
        return (self.provider_type or self.target_url or "").strip()


class Intent(BaseModel):
    """Classified meaning of a single user utterance."""

    type: IntentType
    task: Optional[IntentTask] = None
    response: Optional[str] = None
    topic: Optional[str] = None
    selection: Optional[Union[int, str]] = Field(default=None, union_mode="left_to_right")


class DialogContext(BaseModel):
    """Hints passed to the classifier about where the conversation stands."""

    has_providers: bool = False
    has_selected_provider: bool = False
    awaiting_confirmation: bool = False
