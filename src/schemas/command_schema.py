"""Externally visible response of one voice or text command."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.schemas.intent_schema import Intent
from src.schemas.provider_schema import Provider, TimeSlotDay
from src.schemas.workflow_schema import ExecutionResult


class CommandResponse(BaseModel):
    """Serialized with camelCase keys (``model_dump(by_alias=True)``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_transcript: str = ""
    intent: Optional[Intent] = None
    agent_message: str
    actions_log: list[str] = Field(default_factory=list)
    audio: str = ""
    providers: list[Provider] = Field(default_factory=list)
    selected_provider: Optional[Provider] = None
    available_slots: list[TimeSlotDay] = Field(default_factory=list)
    booking_session: Optional[dict[str, Any]] = None
    action_executed: bool = False
    execution_result: Optional[ExecutionResult] = None
    workflow_id: Optional[str] = None
