"""Recurring workflow, execution history and scheduler result models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field

from src.schemas.intent_schema import TaskKind


class ExecutionResult(BaseModel):
    """Normalized outcome of one executor call."""

    success: bool
    message: str = ""
    confirmation_text: Optional[str] = None
    error: Optional[str] = None


class Workflow(BaseModel):
    """Persisted recurring-task definition."""

    id: str
    user_id: Optional[str] = None
    type: TaskKind = TaskKind.BOOKING
    kind: Optional[str] = None
    category: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("category", "target_url")
    )
    interval: Optional[str] = None
    schedule: Optional[str] = None
    label: Optional[str] = None
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    status: str = "active"
    created_at: datetime
    use_profile: bool = True


class WorkflowCreate(BaseModel):
    """Parameters accepted by WorkflowStore.create."""

    user_id: Optional[str] = None
    type: TaskKind = TaskKind.BOOKING
    kind: Optional[str] = None
    category: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("category", "target_url")
    )
    interval: Optional[str] = None
    schedule: Optional[str] = None
    label: Optional[str] = None
    use_profile: bool = True


class Execution(BaseModel):
    """Append-only audit record of a workflow run or a reported result."""

    id: str
    workflow_id: str
    user_id: str
    type: str
    result: dict[str, Any] = Field(default_factory=dict)
    success: bool
    executed_at: datetime


class WorkflowRunSummary(BaseModel):
    workflow_id: str
    last_run: datetime
    next_run: datetime
    status: str


class ScheduledRunResult(BaseModel):
    """Per-workflow record returned by one scheduled-run pass."""

    id: str
    category: Optional[str] = None
    ran_at: datetime
    result: ExecutionResult
