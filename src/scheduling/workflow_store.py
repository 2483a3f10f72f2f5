"""
Recurring workflow persistence and due-time computation.

Workflows and their execution history are kept in two JSON files under the
data directory. ``next_run`` is always derived from ``last_run`` (or the
creation time) with the same rule used at creation, so it is never edited
independently.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from src.config import settings
from src.scheduling.intervals import compute_next_run, parse_interval, DEFAULT_INTERVAL
from src.schemas.workflow_schema import (
    Execution,
    Workflow,
    WorkflowCreate,
    WorkflowRunSummary,
)
from src.storage.json_store import JsonRecordStore
from src.utils import ensure_utc, generate_id, utc_now

logger = logging.getLogger(__name__)

MANUAL_WORKFLOW_ID = "manual"
DEFAULT_USER_ID = "default"


def is_due(workflow: Workflow, now: datetime) -> bool:
    """Whether ``workflow`` should run at ``now``.

    Records with ``next_run`` use it directly. Older records without one
    are due when they have never run, or once ``last_run + interval``
    has passed.
    """
    now = ensure_utc(now)
    if workflow.next_run is not None:
        return ensure_utc(workflow.next_run) <= now
    if workflow.last_run is None:
        return True
    period = parse_interval(workflow.interval or DEFAULT_INTERVAL)
    return now >= ensure_utc(workflow.last_run) + period


class WorkflowStore:
    """CRUD, scheduling and execution history for recurring workflows."""

    def __init__(self, data_dir: Path, max_executions: Optional[int] = None) -> None:
        data_dir = Path(data_dir)
        self._workflows = JsonRecordStore(data_dir / "workflows.json")
        self._executions = JsonRecordStore(data_dir / "executions.json")
        self._max_executions = max_executions or settings.scheduler.max_executions

    # ------------------------------------------------------------------ #
    # Workflow records
    # ------------------------------------------------------------------ #

    def _load(self) -> list[Workflow]:
        return [Workflow.model_validate(raw) for raw in self._workflows.load()]

    def _save(self, workflows: list[Workflow]) -> None:
        self._workflows.save([w.model_dump(mode="json") for w in workflows])

    def create(
        self,
        params: Union[WorkflowCreate, dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> Workflow:
        """Persist a new workflow with its first ``next_run`` computed.

        Raises:
            ValueError: If neither an interval nor a schedule is given.
        """
        if isinstance(params, dict):
            params = WorkflowCreate.model_validate(params)
        if not params.interval and not params.schedule:
            raise ValueError("Either 'schedule' (cron) or 'interval' (ISO duration) is required")

        created_at = ensure_utc(now or utc_now())
        workflow = Workflow(
            id=generate_id("wf"),
            user_id=params.user_id,
            type=params.type,
            kind=params.kind,
            category=params.category,
            interval=params.interval,
            schedule=params.schedule,
            label=params.label,
            last_run=None,
            next_run=compute_next_run(params.schedule, params.interval, created_at),
            status="active",
            created_at=created_at,
            use_profile=params.use_profile,
        )

        workflows = self._load()
        workflows.append(workflow)
        self._save(workflows)

        logger.info("Workflow created: %s (next run %s)", workflow.id, workflow.next_run)
        return workflow

    def get(self, workflow_id: str) -> Optional[Workflow]:
        for workflow in self._load():
            if workflow.id == workflow_id:
                return workflow
        return None

    def all_workflows(self) -> list[Workflow]:
        return self._load()

    def delete(self, workflow_id: str) -> bool:
        workflows = self._load()
        remaining = [w for w in workflows if w.id != workflow_id]
        if len(remaining) == len(workflows):
            return False
        self._save(remaining)
        logger.info("Workflow deleted: %s", workflow_id)
        return True

    # ------------------------------------------------------------------ #
    # Scheduling
    # ------------------------------------------------------------------ #

    def due_workflows(self, now: Optional[datetime] = None) -> list[Workflow]:
        """All workflows due at ``now``, in storage order."""
        now = ensure_utc(now or utc_now())
        return [w for w in self._load() if is_due(w, now)]

    def mark_run(
        self,
        workflow_id: str,
        executed_at: datetime,
        success: bool,
        result: Optional[dict[str, Any]] = None,
    ) -> Optional[WorkflowRunSummary]:
        """Record a run, advance ``next_run`` and append to the history.

        Returns None when the workflow no longer exists.
        """
        executed_at = ensure_utc(executed_at)
        workflows = self._load()
        workflow = next((w for w in workflows if w.id == workflow_id), None)
        if workflow is None:
            logger.warning("mark_run for unknown workflow: %s", workflow_id)
            return None

        workflow.last_run = executed_at
        workflow.next_run = compute_next_run(workflow.schedule, workflow.interval, executed_at)
        self._save(workflows)

        self._append_execution(Execution(
            id=generate_id("exec"),
            workflow_id=workflow.id,
            user_id=workflow.user_id or DEFAULT_USER_ID,
            type=workflow.kind or workflow.type.value,
            result=result or {},
            success=success,
            executed_at=executed_at,
        ))

        logger.info("Workflow %s ran, next run: %s", workflow.id, workflow.next_run)
        return WorkflowRunSummary(
            workflow_id=workflow.id,
            last_run=executed_at,
            next_run=workflow.next_run,
            status="success" if success else "failed",
        )

    # ------------------------------------------------------------------ #
    # Execution history
    # ------------------------------------------------------------------ #

    def _append_execution(self, execution: Execution) -> None:
        history = self._executions.load()
        history.append(execution.model_dump(mode="json"))
        self._executions.save(history[-self._max_executions:])
        logger.debug("Execution saved: %s", execution.id)

    def executions(self, user_id: Optional[str] = None) -> list[Execution]:
        records = [Execution.model_validate(raw) for raw in self._executions.load()]
        if user_id is None:
            return records
        return [e for e in records if e.user_id == user_id]

    def report_result(
        self,
        user_id: str,
        type: str,
        result: dict[str, Any],
        success: bool = True,
    ) -> Execution:
        """Record an outcome reported by an external caller."""
        execution = Execution(
            id=generate_id("exec"),
            workflow_id=MANUAL_WORKFLOW_ID,
            user_id=user_id,
            type=type,
            result=result,
            success=success,
            executed_at=utc_now(),
        )
        self._append_execution(execution)
        logger.info("Result reported: %s for user %s", type, user_id)
        return execution
