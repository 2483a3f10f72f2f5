"""
Scheduled-run driver.

Each pass snapshots the clock once, runs every due workflow through the
executor and records the run. A failed run still advances the schedule,
so a broken workflow is retried at its next occurrence rather than on
every poll.
"""

import logging
from datetime import datetime
from typing import Callable

from src.schemas.intent_schema import IntentTask
from src.schemas.workflow_schema import ExecutionResult, ScheduledRunResult, Workflow
from src.scheduling.workflow_store import WorkflowStore
from src.tools.executor import TaskExecutor
from src.utils import utc_now

logger = logging.getLogger(__name__)


def task_from_workflow(workflow: Workflow) -> IntentTask:
    """Executor input for one stored workflow."""
    return IntentTask(
        kind=workflow.type,
        provider_type=workflow.category,
        interval=workflow.interval,
        use_profile=workflow.use_profile,
        label=workflow.label,
        recurring=True,
    )


class ScheduledRunDriver:
    """Runs due workflows on each external trigger."""

    def __init__(
        self,
        store: WorkflowStore,
        executor: TaskExecutor,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._executor = executor
        self._clock = clock

    async def _execute(self, workflow: Workflow) -> ExecutionResult:
        try:
            return await self._executor.run_task(task_from_workflow(workflow))
        except Exception as exc:
            logger.exception("Workflow %s raised during execution", workflow.id)
            return ExecutionResult(
                success=False,
                message="Workflow execution failed",
                error=str(exc) or type(exc).__name__,
            )

    async def run_due(self) -> list[ScheduledRunResult]:
        """Execute all due workflows and return one record per workflow."""
        now = self._clock()
        due = self._store.due_workflows(now)
        logger.info("Scheduled run at %s: %d workflow(s) due", now.isoformat(), len(due))

        results: list[ScheduledRunResult] = []
        for workflow in due:
            logger.info("Running workflow %s (%s)", workflow.id, workflow.label or workflow.category)
            result = await self._execute(workflow)
            self._store.mark_run(
                workflow.id, now, result.success, result.model_dump(mode="json")
            )
            results.append(ScheduledRunResult(
                id=workflow.id,
                category=workflow.category,
                ran_at=now,
                result=result,
            ))

        return results
