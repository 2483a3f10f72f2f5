"""
Task executor: routes a resolved task to the matching automation routine.

Failures are returned as ``ExecutionResult(success=False, ...)`` so callers
can surface them to the user; routine exceptions never escape ``run_task``.
"""

import logging
from typing import Awaitable, Callable, Optional

from src.schemas.intent_schema import IntentTask
from src.schemas.profile_schema import Profile
from src.schemas.workflow_schema import ExecutionResult
from src.storage.profile_store import ProfileStore
from src.tools.automation import (
    book_dentist_appointment,
    book_gp_appointment,
    fill_event_form,
)

logger = logging.getLogger(__name__)

Routine = Callable[[IntentTask, Profile], Awaitable[ExecutionResult]]

DEFAULT_ROUTINES: dict[str, Routine] = {
    "tandarts": book_dentist_appointment,
    "dentist": book_dentist_appointment,
    "huisarts": book_gp_appointment,
    "event": fill_event_form,
}


class TaskExecutor:
    """Runs booking and form-fill tasks with the stored profile."""

    def __init__(
        self,
        profile_store: ProfileStore,
        routines: Optional[dict[str, Routine]] = None,
    ) -> None:
        self._profiles = profile_store
        self._routines = routines if routines is not None else dict(DEFAULT_ROUTINES)

    def supports(self, target: str) -> bool:
        return (target or "").lower() in self._routines

    async def run_task(self, task: IntentTask) -> ExecutionResult:
        target = task.target
        logger.info("Running task: %s on %s", task.kind.value, target)

        profile = self._profiles.get_profile() if task.use_profile else None
        if profile is None:
            return ExecutionResult(
                success=False,
                message="No profile data available",
                error="Profile is required but use_profile is false or profile not found",
            )

        routine = self._routines.get(target.lower())
        if routine is None:
            return ExecutionResult(
                success=False,
                message=f"Unknown target: {target}",
                error=f"No automation available for target: {target}",
            )

        try:
            result = await routine(task, profile)
        except Exception as exc:
            logger.exception("Task failed: %s", target)
            return ExecutionResult(
                success=False,
                message="Task execution failed",
                error=str(exc) or type(exc).__name__,
            )

        if result.success:
            logger.info("Task completed: %s", target)
        else:
            logger.warning("Task reported failure: %s (%s)", target, result.error)
        return result
