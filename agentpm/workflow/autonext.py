"""Auto-next: pick and perform the next piece of work.

Selection order (first match wins, document order everywhere):

1. An active phase exists:
   a. it has an active task              -> no_work
   b. it has a pending task              -> start that task (start_task)
   c. all its tasks are finished         -> complete the phase, then step 2;
                                            a blocked completion raises
   d. otherwise                          -> no_work
2. No pending phase is left              -> complete_epic (recommendation only)
3. Start the first pending phase and, if it has one, its first pending task
                                         -> start_phase

At most one phase is completed per call, so every call reports a single
primary action. The selector never reads the clock.
"""

import logging
from datetime import datetime

from agentpm.workflow import phases, tasks
from agentpm.workflow.models import Epic, Phase
from agentpm.workflow.results import AutoNextResult
from agentpm.workflow.status import TASK_FINISHED, EpicStatus

logger = logging.getLogger(__name__)

START_TASK = "start_task"
START_PHASE = "start_phase"
COMPLETE_EPIC = "complete_epic"
NO_WORK = "no_work"


def select_next(epic: Epic, at: datetime) -> AutoNextResult:
    """Perform the next action on ``epic`` and describe it.

    Raises:
        Any workflow error from completing the active phase or starting
        the chosen phase or task
    """
    if epic.status == EpicStatus.COMPLETED:
        return AutoNextResult(action=COMPLETE_EPIC, message=f"Epic {epic.id} is already completed.")

    active = phases.get_active_phase(epic)
    if active is None:
        return _start_next_phase(epic, at)

    active_task = tasks.get_active_task(epic, active.id)
    if active_task is not None:
        logger.debug(f"[NEXT] {epic.id}: task {active_task.id} already active")
        return AutoNextResult(
            action=NO_WORK,
            phase_id=active.id,
            task_id=active_task.id,
            phase_name=active.name,
            task_name=active_task.name,
            phase_status=active.status.value,
            task_status=active_task.status.value,
            message=f"Task {active_task.id} is already active in phase {active.id}",
        )

    pending = tasks.get_pending_tasks_in_phase(epic, active.id)
    if pending:
        task = pending[0]
        tasks.start_task(epic, task.id, at)
        logger.info(f"[NEXT] {epic.id}: started task {task.id}")
        return AutoNextResult(
            action=START_TASK,
            phase_id=active.id,
            task_id=task.id,
            phase_name=active.name,
            task_name=task.name,
            phase_status=active.status.value,
            task_status=task.status.value,
            started_at=at,
            auto_selected=True,
            message=f"Started Task {task.id}: {task.name} (auto-selected)",
        )

    phase_tasks = tasks.get_tasks_in_phase(epic, active.id)
    if not phase_tasks:
        return _no_work(active, f"Phase {active.id} has no tasks to start")
    if not all(t.status in TASK_FINISHED for t in phase_tasks):
        return _no_work(active, f"Phase {active.id} has pending work but no tasks can be started")

    phases.complete_phase(epic, active.id, at)
    logger.info(f"[NEXT] {epic.id}: completed phase {active.id}")
    result = _start_next_phase(epic, at)
    result.completed_phase_id = active.id
    result.message = f"Completed Phase {active.id}. {result.message}"
    return result


def _no_work(phase: Phase, message: str) -> AutoNextResult:
    logger.debug(f"[NEXT] {message}")
    return AutoNextResult(
        action=NO_WORK,
        phase_id=phase.id,
        phase_name=phase.name,
        phase_status=phase.status.value,
        message=message,
    )


def _start_next_phase(epic: Epic, at: datetime) -> AutoNextResult:
    phase = phases.get_next_pending_phase(epic)
    if phase is None:
        return AutoNextResult(
            action=COMPLETE_EPIC,
            message="All phases and tasks completed. Epic ready for completion.",
        )

    phases.start_phase(epic, phase.id, at)
    logger.info(f"[NEXT] {epic.id}: started phase {phase.id}")

    pending = tasks.get_pending_tasks_in_phase(epic, phase.id)
    if not pending:
        return AutoNextResult(
            action=START_PHASE,
            phase_id=phase.id,
            phase_name=phase.name,
            phase_status=phase.status.value,
            started_at=at,
            auto_selected=True,
            message=f"Started Phase {phase.id} (no tasks available)",
        )

    task = pending[0]
    tasks.start_task(epic, task.id, at)
    return AutoNextResult(
        action=START_PHASE,
        phase_id=phase.id,
        task_id=task.id,
        phase_name=phase.name,
        task_name=task.name,
        phase_status=phase.status.value,
        task_status=task.status.value,
        started_at=at,
        auto_selected=True,
        message=f"Started Phase {phase.id} and Task {task.id} (auto-selected)",
    )


def preview_next(epic: Epic) -> str:
    """Describe the next action without performing it."""
    if epic.status == EpicStatus.COMPLETED:
        return "Epic completed"
    if epic.status == EpicStatus.PENDING:
        return "Start epic"

    active = phases.get_active_phase(epic)
    if active is not None:
        active_task = tasks.get_active_task(epic, active.id)
        if active_task is not None:
            return f"Complete task {active_task.id}"
        pending = tasks.get_pending_tasks_in_phase(epic, active.id)
        if pending:
            return f"Start task {pending[0].id}"
        return f"Complete phase {active.id}"

    phase = phases.get_next_pending_phase(epic)
    if phase is not None:
        return f"Start phase {phase.id}"
    return "Complete epic"
