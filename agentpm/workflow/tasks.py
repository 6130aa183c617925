"""Task operations: start, complete, cancel, and per-phase queries.

Within a phase at most one task is active. A task completes only when
all of its tests are done or cancelled.
"""

import logging
from datetime import datetime
from typing import Optional

from agentpm.workflow import events, fsm, validation
from agentpm.workflow.models import Epic, Task
from agentpm.workflow.results import OperationResult
from agentpm.workflow.status import TaskStatus

logger = logging.getLogger(__name__)


def start_task(epic: Epic, task_id: str, at: datetime) -> OperationResult:
    """Activate a pending task in the active phase.

    Raises:
        NotFound, InvalidTransition, TaskConstraintError
    """
    error = validation.check_start_task(epic, task_id)
    if error:
        raise error

    task = epic.find_task(task_id)
    previous = task.status
    task.status = fsm.advance("task", task_id, task.status, TaskStatus.ACTIVE, "start")
    task.started_at = at
    event = events.record_task(epic, events.TASK_STARTED, task_id, at)

    logger.info(f"[TASK] {epic.id}/{task_id}: {previous.value} -> {task.status.value}")
    return OperationResult(
        operation="started",
        entity_kind="task",
        entity_id=task_id,
        previous_status=previous.value,
        new_status=task.status.value,
        timestamp=at,
        message=f"Task {task_id} started",
        event_id=event.id,
    )


def complete_task(epic: Epic, task_id: str, at: datetime) -> OperationResult:
    """Complete an active task whose tests are all done or cancelled.

    Raises:
        NotFound, InvalidTransition, TaskIncompleteError,
        ValidationError (``at`` before the task started)
    """
    error = validation.check_complete_task(epic, task_id, at)
    if error:
        raise error

    task = epic.find_task(task_id)
    previous = task.status
    task.status = fsm.advance("task", task_id, task.status, TaskStatus.COMPLETED, "complete")
    task.completed_at = at
    event = events.record_task(epic, events.TASK_COMPLETED, task_id, at)

    logger.info(f"[TASK] {epic.id}/{task_id}: {previous.value} -> {task.status.value}")
    return OperationResult(
        operation="completed",
        entity_kind="task",
        entity_id=task_id,
        previous_status=previous.value,
        new_status=task.status.value,
        timestamp=at,
        message=f"Task {task_id} completed",
        event_id=event.id,
    )


def cancel_task(epic: Epic, task_id: str, reason: str, at: datetime) -> OperationResult:
    """Cancel a pending or active task.

    Raises:
        NotFound, ValidationError (empty reason), InvalidTransition
    """
    error = validation.check_cancel_task(epic, task_id, reason, at)
    if error:
        raise error

    task = epic.find_task(task_id)
    previous = task.status
    task.status = fsm.advance("task", task_id, task.status, TaskStatus.CANCELLED, "cancel")
    task.cancelled_at = at
    task.cancellation_reason = reason
    event = events.record_task(epic, events.TASK_CANCELLED, task_id, at, reason)

    logger.info(f"[TASK] {epic.id}/{task_id}: {previous.value} -> cancelled ({reason})")
    return OperationResult(
        operation="cancelled",
        entity_kind="task",
        entity_id=task_id,
        previous_status=previous.value,
        new_status=task.status.value,
        timestamp=at,
        message=f"Task {task_id} cancelled",
        event_id=event.id,
        reason=reason,
    )


def get_active_task(epic: Epic, phase_id: str) -> Optional[Task]:
    for task in epic.tasks_in_phase(phase_id):
        if task.status == TaskStatus.ACTIVE:
            return task
    return None


def get_pending_tasks_in_phase(epic: Epic, phase_id: str) -> list[Task]:
    """Pending tasks of a phase, in document order."""
    return [t for t in epic.tasks_in_phase(phase_id) if t.status == TaskStatus.PENDING]


def get_tasks_in_phase(epic: Epic, phase_id: str) -> list[Task]:
    return epic.tasks_in_phase(phase_id)
