"""Epic lifecycle: start and complete.

An epic completes only when every phase is completed or cancelled and no
test is failing. Completion reports an EpicSummary for the caller.
"""

import logging
from datetime import datetime

from agentpm.workflow import events, fsm, validation
from agentpm.workflow.models import Epic
from agentpm.workflow.results import CountSummary, EpicSummary, OperationResult
from agentpm.workflow.status import (
    EpicStatus,
    PhaseStatus,
    TaskStatus,
    TestResult,
    TestStatus,
)

logger = logging.getLogger(__name__)


def start_epic(epic: Epic, at: datetime) -> OperationResult:
    """Move a pending epic to active.

    Raises:
        InvalidTransition
    """
    error = validation.check_start_epic(epic)
    if error:
        raise error

    previous = epic.status
    epic.status = fsm.advance("epic", epic.id, epic.status, EpicStatus.ACTIVE, "start")
    epic.started_at = at
    event = events.record_epic(epic, events.EPIC_STARTED, at)

    logger.info(f"[EPIC] {epic.id}: {previous.value} -> {epic.status.value}")
    return OperationResult(
        operation="started",
        entity_kind="epic",
        entity_id=epic.id,
        previous_status=previous.value,
        new_status=epic.status.value,
        timestamp=at,
        message=f"Epic {epic.id} started",
        event_id=event.id,
    )


def complete_epic(epic: Epic, at: datetime) -> tuple[OperationResult, EpicSummary]:
    """Complete an active epic whose phases are all finished.

    Raises:
        InvalidTransition, EpicIncompleteError,
        ValidationError (``at`` before the epic started)
    """
    error = validation.check_complete_epic(epic, at)
    if error:
        raise error

    previous = epic.status
    epic.status = fsm.advance("epic", epic.id, epic.status, EpicStatus.COMPLETED, "complete")
    epic.completed_at = at
    event = events.record_epic(epic, events.EPIC_COMPLETED, at)
    summary = summarize(epic)

    logger.info(f"[EPIC] {epic.id}: {previous.value} -> {epic.status.value}")
    result = OperationResult(
        operation="completed",
        entity_kind="epic",
        entity_id=epic.id,
        previous_status=previous.value,
        new_status=epic.status.value,
        timestamp=at,
        message=f"Epic {epic.id} completed",
        event_id=event.id,
    )
    return result, summary


def summarize(epic: Epic) -> EpicSummary:
    """Counts of phases, tasks and tests plus elapsed time."""
    duration = 0
    if epic.started_at and epic.completed_at:
        duration = max(0, int((epic.completed_at - epic.started_at).total_seconds()))

    return EpicSummary(
        epic_id=epic.id,
        phases=CountSummary(
            total=len(epic.phases),
            completed=sum(1 for p in epic.phases if p.status == PhaseStatus.COMPLETED),
            cancelled=sum(1 for p in epic.phases if p.status == PhaseStatus.CANCELLED),
        ),
        tasks=CountSummary(
            total=len(epic.tasks),
            completed=sum(1 for t in epic.tasks if t.status == TaskStatus.COMPLETED),
            cancelled=sum(1 for t in epic.tasks if t.status == TaskStatus.CANCELLED),
        ),
        tests=CountSummary(
            total=len(epic.tests),
            completed=sum(1 for t in epic.tests if t.test_status == TestStatus.DONE),
            cancelled=sum(1 for t in epic.tests if t.test_status == TestStatus.CANCELLED),
        ),
        passing_tests=sum(1 for t in epic.tests if t.test_result == TestResult.PASSING),
        failing_tests=sum(1 for t in epic.tests if t.test_result == TestResult.FAILING),
        started_at=epic.started_at,
        completed_at=epic.completed_at,
        duration_seconds=duration,
    )
