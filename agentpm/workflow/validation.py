"""
Precondition checks for every workflow operation.

Each ``check_*`` function is pure: it takes the whole epic plus the target
id and returns the error that would block the operation, or None. Services
raise what these return; nothing here mutates the epic.

Checks for finishing operations also take the operation time ``at``; a
time earlier than the entity's ``started_at`` is a ValidationError.

``validate_document`` checks the structure of a freshly loaded epic.
"""

import logging
from datetime import datetime
from typing import Optional

from agentpm.lib.timeutil import format_timestamp
from agentpm.workflow.errors import (
    AgentPMError,
    EpicIncompleteError,
    InvalidTransition,
    NotFound,
    PhaseConstraintError,
    PhaseIncompleteError,
    PhaseTestDependencyError,
    PhaseTestPrerequisiteError,
    TaskConstraintError,
    TaskIncompleteError,
    TestPrerequisiteError,
    ValidationError,
)
from agentpm.workflow.models import Epic
from agentpm.workflow.status import (
    PHASE_FINISHED,
    TASK_FINISHED,
    TEST_FINISHED,
    EpicStatus,
    PhaseStatus,
    TaskStatus,
    TestStatus,
)

logger = logging.getLogger(__name__)


def _require_reason(kind: str, entity_id: str, reason: str, what: str) -> Optional[ValidationError]:
    if not reason or not reason.strip():
        return ValidationError(f"A {what} reason is required for {kind} {entity_id}")
    return None


def _check_order(kind: str, entity_id: str, started_at: Optional[datetime],
                 at: Optional[datetime]) -> Optional[ValidationError]:
    """An entity cannot finish before it started."""
    if at is None or started_at is None or at >= started_at:
        return None
    return ValidationError(
        f"Timestamp {format_timestamp(at)} for {kind} {entity_id} is earlier than "
        f"its start ({format_timestamp(started_at)})"
    )


# Phases


def check_start_phase(epic: Epic, phase_id: str) -> Optional[AgentPMError]:
    phase = epic.find_phase(phase_id)
    if phase is None:
        return NotFound("phase", phase_id, [p.id for p in epic.phases])
    if phase.status != PhaseStatus.PENDING:
        return InvalidTransition("phase", phase_id, phase.status.value, PhaseStatus.ACTIVE.value, "start")

    for other in epic.phases:
        if other.id != phase_id and other.status == PhaseStatus.ACTIVE:
            return PhaseConstraintError(phase_id, other.id)

    blocking = [
        t.id for t in epic.tests
        if t.blocks_phase == phase_id and t.test_status != TestStatus.DONE
    ]
    if blocking:
        return PhaseTestPrerequisiteError(phase_id, blocking)
    return None


def check_complete_phase(epic: Epic, phase_id: str, at: Optional[datetime] = None) -> Optional[AgentPMError]:
    phase = epic.find_phase(phase_id)
    if phase is None:
        return NotFound("phase", phase_id, [p.id for p in epic.phases])
    if phase.status != PhaseStatus.ACTIVE:
        return InvalidTransition("phase", phase_id, phase.status.value, PhaseStatus.COMPLETED.value, "complete")
    out_of_order = _check_order("phase", phase_id, phase.started_at, at)
    if out_of_order:
        return out_of_order

    pending_tasks = [t.id for t in epic.tasks_in_phase(phase_id) if t.status not in TASK_FINISHED]
    if pending_tasks:
        return PhaseIncompleteError(phase_id, pending_tasks)

    incomplete_tests = [t.id for t in epic.tests_in_phase(phase_id) if t.test_status not in TEST_FINISHED]
    if incomplete_tests:
        return PhaseTestDependencyError(phase_id, incomplete_tests)
    return None


# Tasks


def check_start_task(epic: Epic, task_id: str) -> Optional[AgentPMError]:
    task = epic.find_task(task_id)
    if task is None:
        return NotFound("task", task_id, [t.id for t in epic.tasks])
    if task.status != TaskStatus.PENDING:
        return InvalidTransition("task", task_id, task.status.value, TaskStatus.ACTIVE.value, "start")

    phase = epic.find_phase(task.phase_id)
    if phase is None or phase.status != PhaseStatus.ACTIVE:
        state = phase.status.value if phase else "missing"
        return TaskConstraintError(
            task_id, f"phase {task.phase_id} is not active ({state})", phase_id=task.phase_id,
        )

    for sibling in epic.tasks_in_phase(task.phase_id):
        if sibling.id != task_id and sibling.status == TaskStatus.ACTIVE:
            return TaskConstraintError(
                task_id,
                f"task {sibling.id} is already active in phase {task.phase_id}",
                phase_id=task.phase_id,
                active_task_id=sibling.id,
            )
    return None


def check_complete_task(epic: Epic, task_id: str, at: Optional[datetime] = None) -> Optional[AgentPMError]:
    task = epic.find_task(task_id)
    if task is None:
        return NotFound("task", task_id, [t.id for t in epic.tasks])
    if task.status != TaskStatus.ACTIVE:
        return InvalidTransition("task", task_id, task.status.value, TaskStatus.COMPLETED.value, "complete")
    out_of_order = _check_order("task", task_id, task.started_at, at)
    if out_of_order:
        return out_of_order

    pending_tests = [t.id for t in epic.tests_for_task(task_id) if t.test_status not in TEST_FINISHED]
    if pending_tests:
        return TaskIncompleteError(task_id, pending_tests)
    return None


def check_cancel_task(epic: Epic, task_id: str, reason: str,
                      at: Optional[datetime] = None) -> Optional[AgentPMError]:
    task = epic.find_task(task_id)
    if task is None:
        return NotFound("task", task_id, [t.id for t in epic.tasks])
    missing = _require_reason("task", task_id, reason, "cancellation")
    if missing:
        return missing
    if task.status not in (TaskStatus.PENDING, TaskStatus.ACTIVE):
        return InvalidTransition("task", task_id, task.status.value, TaskStatus.CANCELLED.value, "cancel")
    return _check_order("task", task_id, task.started_at, at)


# Tests


def _check_test_task(epic: Epic, test) -> Optional[AgentPMError]:
    task = epic.find_task(test.task_id)
    if task is None or task.status not in (TaskStatus.ACTIVE, TaskStatus.COMPLETED):
        return TestPrerequisiteError(test.id, test.task_id, task.status.value if task else "missing")
    return None


def check_start_test(epic: Epic, test_id: str) -> Optional[AgentPMError]:
    test = epic.find_test(test_id)
    if test is None:
        return NotFound("test", test_id, [t.id for t in epic.tests])
    if test.test_status != TestStatus.PENDING:
        return InvalidTransition("test", test_id, test.test_status.value, TestStatus.ACTIVE.value, "start")
    return _check_test_task(epic, test)


def check_pass_test(epic: Epic, test_id: str, at: Optional[datetime] = None) -> Optional[AgentPMError]:
    """A pending test may be passed directly once its task has started."""
    test = epic.find_test(test_id)
    if test is None:
        return NotFound("test", test_id, [t.id for t in epic.tests])
    if test.test_status == TestStatus.PENDING:
        return _check_test_task(epic, test)
    if test.test_status not in (TestStatus.ACTIVE, TestStatus.DONE):
        return InvalidTransition("test", test_id, test.test_status.value, TestStatus.DONE.value, "pass")
    return _check_order("test", test_id, test.started_at, at)


def check_fail_test(epic: Epic, test_id: str, reason: str,
                    at: Optional[datetime] = None) -> Optional[AgentPMError]:
    test = epic.find_test(test_id)
    if test is None:
        return NotFound("test", test_id, [t.id for t in epic.tests])
    missing = _require_reason("test", test_id, reason, "failure")
    if missing:
        return missing
    if test.test_status == TestStatus.PENDING:
        return _check_test_task(epic, test)
    if test.test_status not in (TestStatus.ACTIVE, TestStatus.DONE):
        return InvalidTransition("test", test_id, test.test_status.value, TestStatus.ACTIVE.value, "fail")
    return _check_order("test", test_id, test.started_at, at)


def check_cancel_test(epic: Epic, test_id: str, reason: str,
                      at: Optional[datetime] = None) -> Optional[AgentPMError]:
    test = epic.find_test(test_id)
    if test is None:
        return NotFound("test", test_id, [t.id for t in epic.tests])
    missing = _require_reason("test", test_id, reason, "cancellation")
    if missing:
        return missing
    if test.test_status not in (TestStatus.PENDING, TestStatus.ACTIVE):
        return InvalidTransition("test", test_id, test.test_status.value, TestStatus.CANCELLED.value, "cancel")
    return _check_order("test", test_id, test.started_at, at)


# Epic


def check_start_epic(epic: Epic) -> Optional[AgentPMError]:
    if epic.status != EpicStatus.PENDING:
        return InvalidTransition("epic", epic.id, epic.status.value, EpicStatus.ACTIVE.value, "start")
    return None


def check_complete_epic(epic: Epic, at: Optional[datetime] = None) -> Optional[AgentPMError]:
    if epic.status != EpicStatus.ACTIVE:
        return InvalidTransition("epic", epic.id, epic.status.value, EpicStatus.COMPLETED.value, "complete")
    out_of_order = _check_order("epic", epic.id, epic.started_at, at)
    if out_of_order:
        return out_of_order

    pending_phases = [p.id for p in epic.phases if p.status not in PHASE_FINISHED]
    failing_tests = [t.id for t in epic.tests if t.is_failing]
    if pending_phases or failing_tests:
        return EpicIncompleteError(epic.id, pending_phases, failing_tests)
    return None


# Document structure


def _duplicates(ids: list[str]) -> list[str]:
    seen: set[str] = set()
    dupes = []
    for i in ids:
        if i in seen and i not in dupes:
            dupes.append(i)
        seen.add(i)
    return dupes


def validate_document(epic: Epic) -> None:
    """Check ids and cross references of a loaded epic.

    A test without a phase_id inherits its task's phase. Single-active
    violations in a hand-edited document are logged, not raised, so the
    user can still inspect and repair it.

    Raises:
        ValidationError: If ids are duplicated or references dangle
    """
    problems = []

    for kind, ids in (
        ("phase", [p.id for p in epic.phases]),
        ("task", [t.id for t in epic.tasks]),
        ("test", [t.id for t in epic.tests]),
    ):
        for dup in _duplicates(ids):
            problems.append(f"duplicate {kind} id '{dup}'")
        if any(not i for i in ids):
            problems.append(f"{kind} without id")

    phase_ids = {p.id for p in epic.phases}
    for task in epic.tasks:
        if task.phase_id not in phase_ids:
            problems.append(f"task '{task.id}' references unknown phase '{task.phase_id}'")

    for test in epic.tests:
        task = epic.find_task(test.task_id)
        if task is None:
            problems.append(f"test '{test.id}' references unknown task '{test.task_id}'")
            continue
        if not test.phase_id:
            test.phase_id = task.phase_id
        elif test.phase_id != task.phase_id:
            problems.append(
                f"test '{test.id}' phase '{test.phase_id}' does not match "
                f"task '{task.id}' phase '{task.phase_id}'"
            )
        if test.blocks_phase and test.blocks_phase not in phase_ids:
            problems.append(f"test '{test.id}' blocks unknown phase '{test.blocks_phase}'")

    if problems:
        raise ValidationError(f"Epic {epic.id} is invalid", problems)

    active_phases = [p.id for p in epic.phases if p.status == PhaseStatus.ACTIVE]
    if len(active_phases) > 1:
        logger.warning(f"[VALIDATE] {epic.id}: multiple active phases {active_phases}")
    for phase in epic.phases:
        active_tasks = [t.id for t in epic.tasks_in_phase(phase.id) if t.status == TaskStatus.ACTIVE]
        if len(active_tasks) > 1:
            logger.warning(f"[VALIDATE] {epic.id}: multiple active tasks in {phase.id}: {active_tasks}")
