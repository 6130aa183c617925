"""
agentpm show - Inspect one entity of the epic.

``show epic`` needs no id; ``show phase|task|test <id>`` shows the entity
together with its children (a phase's tasks, a task's tests).
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import tasks, tests
from agentpm.workflow.engine import load_epic
from agentpm.workflow.errors import NotFound, ValidationError
from agentpm.workflow.models import Epic, EpicTest, Phase, Task

ENTITY_TYPES = ("epic", "phase", "task", "test")


def _phase_row(phase: Phase) -> dict:
    return {"id": phase.id, "name": phase.name, "status": phase.status.value}


def _task_row(task: Task) -> dict:
    return {"id": task.id, "phase_id": task.phase_id, "name": task.name, "status": task.status.value}


def _test_row(test: EpicTest) -> dict:
    return {
        "id": test.id,
        "name": test.name,
        "test_status": test.test_status.value,
        "test_result": test.test_result.value if test.test_result else "",
    }


def build_epic(epic: Epic) -> dict:
    return {
        "id": epic.id,
        "name": epic.name,
        "status": epic.status.value,
        "assignee": epic.assignee,
        "description": epic.description,
        "workflow": epic.workflow,
        "requirements": epic.requirements,
        "dependencies": epic.dependencies,
        "estimated_effort": epic.estimated_effort,
        "created_at": epic.created_at,
        "started_at": epic.started_at,
        "completed_at": epic.completed_at,
        "phases": [_phase_row(p) for p in epic.phases],
        "tasks": len(epic.tasks),
        "tests": len(epic.tests),
        "events": len(epic.events),
    }


def build_phase(epic: Epic, phase_id: str) -> dict:
    phase = epic.find_phase(phase_id)
    if phase is None:
        raise NotFound("phase", phase_id, [p.id for p in epic.phases])
    return {
        "id": phase.id,
        "name": phase.name,
        "status": phase.status.value,
        "description": phase.description,
        "deliverables": phase.deliverables,
        "started_at": phase.started_at,
        "completed_at": phase.completed_at,
        "tasks": [_task_row(t) for t in tasks.get_tasks_in_phase(epic, phase.id)],
        "tests": [_test_row(t) for t in tests.get_tests_in_phase(epic, phase.id)],
    }


def build_task(epic: Epic, task_id: str) -> dict:
    task = epic.find_task(task_id)
    if task is None:
        raise NotFound("task", task_id, [t.id for t in epic.tasks])
    return {
        "id": task.id,
        "phase_id": task.phase_id,
        "name": task.name,
        "status": task.status.value,
        "description": task.description,
        "acceptance_criteria": task.acceptance_criteria,
        "assignee": task.assignee,
        "started_at": task.started_at,
        "completed_at": task.completed_at,
        "cancelled_at": task.cancelled_at,
        "cancellation_reason": task.cancellation_reason,
        "tests": [_test_row(t) for t in tests.get_tests_for_task(epic, task.id)],
    }


def build_test(epic: Epic, test_id: str) -> dict:
    test = epic.find_test(test_id)
    if test is None:
        raise NotFound("test", test_id, [t.id for t in epic.tests])
    return {
        "id": test.id,
        "task_id": test.task_id,
        "phase_id": test.phase_id,
        "name": test.name,
        "description": test.description,
        "test_status": test.test_status.value,
        "test_result": test.test_result.value if test.test_result else "",
        "blocks_phase": test.blocks_phase,
        "started_at": test.started_at,
        "passed_at": test.passed_at,
        "failed_at": test.failed_at,
        "cancelled_at": test.cancelled_at,
        "failure_note": test.failure_note,
        "cancellation_reason": test.cancellation_reason,
    }


@guarded
def cmd_show(args, ctx: CommandContext) -> int:
    if args.entity != "epic" and not args.id:
        raise ValidationError(f"show {args.entity} requires an id")

    epic = load_epic(ctx.epic_path, ctx.store)
    if args.entity == "epic":
        view = build_epic(epic)
    elif args.entity == "phase":
        view = build_phase(epic, args.id)
    elif args.entity == "task":
        view = build_task(epic, args.id)
    else:
        view = build_test(epic, args.id)
    ctx.render(args.entity, view, epic.id)
    return EXIT_SUCCESS
