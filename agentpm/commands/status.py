"""
Read-only views: status, current, events, failing.

Views are plain dicts handed to the generic renderers, so the same data
comes out as text, JSON or XML.
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib.constants import DEFAULT_ASSIGNEE, EXIT_SUCCESS
from agentpm.lib.validate import ConfigError
from agentpm.workflow import autonext, events, phases, tasks, tests
from agentpm.workflow.engine import load_epic
from agentpm.workflow.models import Epic
from agentpm.workflow.status import PHASE_FINISHED, TASK_FINISHED, TestStatus


def _assignee(ctx: CommandContext, epic: Epic) -> str:
    if epic.assignee:
        return epic.assignee
    try:
        cfg = ctx.optional_config()
    except ConfigError:
        cfg = None
    return cfg.default_assignee if cfg else DEFAULT_ASSIGNEE


def build_status(epic: Epic, assignee: str = "") -> dict:
    """Overview of the whole epic."""
    finished_tests = [t for t in epic.tests if t.test_status in (TestStatus.DONE, TestStatus.CANCELLED)]
    return {
        "epic_id": epic.id,
        "name": epic.name,
        "status": epic.status.value,
        "assignee": assignee,
        "phases_completed": f"{sum(p.status in PHASE_FINISHED for p in epic.phases)}/{len(epic.phases)}",
        "tasks_completed": f"{sum(t.status in TASK_FINISHED for t in epic.tasks)}/{len(epic.tasks)}",
        "tests_finished": f"{len(finished_tests)}/{len(epic.tests)}",
        "failing_tests": len(tests.get_failing_tests(epic)),
        "phases": [
            {"id": p.id, "name": p.name, "status": p.status.value}
            for p in epic.phases
        ],
        "next_action": autonext.preview_next(epic),
    }


def build_current(epic: Epic) -> dict:
    """The active phase and task, with the active task's tests."""
    active = phases.get_active_phase(epic)
    view = {
        "epic_status": epic.status.value,
        "active_phase": active.id if active else "",
        "active_task": "",
        "next_action": autonext.preview_next(epic),
    }
    if active is None:
        return view

    view["phase_name"] = active.name
    task = tasks.get_active_task(epic, active.id)
    if task is not None:
        view["active_task"] = task.id
        view["task_name"] = task.name
        view["tests"] = [
            {
                "id": t.id,
                "name": t.name,
                "test_status": t.test_status.value,
                "test_result": t.test_result.value if t.test_result else "",
            }
            for t in tests.get_tests_for_task(epic, task.id)
        ]
    return view


def build_events(epic: Epic, limit: int) -> dict:
    return {
        "events": [
            {"id": e.id, "type": e.type, "timestamp": e.timestamp, "data": e.data}
            for e in events.recent_events(epic, limit)
        ]
    }


def build_failing(epic: Epic) -> dict:
    return {
        "tests": [
            {"id": t.id, "task_id": t.task_id, "name": t.name, "failure_note": t.failure_note}
            for t in tests.get_failing_tests(epic)
        ]
    }


@guarded
def cmd_status(args, ctx: CommandContext) -> int:
    epic = load_epic(ctx.epic_path, ctx.store)
    ctx.render("status", build_status(epic, _assignee(ctx, epic)), epic.id)
    return EXIT_SUCCESS


@guarded
def cmd_current(args, ctx: CommandContext) -> int:
    epic = load_epic(ctx.epic_path, ctx.store)
    ctx.render("current", build_current(epic), epic.id)
    return EXIT_SUCCESS


@guarded
def cmd_events(args, ctx: CommandContext) -> int:
    epic = load_epic(ctx.epic_path, ctx.store)
    ctx.render("events", build_events(epic, args.limit), epic.id)
    return EXIT_SUCCESS


@guarded
def cmd_failing(args, ctx: CommandContext) -> int:
    epic = load_epic(ctx.epic_path, ctx.store)
    ctx.render("failing", build_failing(epic), epic.id)
    return EXIT_SUCCESS
