"""
agentpm pending - List work that has not started yet.
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import tasks
from agentpm.workflow.engine import load_epic
from agentpm.workflow.models import Epic
from agentpm.workflow.status import PhaseStatus, TestStatus


def build_pending(epic: Epic) -> dict:
    """Pending phases, tasks and tests, in document order."""
    pending_tasks = []
    for phase in epic.phases:
        pending_tasks.extend(tasks.get_pending_tasks_in_phase(epic, phase.id))
    return {
        "phases": [
            {"id": p.id, "name": p.name, "status": p.status.value}
            for p in epic.phases if p.status == PhaseStatus.PENDING
        ],
        "tasks": [
            {"id": t.id, "phase_id": t.phase_id, "name": t.name, "status": t.status.value}
            for t in pending_tasks
        ],
        "tests": [
            {"id": t.id, "task_id": t.task_id, "phase_id": t.phase_id, "name": t.name,
             "test_status": t.test_status.value}
            for t in epic.tests if t.test_status == TestStatus.PENDING
        ],
    }


@guarded
def cmd_pending(args, ctx: CommandContext) -> int:
    epic = load_epic(ctx.epic_path, ctx.store)
    ctx.render("pending_work", build_pending(epic), epic.id)
    return EXIT_SUCCESS
