"""
agentpm log - Append a free-form entry to the epic's event log.
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import events
from agentpm.workflow.engine import mutate_epic


@guarded
def cmd_log(args, ctx: CommandContext) -> int:
    """Record a note, blocker or decision with the files it touched."""
    at = ctx.at
    files = events.parse_files(args.files)
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        event = events.log_entry(epic, args.message, at, args.type, files)

    ctx.render("event_logged", {
        "id": event.id,
        "type": event.type,
        "timestamp": event.timestamp,
        "phase_id": event.phase_id,
        "task_id": event.task_id,
        "message": event.data,
    }, epic.id)
    return EXIT_SUCCESS
