"""
agentpm start-epic / done-epic - Epic lifecycle.
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import lifecycle
from agentpm.workflow.engine import mutate_epic


@guarded
def cmd_start_epic(args, ctx: CommandContext) -> int:
    """Move the epic from pending to active."""
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = lifecycle.start_epic(epic, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_done_epic(args, ctx: CommandContext) -> int:
    """Complete the epic and print its summary."""
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result, summary = lifecycle.complete_epic(epic, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id, summary=summary))
    return EXIT_SUCCESS
