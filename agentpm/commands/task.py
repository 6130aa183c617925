"""
agentpm start-task / done-task / cancel-task
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import tasks
from agentpm.workflow.engine import mutate_epic


@guarded
def cmd_start_task(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = tasks.start_task(epic, args.id, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_done_task(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = tasks.complete_task(epic, args.id, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_cancel_task(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = tasks.cancel_task(epic, args.id, args.reason, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS
