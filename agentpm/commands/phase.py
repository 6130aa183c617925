"""
agentpm start-phase / done-phase
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import phases
from agentpm.workflow.engine import mutate_epic


@guarded
def cmd_start_phase(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = phases.start_phase(epic, args.id, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_done_phase(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = phases.complete_phase(epic, args.id, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS
