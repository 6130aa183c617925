"""
agentpm start-next - Start whatever comes next.

Completes a finished phase on the way if needed. no_work and complete_epic
are reported with exit code 0; nothing is saved when nothing changed.
"""

import logging

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import autonext
from agentpm.workflow.engine import mutate_epic

logger = logging.getLogger(__name__)


@guarded
def cmd_start_next(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = autonext.select_next(epic, at)
    logger.debug(f"[NEXT] {epic.id}: {result.action}")
    ctx.emit(output.render_autonext(result, ctx.fmt, epic.id))
    return EXIT_SUCCESS
