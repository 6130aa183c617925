"""
agentpm validate - Check an epic document without changing it.
"""

import logging

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow.validation import validate_document

logger = logging.getLogger(__name__)


@guarded
def cmd_validate(args, ctx: CommandContext) -> int:
    path = ctx.epic_path
    epic = ctx.store.load(path)
    validate_document(epic)
    logger.info(f"[VALIDATE] {path}: valid")

    ctx.render("validation_result", {
        "valid": True,
        "phases": len(epic.phases),
        "tasks": len(epic.tasks),
        "tests": len(epic.tests),
        "events": len(epic.events),
        "message": f"Epic {epic.id} is valid",
    }, epic.id)
    return EXIT_SUCCESS
