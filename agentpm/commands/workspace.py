"""
agentpm init / config / switch - Workspace configuration.
"""

import logging

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import config as config_lib
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.lib.suggest import suggest_epic_file
from agentpm.workflow.engine import load_epic
from agentpm.workflow.errors import StorageError, ValidationError

logger = logging.getLogger(__name__)


def _check_epic(ctx: CommandContext, epic_file: str) -> None:
    """Make sure ``epic_file`` exists and loads before pointing at it."""
    cfg = config_lib.ProjectConfig(current_epic=epic_file)
    path = config_lib.resolve_epic_path(ctx.config_path, cfg)
    if not ctx.store.exists(path):
        suggestion = suggest_epic_file(path.name, path.parent)
        message = f"Epic file not found: {epic_file}"
        if suggestion:
            message += f" (did you mean {suggestion}?)"
        raise StorageError(message)
    load_epic(path, ctx.store)


def _show(ctx: CommandContext, cfg: config_lib.ProjectConfig) -> None:
    data = cfg.to_dict()
    if ctx.fmt == "json":
        ctx.emit(output.to_json(data))
    elif ctx.fmt == "xml":
        ctx.emit(output.to_xml("config", data))
    else:
        ctx.emit(output.to_text(data))


@guarded
def cmd_init(args, ctx: CommandContext) -> int:
    """Create .agentpm.json pointing at an existing epic."""
    if ctx.config_path.exists() and not args.force:
        raise ValidationError(f"{ctx.config_path} already exists (use --force to overwrite)")
    _check_epic(ctx, args.epic)
    cfg = config_lib.init_config(
        ctx.config_path,
        args.epic,
        project_name=args.project_name or "",
        default_assignee=args.assignee or config_lib.DEFAULT_ASSIGNEE,
    )
    _show(ctx, cfg)
    return EXIT_SUCCESS


@guarded
def cmd_config(args, ctx: CommandContext) -> int:
    _show(ctx, ctx.config)
    return EXIT_SUCCESS


@guarded
def cmd_switch(args, ctx: CommandContext) -> int:
    """Change the current epic, or swap back to the previous one."""
    if args.back:
        cfg = config_lib.switch_back(ctx.config_path)
    elif args.epic:
        _check_epic(ctx, args.epic)
        cfg = config_lib.switch_epic(ctx.config_path, args.epic)
    else:
        cfg = ctx.config

    if ctx.fmt == "text":
        ctx.emit(f"Current epic: {cfg.current_epic}")
        if cfg.previous_epic:
            ctx.emit(f"Previous epic: {cfg.previous_epic}")
    else:
        _show(ctx, cfg)
    return EXIT_SUCCESS
