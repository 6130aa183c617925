"""
agentpm start-test / pass-test / fail-test / cancel-test

pass-test and fail-test accept several ids; either all of them change
or none do.
"""

from agentpm.commands.context import CommandContext, guarded
from agentpm.lib import output
from agentpm.lib.constants import EXIT_SUCCESS
from agentpm.workflow import tests
from agentpm.workflow.engine import mutate_epic


@guarded
def cmd_start_test(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = tests.start_test(epic, args.id, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_pass_test(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        results = tests.pass_tests(epic, args.ids, at)
    ctx.emit(output.render_operations(results, ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_fail_test(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        results = tests.fail_tests(epic, args.ids, args.reason, at)
    ctx.emit(output.render_operations(results, ctx.fmt, epic.id))
    return EXIT_SUCCESS


@guarded
def cmd_cancel_test(args, ctx: CommandContext) -> int:
    at = ctx.at
    with mutate_epic(ctx.epic_path, ctx.store) as epic:
        result = tests.cancel_test(epic, args.id, args.reason, at)
    ctx.emit(output.render_operations([result], ctx.fmt, epic.id))
    return EXIT_SUCCESS
