#!/usr/bin/env python3
"""agentpm CLI entrypoint."""

import argparse
import logging
import sys

from agentpm import __version__
from agentpm.commands import epic as cmd_epic_module
from agentpm.commands import log as cmd_log_module
from agentpm.commands import next as cmd_next_module
from agentpm.commands import pending as cmd_pending_module
from agentpm.commands import phase as cmd_phase_module
from agentpm.commands import show as cmd_show_module
from agentpm.commands import status as cmd_status_module
from agentpm.commands import task as cmd_task_module
from agentpm.commands import tests as cmd_tests_module
from agentpm.commands import validate as cmd_validate_module
from agentpm.commands import workspace as cmd_workspace_module
from agentpm.commands.context import CommandContext
from agentpm.lib.config import config_path
from agentpm.lib.constants import OUTPUT_FORMATS
from agentpm.workflow.events import LOG_TYPES


def setup_logging(verbose: bool) -> None:
    """WARNING by default, DEBUG with -v; always to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='agentpm', description='Epic workflow manager for agents')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--file', '-f', help='Epic XML file (default: current epic from config)')
    parser.add_argument('--config', '-c', help='Config file (default: ./.agentpm.json)')
    parser.add_argument('--time', '-t', help='Timestamp to record, RFC3339 (default: now)')
    parser.add_argument('--format', choices=OUTPUT_FORMATS, default='text', help='Output format')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging to stderr')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # agentpm init
    p_init = subparsers.add_parser('init', help='Create workspace config')
    p_init.add_argument('epic', help='Epic XML file, relative to the config directory')
    p_init.add_argument('--project-name', help='Project name')
    p_init.add_argument('--assignee', help='Default assignee')
    p_init.add_argument('--force', action='store_true', help='Overwrite an existing config')
    p_init.set_defaults(func=cmd_workspace_module.cmd_init)

    # agentpm config
    p_config = subparsers.add_parser('config', help='Show workspace config')
    p_config.set_defaults(func=cmd_workspace_module.cmd_config)

    # agentpm switch
    p_switch = subparsers.add_parser('switch', help='Change current epic')
    p_switch.add_argument('epic', nargs='?', help='Epic XML file to switch to')
    p_switch.add_argument('--back', action='store_true', help='Switch to the previous epic')
    p_switch.set_defaults(func=cmd_workspace_module.cmd_switch)

    # agentpm status / current / events / failing
    p_status = subparsers.add_parser('status', help='Show epic overview')
    p_status.set_defaults(func=cmd_status_module.cmd_status)

    p_current = subparsers.add_parser('current', help='Show active phase and task')
    p_current.set_defaults(func=cmd_status_module.cmd_current)

    p_events = subparsers.add_parser('events', help='Show recent events, newest first')
    p_events.add_argument('--limit', '-n', type=int, default=10, help='Number of events')
    p_events.set_defaults(func=cmd_status_module.cmd_events)

    p_failing = subparsers.add_parser('failing', help='List failing tests')
    p_failing.set_defaults(func=cmd_status_module.cmd_failing)

    # agentpm show / pending / validate
    p_show = subparsers.add_parser('show', help='Show an epic, phase, task or test')
    p_show.add_argument('entity', choices=cmd_show_module.ENTITY_TYPES, help='Entity type')
    p_show.add_argument('id', nargs='?', help='Entity ID (not used for epic)')
    p_show.set_defaults(func=cmd_show_module.cmd_show)

    p_pending = subparsers.add_parser('pending', help='List pending phases, tasks and tests')
    p_pending.set_defaults(func=cmd_pending_module.cmd_pending)

    p_validate = subparsers.add_parser('validate', help='Check the epic document')
    p_validate.set_defaults(func=cmd_validate_module.cmd_validate)

    # agentpm log
    p_log = subparsers.add_parser('log', help='Append a note to the event log')
    p_log.add_argument('message', help='What happened')
    p_log.add_argument('--files', default='', help="Files touched, as 'path:action,path2:action2'")
    p_log.add_argument('--type', default='implementation', choices=LOG_TYPES, help='Entry type')
    p_log.set_defaults(func=cmd_log_module.cmd_log)

    # Epic
    p_start_epic = subparsers.add_parser('start-epic', help='Start the epic')
    p_start_epic.set_defaults(func=cmd_epic_module.cmd_start_epic)

    p_done_epic = subparsers.add_parser('done-epic', help='Complete the epic')
    p_done_epic.set_defaults(func=cmd_epic_module.cmd_done_epic)

    # Phases
    p_start_phase = subparsers.add_parser('start-phase', help='Start a phase')
    p_start_phase.add_argument('id', help='Phase ID')
    p_start_phase.set_defaults(func=cmd_phase_module.cmd_start_phase)

    p_done_phase = subparsers.add_parser('done-phase', help='Complete a phase')
    p_done_phase.add_argument('id', help='Phase ID')
    p_done_phase.set_defaults(func=cmd_phase_module.cmd_done_phase)

    # Tasks
    p_start_task = subparsers.add_parser('start-task', help='Start a task')
    p_start_task.add_argument('id', help='Task ID')
    p_start_task.set_defaults(func=cmd_task_module.cmd_start_task)

    p_done_task = subparsers.add_parser('done-task', help='Complete a task')
    p_done_task.add_argument('id', help='Task ID')
    p_done_task.set_defaults(func=cmd_task_module.cmd_done_task)

    p_cancel_task = subparsers.add_parser('cancel-task', help='Cancel a task')
    p_cancel_task.add_argument('id', help='Task ID')
    p_cancel_task.add_argument('reason', help='Why the task is cancelled')
    p_cancel_task.set_defaults(func=cmd_task_module.cmd_cancel_task)

    # Tests
    p_start_test = subparsers.add_parser('start-test', help='Start a test')
    p_start_test.add_argument('id', help='Test ID')
    p_start_test.set_defaults(func=cmd_tests_module.cmd_start_test)

    p_pass_test = subparsers.add_parser('pass-test', help='Mark tests passing')
    p_pass_test.add_argument('ids', nargs='+', metavar='id', help='Test ID(s)')
    p_pass_test.set_defaults(func=cmd_tests_module.cmd_pass_test)

    p_fail_test = subparsers.add_parser('fail-test', help='Mark tests failing')
    p_fail_test.add_argument('ids', nargs='+', metavar='id', help='Test ID(s)')
    p_fail_test.add_argument('--reason', '-r', required=True, help='Failure description')
    p_fail_test.set_defaults(func=cmd_tests_module.cmd_fail_test)

    p_cancel_test = subparsers.add_parser('cancel-test', help='Cancel a test')
    p_cancel_test.add_argument('id', help='Test ID')
    p_cancel_test.add_argument('reason', help='Why the test is cancelled')
    p_cancel_test.set_defaults(func=cmd_tests_module.cmd_cancel_test)

    # Auto-next
    p_next = subparsers.add_parser('start-next', help='Start the next phase or task')
    p_next.set_defaults(func=cmd_next_module.cmd_start_next)

    return parser


def main(argv=None, ctx: CommandContext = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if ctx is None:
        ctx = CommandContext(config_path=config_path(args.config))
    ctx.fmt = args.format
    ctx.file_flag = args.file
    ctx.time_flag = args.time
    return args.func(args, ctx)


if __name__ == '__main__':
    sys.exit(main())
