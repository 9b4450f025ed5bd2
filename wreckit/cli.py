#!/usr/bin/env python3
"""wreckit CLI entrypoint."""

import argparse
import asyncio
import sys
from pathlib import Path

from wreckit import __version__
from wreckit.commands import doctor as cmd_doctor_module
from wreckit.commands import init as cmd_init_module
from wreckit.commands import new as cmd_new_module
from wreckit.commands import orchestrator as cmd_orchestrator_module
from wreckit.commands import phase as cmd_phase_module
from wreckit.commands import run as cmd_run_module
from wreckit.commands import show as cmd_show_module
from wreckit.commands import status as cmd_status_module
from wreckit.lib.config import ConfigOverrides, load_config
from wreckit.lib.errors import WreckitError, to_exit_code
from wreckit.lib.logs import create_logger
from wreckit.runner.context import RunContext
from wreckit.runner.phases import PHASE_NAMES
from wreckit.store.paths import find_repo_root


def build_context(args, logger) -> RunContext:
    """Resolve repo root and config for commands that run phases."""
    root = find_repo_root()
    overrides = ConfigOverrides(
        base_branch=args.base_branch,
        agent_command=args.agent,
        max_iterations=args.max_iterations,
        timeout_seconds=args.timeout,
    )
    return RunContext(
        root=root,
        config=load_config(root, overrides),
        logger=logger,
        force=getattr(args, "force", False) or args.force_all,
        dry_run=args.dry_run,
    )


def cmd_run_all(args, logger):
    ctx = build_context(args, logger)
    return asyncio.run(cmd_orchestrator_module.cmd_run_all(args, ctx))


def cmd_next(args, logger):
    ctx = build_context(args, logger)
    return asyncio.run(cmd_orchestrator_module.cmd_next(args, ctx))


def cmd_run(args, logger):
    ctx = build_context(args, logger)
    return asyncio.run(cmd_run_module.cmd_run(args, ctx))


def cmd_phase(args, logger):
    ctx = build_context(args, logger)
    return asyncio.run(cmd_phase_module.cmd_phase(args, ctx))


def cmd_init(args, logger):
    return cmd_init_module.cmd_init(args, Path.cwd(), logger)


def cmd_new(args, logger):
    return cmd_new_module.cmd_new(args, find_repo_root(), logger)


def cmd_status(args, logger):
    return cmd_status_module.cmd_status(args, find_repo_root())


def cmd_show(args, logger):
    return cmd_show_module.cmd_show(args, find_repo_root())


def cmd_doctor(args, logger):
    return cmd_doctor_module.cmd_doctor(args, find_repo_root(), logger)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='wreckit', description='Drive backlog items from idea to merged PR')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    verbosity.add_argument('--quiet', '-q', action='store_true', help='Errors only')
    parser.add_argument('--no-tui', action='store_true', help='Plain line output even on a terminal')
    parser.add_argument('--dry-run', action='store_true', help='Report what would happen without doing it')
    parser.add_argument('--force', dest='force_all', action='store_true', help='Re-run phases whose outputs exist')
    parser.add_argument('--base-branch', help='Override base branch')
    parser.add_argument('--agent', help='Override agent command')
    parser.add_argument('--max-iterations', type=int, help='Override implement iteration limit')
    parser.add_argument('--timeout', type=int, help='Override agent timeout (seconds)')
    parser.set_defaults(func=cmd_run_all)
    subparsers = parser.add_subparsers(dest='command')

    # wreckit init
    p_init = subparsers.add_parser('init', help='Create .wreckit/ in this repository')
    p_init.add_argument('--force', action='store_true', help='Overwrite existing config')
    p_init.set_defaults(func=cmd_init)

    # wreckit new
    p_new = subparsers.add_parser('new', help='Create a backlog item')
    p_new.add_argument('section', help='Section (e.g., features, bugs)')
    p_new.add_argument('title', help='Item title')
    p_new.add_argument('--overview', '-o', help='Free-text overview')
    p_new.set_defaults(func=cmd_new)

    # wreckit status
    p_status = subparsers.add_parser('status', help='List items and states')
    p_status.add_argument('--json', action='store_true', help='JSON output')
    p_status.set_defaults(func=cmd_status)

    # wreckit show
    p_show = subparsers.add_parser('show', help='Show item details')
    p_show.add_argument('id', help='Item ID (<section>/<NNN>-<slug>)')
    p_show.add_argument('--json', action='store_true', help='JSON output')
    p_show.set_defaults(func=cmd_show)

    # wreckit research|plan|implement|pr|complete
    for phase in PHASE_NAMES:
        p_phase = subparsers.add_parser(phase, help=f'Run the {phase} phase for one item')
        p_phase.add_argument('id', help='Item ID')
        p_phase.add_argument('--force', action='store_true', help='Re-run even if already done')
        p_phase.set_defaults(func=cmd_phase, phase=phase)

    # wreckit run
    p_run = subparsers.add_parser('run', help='Run all remaining phases for one item')
    p_run.add_argument('id', help='Item ID')
    p_run.add_argument('--force', action='store_true', help='Re-run phases whose outputs exist')
    p_run.set_defaults(func=cmd_run)

    # wreckit next
    p_next = subparsers.add_parser('next', help='Advance the first unfinished item')
    p_next.set_defaults(func=cmd_next)

    # wreckit doctor
    p_doctor = subparsers.add_parser('doctor', help='Check for drift between state and artifacts')
    p_doctor.add_argument('--fix', action='store_true', help='Apply fixable repairs')
    p_doctor.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = create_logger(verbose=args.verbose, quiet=args.quiet)
    try:
        return args.func(args, logger)
    except KeyboardInterrupt as e:
        logger.error("Interrupted")
        return to_exit_code(e)
    except WreckitError as e:
        logger.error(str(e))
        return to_exit_code(e)


if __name__ == '__main__':
    sys.exit(main())
