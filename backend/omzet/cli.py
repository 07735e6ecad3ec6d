"""
Omzet CLI - thin entrypoint for operator commands.

Commands:
- run: watch all configured libraries and process files (daemon)
- check-config: validate the configuration and print a summary
- process: run one workflow once against one file

Exit Codes:
===========
- 0: Success
- 1: Configuration error
- 2: Execution error
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from . import __version__
from .app import App
from .config.errors import ConfigError
from .config.loader import read_config
from .config.models import ResolvedConfig
from .execution.errors import RunnerError
from .execution.runner import WorkflowRunner
from .persistence.errors import PersistenceError
from .persistence.manager import StateStore

logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_EXECUTION_ERROR = 2

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _load_config(args: argparse.Namespace) -> ResolvedConfig:
    """Read the configuration, exiting with code 1 on failure."""
    config_path = Path(args.config) if args.config else None
    try:
        return read_config(config_path)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)


def cmd_run(args: argparse.Namespace) -> NoReturn:
    """
    Watch every configured library until interrupted.

    Exit codes:
        0: Shutdown via Ctrl-C
        1: Configuration error
        2: State store could not be opened
    """
    config = _load_config(args)

    try:
        store = StateStore(Path(args.state_db) if args.state_db else None)
    except PersistenceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_EXECUTION_ERROR)

    if not config.libraries:
        logger.warning("[CLI] No libraries configured, nothing to watch")

    App(config, store).run()
    sys.exit(EXIT_OK)


def cmd_check_config(args: argparse.Namespace) -> NoReturn:
    """
    Validate the configuration without starting anything.

    Exit codes:
        0: Configuration is valid
        1: Configuration error
    """
    config = _load_config(args)

    print("✓ Configuration is valid")
    print(f"  Libraries: {len(config.libraries)}")
    for library in config.libraries.values():
        print(f"    {library.name}: {library.directory} -> {library.workflow}")
    print(f"  Workflows: {len(config.workflows)}")
    for workflow in config.workflows.values():
        extensions = ", ".join(sorted(workflow.included_extensions)) or "-"
        tasks = ", ".join(task.id for task in workflow.tasks) or "-"
        print(f"    {workflow.name}: [{extensions}] {tasks}")
    sys.exit(EXIT_OK)


def cmd_process(args: argparse.Namespace) -> NoReturn:
    """
    Run one workflow against one file, writing the report JSON to stdout.

    Exit codes:
        0: Workflow committed its result
        1: Configuration error or unknown workflow
        2: Workflow failed (source file left untouched)
    """
    config = _load_config(args)

    workflow = config.workflows.get(args.workflow)
    if workflow is None:
        known = ", ".join(sorted(config.workflows)) or "none"
        print(f"ERROR: Unknown workflow \"{args.workflow}\" (configured: {known})", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    source_file = Path(args.file).absolute()
    runner = WorkflowRunner(shell=config.settings.runner.shell)

    try:
        report = runner.run_workflow(workflow, source_file)
    except RunnerError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_EXECUTION_ERROR)

    print(report.model_dump_json(indent=2))
    sys.exit(EXIT_OK)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='omzet',
        description='Omzet - run workflows of shell tasks over media libraries',
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )
    parser.add_argument(
        '--config',
        default=None,
        help='Path to configuration file (default: ~/.config/omzet/omzet.toml)'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    # Run command
    parser_run = subparsers.add_parser(
        'run',
        help='Watch all configured libraries and process their files'
    )
    parser_run.add_argument(
        '--state-db',
        default=None,
        help='Path to state database (default: ~/.local/share/omzet/state.db)'
    )
    parser_run.set_defaults(func=cmd_run)

    # Check-config command
    parser_check = subparsers.add_parser(
        'check-config',
        help='Validate the configuration and print a summary'
    )
    parser_check.set_defaults(func=cmd_check_config)

    # Process command
    parser_process = subparsers.add_parser(
        'process',
        help='Run one workflow once against one file'
    )
    parser_process.add_argument(
        '--workflow',
        required=True,
        help='Name of the workflow to run'
    )
    parser_process.add_argument(
        'file',
        help='Path to the file to process'
    )
    parser_process.set_defaults(func=cmd_process)

    return parser


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    args.func(args)


if __name__ == '__main__':
    main()
