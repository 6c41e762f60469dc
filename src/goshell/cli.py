from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

from goshell.lib.config_parser import ShellConfig, default_config_path, load_config
from goshell.shell.repl import create_session, run_command, run_repl, run_script
from goshell.shell.session import FormatMode


def setup_logging(verbose: bool = False, quiet: bool = False, default: str = "WARNING") -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging
        quiet: Suppress everything below errors
        default: Level name used when neither flag is given
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, default, logging.WARNING)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


def _load_shell_config(path: Optional[Path]) -> ShellConfig:
    if path is None:
        path = default_config_path()
        if path is None:
            return ShellConfig()
    return load_config(path).get_config()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = argparse.ArgumentParser(
        prog='goshell',
        description="Embeddable command shell with closures and threaded pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        'script',
        nargs='?',
        type=Path,
        help='Script file to run (starts the interactive shell if omitted)'
    )
    parser.add_argument(
        '--command', '-c',
        metavar='COMMAND',
        help='Execute a single command (e.g., "echo hi | tac") and exit'
    )
    parser.add_argument(
        '--config',
        type=Path,
        default=None,
        help='Path to configuration file (default: $GOSHELL_CONFIG or ~/.goshell.yaml)'
    )
    parser.add_argument(
        '--echo', '-x',
        action='store_true',
        help='Trace each statement to stderr before executing it'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose (debug) logging'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress warnings'
    )

    args = parser.parse_args(argv)

    try:
        config = _load_shell_config(args.config)
    except Exception as e:
        setup_logging(args.verbose, args.quiet)
        logger.error(f"Failed to load configuration: {e}")
        return 1

    setup_logging(args.verbose, args.quiet, config.log_level)

    if args.echo:
        config = config.model_copy(update={'echo': True})

    session = create_session(config)

    if args.command is not None:
        try:
            result = run_command(args.command, session)
            if result is not None:
                print(session.format(result, FormatMode.INSPECT))
            return 0
        except Exception as e:
            logger.error(f"Shell command failed: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if args.script is not None:
        try:
            run_script(args.script, session)
            return 0
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    logger.info("Starting interactive shell...")
    run_repl(session=session, config=config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
