"""REPL (Read-Eval-Print Loop) for interactive shell.

Provides an interactive command-line interface plus helpers for running
single commands and script files.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional, Union

from goshell.lib.config_parser import ShellConfig
from goshell.shell.builtins import install_builtins
from goshell.shell.errors import IncompleteInputError
from goshell.shell.parser import parse_program
from goshell.shell.session import FormatMode, Session

logger = logging.getLogger(__name__)

try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False
    logger.debug("readline not available - command history disabled")

LAST_RESULT = '_'


def create_session(config: Optional[ShellConfig] = None) -> Session:
    """Create a session with the builtin commands installed.

    Args:
        config: Optional shell configuration

    Returns:
        Ready-to-use session
    """
    session = Session(config=config)
    install_builtins(session)
    return session


class REPL:
    """Read-Eval-Print Loop for interactive shell."""

    def __init__(
        self,
        session: Optional[Session] = None,
        config: Optional[ShellConfig] = None
    ):
        """Initialize REPL.

        Args:
            session: Shell session (creates new if None)
            config: Shell configuration (defaults if None)
        """
        self.config = config or (session.config if session else None) or ShellConfig()
        self.session = session or create_session(self.config)
        self.prompt = self.config.prompt
        self.continuation_prompt = self.config.continuation_prompt
        self.running = False

        if HAS_READLINE:
            self._setup_readline()

    def _setup_readline(self) -> None:
        """Setup readline for command history."""
        history_file = self.config.history.file or Path.home() / ".goshell_history"
        try:
            readline.read_history_file(str(history_file))
        except (FileNotFoundError, OSError):
            pass

        import atexit
        atexit.register(readline.write_history_file, str(history_file))

        readline.set_history_length(self.config.history.length)

    def run(self) -> None:
        """Run the REPL loop."""
        self.running = True
        self._print_welcome()
        buffer = []
        while self.running:
            try:
                line = input(self.continuation_prompt if buffer else self.prompt)
                buffer.append(line)
                text = '\n'.join(buffer)
                if not text.strip():
                    buffer.clear()
                    continue
                if self._needs_more_input(text):
                    continue
                buffer.clear()
                self._execute_line(text)
            except EOFError:
                # Ctrl+D
                print()
                break
            except KeyboardInterrupt:
                # Ctrl+C
                print()
                buffer.clear()
                continue
            except SystemExit:
                break
        self._print_goodbye()

    def _needs_more_input(self, text: str) -> bool:
        try:
            parse_program(text)
        except IncompleteInputError:
            return True
        except Exception:
            # reported by _execute_line
            return False
        return False

    def _print_welcome(self) -> None:
        """Print welcome message."""
        print("goshell - Embeddable Command Shell")
        print("Type help for available commands")
        print()

    def _print_goodbye(self) -> None:
        """Print goodbye message."""
        print("Goodbye!")

    def _execute_line(self, line: str) -> None:
        """Execute a single line (or block) of input.

        Args:
            line: Input text
        """
        try:
            result = self.session.execute(line)
            self.session.put(LAST_RESULT, result)
            if result is not None:
                self._print_result(result)
        except SystemExit:
            raise
        except Exception as e:
            logger.debug("Execution failed", exc_info=True)
            print(f"Error: {e}", file=sys.stderr)

    def _print_result(self, result: Any) -> None:
        """Print execution result.

        Args:
            result: Result to print
        """
        print(self.session.format(result, FormatMode.INSPECT))


def run_repl(session: Optional[Session] = None, config: Optional[ShellConfig] = None) -> None:
    """Run interactive REPL.

    Args:
        session: Optional shell session
        config: Optional shell configuration
    """
    repl = REPL(session=session, config=config)
    repl.run()


def run_command(command: str, session: Optional[Session] = None) -> Any:
    """Run a single command non-interactively.

    Args:
        command: Command to execute
        session: Optional shell session

    Returns:
        Command result
    """
    if session is None:
        session = create_session()

    result = session.execute(command)
    session.put(LAST_RESULT, result)
    return result


def run_script(script_path: Union[str, Path], session: Optional[Session] = None) -> Any:
    """Run commands from a script file.

    Lines are accumulated until they form a complete program, so closures
    and aggregates may span several lines.

    Args:
        script_path: Path to script file
        session: Optional shell session

    Returns:
        Result of the last program in the script
    """
    if session is None:
        session = create_session()

    result = None
    buffer = []
    start_line = 1

    with open(script_path) as f:
        for line_num, line in enumerate(f, 1):
            if not buffer:
                start_line = line_num
            buffer.append(line.rstrip('\n'))
            text = '\n'.join(buffer)

            try:
                parse_program(text)
            except IncompleteInputError:
                continue
            except Exception as e:
                logger.error(f"Syntax error on line {start_line}: {e}")
                raise

            buffer.clear()
            if not text.strip():
                continue

            try:
                logger.debug(f"Executing line {start_line}: {text}")
                result = run_command(text, session)
            except Exception as e:
                logger.error(f"Error on line {start_line}: {e}")
                raise

    if buffer:
        # re-raises the incomplete input error for the unfinished block
        parse_program('\n'.join(buffer))

    return result
