"""Shell session: variables, streams and the command registry.

A Session lives for the whole shell session and is shared by every closure
and every pipeline stage created during it, so its variable map and its
registry are guarded by locks.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from threading import RLock
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, TextIO, Union

from goshell.shell.values import Function, FunctionCommand, ValueKind, is_invocable, kind_of

if TYPE_CHECKING:
    from goshell.lib.config_parser import ShellConfig

logger = logging.getLogger(__name__)

WILDCARD_SCOPE = '*'
SCOPE_SEPARATOR = ':'


@dataclass(frozen=True)
class Streams:
    """Input, output and error streams of one execution context."""

    stdin: TextIO
    stdout: TextIO
    stderr: TextIO


class FormatMode(Enum):
    """How much detail ``Session.format`` renders."""
    INSPECT = "inspect"  # multi-line, for display and pipe forwarding
    LINE = "line"        # single line summary
    PART = "part"        # fragment embedded in a larger line


class CommandRegistry:
    """Registry of commands keyed by ``scope:name``."""

    def __init__(self):
        """Initialize registry."""
        self._commands: Dict[str, Any] = {}
        self._lock = RLock()

    def register(self, scope: str, name: str, command: Union[Function, Callable[..., Any]]) -> Any:
        """Register a command.

        Args:
            scope: Command scope (e.g., "builtin")
            name: Command name
            command: Invocable object, or a plain callable taking
                (session, streams, *args)

        Returns:
            The registered invocable
        """
        if not is_invocable(command):
            if not callable(command):
                raise TypeError(f"Cannot register non-callable {command!r} as {scope}:{name}")
            command = FunctionCommand(command, name)

        key = f"{scope}{SCOPE_SEPARATOR}{name}"
        with self._lock:
            self._commands[key] = command
        logger.debug(f"Registered command: {key}")
        return command

    def unregister(self, scope: str, name: str) -> Optional[Any]:
        """Remove a command.

        Returns:
            The removed command, or None
        """
        with self._lock:
            return self._commands.pop(f"{scope}{SCOPE_SEPARATOR}{name}", None)

    def lookup(self, scoped_name: str) -> Optional[Any]:
        """Find a command by scoped name.

        A ``*`` scope matches any scope; the first registered match wins.

        Args:
            scoped_name: ``scope:name`` or ``*:name``

        Returns:
            Command if found, None otherwise
        """
        with self._lock:
            command = self._commands.get(scoped_name)
            if command is not None:
                return command

            scope, sep, name = scoped_name.partition(SCOPE_SEPARATOR)
            if sep and scope == WILDCARD_SCOPE:
                suffix = f"{SCOPE_SEPARATOR}{name}"
                for key, candidate in self._commands.items():
                    if key.endswith(suffix) and SCOPE_SEPARATOR not in key[:-len(suffix)]:
                        return candidate
        return None

    def names(self) -> List[str]:
        """List registered scoped names in registration order."""
        with self._lock:
            return list(self._commands)


class Session:
    """State shared by all closures of one shell session."""

    def __init__(
        self,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        config: Optional[ShellConfig] = None
    ):
        """Initialize session.

        Args:
            stdin: Input stream (default: sys.stdin)
            stdout: Output stream (default: sys.stdout)
            stderr: Error stream (default: sys.stderr)
            config: Optional shell configuration used to seed variables
        """
        self.streams = Streams(
            stdin=stdin if stdin is not None else sys.stdin,
            stdout=stdout if stdout is not None else sys.stdout,
            stderr=stderr if stderr is not None else sys.stderr,
        )
        self.registry = CommandRegistry()
        self.history: List[str] = []
        self.config = config
        self._variables: Dict[str, Any] = {}
        self._lock = RLock()

        if config is not None:
            for name, value in config.variables.items():
                self.put(name, value)
            if config.echo:
                self.put('echo', True)

    def get(self, name: str) -> Any:
        """Get a variable value (None when unset)."""
        with self._lock:
            return self._variables.get(name)

    def put(self, name: str, value: Any) -> Any:
        """Set a variable.

        Returns:
            The previous value, or None
        """
        with self._lock:
            previous = self._variables.get(name)
            self._variables[name] = value
        return previous

    def remove(self, name: str) -> Any:
        """Remove a variable.

        Returns:
            The removed value, or None
        """
        with self._lock:
            return self._variables.pop(name, None)

    def variables(self) -> Dict[str, Any]:
        """Snapshot of all variables."""
        with self._lock:
            return dict(self._variables)

    def lookup(self, name: str) -> Optional[Any]:
        """Resolve a command name.

        The registry is consulted first, then variables holding an invocable
        value (such as a stored closure).

        Args:
            name: Scoped or unscoped command name

        Returns:
            Invocable if found, None otherwise
        """
        command = self.registry.lookup(name)
        if command is not None:
            return command
        value = self.get(name)
        if is_invocable(value):
            return value
        return None

    def format(self, value: Any, mode: FormatMode = FormatMode.INSPECT) -> str:
        """Render a value as text.

        Args:
            value: Value to render
            mode: Level of detail

        Returns:
            Rendered text (no trailing newline)
        """
        kind = kind_of(value)

        if kind is ValueKind.NULL:
            return 'null'
        if kind is ValueKind.BOOLEAN:
            return 'true' if value else 'false'
        if kind is ValueKind.TEXT:
            return value
        if kind is ValueKind.LIST:
            parts = [self.format(item, FormatMode.PART) for item in value]
            if mode is FormatMode.INSPECT:
                return '\n'.join(parts)
            return '[' + ', '.join(parts) + ']'
        if kind is ValueKind.MAP:
            entries = [
                (self.format(k, FormatMode.PART), self.format(v, FormatMode.PART))
                for k, v in value.items()
            ]
            if mode is FormatMode.INSPECT:
                width = max((len(k) for k, _ in entries), default=0)
                return '\n'.join(f"{k:<{width}} {v}" for k, v in entries)
            return '[' + ', '.join(f"{k}={v}" for k, v in entries) + ']'
        if kind is ValueKind.CLOSURE:
            return '{' + str(value) + '}'
        return str(value)

    def execute(self, text: str) -> Any:
        """Parse and execute shell text against this session.

        Args:
            text: Shell text

        Returns:
            Result of the last pipeline

        Raises:
            ShellError: Or any error raised by the terminal stage
        """
        from goshell.shell.closure import Closure

        self.history.append(text)
        logger.debug(f"Executing: {text}")
        return Closure(self, None, text).execute()
