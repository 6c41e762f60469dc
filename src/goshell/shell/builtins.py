"""Built-in commands for the shell.

Provides echo, tac, grep, each, format, set, type, help, history and exit.
Every builtin receives the session and the calling stage's streams, then
the evaluated shell arguments.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional

from goshell.shell.session import FormatMode, Session, Streams
from goshell.shell.values import FunctionCommand, ValueKind, is_invocable, kind_of

logger = logging.getLogger(__name__)

BUILTIN_SCOPE = 'builtin'


class BuiltinRegistry:
    """Registry of built-in shell commands."""

    def __init__(self):
        """Initialize registry."""
        self.commands: Dict[str, FunctionCommand] = {}

    def register(self, name: str, description: str) -> Callable:
        """Decorator to register a built-in command.

        Args:
            name: Command name
            description: Help text

        Returns:
            Decorator function
        """
        def decorator(func: Callable) -> Callable:
            self.commands[name] = FunctionCommand(func, name, description)
            logger.debug(f"Registered builtin: {name}")
            return func
        return decorator

    def get(self, name: str) -> Optional[FunctionCommand]:
        """Get a built-in command.

        Args:
            name: Command name

        Returns:
            Command if found, None otherwise
        """
        return self.commands.get(name)

    def list_commands(self) -> List[FunctionCommand]:
        """List all built-in commands."""
        return list(self.commands.values())


_registry = BuiltinRegistry()


def get_registry() -> BuiltinRegistry:
    """Get the global builtin registry."""
    return _registry


def install_builtins(session: Session, scope: str = BUILTIN_SCOPE) -> None:
    """Register every builtin into a session's command registry.

    Args:
        session: Target session
        scope: Scope to register under
    """
    for cmd in _registry.list_commands():
        session.registry.register(scope, cmd.name, cmd)


def is_builtin(command: str) -> bool:
    """Check if a command is a built-in."""
    return _registry.get(command) is not None


def _split_flags(args, known: str):
    flags = set()
    rest = list(args)
    while rest and isinstance(rest[0], str) and len(rest[0]) > 1 and rest[0][0] == '-' \
            and all(c in known for c in rest[0][1:]):
        flags.update(rest.pop(0)[1:])
    return flags, rest


@_registry.register("echo", "Join the arguments with spaces")
def echo_command(session: Session, streams: Streams, *args: Any) -> str:
    """Join the arguments with spaces.

    Returns:
        The joined text
    """
    return ' '.join(session.format(arg, FormatMode.PART) for arg in args)


@_registry.register("tac", "Capture standard input as text or a list of lines")
def tac_command(session: Session, streams: Streams, *args: Any) -> Any:
    """Capture standard input.

    Args:
        -l: Return a list of lines instead of one space-joined string

    Returns:
        Captured input
    """
    flags, _ = _split_flags(args, 'l')
    lines = [line.rstrip('\n') for line in streams.stdin]
    if 'l' in flags:
        return lines
    return ' '.join(lines)


@_registry.register("grep", "Copy input lines matching a pattern to output")
def grep_command(session: Session, streams: Streams, *args: Any) -> None:
    """Filter standard input by regular expression.

    Args:
        -i: Ignore case
        -v: Keep lines that do not match
        pattern: Regular expression

    Raises:
        ValueError: If no pattern is given
    """
    flags, rest = _split_flags(args, 'iv')
    if not rest:
        raise ValueError("grep: missing pattern")

    regex = re.compile(str(rest[0]), re.IGNORECASE if 'i' in flags else 0)
    invert = 'v' in flags
    for line in streams.stdin:
        if bool(regex.search(line)) != invert:
            streams.stdout.write(line if line.endswith('\n') else line + '\n')
    streams.stdout.flush()


@_registry.register("each", "Call a closure for every element of a list")
def each_command(session: Session, streams: Streams, items: Any = None, function: Any = None) -> List[Any]:
    """Call a closure for every element of a list.

    Args:
        items: List to iterate
        function: Closure or command invoked with each element

    Returns:
        List of results
    """
    if kind_of(items) is not ValueKind.LIST:
        raise TypeError(f"each: expected a list, got {session.format(items, FormatMode.LINE)}")
    if not is_invocable(function):
        raise TypeError("each: expected a closure as second argument")
    return [function.invoke(session, [item], streams) for item in items]


@_registry.register("format", "Render a value (default: last result) for display")
def format_command(session: Session, streams: Streams, *args: Any) -> str:
    """Render a value the way the shell displays it."""
    value = args[0] if args else session.get('_')
    return session.format(value, FormatMode.INSPECT)


@_registry.register("set", "List variables, or toggle statement tracing with -x/+x")
def set_command(session: Session, streams: Streams, *args: Any) -> Optional[str]:
    """Show session variables or toggle tracing.

    Args:
        -x: Trace statements before executing them
        +x: Stop tracing
        -a: Include variables starting with '.'
        prefix: Only list variables starting with this prefix

    Returns:
        Variable listing, or None when toggling tracing
    """
    if '-x' in args:
        session.put('echo', True)
        return None
    if '+x' in args:
        session.remove('echo')
        return None

    flags, rest = _split_flags(args, 'a')
    prefix = str(rest[0]) if rest else ''

    lines = []
    for name, value in sorted(session.variables().items()):
        if not name.startswith(prefix):
            continue
        if name.startswith('.') and not ('a' in flags or prefix):
            continue
        kind = kind_of(value).value
        text = session.format(value, FormatMode.LINE)
        if len(text) > 45:
            text = text[:45] + '...'
        lines.append(f"{kind:<10} {name:<15} {text}")

    if not lines:
        return "No variables defined"
    return '\n'.join(lines)


@_registry.register("type", "Show how a name resolves")
def type_command(session: Session, streams: Streams, *args: Any) -> str:
    """Describe what a command name resolves to.

    Args:
        name: Command name

    Raises:
        ValueError: If no name is given
    """
    if not args:
        raise ValueError("type: missing name")

    name = str(args[0])
    matches = [n for n in session.registry.names() if n == name or n.split(':', 1)[-1] == name]
    if matches:
        return '\n'.join(f"{name} is {match}" for match in matches)

    value = session.get(name)
    if is_invocable(value):
        return f"{name} is a {kind_of(value).value}: {session.format(value, FormatMode.LINE)}"
    return f"{name} not found"


@_registry.register("help", "Show help for available commands")
def help_command(session: Session, streams: Streams, *args: Any) -> str:
    """Show help information.

    Args:
        name: Optional command name to show detailed help for
    """
    if args:
        name = str(args[0])
        cmd = _registry.get(name)
        if cmd is None:
            return f"No builtin '{name}'\n\nUse help to see all commands"
        doc = cmd.func.__doc__
        if doc:
            return f"Help for '{name}':\n\n{doc.strip()}"
        return f"Command '{name}' found but has no documentation"

    lines = ["Available commands:", ""]
    for scoped in session.registry.names():
        cmd = session.registry.lookup(scoped)
        description = getattr(cmd, 'description', '')
        lines.append(f"  {scoped:<20} {description}")

    lines.extend([
        "",
        "Syntax:",
        "  name = value            assign a variable (name = to remove)",
        "  $name  <cmd>  [a, b]  [k=v]  {closure}",
        "  cmd1 ; cmd2 | cmd3      statements and pipeline stages",
    ])
    return '\n'.join(lines)


@_registry.register("history", "Show command history")
def history_command(session: Session, streams: Streams, *args: Any) -> str:
    """Show command history."""
    if not session.history:
        return "No command history"

    lines = ["Command history:"]
    for i, cmd in enumerate(session.history, 1):
        lines.append(f"  {i}. {cmd}")
    return '\n'.join(lines)


@_registry.register("exit", "Exit the shell")
def exit_command(session: Session, streams: Streams, *args: Any) -> None:
    """Exit the shell.

    Raises:
        SystemExit: To exit the shell
    """
    logger.info("Exiting shell...")
    raise SystemExit(int(args[0]) if args else 0)
