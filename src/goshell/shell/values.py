"""Value model shared by the evaluator, the session and commands.

Shell values are plain Python objects. ``kind_of`` maps any of them onto a
closed set of kinds so that dispatch points can branch on one discriminant.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from goshell.shell.session import Session, Streams


class ValueKind(Enum):
    """Discriminant of a shell value."""
    NULL = "null"
    BOOLEAN = "boolean"
    TEXT = "text"
    LIST = "list"
    MAP = "map"
    CLOSURE = "closure"
    COMMAND = "command"
    OBJECT = "object"


class Function(ABC):
    """Something the shell can invoke as a command."""

    kind = ValueKind.COMMAND

    @abstractmethod
    def invoke(
        self,
        session: Session,
        arguments: List[Any],
        streams: Optional[Streams] = None
    ) -> Any:
        """Invoke the command.

        Args:
            session: Owning session
            arguments: Evaluated arguments
            streams: Streams of the calling pipeline stage (session streams
                when None)

        Returns:
            Command result
        """


class FunctionCommand(Function):
    """Adapts a plain Python callable to the command protocol.

    The callable receives the session and streams first, then the shell
    arguments as positional parameters.
    """

    def __init__(self, func: Callable[..., Any], name: Optional[str] = None, description: str = ""):
        self.func = func
        self.name = name or getattr(func, '__name__', 'command')
        self.description = description or (func.__doc__ or '').strip().split('\n')[0]

    def invoke(self, session, arguments, streams=None):
        return self.func(session, streams or session.streams, *arguments)

    def __repr__(self) -> str:
        return f"FunctionCommand({self.name!r})"


def is_invocable(value: Any) -> bool:
    """Check whether a value implements the command-invocation capability."""
    return isinstance(value, Function) or callable(getattr(value, 'invoke', None))


def kind_of(value: Any) -> ValueKind:
    """Classify a value.

    Args:
        value: Any shell value

    Returns:
        Its kind
    """
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, str):
        return ValueKind.TEXT
    if isinstance(value, Function):
        return value.kind
    if is_invocable(value):
        return ValueKind.COMMAND
    if isinstance(value, (list, tuple)):
        return ValueKind.LIST
    if isinstance(value, Mapping):
        return ValueKind.MAP
    return ValueKind.OBJECT
