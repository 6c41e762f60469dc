"""Member calls on arbitrary held objects.

Handles statements whose command position is a value rather than a name,
e.g. ``$text upper`` or ``$map get key``.
"""

from __future__ import annotations

import logging
from collections.abc import Sized
from typing import TYPE_CHECKING, Any, List

if TYPE_CHECKING:
    from goshell.shell.session import Session

logger = logging.getLogger(__name__)

PYTHON_KEYWORDS = {
    'from', 'import', 'class', 'def', 'return', 'if', 'else', 'elif', 'while',
    'for', 'in', 'is', 'not', 'and', 'or', 'lambda', 'with', 'pass', 'del',
}

SIZE_NAMES = ('size', 'length')

_MISSING = object()


def command_to_method(command_name: str) -> str:
    """Convert shell member name to Python attribute name.

    Converts kebab-case to snake_case and handles Python keywords.

    Args:
        command_name: Shell name (e.g., "starts-with", "from")

    Returns:
        Python name (e.g., "starts_with", "from_")
    """
    method_name = command_name.replace('-', '_')
    if method_name in PYTHON_KEYWORDS:
        method_name += '_'
    return method_name


def invoke_method(session: Session, target: Any, name: str, arguments: List[Any]) -> Any:
    """Call a member of ``target``.

    Tries ``name``, ``get_name`` and ``is_name`` in that order. Callable
    members are called with the arguments; plain attributes are returned
    when no arguments are given.

    Args:
        session: Owning session (unused, for compatibility)
        target: Object to call on
        name: Member name as written in the shell
        arguments: Call arguments

    Returns:
        Call result

    Raises:
        AttributeError: If no usable member exists
    """
    method_name = command_to_method(name)

    if method_name.startswith('_'):
        raise AttributeError(f"Cannot access private member '{name}' of {type(target).__name__}")

    for candidate in (method_name, f"get_{method_name}", f"is_{method_name}"):
        member = getattr(target, candidate, _MISSING)
        if member is _MISSING:
            continue
        if callable(member):
            logger.debug(f"Calling {type(target).__name__}.{candidate} with {len(arguments)} argument(s)")
            try:
                return member(*arguments)
            except TypeError as e:
                raise TypeError(f"Invalid arguments for {candidate}: {e}") from e
        if not arguments:
            return member
        raise AttributeError(f"'{candidate}' of {type(target).__name__} is not callable")

    if method_name in SIZE_NAMES and isinstance(target, Sized) and not arguments:
        return len(target)

    raise AttributeError(f"Object {type(target).__name__} has no method '{name}'")
