"""Exception types raised by the shell runtime."""

from __future__ import annotations

from typing import Optional


class ShellError(Exception):
    """Base class for all shell runtime errors."""


class EvaluationError(ShellError):
    """Raised when a token cannot be evaluated (bad aggregate, bad escape)."""


class ShellSyntaxError(EvaluationError):
    """Raised when shell text cannot be parsed."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        """Initialize syntax error.

        Args:
            message: Error description
            line: 1-based line of the offending input
            column: 1-based column of the offending input
        """
        super().__init__(message)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line:
            return f"{self.line}.{self.column}: {self.args[0]}"
        return self.args[0]


class IncompleteInputError(ShellSyntaxError):
    """Raised when input ends before a quote, group or pipe is closed.

    Interactive callers catch this to prompt for more input.
    """


class CommandNotFoundError(ShellError, LookupError):
    """Raised when a statement names a command that cannot be resolved."""

    def __init__(self, name: Optional[str], statement: str = ""):
        """Initialize not-found error.

        Args:
            name: Attempted (scope-qualified) command name, None when the
                command position evaluated to null
            statement: Raw statement text, for diagnostics
        """
        if name is None:
            message = f"Command name evaluates to null: {statement}"
        else:
            message = f"Command not found: {name}"
        super().__init__(message)
        self.name = name
        self.statement = statement
