"""Shell runtime: parser, evaluator, pipeline stages and REPL.

Provides closures with positional parameters, aggregate literals and
Unix-style pipelines whose stages run concurrently.
"""

from __future__ import annotations

from goshell.shell.builtins import install_builtins, is_builtin
from goshell.shell.closure import Closure
from goshell.shell.errors import (
    CommandNotFoundError,
    EvaluationError,
    IncompleteInputError,
    ShellError,
    ShellSyntaxError,
)
from goshell.shell.parser import WordParser, parse_program, unescape
from goshell.shell.pipe import PipelineExecutor, Pipe, StageResult
from goshell.shell.repl import REPL, create_session, run_command, run_repl, run_script
from goshell.shell.session import CommandRegistry, FormatMode, Session, Streams
from goshell.shell.values import Function, FunctionCommand, ValueKind, kind_of

__all__ = [
    "REPL",
    "Closure",
    "Session",
    "Streams",
    "CommandRegistry",
    "FormatMode",
    "Function",
    "FunctionCommand",
    "ValueKind",
    "kind_of",
    "WordParser",
    "parse_program",
    "unescape",
    "Pipe",
    "PipelineExecutor",
    "StageResult",
    "ShellError",
    "EvaluationError",
    "ShellSyntaxError",
    "IncompleteInputError",
    "CommandNotFoundError",
    "create_session",
    "run_repl",
    "run_command",
    "run_script",
    "install_builtins",
    "is_builtin",
]
