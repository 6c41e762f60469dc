"""Statement evaluator.

A Closure is a block of shell source bound to a session (and, for nested
blocks, to the closure that defined it). Executing it runs its program
through the pipeline executor; each pipeline stage calls back into
``execute_statement`` for every statement it owns.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from goshell.shell.errors import CommandNotFoundError, EvaluationError
from goshell.shell.parser import Statement, Token, TokenKind, WordParser, parse_token, unescape
from goshell.shell.pipe import PipelineExecutor
from goshell.shell.reflective import invoke_method
from goshell.shell.session import SCOPE_SEPARATOR, WILDCARD_SCOPE, Session, Streams
from goshell.shell.values import Function, ValueKind, is_invocable, kind_of

logger = logging.getLogger(__name__)

ASSIGN = '='

RESERVED_WORDS: Dict[str, Any] = {
    'null': None,
    'true': True,
    'false': False,
}


class Closure(Function):
    """Executable block of shell source.

    Closures are values too: ``{ ... }`` evaluates to an unexecuted Closure
    that can be stored in a variable and invoked later with arguments.
    """

    kind = ValueKind.CLOSURE

    def __init__(self, session: Session, parent: Optional[Closure], source: str):
        """Initialize closure.

        Args:
            session: Owning session
            parent: Lexically enclosing closure (None at top level)
            source: Statement block source

        Raises:
            ShellSyntaxError: If the source cannot be parsed
        """
        self.session = session
        self.parent = parent
        self.source = source
        self.program = WordParser(source).program()
        self.parameters: Optional[List[Any]] = None

    def invoke(self, session, arguments, streams=None):
        return self.execute(arguments, streams)

    def execute(self, parameters: Optional[List[Any]] = None, streams: Optional[Streams] = None) -> Any:
        """Run the closure's program.

        Args:
            parameters: Positional arguments exposed as $it, $args and $0..$9;
                None leaves them unbound
            streams: Streams of the calling stage (session streams when None)

        Returns:
            Result of the last pipeline
        """
        frame = copy.copy(self)
        frame.parameters = list(parameters) if parameters is not None else None
        return PipelineExecutor(frame).execute(frame.program, streams or self.session.streams)

    def execute_statement(self, statement: Statement, streams: Streams) -> Any:
        """Evaluate and dispatch one statement.

        Args:
            statement: Statement to run
            streams: Streams of the running stage

        Returns:
            Statement result
        """
        values = [self.evaluate(token, streams) for token in statement.tokens]
        command = values.pop(0)

        if self.session.get('echo') is True:
            trace = f"+ {statement.text}"
            logger.debug(trace)
            streams.stderr.write(trace + '\n')
            streams.stderr.flush()

        return self._dispatch(command, values, statement, streams)

    def _dispatch(self, command: Any, arguments: List[Any], statement: Statement, streams: Streams) -> Any:
        kind = kind_of(command)

        if kind is ValueKind.NULL:
            if not arguments:
                return None
            raise CommandNotFoundError(None, statement.text)

        if kind is ValueKind.TEXT:
            if arguments and arguments[0] == ASSIGN:
                return self._assign(command, arguments, statement, streams)

            function, scoped_name = self._resolve(command)
            if function is None:
                if not arguments:
                    return command
                raise CommandNotFoundError(scoped_name, statement.text)
            return function.invoke(self.session, arguments, streams)

        if not arguments:
            return command
        return invoke_method(self.session, command, str(arguments[0]), arguments[1:])

    def _assign(self, name: str, arguments: List[Any], statement: Statement, streams: Streams) -> Any:
        if len(arguments) == 1:
            logger.debug(f"Variable removed: {name}")
            return self.session.remove(name)

        value = self._dispatch(arguments[1], arguments[2:], statement, streams)
        self.session.put(name, value)
        logger.debug(f"Variable assigned: {name}")
        return value

    def _resolve(self, name: str):
        """Find the command for a name, retrying with the wildcard scope."""
        function = self.session.lookup(name)
        if not is_invocable(function) and SCOPE_SEPARATOR not in name:
            name = f"{WILDCARD_SCOPE}{SCOPE_SEPARATOR}{name}"
            function = self.session.lookup(name)
        if not is_invocable(function):
            return None, name
        return function, name

    def evaluate(self, token: Token, streams: Optional[Streams] = None) -> Any:
        """Evaluate a single token to a value.

        Args:
            token: Token to evaluate
            streams: Streams of the running stage, used by nested executions

        Returns:
            Token value
        """
        streams = streams or self.session.streams
        kind = token.kind

        if kind is TokenKind.VARIABLE:
            name = self.evaluate(parse_token(token.body), streams)
            return None if name is None else self.get(str(name))
        if kind is TokenKind.EXECUTION:
            return Closure(self.session, self, token.body).execute(self.parameters, streams)
        if kind is TokenKind.ARRAY:
            return self._aggregate(token, streams)
        if kind is TokenKind.CLOSURE:
            return Closure(self.session, self, token.body)

        text = unescape(token.text)
        lowered = text.lower()
        if lowered in RESERVED_WORDS:
            return RESERVED_WORDS[lowered]
        return text

    def _aggregate(self, token: Token, streams: Streams) -> Any:
        literal = WordParser(token.body).array()

        if not literal.is_map:
            return [self.evaluate(item, streams) for item in literal.items]

        result = {}
        for key_token, value_token in literal.pairs:
            key = self.evaluate(key_token, streams)
            try:
                hash(key)
            except TypeError:
                raise EvaluationError(f"map key is not hashable: {key_token.text}") from None
            result[key] = self.evaluate(value_token, streams)
        return result

    def get(self, name: str) -> Any:
        """Look up a variable, honouring positional parameters when bound.

        Args:
            name: Variable name

        Returns:
            Variable value (None when unset)
        """
        if self.parameters is not None:
            if name == 'it':
                return self.parameters[0] if self.parameters else None
            if name == 'args':
                return self.parameters
            if len(name) == 1 and name.isdecimal():
                index = int(name)
                return self.parameters[index] if index < len(self.parameters) else None

        return self.session.get(name)

    def __str__(self) -> str:
        return ' '.join(self.source.split())

    def __repr__(self) -> str:
        return f"Closure({str(self)!r})"
