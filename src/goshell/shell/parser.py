"""Word parser for shell text.

Turns text like:
    x = [a, b]; echo $x | grep a

into a Program of Pipelines (split on top-level ``|``), each holding
Statements (split on ``;`` or newline), each holding Tokens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from goshell.shell.errors import EvaluationError, IncompleteInputError, ShellSyntaxError

logger = logging.getLogger(__name__)

OPENERS = {'<': '>', '[': ']', '{': '}'}
CLOSERS = {'>', ']', '}'}
QUOTES = ('"', "'")

ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'b': '\b',
    'f': '\f',
    '\n': '',
}


class TokenKind(Enum):
    """Evaluation semantics selected by a token's leading sigil."""
    WORD = "word"
    VARIABLE = "variable"
    EXECUTION = "execution"
    ARRAY = "array"
    CLOSURE = "closure"


GROUP_KINDS = {
    '<': TokenKind.EXECUTION,
    '[': TokenKind.ARRAY,
    '{': TokenKind.CLOSURE,
}


@dataclass(frozen=True)
class Token:
    """A raw character span from the input."""

    text: str
    kind: TokenKind = TokenKind.WORD
    line: int = 1
    column: int = 1

    @property
    def body(self) -> str:
        """Token text without its sigil (and closing bracket for groups)."""
        if self.kind is TokenKind.VARIABLE:
            return self.text[1:]
        if self.kind in (TokenKind.EXECUTION, TokenKind.ARRAY, TokenKind.CLOSURE):
            return self.text[1:-1]
        return self.text

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Statement:
    """One command invocation: a command token followed by its arguments."""

    tokens: Tuple[Token, ...]

    @property
    def text(self) -> str:
        return ' '.join(t.text for t in self.tokens)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Pipeline:
    """Statements executed in order by one pipeline stage."""

    statements: Tuple[Statement, ...]


@dataclass(frozen=True)
class Program:
    """Ordered pipelines chained stage to stage."""

    pipelines: Tuple[Pipeline, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.pipelines)

    def __iter__(self):
        return iter(self.pipelines)


@dataclass(frozen=True)
class ArrayLiteral:
    """Parsed contents of a ``[...]`` token."""

    items: Tuple[Token, ...] = ()
    pairs: Tuple[Tuple[Token, Token], ...] = ()

    @property
    def is_map(self) -> bool:
        return bool(self.pairs)


class WordParser:
    """Scanner over a block of shell text.

    The parser only splits text into spans; it never evaluates them. Nested
    groups (``<...>``, ``[...]``, ``{...}``) are kept whole inside a token and
    parsed again when the token is evaluated.
    """

    def __init__(self, text: str):
        """Initialize parser.

        Args:
            text: Shell text to parse
        """
        self.text = text
        self.pos = 0

    def program(self) -> Program:
        """Parse the whole text into a Program.

        Returns:
            Parsed program (possibly with zero pipelines)

        Raises:
            ShellSyntaxError: On malformed input
            IncompleteInputError: If the input ends mid-construct
        """
        pipelines: List[Pipeline] = []
        statements: List[Statement] = []
        tokens: List[Token] = []
        after_pipe = False

        def end_statement() -> None:
            if tokens:
                statements.append(Statement(tuple(tokens)))
                tokens.clear()

        while True:
            self._skip_blanks()
            if self._eof():
                break

            char = self.text[self.pos]
            if char in ';\n':
                end_statement()
                self.pos += 1
            elif char == '|':
                end_statement()
                if not statements:
                    raise self._syntax_error("unexpected '|'")
                pipelines.append(Pipeline(tuple(statements)))
                statements = []
                after_pipe = True
                self.pos += 1
            elif not tokens and char != '=':
                # name=value in command position is an assignment
                word = self._word(';|=')
                tokens.append(word)
                if not self._eof() and self.text[self.pos] == '=':
                    line, column = self._location(self.pos)
                    tokens.append(Token('=', TokenKind.WORD, line, column))
                    self.pos += 1
                after_pipe = False
            else:
                tokens.append(self._word(';|'))
                after_pipe = False

        end_statement()
        if statements:
            pipelines.append(Pipeline(tuple(statements)))
        elif after_pipe:
            raise self._incomplete("unexpected end of input after '|'")

        logger.debug(f"Parsed {len(pipelines)} pipeline(s) from {self.text!r}")
        return Program(tuple(pipelines))

    def token(self) -> Token:
        """Parse the text as exactly one token.

        An empty text yields an empty word token.
        """
        self._skip_blanks()
        if self._eof():
            return Token('')
        token = self._word('')
        self._skip_blanks()
        if not self._eof():
            raise self._syntax_error(f"unexpected text after token {token.text!r}")
        return token

    def array(self) -> ArrayLiteral:
        """Parse the inside of an aggregate literal.

        Entries are comma separated and are either bare values (a list) or
        ``key = value`` pairs (a map).

        Returns:
            Parsed literal

        Raises:
            EvaluationError: If list and map entries are mixed
            ShellSyntaxError: On malformed entries
        """
        items: List[Token] = []
        pairs: List[Tuple[Token, Token]] = []
        is_map: Optional[bool] = None

        while True:
            self._skip_space()
            if self._eof():
                break

            key = self._word(',=')
            if not key.text:
                raise self._syntax_error("empty element in aggregate literal")

            self._skip_space()
            value = None
            if not self._eof() and self.text[self.pos] == '=':
                self.pos += 1
                self._skip_space()
                value = self._word(',=') if not self._eof() else Token('')
                if not value.text:
                    raise self._syntax_error(f"missing value for key {key.text!r}")

            entry_is_map = value is not None
            if is_map is None:
                is_map = entry_is_map
            elif is_map != entry_is_map:
                raise EvaluationError(
                    f"cannot mix list and map entries in aggregate literal: [{self.text}]"
                )

            if value is None:
                items.append(key)
            else:
                pairs.append((key, value))

            self._skip_space()
            if self._eof():
                break
            if self.text[self.pos] != ',':
                raise self._syntax_error(f"expected ',' but got {self.text[self.pos]!r}")
            self.pos += 1

        return ArrayLiteral(tuple(items), tuple(pairs))

    def _word(self, delimiters: str) -> Token:
        """Read one token ending at whitespace or a delimiter outside groups."""
        start = self.pos
        stack: List[str] = []
        group_end: Optional[int] = None

        while not self._eof():
            char = self.text[self.pos]

            if char == '\\':
                if self.pos + 1 >= len(self.text):
                    raise self._incomplete("unterminated escape")
                self.pos += 2
                continue

            if char in QUOTES:
                self._skip_quoted(char)
                continue

            if not stack and (char.isspace() or char in delimiters):
                break

            if char in OPENERS:
                stack.append(OPENERS[char])
            elif char == '>' and (not stack or stack[-1] != '>'):
                # a bare '>' is literal unless it closes an execution group
                pass
            elif char in CLOSERS:
                if stack:
                    expected = stack.pop()
                    if char != expected:
                        raise self._syntax_error(f"expected '{expected}' but got '{char}'")
                    if not stack and group_end is None:
                        group_end = self.pos
                else:
                    raise self._syntax_error(f"unexpected '{char}'")

            self.pos += 1

        if stack:
            raise self._incomplete(f"missing '{stack[-1]}'", start)

        text = self.text[start:self.pos]
        line, column = self._location(start)
        return Token(text, _classify(text, start, group_end), line, column)

    def _skip_quoted(self, quote: str) -> None:
        start = self.pos
        self.pos += 1
        while not self._eof():
            char = self.text[self.pos]
            if char == '\\' and quote == '"':
                self.pos += 2
                continue
            self.pos += 1
            if char == quote:
                return
        raise self._incomplete(f"unterminated quote {quote}", start)

    def _skip_blanks(self) -> None:
        """Skip spaces, tabs, line continuations and comments (not newlines)."""
        while not self._eof():
            char = self.text[self.pos]
            if char in ' \t\r':
                self.pos += 1
            elif self.text.startswith('\\\n', self.pos):
                self.pos += 2
            elif char == '#':
                end = self.text.find('\n', self.pos)
                self.pos = len(self.text) if end < 0 else end
            else:
                return

    def _skip_space(self) -> None:
        while not self._eof() and self.text[self.pos].isspace():
            self.pos += 1

    def _eof(self) -> bool:
        return self.pos >= len(self.text)

    def _location(self, index: int) -> Tuple[int, int]:
        line = self.text.count('\n', 0, index) + 1
        column = index - self.text.rfind('\n', 0, index)
        return line, column

    def _syntax_error(self, message: str) -> ShellSyntaxError:
        return ShellSyntaxError(message, *self._location(self.pos))

    def _incomplete(self, message: str, index: Optional[int] = None) -> IncompleteInputError:
        return IncompleteInputError(message, *self._location(self.pos if index is None else index))


def _classify(text: str, start: int, group_end: Optional[int]) -> TokenKind:
    if not text:
        return TokenKind.WORD
    if text[0] == '$':
        return TokenKind.VARIABLE
    if text[0] in GROUP_KINDS and group_end == start + len(text) - 1:
        return GROUP_KINDS[text[0]]
    return TokenKind.WORD


def unescape(text: str) -> str:
    """Remove quoting and backslash escapes from a literal word.

    Args:
        text: Raw word text

    Returns:
        Literal value

    Raises:
        EvaluationError: On a dangling backslash, a bad ``\\u`` escape or an
            unterminated quote
    """
    out: List[str] = []
    quote: Optional[str] = None
    i = 0

    while i < len(text):
        char = text[i]

        if quote == "'":
            if char == "'":
                quote = None
            else:
                out.append(char)
            i += 1
            continue

        if char == '\\':
            if i + 1 >= len(text):
                raise EvaluationError(f"unterminated escape in {text!r}")
            escaped = text[i + 1]
            if escaped == 'u':
                digits = text[i + 2:i + 6]
                if len(digits) != 4 or any(d not in '0123456789abcdefABCDEF' for d in digits):
                    raise EvaluationError(f"bad unicode escape in {text!r}")
                out.append(chr(int(digits, 16)))
                i += 6
                continue
            out.append(ESCAPES.get(escaped, escaped))
            i += 2
            continue

        if char in QUOTES and quote is None:
            quote = char
        elif char == quote:
            quote = None
        else:
            out.append(char)
        i += 1

    if quote is not None:
        raise EvaluationError(f"unterminated quote in {text!r}")

    return ''.join(out)


def parse_program(text: str) -> Program:
    """Parse shell text.

    Convenience function that creates a parser and parses the text.

    Args:
        text: Shell text

    Returns:
        Parsed program
    """
    return WordParser(text).program()


def parse_token(text: str) -> Token:
    """Parse text as a single token."""
    return WordParser(text).token()
