"""Tests for the word parser."""

import pytest

from goshell.shell.errors import EvaluationError, IncompleteInputError, ShellSyntaxError
from goshell.shell.parser import TokenKind, WordParser, parse_program, parse_token, unescape


def shape(program):
    return [[[t.text for t in s.tokens] for s in p.statements] for p in program]


class TestProgramStructure:
    """Test splitting text into pipelines, statements and tokens."""

    def test_empty_text(self):
        """Test that blank text has no pipelines."""
        assert len(parse_program("")) == 0
        assert len(parse_program("   \n\n ; ")) == 0

    def test_comment_only(self):
        """Test that comments are skipped."""
        assert len(parse_program("# nothing here")) == 0

    def test_single_statement(self):
        """Test one statement with arguments."""
        assert shape(parse_program("echo a b")) == [[["echo", "a", "b"]]]

    def test_pipe_splits_stages(self):
        """Test that | separates pipeline stages."""
        assert shape(parse_program("echo hi | echo bye")) == [[["echo", "hi"]], [["echo", "bye"]]]

    def test_semicolon_splits_statements_within_stage(self):
        """Test that ; and newline separate statements of the same stage."""
        program = parse_program("a; b\nc | d")
        assert shape(program) == [[["a"], ["b"], ["c"]], [["d"]]]

    def test_newline_after_pipe(self):
        """Test that a pipe may be followed by a newline."""
        assert shape(parse_program("a |\n b")) == [[["a"]], [["b"]]]

    @pytest.mark.parametrize("text,tokens", [
        ("x=1", ["x", "=", "1"]),
        ("x=", ["x", "="]),
        ("x=[a, b] c", ["x", "=", "[a, b]", "c"]),
        ("x = 1", ["x", "=", "1"]),
        ("echo a=b", ["echo", "a=b"]),
        ("'x=1'", ["'x=1'"]),
        ("{a=b}", ["{a=b}"]),
    ])
    def test_unspaced_assignment(self, text, tokens):
        """Test that name=value in command position splits around '='."""
        assert shape(parse_program(text)) == [[tokens]]

    def test_groups_keep_separators(self):
        """Test that separators inside groups do not split tokens."""
        program = parse_program("each [a, b] {echo $it; echo x | tac}")
        assert shape(program) == [[["each", "[a, b]", "{echo $it; echo x | tac}"]]]

    def test_quotes_keep_separators(self):
        """Test that quoted separators stay inside the token."""
        assert shape(parse_program("echo 'a | b; c'")) == [[["echo", "'a | b; c'"]]]

    def test_comment_after_statement(self):
        """Test trailing comment."""
        assert shape(parse_program("echo a # comment")) == [[["echo", "a"]]]

    def test_line_continuation(self):
        """Test backslash-newline joins lines."""
        assert shape(parse_program("echo a \\\n b")) == [[["echo", "a", "b"]]]

    def test_statement_text(self):
        """Test raw statement text."""
        statement = parse_program("x  =   <echo hi>").pipelines[0].statements[0]
        assert statement.text == "x = <echo hi>"


class TestTokenKinds:
    """Test sigil classification."""

    @pytest.mark.parametrize("text,kind,body", [
        ("$x", TokenKind.VARIABLE, "x"),
        ("$<echo a>", TokenKind.VARIABLE, "<echo a>"),
        ("<echo a b>", TokenKind.EXECUTION, "echo a b"),
        ("[a, b]", TokenKind.ARRAY, "a, b"),
        ("{echo a}", TokenKind.CLOSURE, "echo a"),
        ("plain", TokenKind.WORD, "plain"),
        ("<a>b", TokenKind.WORD, "<a>b"),
        ("a>b", TokenKind.WORD, "a>b"),
    ])
    def test_kind(self, text, kind, body):
        """Test token kind and body."""
        token = parse_token(text)
        assert token.kind is kind
        assert token.body == body

    def test_empty_token(self):
        """Test empty text parses to an empty word."""
        token = parse_token("")
        assert token.kind is TokenKind.WORD
        assert token.text == ""

    def test_location(self):
        """Test token line and column."""
        tokens = parse_program("a\n  bb").pipelines[0].statements[1].tokens
        assert (tokens[0].line, tokens[0].column) == (2, 3)


class TestParseErrors:
    """Test malformed input."""

    def test_leading_pipe(self):
        """Test pipe without a preceding statement."""
        with pytest.raises(ShellSyntaxError):
            parse_program("| a")

    def test_trailing_pipe_is_incomplete(self):
        """Test pipe at end of input."""
        with pytest.raises(IncompleteInputError):
            parse_program("a |")

    @pytest.mark.parametrize("text", ["{echo a", "echo <a", "[a, b", "echo 'abc", 'echo "abc', "echo a\\"])
    def test_unterminated(self, text):
        """Test unterminated groups, quotes and escapes."""
        with pytest.raises(IncompleteInputError):
            parse_program(text)

    def test_stray_closer(self):
        """Test unmatched closing bracket."""
        with pytest.raises(ShellSyntaxError) as exc_info:
            parse_program("echo a}")
        assert not isinstance(exc_info.value, IncompleteInputError)

    def test_mismatched_closer(self):
        """Test closing bracket of the wrong type."""
        with pytest.raises(ShellSyntaxError):
            parse_program("echo [a}")

    def test_syntax_error_location(self):
        """Test that syntax errors carry a location."""
        with pytest.raises(ShellSyntaxError) as exc_info:
            parse_program("a |\n| b")
        assert exc_info.value.line == 2
        assert str(exc_info.value).startswith("2.1:")


class TestArrayLiteral:
    """Test aggregate literal parsing."""

    def test_list(self):
        """Test list entries."""
        literal = WordParser("a, <echo b>, [c, d]").array()
        assert not literal.is_map
        assert [t.text for t in literal.items] == ["a", "<echo b>", "[c, d]"]

    def test_map(self):
        """Test key = value entries."""
        literal = WordParser("k1=v1, k2 = v2").array()
        assert literal.is_map
        assert [(k.text, v.text) for k, v in literal.pairs] == [("k1", "v1"), ("k2", "v2")]

    def test_empty(self):
        """Test empty literal."""
        literal = WordParser("  ").array()
        assert literal.items == ()
        assert not literal.is_map

    def test_trailing_comma(self):
        """Test trailing comma is accepted."""
        assert len(WordParser("a, b,").array().items) == 2

    def test_mixed_entries(self):
        """Test mixing list and map entries."""
        with pytest.raises(EvaluationError):
            WordParser("a, k=v").array()

    def test_missing_comma(self):
        """Test entries must be comma separated."""
        with pytest.raises(ShellSyntaxError):
            WordParser("a b").array()

    def test_empty_element(self):
        """Test empty element between commas."""
        with pytest.raises(ShellSyntaxError):
            WordParser("a,,b").array()

    def test_missing_value(self):
        """Test key without a value."""
        with pytest.raises(ShellSyntaxError):
            WordParser("k=").array()


class TestUnescape:
    """Test literal unescaping."""

    @pytest.mark.parametrize("raw,expected", [
        ("plain", "plain"),
        ("'a b'", "a b"),
        ('"a b"', "a b"),
        ("'a\\tb'", "a\\tb"),
        ('"a\\tb"', "a\tb"),
        ("a\\ b", "a b"),
        ("\\u0041", "A"),
        ('"say \\"hi\\""', 'say "hi"'),
        ("a'b c'd", "ab cd"),
    ])
    def test_unescape(self, raw, expected):
        """Test unescaping."""
        assert unescape(raw) == expected

    def test_dangling_backslash(self):
        """Test unterminated escape."""
        with pytest.raises(EvaluationError):
            unescape("abc\\")

    def test_bad_unicode_escape(self):
        """Test malformed unicode escape."""
        with pytest.raises(EvaluationError):
            unescape("\\u12")

    def test_unterminated_quote(self):
        """Test unterminated quote."""
        with pytest.raises(EvaluationError):
            unescape("'abc")
