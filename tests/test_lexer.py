"""
Unit tests for the loxi lexer.
"""

import pytest
from loxi import tokenize, Lexer, TokenType, LexerError, DiagnosticCollector


def types_of(tokens):
    return [t.type for t in tokens]


def lex_with_sink(source):
    sink = DiagnosticCollector(source=source)
    tokens = Lexer(source, diagnostics=sink).tokenize()
    return tokens, sink


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Whitespace-only source produces only EOF."""
        tokens = tokenize("  \t\r\n  \n")
        assert types_of(tokens) == [TokenType.EOF]

    def test_simple_var_statement(self):
        """Basic var statement tokenization."""
        tokens = tokenize("var x = 42;")
        assert types_of(tokens) == [
            TokenType.VAR,
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.NUMBER_LITERAL,
            TokenType.SEMICOLON,
            TokenType.EOF,
        ]

    def test_identifier_value(self):
        """Identifier token has correct value."""
        tokens = tokenize("foo_bar123")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "foo_bar123"

    def test_underscore_identifier(self):
        """Identifiers may start with an underscore."""
        tokens = tokenize("_private")
        assert tokens[0].type == TokenType.IDENTIFIER

    def test_position_tracking(self):
        """Token positions are tracked correctly."""
        tokens = tokenize("var x = 5;")
        assert tokens[0].span.start.line == 1
        assert tokens[0].span.start.column == 1
        assert tokens[0].span.start.offset == 0
        # 'x' starts at column 5
        assert tokens[1].span.start.column == 5
        assert tokens[1].span.start.offset == 4

    def test_multiline_position_tracking(self):
        """Position tracking across multiple lines."""
        tokens = tokenize("var x = 5;\nvar y = 10;")
        var_tokens = [t for t in tokens if t.type == TokenType.VAR]
        assert var_tokens[0].span.start.line == 1
        assert var_tokens[1].span.start.line == 2
        assert var_tokens[1].span.start.column == 1

    def test_filename_in_location(self):
        """The filename is carried into token locations."""
        tokens = tokenize("x", filename="demo.lox")
        assert str(tokens[0].location) == "demo.lox:1:1"


class TestKeywords:
    """Test keyword recognition."""

    @pytest.mark.parametrize("source,expected", [
        ("var", TokenType.VAR),
        ("fun", TokenType.FUN),
        ("return", TokenType.RETURN),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("for", TokenType.FOR),
        ("break", TokenType.BREAK),
        ("continue", TokenType.CONTINUE),
        ("print", TokenType.PRINT),
        ("and", TokenType.AND),
        ("or", TokenType.OR),
        ("nil", TokenType.NIL),
    ])
    def test_keyword(self, source, expected):
        """Each keyword gets its own token type."""
        assert tokenize(source)[0].type == expected

    def test_bool_literals(self):
        """true and false are boolean literals with values."""
        tokens = tokenize("true false")
        assert tokens[0].type == TokenType.BOOL_LITERAL
        assert tokens[0].value is True
        assert tokens[1].value is False

    def test_reserved_keywords(self):
        """class/this/super are lexed as reserved keywords."""
        tokens = tokenize("class this super")
        assert types_of(tokens)[:3] == [TokenType.CLASS, TokenType.THIS, TokenType.SUPER]

    def test_keyword_prefix_is_identifier(self):
        """A keyword followed by more letters is an identifier."""
        tokens = tokenize("variable printer")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[1].type == TokenType.IDENTIFIER


class TestNumbers:
    """Test number literals."""

    def test_integer(self):
        """Integers are stored as floats."""
        token = tokenize("42")[0]
        assert token.type == TokenType.NUMBER_LITERAL
        assert token.value == 42.0
        assert isinstance(token.value, float)

    def test_decimal(self):
        """Decimals with a fractional part."""
        token = tokenize("3.25")[0]
        assert token.value == 3.25
        assert token.lexeme == "3.25"

    def test_trailing_dot_not_part_of_number(self):
        """'1.' lexes as a number followed by a dot."""
        tokens = tokenize("1.")
        assert types_of(tokens) == [TokenType.NUMBER_LITERAL, TokenType.DOT, TokenType.EOF]


class TestOperators:
    """Test operator and punctuation tokens."""

    def test_single_char(self):
        """Single-character tokens."""
        tokens = tokenize("( ) [ ] { } , . - + ; * / ? :")
        assert types_of(tokens)[:-1] == [
            TokenType.LPAREN, TokenType.RPAREN,
            TokenType.LBRACKET, TokenType.RBRACKET,
            TokenType.LBRACE, TokenType.RBRACE,
            TokenType.COMMA, TokenType.DOT,
            TokenType.MINUS, TokenType.PLUS,
            TokenType.SEMICOLON, TokenType.STAR, TokenType.SLASH,
            TokenType.QUESTION, TokenType.COLON,
        ]

    def test_two_char(self):
        """Two-character operators take precedence over one-character ones."""
        tokens = tokenize("! != = == < <= > >=")
        assert types_of(tokens)[:-1] == [
            TokenType.BANG, TokenType.NE,
            TokenType.ASSIGN, TokenType.EQ,
            TokenType.LT, TokenType.LE,
            TokenType.GT, TokenType.GE,
        ]

    def test_round_trip(self):
        """Joining lexemes recovers the significant characters of the source."""
        source = 'var total = (count + 2.5) * f(a, b[0]) >= -x != !y;\nprint "hi"+total;'
        tokens = tokenize(source)
        joined = "".join(t.lexeme for t in tokens)
        assert joined == "".join(source.split())


class TestComments:
    """Test comment handling."""

    def test_line_comment(self):
        """Line comments run to end of line."""
        tokens = tokenize("1 // comment 2\n3")
        assert [t.value for t in tokens[:-1]] == [1.0, 3.0]

    def test_block_comment(self):
        """Block comments are skipped."""
        tokens = tokenize("1 /* two */ 3")
        assert [t.value for t in tokens[:-1]] == [1.0, 3.0]

    def test_nested_block_comment(self):
        """Block comments nest."""
        tokens = tokenize("/* a /* b */ a */ 1")
        assert types_of(tokens) == [TokenType.NUMBER_LITERAL, TokenType.EOF]

    def test_multiline_block_comment_tracks_lines(self):
        """Lines inside a block comment are counted."""
        tokens = tokenize("/*\n\n*/ x")
        assert tokens[0].span.start.line == 3

    def test_unterminated_nested_comment(self):
        """An unbalanced nested comment is one error and swallows the rest."""
        tokens, sink = lex_with_sink("/* a /* b */ 1")
        assert types_of(tokens) == [TokenType.EOF]
        assert len(sink.errors) == 1
        assert sink.errors[0].code == "E004"
        assert "unterminated comment" in sink.errors[0].message


class TestStrings:
    """Test string literals and interpolation."""

    def test_simple_string(self):
        """A plain string is START, one segment, END."""
        tokens = tokenize('"hello"')
        assert types_of(tokens) == [
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,
            TokenType.STRING_END,
            TokenType.EOF,
        ]
        assert tokens[1].value == "hello"

    def test_empty_string(self):
        """An empty string still has an (empty) segment."""
        tokens = tokenize('""')
        assert tokens[1].type == TokenType.STRING_LITERAL
        assert tokens[1].value == ""

    def test_escape_sequences(self):
        """Supported escapes are decoded."""
        tokens = tokenize(r'"a\n\t\"\\\{"')
        assert tokens[1].value == 'a\n\t"\\{'

    def test_invalid_escape_reported(self):
        """An unknown escape is reported and scanning continues."""
        tokens, sink = lex_with_sink(r'"a\qb" 1')
        assert sink.errors[0].code == "E005"
        assert tokens[1].value == "ab"
        assert TokenType.NUMBER_LITERAL in types_of(tokens)

    def test_multiline_string(self):
        """Strings may span lines."""
        tokens = tokenize('"a\nb" x')
        assert tokens[1].value == "a\nb"
        assert tokens[3].span.start.line == 2

    def test_unterminated_string(self):
        """Unterminated string is reported and closed synthetically."""
        tokens, sink = lex_with_sink('"abc')
        assert sink.errors[0].code == "E002"
        assert types_of(tokens) == [
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,
            TokenType.STRING_END,
            TokenType.EOF,
        ]

    def test_interpolation(self):
        """${...} splices the embedded tokens between markers."""
        tokens = tokenize('"sum: ${1+2}"')
        assert types_of(tokens) == [
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,
            TokenType.INTERP_START,
            TokenType.NUMBER_LITERAL,
            TokenType.PLUS,
            TokenType.NUMBER_LITERAL,
            TokenType.INTERP_END,
            TokenType.STRING_LITERAL,
            TokenType.STRING_END,
            TokenType.EOF,
        ]
        assert tokens[1].value == "sum: "
        assert tokens[7].value == ""

    def test_nested_interpolation(self):
        """Interpolations nest through inner strings."""
        tokens = tokenize('"a${ "b${1}" }c"')
        assert types_of(tokens) == [
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,       # a
            TokenType.INTERP_START,
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,       # b
            TokenType.INTERP_START,
            TokenType.NUMBER_LITERAL,
            TokenType.INTERP_END,
            TokenType.STRING_LITERAL,       # empty
            TokenType.STRING_END,
            TokenType.INTERP_END,
            TokenType.STRING_LITERAL,       # c
            TokenType.STRING_END,
            TokenType.EOF,
        ]

    def test_braces_inside_interpolation(self):
        """Braces opened inside an interpolation do not close it."""
        tokens = tokenize('"${ {} }x"')
        assert types_of(tokens)[2:6] == [
            TokenType.INTERP_START,
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.INTERP_END,
        ]
        assert tokens[6].value == "x"

    def test_escaped_brace_is_not_interpolation(self):
        """'$\\{' is literal text."""
        tokens = tokenize(r'"$\{x}"')
        assert types_of(tokens) == [
            TokenType.STRING_START,
            TokenType.STRING_LITERAL,
            TokenType.STRING_END,
            TokenType.EOF,
        ]
        assert tokens[1].value == "${x}"

    def test_interpolation_positions(self):
        """Embedded tokens carry their real source positions."""
        tokens = tokenize('"ab${x}"')
        ident = [t for t in tokens if t.type == TokenType.IDENTIFIER][0]
        assert ident.span.start.offset == 5
        assert ident.span.start.column == 6

    def test_unterminated_interpolation(self):
        """An unclosed ${ is reported and treated as end of input."""
        tokens, sink = lex_with_sink('"a${1')
        assert [e.code for e in sink.errors] == ["E003"]
        assert types_of(tokens)[-3:] == [
            TokenType.STRING_LITERAL,
            TokenType.STRING_END,
            TokenType.EOF,
        ]


class TestLexerErrors:
    """Test lexer error handling."""

    def test_unexpected_character(self):
        """Unexpected characters raise LexerError from tokenize()."""
        with pytest.raises(LexerError) as exc_info:
            tokenize("var x = @;")
        assert exc_info.value.diagnostic.code == "E001"

    def test_scanning_continues_after_error(self):
        """Several errors are found in one pass."""
        tokens, sink = lex_with_sink("1 @ 2 # 3")
        assert [e.code for e in sink.errors] == ["E001", "E001"]
        assert [t.value for t in tokens if t.type == TokenType.NUMBER_LITERAL] == [1.0, 2.0, 3.0]

    def test_error_location(self):
        """Errors point at the offending character."""
        _, sink = lex_with_sink("x\n  @")
        span = sink.errors[0].span
        assert span.start.line == 2
        assert span.start.column == 3

    def test_error_includes_source_line(self):
        """The diagnostic quotes the source line."""
        _, sink = lex_with_sink("var x = @;")
        assert sink.errors[0].source_line == "var x = @;"
