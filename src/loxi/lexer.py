"""
Lexer for loxi.

Converts source text into a flat list of tokens for the parser.
Supports:
- Line comments (//) and nestable block comments (/* /* */ */)
- Number literals (digits with an optional fractional part)
- Identifiers and keywords
- String literals with escape sequences and ${...} interpolation

A string is emitted as STRING_START, then alternating STRING_LITERAL
segments and INTERP_START ... INTERP_END runs, then STRING_END. The
tokens of an embedded expression come from a nested Lexer running in
interpolation mode, which stops (without consuming) at the '}' that
closes the interpolation.

Lexical errors are reported to the diagnostic sink and scanning carries
on, so one pass can surface several problems.
"""

import logging
from typing import List, Optional

from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    DiagnosticCollector,
    LexerError,
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_interpolation,
    error_unterminated_comment,
    error_invalid_escape_sequence,
)

logger = logging.getLogger(__name__)


ESCAPE_CHARS = {
    '"': '"',
    '\\': '\\',
    '{': '{',
    'n': '\n',
    't': '\t',
}

SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '-': TokenType.MINUS,
    '+': TokenType.PLUS,
    ';': TokenType.SEMICOLON,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '?': TokenType.QUESTION,
    ':': TokenType.COLON,
}

# Characters that may be followed by '=' to form a two-character operator
EQUAL_PAIRS = {
    '!': (TokenType.BANG, TokenType.NE),
    '=': (TokenType.ASSIGN, TokenType.EQ),
    '<': (TokenType.LT, TokenType.LE),
    '>': (TokenType.GT, TokenType.GE),
}


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


def _is_alpha(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'


def _is_alphanumeric(ch: str) -> bool:
    return _is_alpha(ch) or _is_digit(ch)


class Lexer:
    """
    Tokenizer for loxi source text.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Errors go to `lexer.diagnostics`; pass a shared DiagnosticCollector
    to gather them alongside parser and resolver errors.
    """

    def __init__(self, source: str, filename: Optional[str] = None,
                 diagnostics: Optional[DiagnosticCollector] = None,
                 start: Optional[SourceLocation] = None,
                 interpolation: bool = False):
        self.source = source
        self.filename = filename
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector(source=source)
        if start is None:
            start = SourceLocation(1, 1, 0, filename)
        self.pos = start.offset     # Current position in source
        self.line = start.line      # Current line (1-indexed)
        self.column = start.column  # Current column (1-indexed)
        self.tokens: List[Token] = []

        # Interpolation mode: stop at the '}' that closes the embedded expression
        self.interpolation = interpolation
        self.closed = False
        self.brace_depth = 0

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if not self._is_at_end() and self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        """Check if we've reached end of source."""
        return self.pos >= len(self.source)

    def _source_line(self, line_num: int) -> Optional[str]:
        return self.diagnostics.source_line(line_num)

    def _report(self, error: LexerError) -> None:
        self.diagnostics.add_error(error)

    def _add_token(self, token_type: TokenType, value, start: SourceLocation,
                   lexeme: Optional[str] = None) -> None:
        """Append a token spanning from `start` to the current position."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        self.tokens.append(Token(token_type, value, lexeme, span))

    def _skip_line_comment(self) -> None:
        """Skip a // comment up to (not including) the newline."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_block_comment(self, start: SourceLocation) -> None:
        """Skip a /* ... */ comment; the opening marker is already consumed."""
        depth = 1
        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(self._span(start), self._source_line(start.line))

    def _scan_escape_sequence(self, chars: List[str]) -> None:
        """Handle the character after a backslash inside a string."""
        esc_start = SourceLocation(self.line, self.column - 1, self.pos - 1, self.filename)
        if self._is_at_end():
            return
        ch = self._advance()
        if ch in ESCAPE_CHARS:
            chars.append(ESCAPE_CHARS[ch])
        else:
            self._report(error_invalid_escape_sequence(
                ch, self._span(esc_start), self._source_line(esc_start.line)
            ))

    def _scan_interpolation(self) -> bool:
        """Lex the expression after '${' with a nested lexer.

        Returns False if input ended before the closing '}'.
        """
        interp_start = self._location()
        self._advance()  # consume '$'
        self._advance()  # consume '{'
        self._add_token(TokenType.INTERP_START, None, interp_start)

        nested = Lexer(self.source, self.filename, self.diagnostics,
                       start=self._location(), interpolation=True)
        self.tokens.extend(nested.tokenize())
        self.pos, self.line, self.column = nested.pos, nested.line, nested.column

        if not nested.closed:
            self._report(error_unterminated_interpolation(
                self._span(interp_start), self._source_line(interp_start.line)
            ))
            self._add_token(TokenType.INTERP_END, None, self._location(), "")
            return False

        close_start = self._location()
        self._advance()  # consume '}'
        self._add_token(TokenType.INTERP_END, None, close_start)
        return True

    def _scan_string(self) -> None:
        """Scan a string literal, splicing in any interpolated expressions."""
        start = self._location()
        self._advance()  # consume opening quote
        self._add_token(TokenType.STRING_START, None, start)

        segment_start = self._location()
        chars: List[str] = []
        while not self._is_at_end() and self._peek() != '"':
            ch = self._peek()
            if ch == '\\':
                self._advance()
                self._scan_escape_sequence(chars)
            elif ch == '$' and self._peek(1) == '{':
                self._add_token(TokenType.STRING_LITERAL, ''.join(chars), segment_start)
                chars = []
                if not self._scan_interpolation():
                    # Unclosed interpolation already reported; treat as end of input
                    self._add_token(TokenType.STRING_LITERAL, '', self._location(), "")
                    self._add_token(TokenType.STRING_END, None, self._location(), "")
                    return
                segment_start = self._location()
            else:
                chars.append(self._advance())

        self._add_token(TokenType.STRING_LITERAL, ''.join(chars), segment_start)

        if self._is_at_end():
            self._report(error_unterminated_string(self._span(start), self._source_line(start.line)))
            self._add_token(TokenType.STRING_END, None, self._location(), "")
            return

        end_start = self._location()
        self._advance()  # consume closing quote
        self._add_token(TokenType.STRING_END, None, end_start)

    def _scan_number(self) -> None:
        """Scan a number literal: digits with an optional fractional part."""
        start = self._location()
        while _is_digit(self._peek()):
            self._advance()

        if self._peek() == '.' and _is_digit(self._peek(1)):
            self._advance()  # consume '.'
            while _is_digit(self._peek()):
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        self._add_token(TokenType.NUMBER_LITERAL, float(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> None:
        """Scan an identifier or keyword."""
        start = self._location()
        while _is_alphanumeric(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        if token_type == TokenType.BOOL_LITERAL:
            value = lexeme == "true"
        elif token_type == TokenType.IDENTIFIER:
            value = lexeme
        else:
            value = None
        self._add_token(token_type, value, start, lexeme)

    def _scan_token(self) -> None:
        """Scan the next token (or skip whitespace / a comment)."""
        start = self._location()
        ch = self._peek()

        if ch in ' \r\t\n':
            self._advance()
            return

        if ch == '/' and self._peek(1) == '/':
            self._skip_line_comment()
            return
        if ch == '/' and self._peek(1) == '*':
            self._advance()
            self._advance()
            self._skip_block_comment(start)
            return

        if ch == '"':
            self._scan_string()
            return

        if _is_digit(ch):
            self._scan_number()
            return

        if _is_alpha(ch):
            self._scan_identifier_or_keyword()
            return

        if ch == '{':
            self._advance()
            self.brace_depth += 1
            self._add_token(TokenType.LBRACE, None, start)
            return
        if ch == '}':
            if self.interpolation and self.brace_depth == 0:
                # Leave the '}' for the enclosing string scanner
                self.closed = True
                return
            self._advance()
            self.brace_depth = max(0, self.brace_depth - 1)
            self._add_token(TokenType.RBRACE, None, start)
            return

        self._advance()

        if ch in EQUAL_PAIRS:
            single, double = EQUAL_PAIRS[ch]
            self._add_token(double if self._match('=') else single, None, start)
            return

        if ch in SINGLE_CHAR_TOKENS:
            self._add_token(SINGLE_CHAR_TOKENS[ch], None, start)
            return

        raise error_unexpected_character(ch, self._span(start), self._source_line(start.line))

    def tokenize(self) -> List[Token]:
        """Tokenize the source, returning a list of tokens.

        An EOF token is appended unless the lexer runs in interpolation mode.
        """
        while not self._is_at_end() and not self.closed:
            try:
                self._scan_token()
            except LexerError as e:
                self._report(e)

        if not self.interpolation:
            self._add_token(TokenType.EOF, None, self._location(), "")
            logger.debug("lexed %d tokens", len(self.tokens))
        return self.tokens


def tokenize(source: str, filename: Optional[str] = None,
             diagnostics: Optional[DiagnosticCollector] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages
        diagnostics: Sink for lexical errors. If omitted, the first error
            is raised instead.

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails and no sink was supplied
    """
    sink = diagnostics if diagnostics is not None else DiagnosticCollector(source=source)
    tokens = Lexer(source, filename, sink).tokenize()
    if diagnostics is None and sink.had_error:
        raise LexerError(sink.errors[0])
    return tokens
