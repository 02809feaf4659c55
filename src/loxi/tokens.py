"""
Token types for the loxi lexer.

Token type categories follow the error code ranges used by the diagnostics:
- E0xx: Lexer errors
- E1xx: Parser errors
- E3xx: Resolver errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER_LITERAL = auto()     # 42, 3.14
    STRING_LITERAL = auto()     # one literal segment of a string
    BOOL_LITERAL = auto()       # true, false
    NIL = auto()                # nil

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    VAR = auto()                # var
    FUN = auto()                # fun
    RETURN = auto()             # return
    IF = auto()                 # if
    ELSE = auto()               # else
    WHILE = auto()              # while
    FOR = auto()                # for
    BREAK = auto()              # break
    CONTINUE = auto()           # continue
    PRINT = auto()              # print
    AND = auto()                # and
    OR = auto()                 # or

    # --- Reserved keywords (object system, not supported) ---
    CLASS = auto()              # class
    THIS = auto()               # this
    SUPER = auto()              # super

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # ==
    NE = auto()                 # !=

    # --- Logical negation ---
    BANG = auto()               # !

    # --- Assignment ---
    ASSIGN = auto()             # =

    # --- Delimiters ---
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COLON = auto()              # :
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOT = auto()                # .
    QUESTION = auto()           # ? (ternary)

    # --- String interpolation markers ---
    STRING_START = auto()       # opening quote of a string
    STRING_END = auto()         # closing quote of a string
    INTERP_START = auto()       # ${
    INTERP_END = auto()         # } closing an interpolation

    # --- Special ---
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Literal value (float, str, bool) or None
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def location(self) -> SourceLocation:
        """Where the token starts."""
        return self.span.start

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
                         TokenType.IDENTIFIER):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "and": TokenType.AND,
    "or": TokenType.OR,
    "var": TokenType.VAR,
    "fun": TokenType.FUN,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "print": TokenType.PRINT,

    # Literal keywords
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
    "nil": TokenType.NIL,

    # Reserved for an object system that does not exist yet
    "class": TokenType.CLASS,
    "this": TokenType.THIS,
    "super": TokenType.SUPER,
}


# Reserved keywords and the message given when one is used
RESERVED_SUGGESTIONS: dict[TokenType, str] = {
    TokenType.CLASS: "'class' is reserved; classes are not supported",
    TokenType.THIS: "'this' is reserved; classes are not supported",
    TokenType.SUPER: "'super' is reserved; classes are not supported",
}


def is_reserved_keyword(token_type: TokenType) -> bool:
    """Check if a token type is a reserved but unsupported keyword."""
    return token_type in RESERVED_SUGGESTIONS


def get_reserved_message(token_type: TokenType) -> Optional[str]:
    """Get the message for a reserved keyword, if any."""
    return RESERVED_SUGGESTIONS.get(token_type)
