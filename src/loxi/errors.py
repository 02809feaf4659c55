"""
Exceptions, diagnostics and the diagnostic sink.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E3xx: Resolver errors
- E4xx: Runtime errors (E499: call stack exhausted)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Union
from .tokens import SourceSpan, SourceLocation, Token


class Phase(Enum):
    """Which half of the pipeline produced a diagnostic."""
    COMPILE = "compile"
    RUNTIME = "runtime"


@dataclass
class Diagnostic:
    """A single error, with where it happened and which stage found it."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    span: Optional[SourceSpan]      # None for runtime errors with no location
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)
    phase: Phase = Phase.COMPILE

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: error[code]: message
        if self.span is not None:
            parts.append(f"{self.span.start}: error[{self.code}]: {self.message}")
        else:
            parts.append(f"error[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append(f"  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        span = None
        if self.span is not None:
            span = {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            }
        return {
            "code": self.code,
            "message": self.message,
            "phase": self.phase.value,
            "range": span,
            "hints": self.hints,
        }


class LoxError(Exception):
    """Base exception for all engine errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(LoxError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(LoxError):
    """Error during parsing (E1xx)."""
    pass


class ResolverError(LoxError):
    """Error during static resolution (E3xx)."""
    pass


class ExecutionError(LoxError):
    """Error while evaluating a program (E4xx).

    `token` is the offending token, or None when the failure has no
    source position (e.g. raised from inside a native function).
    """

    def __init__(self, message: str, token: Optional[Token] = None, code: str = "E400"):
        diag = Diagnostic(
            code=code,
            message=message,
            span=token.span if token is not None else None,
            phase=Phase.RUNTIME,
        )
        super().__init__(diag)
        self.token = token

    def with_token(self, token: Token) -> "ExecutionError":
        """Return this error located at `token` if it has no location yet."""
        if self.token is not None:
            return self
        return ExecutionError(self.diagnostic.message, token, self.diagnostic.code)


def _span_at(location: Union[SourceLocation, SourceSpan]) -> SourceSpan:
    if isinstance(location, SourceSpan):
        return location
    return SourceSpan(location, location)


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with a matching '\"'"],
    )
    return LexerError(diag)


def error_unterminated_interpolation(span: SourceSpan, source_line: str = None) -> LexerError:
    """E003: '${' without a closing '}'."""
    diag = Diagnostic(
        code="E003",
        message="unterminated string interpolation (expected closing })",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated block comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated comment (expected closing */)",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\\", \\\\, \\{"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        span=span,
    )
    return ParserError(diag)


def error_invalid_expression(found: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Token cannot start an expression."""
    diag = Diagnostic(
        code="E103",
        message=f"expected expression, found {found}",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: Left side of '=' is not a name."""
    diag = Diagnostic(
        code="E104",
        message="invalid assignment target, expected identifier on left hand side of '='",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_too_many_arguments(limit: int, span: SourceSpan, source_line: str = None) -> ParserError:
    """E105: Call has too many arguments."""
    diag = Diagnostic(
        code="E105",
        message=f"can't have more than {limit} arguments",
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_reserved_keyword(message: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E106: Reserved keyword used."""
    diag = Diagnostic(
        code="E106",
        message=message,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Resolver error codes ---

def error_self_reference(name: str, span: SourceSpan, source_line: str = None) -> ResolverError:
    """E301: Variable read inside its own initializer."""
    diag = Diagnostic(
        code="E301",
        message=f"can't read local variable '{name}' in its own initializer",
        span=span,
        source_line=source_line,
    )
    return ResolverError(diag)


# --- Runtime errors ---

def error_stack_overflow(token: Optional[Token] = None) -> ExecutionError:
    """E499: Host call stack exhausted."""
    return ExecutionError("stack overflow", token, code="E499")


def error_nesting_too_deep() -> LoxError:
    """E499 while compiling: the program nests deeper than the host stack allows."""
    diag = Diagnostic(
        code="E499",
        message="stack overflow (program is nested too deeply)",
        span=None,
    )
    return LoxError(diag)


class DiagnosticCollector:
    """Collects diagnostics for one compilation/run.

    This is the diagnostic sink shared by the lexer, parser, resolver and
    interpreter. Callers (e.g. the CLI) consult `had_error` and
    `had_runtime_error` to decide what to do next.
    """

    def __init__(self, max_errors: int = 20, source: Optional[str] = None):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0
        self._runtime_error_count = 0
        self._lines: List[str] = source.splitlines() if source else []

    def set_source(self, source: str) -> None:
        """Remember source text so diagnostics can quote the offending line."""
        self._lines = source.splitlines()

    def source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self._lines):
            return self._lines[line_num - 1]
        return None

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        if diagnostic.source_line is None and diagnostic.span is not None:
            diagnostic.source_line = self.source_line(diagnostic.span.start.line)
        self.diagnostics.append(diagnostic)
        if diagnostic.phase == Phase.RUNTIME:
            self._runtime_error_count += 1
        else:
            self._error_count += 1

    def add_error(self, error: LoxError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    def report_error(self, location: Union[SourceLocation, SourceSpan], message: str,
                     code: str = "E000") -> None:
        """Record a compile-time error at `location`."""
        self.add(Diagnostic(
            code=code,
            message=message,
            span=_span_at(location),
        ))

    def report_runtime_error(self, location: Optional[Union[SourceLocation, SourceSpan]],
                             message: str, code: str = "E400") -> None:
        """Record an execution failure, optionally with a location."""
        self.add(Diagnostic(
            code=code,
            message=message,
            span=_span_at(location) if location is not None else None,
            phase=Phase.RUNTIME,
        ))

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def runtime_error_count(self) -> int:
        return self._runtime_error_count

    @property
    def had_error(self) -> bool:
        """True if any compile-time error was reported."""
        return self._error_count > 0

    @property
    def had_runtime_error(self) -> bool:
        """True if any runtime error was reported."""
        return self._runtime_error_count > 0

    @property
    def has_errors(self) -> bool:
        return self.had_error or self.had_runtime_error

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    @property
    def errors(self) -> List[Diagnostic]:
        return list(self.diagnostics)

    def clear(self) -> None:
        """Forget everything reported so far (used between REPL lines)."""
        self.diagnostics.clear()
        self._error_count = 0
        self._runtime_error_count = 0

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        total = self._error_count + self._runtime_error_count
        if total > 0:
            parts.append(f"{total} error(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "runtime_error_count": self._runtime_error_count,
        }
