"""
Syntax tree node definitions for loxi.

Two closed families: expressions and statements. Nodes are frozen
dataclasses holding their children in tuples, so a tree cannot be
mutated after the parser builds it. Equality is identity (eq=False):
the resolver keys its table by node, and two structurally identical
references at different places in the source are different nodes.
"""

from dataclasses import dataclass, fields
from typing import Optional, Tuple, Union, List

from .tokens import SourceSpan, Token


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True, eq=False)
class AstNode:
    """Base class for all syntax tree nodes."""
    span: SourceSpan  # Source location for error reporting


@dataclass(frozen=True, eq=False)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True, eq=False)
class Statement(AstNode):
    """Base class for all statements."""
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True, eq=False)
class Literal(Expression):
    """A literal value: number, string, boolean or nil (None)."""
    value: Union[float, str, bool, None]


@dataclass(frozen=True, eq=False)
class Variable(Expression):
    """A reference to a name."""
    token: Token

    @property
    def name(self) -> str:
        return self.token.lexeme


@dataclass(frozen=True, eq=False)
class Assignment(Expression):
    """Assignment to a name (e.g., x = 5)."""
    token: Token            # the target name
    value: Expression

    @property
    def name(self) -> str:
        return self.token.lexeme


@dataclass(frozen=True, eq=False)
class Unary(Expression):
    """A prefix operation (e.g., -n, !x)."""
    operator: Token
    operand: Expression


@dataclass(frozen=True, eq=False)
class Binary(Expression):
    """An arithmetic, comparison, equality or comma operation."""
    left: Expression
    operator: Token
    right: Expression


@dataclass(frozen=True, eq=False)
class Logical(Expression):
    """A short-circuiting 'and' / 'or'."""
    left: Expression
    operator: Token
    right: Expression


@dataclass(frozen=True, eq=False)
class Ternary(Expression):
    """A conditional expression (e.g., c ? a : b)."""
    condition: Expression
    question: Token
    then_branch: Expression
    else_branch: Expression


@dataclass(frozen=True, eq=False)
class Grouping(Expression):
    """A parenthesized expression."""
    expression: Expression


@dataclass(frozen=True, eq=False)
class Call(Expression):
    """A call (e.g., f(1, 2)). `paren` is the closing parenthesis."""
    callee: Expression
    paren: Token
    arguments: Tuple[Expression, ...]


@dataclass(frozen=True, eq=False)
class ArrayAccess(Expression):
    """Index access (e.g., parts[0]). `bracket` is the closing bracket."""
    array: Expression
    bracket: Token
    index: Expression


@dataclass(frozen=True, eq=False)
class TemplateLiteral(Expression):
    """One ${...} expression embedded in a string."""
    expression: Expression


@dataclass(frozen=True, eq=False)
class StringTemplate(Expression):
    """An interpolated string: literal segments and TemplateLiterals in order."""
    parts: Tuple[Expression, ...]


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True, eq=False)
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


@dataclass(frozen=True, eq=False)
class PrintStatement(Statement):
    """print expr;"""
    expression: Expression


@dataclass(frozen=True, eq=False)
class VarDeclaration(Statement):
    """A variable declaration (e.g., var x = 1;). No initializer leaves x undefined."""
    token: Token
    initializer: Optional[Expression] = None

    @property
    def name(self) -> str:
        return self.token.lexeme


@dataclass(frozen=True, eq=False)
class Block(Statement):
    """A braced block of statements with its own scope."""
    statements: Tuple[Statement, ...]


@dataclass(frozen=True, eq=False)
class IfStatement(Statement):
    """if (cond) stmt [else stmt]"""
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


@dataclass(frozen=True, eq=False)
class WhileStatement(Statement):
    """A while loop.

    `increment` is only set for desugared for-loops; it runs after every
    iteration, including ones cut short by 'continue'.
    """
    condition: Expression
    body: Statement
    increment: Optional[Expression] = None


@dataclass(frozen=True, eq=False)
class BreakStatement(Statement):
    keyword: Token


@dataclass(frozen=True, eq=False)
class ContinueStatement(Statement):
    keyword: Token


@dataclass(frozen=True, eq=False)
class FunctionDeclaration(Statement):
    """fun name(params) { body }"""
    token: Token
    params: Tuple[Token, ...]
    body: Tuple[Statement, ...]

    @property
    def name(self) -> str:
        return self.token.lexeme

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass(frozen=True, eq=False)
class ReturnStatement(Statement):
    keyword: Token
    value: Optional[Expression] = None


# =============================================================================
# Debug printing
# =============================================================================

def _format_value(value) -> str:
    if isinstance(value, Token):
        return value.lexeme
    return repr(value)


def _format_lines(node: AstNode, indent: int, lines: List[str]) -> None:
    pad = "  " * indent
    lines.append(f"{pad}{node.__class__.__name__}")
    for f in fields(node):
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, AstNode):
            lines.append(f"{pad}  {f.name}:")
            _format_lines(value, indent + 2, lines)
        elif isinstance(value, tuple):
            lines.append(f"{pad}  {f.name}: [")
            for item in value:
                if isinstance(item, AstNode):
                    _format_lines(item, indent + 2, lines)
                else:
                    lines.append(f"{pad}    {_format_value(item)}")
            lines.append(f"{pad}  ]")
        else:
            lines.append(f"{pad}  {f.name}: {_format_value(value)}")


def format_ast(node: Union[AstNode, List[Statement], Tuple[Statement, ...]]) -> str:
    """Render a node (or a program's statement list) as an indented tree."""
    lines: List[str] = []
    if isinstance(node, (list, tuple)):
        for stmt in node:
            _format_lines(stmt, 0, lines)
    else:
        _format_lines(node, 0, lines)
    return "\n".join(lines)


def print_ast(node: Union[AstNode, List[Statement]]) -> None:
    """Print an AST node for debugging."""
    print(format_ast(node))
