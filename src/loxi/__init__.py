"""
loxi - a small dynamically-typed scripting language.

This module provides:
- Lexer: Tokenizes source code, including ${...} string interpolation
- Operator table: Binding powers for every operator
- Parser: Builds statement and expression trees by precedence climbing
- Resolver: Computes (distance, slot) addresses for every variable use
- Interpreter: Walks the tree with closures and native functions

Usage:
    from loxi import run

    outputs, had_compile_error, had_runtime_error = run('''
        fun makeCounter() {
            var n = 0;
            fun inc() { n = n + 1; return n; }
            return inc;
        }
        var c = makeCounter();
        c();
        print "count: ${c()}";
    ''')
    # outputs == ["count: 2"]
"""

import logging

from importlib.metadata import PackageNotFoundError, version

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_reserved_keyword,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .operators import (
    Operator,
    OperatorTable,
    OperatorTableBuilder,
    Fixity,
    default_operator_table,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    # Base
    AstNode,
    Expression,
    Statement,
    # Expressions
    Literal,
    Variable,
    Assignment,
    Unary,
    Binary,
    Logical,
    Ternary,
    Grouping,
    Call,
    ArrayAccess,
    TemplateLiteral,
    StringTemplate,
    # Statements
    ExpressionStatement,
    PrintStatement,
    VarDeclaration,
    Block,
    IfStatement,
    WhileStatement,
    BreakStatement,
    ContinueStatement,
    FunctionDeclaration,
    ReturnStatement,
    # Debugging
    format_ast,
    print_ast,
)

from .resolver import (
    Resolver,
    Scope,
    resolve,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    Phase,
    LoxError,
    LexerError,
    ParserError,
    ResolverError,
    ExecutionError,
)

from .runtime import (
    Interpreter,
    RunResult,
    Session,
    Value,
    LoxType,
    run,
)

try:
    __version__ = version("loxi")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    'is_reserved_keyword',

    # Lexer
    'Lexer',
    'tokenize',

    # Operators
    'Operator',
    'OperatorTable',
    'OperatorTableBuilder',
    'Fixity',
    'default_operator_table',

    # Parser
    'Parser',
    'parse',

    # AST
    'AstNode',
    'Expression',
    'Statement',
    'Literal',
    'Variable',
    'Assignment',
    'Unary',
    'Binary',
    'Logical',
    'Ternary',
    'Grouping',
    'Call',
    'ArrayAccess',
    'TemplateLiteral',
    'StringTemplate',
    'ExpressionStatement',
    'PrintStatement',
    'VarDeclaration',
    'Block',
    'IfStatement',
    'WhileStatement',
    'BreakStatement',
    'ContinueStatement',
    'FunctionDeclaration',
    'ReturnStatement',
    'format_ast',
    'print_ast',

    # Resolver
    'Resolver',
    'Scope',
    'resolve',

    # Errors
    'Diagnostic',
    'DiagnosticCollector',
    'Phase',
    'LoxError',
    'LexerError',
    'ParserError',
    'ResolverError',
    'ExecutionError',

    # Runtime
    'Interpreter',
    'RunResult',
    'Session',
    'Value',
    'LoxType',
    'run',

    '__version__',
]
