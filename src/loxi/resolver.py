"""
Static resolver for loxi.

Walks the syntax tree once before execution and works out where every
name lives. Each lexical scope (program, block, function body) is a
frame mapping names to slot indices; every use of a name is recorded
in the resolution table as (distance, slot), where distance is the
number of frames between the use and the declaring frame. The
evaluator then reads variables by position instead of by name.

Declarations are also recorded, as (0, slot), so the evaluator knows
which slot of the current environment a declaration fills.

Names that are not found in any frame are left out of the table; they
are looked up among the natives at run time.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .tokens import Token
from .ast import (
    AstNode,
    Expression, Literal, Variable, Assignment, Unary, Binary, Logical,
    Ternary, Grouping, Call, ArrayAccess, TemplateLiteral, StringTemplate,
    Statement, ExpressionStatement, PrintStatement, VarDeclaration, Block,
    IfStatement, WhileStatement, BreakStatement, ContinueStatement,
    FunctionDeclaration, ReturnStatement,
)
from .errors import DiagnosticCollector, error_self_reference

logger = logging.getLogger(__name__)


# (scope distance, slot index)
Address = Tuple[int, int]
ResolutionTable = Dict[AstNode, Address]


@dataclass
class Binding:
    """A declared name inside one scope frame."""
    slot: int
    initialized: bool = False


@dataclass
class Scope:
    """One lexical scope frame."""
    bindings: Dict[str, Binding] = field(default_factory=dict)
    next_slot: int = 0      # slots are never reused, even on redeclaration
    name: str = ""          # For debugging: "program", "block", "fun makeCounter"

    def declare(self, name: str) -> Binding:
        """Bind `name` to a fresh slot, not yet initialized."""
        binding = Binding(self.next_slot)
        self.next_slot += 1
        self.bindings[name] = binding
        return binding

    def lookup_local(self, name: str) -> Optional[Binding]:
        """Look up a name in this frame only."""
        return self.bindings.get(name)

    def snapshot(self) -> Tuple[Dict[str, Binding], int]:
        return {k: Binding(b.slot, b.initialized) for k, b in self.bindings.items()}, self.next_slot

    def restore(self, state: Tuple[Dict[str, Binding], int]) -> None:
        self.bindings, self.next_slot = state


class Resolver:
    """
    Computes the resolution table for a program.

    Usage:
        resolver = Resolver(diagnostics)
        table = resolver.resolve_program(statements)

    Pass a persistent `program_scope` to keep top-level names across
    several programs (the REPL does this).
    """

    def __init__(self, diagnostics: Optional[DiagnosticCollector] = None,
                 program_scope: Optional[Scope] = None):
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.program_scope = program_scope if program_scope is not None else Scope(name="program")
        self.scopes: List[Scope] = []
        self.table: ResolutionTable = {}

    # =========================================================================
    # Scope management
    # =========================================================================

    def _push_scope(self, name: str = "") -> None:
        self.scopes.append(Scope(name=name))

    def _pop_scope(self) -> None:
        self.scopes.pop()

    def _declare(self, node: AstNode, name: Token) -> None:
        """Declare `name` in the innermost frame and record its slot for `node`."""
        binding = self.scopes[-1].declare(name.lexeme)
        self.table[node] = (0, binding.slot)

    def _define(self, name: Token) -> None:
        """Mark `name` in the innermost frame as initialized."""
        self.scopes[-1].bindings[name.lexeme].initialized = True

    def _resolve_local(self, node: AstNode, name: Token) -> None:
        """Record the address of the nearest frame that declares `name`."""
        for distance, scope in enumerate(reversed(self.scopes)):
            binding = scope.lookup_local(name.lexeme)
            if binding is not None:
                self.table[node] = (distance, binding.slot)
                return
        # Not found: a native, looked up by name at run time

    # =========================================================================
    # Statements
    # =========================================================================

    def _resolve_statements(self, statements) -> None:
        for stmt in statements:
            self._resolve_statement(stmt)

    def _resolve_statement(self, stmt: Statement) -> None:
        """Resolve a statement."""
        if isinstance(stmt, VarDeclaration):
            # Declared before the initializer is resolved, defined after
            self._declare(stmt, stmt.token)
            if stmt.initializer is not None:
                self._resolve_expression(stmt.initializer)
            self._define(stmt.token)
        elif isinstance(stmt, FunctionDeclaration):
            # Defined before the body so the function can call itself
            self._declare(stmt, stmt.token)
            self._define(stmt.token)
            self._resolve_function(stmt)
        elif isinstance(stmt, Block):
            self._push_scope("block")
            self._resolve_statements(stmt.statements)
            self._pop_scope()
        elif isinstance(stmt, (ExpressionStatement, PrintStatement)):
            self._resolve_expression(stmt.expression)
        elif isinstance(stmt, IfStatement):
            self._resolve_expression(stmt.condition)
            self._resolve_statement(stmt.then_branch)
            if stmt.else_branch is not None:
                self._resolve_statement(stmt.else_branch)
        elif isinstance(stmt, WhileStatement):
            self._resolve_expression(stmt.condition)
            self._resolve_statement(stmt.body)
            if stmt.increment is not None:
                self._resolve_expression(stmt.increment)
        elif isinstance(stmt, ReturnStatement):
            if stmt.value is not None:
                self._resolve_expression(stmt.value)
        elif isinstance(stmt, (BreakStatement, ContinueStatement)):
            pass  # checked at run time
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _resolve_function(self, function: FunctionDeclaration) -> None:
        """Resolve a function body in a new frame; parameters take slots 0..n-1."""
        self._push_scope(f"fun {function.name}")
        for param in function.params:
            self.scopes[-1].declare(param.lexeme).initialized = True
        self._resolve_statements(function.body)
        self._pop_scope()

    # =========================================================================
    # Expressions
    # =========================================================================

    def _resolve_expression(self, expr: Expression) -> None:
        """Resolve an expression."""
        if isinstance(expr, Variable):
            binding = self.scopes[-1].lookup_local(expr.name)
            if binding is not None and not binding.initialized:
                self.diagnostics.add_error(error_self_reference(expr.name, expr.span))
            self._resolve_local(expr, expr.token)
        elif isinstance(expr, Assignment):
            self._resolve_expression(expr.value)
            self._resolve_local(expr, expr.token)
        elif isinstance(expr, Literal):
            pass
        elif isinstance(expr, Unary):
            self._resolve_expression(expr.operand)
        elif isinstance(expr, (Binary, Logical)):
            self._resolve_expression(expr.left)
            self._resolve_expression(expr.right)
        elif isinstance(expr, Ternary):
            self._resolve_expression(expr.condition)
            self._resolve_expression(expr.then_branch)
            self._resolve_expression(expr.else_branch)
        elif isinstance(expr, (Grouping, TemplateLiteral)):
            self._resolve_expression(expr.expression)
        elif isinstance(expr, Call):
            self._resolve_expression(expr.callee)
            for arg in expr.arguments:
                self._resolve_expression(arg)
        elif isinstance(expr, ArrayAccess):
            self._resolve_expression(expr.array)
            self._resolve_expression(expr.index)
        elif isinstance(expr, StringTemplate):
            for part in expr.parts:
                self._resolve_expression(part)
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    # =========================================================================
    # Entry point
    # =========================================================================

    def resolve_program(self, statements: List[Statement]) -> ResolutionTable:
        """
        Resolve a whole program in the program frame.

        If any error is reported while resolving, the program frame is
        rolled back to its state before this call.
        """
        errors_before = self.diagnostics.error_count
        saved = self.program_scope.snapshot()

        self.scopes = [self.program_scope]
        self.table = {}
        self._resolve_statements(statements)
        self.scopes = []

        if self.diagnostics.error_count > errors_before:
            self.program_scope.restore(saved)
        logger.debug("resolved %d names", len(self.table))
        return self.table


def resolve(statements: List[Statement],
            diagnostics: Optional[DiagnosticCollector] = None) -> ResolutionTable:
    """
    Convenience function to resolve a parsed program.

    Args:
        statements: The program from the parser
        diagnostics: Sink for resolution errors

    Returns:
        The resolution table, keyed by node
    """
    return Resolver(diagnostics).resolve_program(statements)
