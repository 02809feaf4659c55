"""
Tree-walking interpreter for loxi.

Statements execute to a Completion telling the caller how control left
them: normally, or by break, continue or return. Blocks stop at the
first abnormal completion and hand it up; loops consume break and
continue; calls consume return. Runtime errors are ExecutionError
exceptions, caught once at the top of `Interpreter.interpret`.
"""

import logging
import math
import sys
import weakref
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterator, List, Optional, Sequence

from .values import (
    Value, LoxType, LoxFunction, NIL, FALSE,
    number_val, string_val, bool_val, function_val, from_literal,
    stringify, is_equal, type_name, matches_type,
)
from .environment import Environment, UNDEFINED
from .builtins import NativeFunction, BuiltinRegistry, get_builtin_registry

from ..ast import (
    AstNode,
    Expression, Literal, Variable, Assignment, Unary, Binary, Logical,
    Ternary, Grouping, Call, ArrayAccess, TemplateLiteral, StringTemplate,
    Statement, ExpressionStatement, PrintStatement, VarDeclaration, Block,
    IfStatement, WhileStatement, BreakStatement, ContinueStatement,
    FunctionDeclaration, ReturnStatement,
)
from ..errors import (
    Diagnostic, DiagnosticCollector, ExecutionError,
    error_stack_overflow, error_nesting_too_deep,
)
from ..lexer import Lexer
from ..parser import Parser
from ..operators import OperatorTable, default_operator_table
from ..resolver import Resolver, ResolutionTable, Scope
from ..tokens import Token, TokenType

logger = logging.getLogger(__name__)

# Each loxi call nests about seven Python frames; this allows recursion
# a few thousand levels deep before reporting a stack overflow.
RECURSION_LIMIT = 10_000


class CompletionKind(Enum):
    """How a statement finished."""
    NORMAL = auto()
    BREAK = auto()
    CONTINUE = auto()
    RETURN = auto()


@dataclass(frozen=True)
class Completion:
    """Result of executing a statement."""
    kind: CompletionKind
    value: Value = NIL
    keyword: Optional[Token] = None     # the break/continue/return token

    @property
    def is_normal(self) -> bool:
        return self.kind == CompletionKind.NORMAL


NORMAL = Completion(CompletionKind.NORMAL)


def _stray_signal(completion: Completion, where: str) -> ExecutionError:
    """Error for a break, continue or return that nothing consumed."""
    if completion.kind == CompletionKind.RETURN:
        return ExecutionError("Can't return from top-level code.", completion.keyword)
    word = completion.keyword.lexeme if completion.keyword is not None else "break"
    return ExecutionError(f"'{word}' used outside of a loop{where}.", completion.keyword)


def _divide(a: float, b: float) -> float:
    """IEEE-754 division."""
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


class Interpreter:
    """
    Tree-walking interpreter for loxi programs.

    Evaluates AST nodes by dispatching to type-specific methods.
    Variable addresses come from the resolver via `resolve()`.
    """

    def __init__(self, diagnostics: Optional[DiagnosticCollector] = None,
                 output: Optional[Callable[[str], None]] = None,
                 natives: Optional[BuiltinRegistry] = None):
        """
        Initialize the interpreter.

        Args:
            diagnostics: Sink for runtime errors
            output: Called with each printed line, in addition to
                collecting it in `outputs`
            natives: Native functions (defaults to the global registry)
        """
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.output = output
        self.natives = natives if natives is not None else get_builtin_registry()
        self.outputs: List[str] = []
        self.globals = Environment()
        self.environment = self.globals
        # Keyed weakly: entries go away with the syntax tree of a finished
        # run unless a function declared in it is still reachable.
        self.locals = weakref.WeakKeyDictionary()

    def resolve(self, table: ResolutionTable) -> None:
        """Add resolver output to the known variable addresses."""
        self.locals.update(table)

    def interpret(self, statements: Sequence[Statement]) -> bool:
        """
        Run a program's top-level statements.

        Stops at the first runtime error, which is reported to the sink.
        Returns True if every statement ran.
        """
        limit = sys.getrecursionlimit()
        if limit < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)
        try:
            for stmt in statements:
                completion = self._execute(stmt)
                if not completion.is_normal:
                    raise _stray_signal(completion, "")
        except ExecutionError as e:
            self._report(e)
            return False
        except RecursionError:
            self._report(error_stack_overflow())
            return False
        finally:
            self.environment = self.globals
            sys.setrecursionlimit(limit)
        return True

    def _report(self, error: ExecutionError) -> None:
        diag = error.diagnostic
        self.diagnostics.report_runtime_error(diag.span, diag.message, diag.code)

    def _print(self, text: str) -> None:
        self.outputs.append(text)
        if self.output is not None:
            self.output(text)

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute(self, stmt: Statement) -> Completion:
        """Execute a statement."""
        if isinstance(stmt, ExpressionStatement):
            self._evaluate(stmt.expression)
            return NORMAL
        elif isinstance(stmt, PrintStatement):
            self._print(stringify(self._evaluate(stmt.expression)))
            return NORMAL
        elif isinstance(stmt, VarDeclaration):
            value = UNDEFINED if stmt.initializer is None else self._evaluate(stmt.initializer)
            self._declare(stmt, value)
            return NORMAL
        elif isinstance(stmt, FunctionDeclaration):
            self._declare(stmt, function_val(LoxFunction(stmt, self.environment)))
            return NORMAL
        elif isinstance(stmt, Block):
            return self._execute_block(stmt.statements, Environment(self.environment))
        elif isinstance(stmt, IfStatement):
            return self._execute_if(stmt)
        elif isinstance(stmt, WhileStatement):
            return self._execute_while(stmt)
        elif isinstance(stmt, BreakStatement):
            return Completion(CompletionKind.BREAK, keyword=stmt.keyword)
        elif isinstance(stmt, ContinueStatement):
            return Completion(CompletionKind.CONTINUE, keyword=stmt.keyword)
        elif isinstance(stmt, ReturnStatement):
            value = NIL if stmt.value is None else self._evaluate(stmt.value)
            return Completion(CompletionKind.RETURN, value, stmt.keyword)
        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _declare(self, stmt: AstNode, value) -> None:
        _, slot = self.locals[stmt]
        self.environment.define(slot, value)

    def _execute_block(self, statements: Sequence[Statement], env: Environment) -> Completion:
        """Execute statements in `env`, stopping at the first abnormal completion."""
        previous = self.environment
        self.environment = env
        try:
            for stmt in statements:
                completion = self._execute(stmt)
                if not completion.is_normal:
                    return completion
            return NORMAL
        finally:
            self.environment = previous

    def _execute_if(self, stmt: IfStatement) -> Completion:
        if self._evaluate(stmt.condition).is_truthy():
            return self._execute(stmt.then_branch)
        if stmt.else_branch is not None:
            return self._execute(stmt.else_branch)
        return NORMAL

    def _execute_while(self, stmt: WhileStatement) -> Completion:
        while self._evaluate(stmt.condition).is_truthy():
            completion = self._execute(stmt.body)
            if completion.kind == CompletionKind.BREAK:
                break
            if completion.kind == CompletionKind.RETURN:
                return completion
            # Normal and continue both fall through to the increment
            if stmt.increment is not None:
                self._evaluate(stmt.increment)
        return NORMAL

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate(self, expr: Expression) -> Value:
        """Evaluate an expression to a value."""
        if isinstance(expr, Literal):
            return from_literal(expr.value)
        elif isinstance(expr, Variable):
            return self._look_up(expr, expr.token)
        elif isinstance(expr, Assignment):
            return self._eval_assignment(expr)
        elif isinstance(expr, Unary):
            return self._eval_unary(expr)
        elif isinstance(expr, Binary):
            return self._eval_binary(expr)
        elif isinstance(expr, Logical):
            return self._eval_logical(expr)
        elif isinstance(expr, Ternary):
            if self._evaluate(expr.condition).is_truthy():
                return self._evaluate(expr.then_branch)
            return self._evaluate(expr.else_branch)
        elif isinstance(expr, (Grouping, TemplateLiteral)):
            return self._evaluate(expr.expression)
        elif isinstance(expr, StringTemplate):
            return string_val("".join(stringify(self._evaluate(p)) for p in expr.parts))
        elif isinstance(expr, Call):
            return self._eval_call(expr)
        elif isinstance(expr, ArrayAccess):
            return self._eval_array_access(expr)
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _look_up(self, expr: Expression, name: Token) -> Value:
        """Read a variable by its resolved address, or a native by name."""
        address = self.locals.get(expr)
        if address is not None:
            distance, slot = address
            return self.environment.get_at(distance, slot, name)

        native = self.natives.get_function(name.lexeme)
        if native is not None:
            return function_val(native)
        raise ExecutionError(f"Undefined variable '{name.lexeme}'.", name)

    def _eval_assignment(self, expr: Assignment) -> Value:
        value = self._evaluate(expr.value)
        address = self.locals.get(expr)
        if address is None:
            raise ExecutionError(f"Undefined variable '{expr.name}'.", expr.token)
        distance, slot = address
        self.environment.assign_at(distance, slot, value)
        return value

    def _eval_unary(self, expr: Unary) -> Value:
        operand = self._evaluate(expr.operand)
        op = expr.operator
        if op.type == TokenType.MINUS:
            if operand.type != LoxType.NUMBER:
                raise ExecutionError("Operand must be a number.", op)
            return number_val(-operand.data)
        if op.type == TokenType.BANG:
            return bool_val(not operand.is_truthy())
        raise ExecutionError(f"Unknown unary operator '{op.lexeme}'.", op)

    def _eval_binary(self, expr: Binary) -> Value:
        """Evaluate a binary operation; both sides are evaluated, left first."""
        left = self._evaluate(expr.left)
        right = self._evaluate(expr.right)
        op = expr.operator

        if op.type == TokenType.COMMA:
            return right
        if op.type == TokenType.EQ:
            return bool_val(is_equal(left, right))
        if op.type == TokenType.NE:
            return bool_val(not is_equal(left, right))

        if op.type == TokenType.PLUS:
            return self._eval_plus(op, left, right)

        if left.type != LoxType.NUMBER or right.type != LoxType.NUMBER:
            raise ExecutionError("Operands must be numbers.", op)
        a, b = left.data, right.data

        if op.type == TokenType.MINUS:
            return number_val(a - b)
        if op.type == TokenType.STAR:
            return number_val(a * b)
        if op.type == TokenType.SLASH:
            return number_val(_divide(a, b))
        if op.type == TokenType.LT:
            return bool_val(a < b)
        if op.type == TokenType.LE:
            return bool_val(a <= b)
        if op.type == TokenType.GT:
            return bool_val(a > b)
        if op.type == TokenType.GE:
            return bool_val(a >= b)

        raise ExecutionError(f"Unknown binary operator '{op.lexeme}'.", op)

    def _eval_plus(self, op: Token, left: Value, right: Value) -> Value:
        """'+' adds numbers and concatenates strings, stringifying a number operand."""
        if left.type == LoxType.NUMBER and right.type == LoxType.NUMBER:
            return number_val(left.data + right.data)
        if left.type == LoxType.STRING and right.type == LoxType.STRING:
            return string_val(left.data + right.data)
        if left.type == LoxType.STRING and right.type == LoxType.NUMBER:
            return string_val(left.data + stringify(right))
        if left.type == LoxType.NUMBER and right.type == LoxType.STRING:
            return string_val(stringify(left) + right.data)
        raise ExecutionError("Operands must be two numbers or two strings.", op)

    def _eval_logical(self, expr: Logical) -> Value:
        """
        Short-circuit 'and' / 'or'.

        The right operand is only passed through when it is truthy and
        not the number zero; otherwise the result is false.
        """
        left = self._evaluate(expr.left)
        if expr.operator.type == TokenType.OR:
            if left.is_truthy():
                return left
        elif not left.is_truthy():
            return FALSE

        right = self._evaluate(expr.right)
        if not right.is_truthy():
            return FALSE
        if right.type == LoxType.NUMBER and right.data == 0:
            return FALSE
        return right

    def _eval_call(self, expr: Call) -> Value:
        callee = self._evaluate(expr.callee)
        args = [self._evaluate(arg) for arg in expr.arguments]

        if callee.type != LoxType.FUNCTION:
            raise ExecutionError("Can only call functions.", expr.paren)
        fn = callee.data

        if len(args) != fn.arity:
            raise ExecutionError(
                f"Expected {fn.arity} arguments but got {len(args)}.", expr.paren
            )
        for position, (arg, expected) in enumerate(zip(args, fn.param_types), start=1):
            if not matches_type(arg, expected):
                raise ExecutionError(
                    f"Argument {position} of '{fn.name}' expected {expected.value} "
                    f"but got {type_name(arg)}.",
                    expr.paren
                )

        if isinstance(fn, NativeFunction):
            try:
                return fn.implementation(*args)
            except ExecutionError as e:
                raise e.with_token(expr.paren) from e
        return self._call_function(fn, args)

    def _call_function(self, fn: LoxFunction, args: List[Value]) -> Value:
        """Run a user function in a new environment chained to its closure."""
        env = Environment(fn.closure)
        for slot, arg in enumerate(args):
            env.define(slot, arg)

        completion = self._execute_block(fn.declaration.body, env)
        if completion.kind == CompletionKind.RETURN:
            return completion.value
        if not completion.is_normal:
            raise _stray_signal(completion, f" in function '{fn.name}'")
        return NIL

    def _eval_array_access(self, expr: ArrayAccess) -> Value:
        array = self._evaluate(expr.array)
        index = self._evaluate(expr.index)

        if array.type != LoxType.ARRAY:
            raise ExecutionError(f"Can only index arrays, not {type_name(array)}.", expr.bracket)
        if index.type != LoxType.NUMBER or not float(index.data).is_integer():
            raise ExecutionError("Array index must be a whole number.", expr.bracket)

        i = int(index.data)
        if i < 0 or i >= len(array.data):
            raise ExecutionError(
                f"Array index {i} out of bounds for length {len(array.data)}.", expr.bracket
            )
        return array.data[i]


# =============================================================================
# Sessions
# =============================================================================

@dataclass
class RunResult:
    """Result of running one piece of source.

    Unpacks as `(outputs, had_compile_error, had_runtime_error)`.
    """
    outputs: List[str]
    had_compile_error: bool
    had_runtime_error: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not (self.had_compile_error or self.had_runtime_error)

    def __iter__(self) -> Iterator:
        return iter((self.outputs, self.had_compile_error, self.had_runtime_error))


class Session:
    """
    Runs source text through the whole pipeline.

    A session keeps its top-level names between runs, so a REPL can
    declare a variable on one line and use it on the next:

        session = Session(output=print)
        session.run("var x = 1;")
        session.run("print x + 1;")
    """

    def __init__(self, output: Optional[Callable[[str], None]] = None,
                 filename: Optional[str] = None, max_errors: int = 20,
                 operators: Optional[OperatorTable] = None):
        self.filename = filename
        self.operators = operators if operators is not None else default_operator_table()
        self.diagnostics = DiagnosticCollector(max_errors=max_errors)
        self.program_scope = Scope(name="program")
        self.interpreter = Interpreter(self.diagnostics, output)

    def _result(self) -> RunResult:
        return RunResult(
            outputs=list(self.interpreter.outputs),
            had_compile_error=self.diagnostics.had_error,
            had_runtime_error=self.diagnostics.had_runtime_error,
            diagnostics=list(self.diagnostics.diagnostics),
        )

    def run(self, source: str) -> RunResult:
        """Lex, parse, resolve and (if all that succeeded) execute `source`."""
        self.diagnostics.clear()
        self.diagnostics.set_source(source)
        self.interpreter.outputs = []

        saved = self.program_scope.snapshot()
        table: ResolutionTable = {}
        try:
            tokens = Lexer(source, self.filename, self.diagnostics).tokenize()
            statements = Parser(tokens, self.operators, self.diagnostics).parse()
            if not self.diagnostics.had_error:
                table = Resolver(self.diagnostics, self.program_scope).resolve_program(statements)
        except RecursionError:
            self.diagnostics.add_error(error_nesting_too_deep())

        if self.diagnostics.had_error:
            self.program_scope.restore(saved)
            logger.debug("not running: %d static error(s)", self.diagnostics.error_count)
            return self._result()

        self.interpreter.resolve(table)
        ok = self.interpreter.interpret(statements)
        logger.debug("ran %d statement(s), ok=%s, %d line(s) printed",
                     len(statements), ok, len(self.interpreter.outputs))
        return self._result()


def run(source: str, output: Optional[Callable[[str], None]] = None,
        filename: Optional[str] = None) -> RunResult:
    """
    High-level API to run loxi source in one call:

        from loxi import run

        outputs, had_compile_error, had_runtime_error = run('print 1 + 2;')
        # outputs == ["3"]

    Args:
        source: Program text
        output: Optional callable receiving each printed line
        filename: Used in diagnostic locations

    Returns:
        RunResult with printed lines, error flags and diagnostics
    """
    return Session(output=output, filename=filename).run(source)
