"""
Parser for loxi.

Statements are parsed by recursive descent, one method per statement
keyword. Expressions are parsed by precedence climbing driven entirely
by an OperatorTable: `_parse_expr(min_bp)` reads a prefix term, then
keeps folding in postfix and infix operators whose left binding power
is at least `min_bp`, recursing on the right with the operator's right
binding power.

On a syntax error the parser reports it, skips to the next statement
boundary and carries on, so one pass can report several errors.
"""

import logging
from typing import List, Optional

from .tokens import Token, TokenType, SourceSpan, get_reserved_message
from .ast import (
    # Expressions
    Expression, Literal, Variable, Assignment, Unary, Binary, Logical,
    Ternary, Grouping, Call, ArrayAccess, TemplateLiteral, StringTemplate,
    # Statements
    Statement, ExpressionStatement, PrintStatement, VarDeclaration, Block,
    IfStatement, WhileStatement, BreakStatement, ContinueStatement,
    FunctionDeclaration, ReturnStatement,
)
from .operators import Operator, OperatorTable, default_operator_table
from .errors import (
    DiagnosticCollector,
    ParserError,
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_expression,
    error_invalid_assignment_target,
    error_too_many_arguments,
    error_reserved_keyword,
)

logger = logging.getLogger(__name__)


# Tokens that begin a statement; error recovery stops in front of them
STATEMENT_KEYWORDS = frozenset({
    TokenType.CLASS,
    TokenType.FUN,
    TokenType.VAR,
    TokenType.FOR,
    TokenType.IF,
    TokenType.WHILE,
    TokenType.PRINT,
    TokenType.RETURN,
})

LOGICAL_OPERATORS = frozenset({TokenType.AND, TokenType.OR})


class Parser:
    """
    Parser producing a list of statements from a token list.

    Usage:
        parser = Parser(tokens)
        statements = parser.parse()
        if parser.diagnostics.had_error:
            ...
    """

    MAX_ARGUMENTS = 255

    def __init__(self, tokens: List[Token], operators: Optional[OperatorTable] = None,
                 diagnostics: Optional[DiagnosticCollector] = None):
        self.tokens = tokens
        self.operators = operators if operators is not None else default_operator_table()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticCollector()
        self.pos = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _error(self, expected: str, token: Optional[Token] = None) -> ParserError:
        """Build a parser error at `token` (default: the current token)."""
        token = token if token is not None else self._current()
        if token.type == TokenType.EOF:
            return error_unexpected_eof(expected, token.span)
        return error_unexpected_token(expected, f"'{token.lexeme}'", token.span)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        return SourceSpan(start.span.start, self._previous().span.end)

    def _synchronize(self) -> None:
        """Discard tokens until a likely statement boundary."""
        self._advance()
        while not self._is_at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return
            if self._current().type in STATEMENT_KEYWORDS:
                return
            self._advance()

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_expr(0)

    def _parse_expr(self, min_bp: int) -> Expression:
        """Parse an expression whose operators all bind at least `min_bp`."""
        lhs = self._parse_prefix()

        while not self._is_at_end():
            op_token = self._current()

            postfix = self.operators.postfix(op_token.type)
            if postfix is not None:
                if postfix.lbp < min_bp:
                    break
                self._advance()
                lhs = self._parse_postfix(lhs, op_token)
                continue

            infix = self.operators.infix(op_token.type)
            if infix is None or infix.lbp < min_bp:
                break
            self._advance()
            lhs = self._parse_infix(lhs, op_token, infix)

        return lhs

    def _parse_prefix(self) -> Expression:
        """Parse a primary term or a prefix operation."""
        token = self._current()

        if token.type in (TokenType.NUMBER_LITERAL, TokenType.STRING_LITERAL,
                          TokenType.BOOL_LITERAL):
            self._advance()
            return Literal(span=token.span, value=token.value)

        if token.type == TokenType.NIL:
            self._advance()
            return Literal(span=token.span, value=None)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return Variable(span=token.span, token=token)

        if token.type == TokenType.LPAREN:
            self._advance()
            inner = self._parse_expression()
            self._consume(TokenType.RPAREN, "')' after expression")
            return Grouping(span=self._span_from(token), expression=inner)

        if token.type == TokenType.STRING_START:
            return self._parse_string()

        if token.type == TokenType.INTERP_START:
            self._advance()
            inner = self._parse_expression()
            self._consume(TokenType.INTERP_END, "'}' to close interpolation")
            return TemplateLiteral(span=self._span_from(token), expression=inner)

        prefix = self.operators.prefix(token.type)
        if prefix is not None:
            self._advance()
            operand = self._parse_expr(prefix.rbp)
            return Unary(
                span=SourceSpan(token.span.start, operand.span.end),
                operator=token,
                operand=operand
            )

        reserved = get_reserved_message(token.type)
        if reserved is not None:
            raise error_reserved_keyword(reserved, token.span)

        if token.type == TokenType.EOF:
            raise error_unexpected_eof("expression", token.span)
        raise error_invalid_expression(f"'{token.lexeme}'", token.span)

    def _parse_string(self) -> Expression:
        """Assemble STRING_START ... STRING_END into a literal or a template."""
        start = self._advance()  # consume STRING_START
        parts: List[Expression] = []
        is_template = False

        while not self._match(TokenType.STRING_END):
            token = self._current()
            if token.type == TokenType.STRING_LITERAL:
                self._advance()
                parts.append(Literal(span=token.span, value=token.value))
            elif token.type == TokenType.INTERP_START:
                parts.append(self._parse_prefix())
                is_template = True
            else:
                raise self._error("end of string")

        span = self._span_from(start)
        if is_template:
            return StringTemplate(span=span, parts=tuple(parts))
        text = "".join(part.value for part in parts)
        return Literal(span=span, value=text)

    def _parse_postfix(self, lhs: Expression, op_token: Token) -> Expression:
        """Parse a call or an index access following `lhs`."""
        if op_token.type == TokenType.LPAREN:
            arguments: List[Expression] = []
            # Arguments bind tighter than the comma operator
            arg_bp = self.operators.left_power(TokenType.COMMA) + 1
            if not self._check(TokenType.RPAREN):
                while True:
                    if len(arguments) >= self.MAX_ARGUMENTS:
                        self.diagnostics.add_error(
                            error_too_many_arguments(self.MAX_ARGUMENTS, self._current().span)
                        )
                    arguments.append(self._parse_expr(arg_bp))
                    if not self._match(TokenType.COMMA):
                        break
            paren = self._consume(TokenType.RPAREN, "')' after arguments")
            return Call(
                span=SourceSpan(lhs.span.start, paren.span.end),
                callee=lhs,
                paren=paren,
                arguments=tuple(arguments)
            )

        if op_token.type == TokenType.LBRACKET:
            index = self._parse_expression()
            bracket = self._consume(TokenType.RBRACKET, "']' after array index")
            return ArrayAccess(
                span=SourceSpan(lhs.span.start, bracket.span.end),
                array=lhs,
                bracket=bracket,
                index=index
            )

        raise self._error("postfix operator", op_token)

    def _parse_infix(self, lhs: Expression, op_token: Token, op: Operator) -> Expression:
        """Parse the right-hand side of an infix operator."""
        if op_token.type == TokenType.QUESTION:
            then_branch = self._parse_expression()
            self._consume(TokenType.COLON, "':' in conditional expression")
            else_branch = self._parse_expr(op.rbp)
            return Ternary(
                span=SourceSpan(lhs.span.start, else_branch.span.end),
                condition=lhs,
                question=op_token,
                then_branch=then_branch,
                else_branch=else_branch
            )

        if op_token.type == TokenType.ASSIGN:
            if not isinstance(lhs, Variable):
                raise error_invalid_assignment_target(op_token.span)
            value = self._parse_expr(op.rbp)
            return Assignment(
                span=SourceSpan(lhs.span.start, value.span.end),
                token=lhs.token,
                value=value
            )

        rhs = self._parse_expr(op.rbp)
        span = SourceSpan(lhs.span.start, rhs.span.end)
        if op_token.type in LOGICAL_OPERATORS:
            return Logical(span=span, left=lhs, operator=op_token, right=rhs)
        return Binary(span=span, left=lhs, operator=op_token, right=rhs)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_declaration(self) -> Optional[Statement]:
        """Parse a declaration or statement, recovering from syntax errors."""
        try:
            if self._match(TokenType.VAR):
                return self._parse_var_declaration()
            if self._match(TokenType.FUN):
                return self._parse_function_declaration()
            return self._parse_statement()
        except ParserError as e:
            self.diagnostics.add_error(e)
            self._synchronize()
            return None

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        if token.type == TokenType.PRINT:
            return self._parse_print_statement()
        if token.type == TokenType.LBRACE:
            return self._parse_block()
        if token.type == TokenType.IF:
            return self._parse_if_statement()
        if token.type == TokenType.WHILE:
            return self._parse_while_statement()
        if token.type == TokenType.FOR:
            return self._parse_for_statement()
        if token.type == TokenType.BREAK:
            return self._parse_break_statement()
        if token.type == TokenType.CONTINUE:
            return self._parse_continue_statement()
        if token.type == TokenType.RETURN:
            return self._parse_return_statement()

        return self._parse_expression_statement()

    def _parse_var_declaration(self) -> VarDeclaration:
        """Parse 'var name [= expr];' (the 'var' is already consumed)."""
        start = self._previous()
        name = self._consume(TokenType.IDENTIFIER, "variable name")

        initializer = None
        if self._match(TokenType.ASSIGN):
            initializer = self._parse_expression()

        self._consume(TokenType.SEMICOLON, "';' after variable declaration")
        return VarDeclaration(
            span=self._span_from(start),
            token=name,
            initializer=initializer
        )

    def _parse_function_declaration(self) -> FunctionDeclaration:
        """Parse 'fun name(params) { body }' (the 'fun' is already consumed)."""
        start = self._previous()
        name = self._consume(TokenType.IDENTIFIER, "function name")
        self._consume(TokenType.LPAREN, "'(' after function name")

        params: List[Token] = []
        if not self._check(TokenType.RPAREN):
            while True:
                if len(params) >= self.MAX_ARGUMENTS:
                    self.diagnostics.add_error(
                        error_too_many_arguments(self.MAX_ARGUMENTS, self._current().span)
                    )
                params.append(self._consume(TokenType.IDENTIFIER, "parameter name"))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RPAREN, "')' after parameters")

        self._consume(TokenType.LBRACE, "'{' before function body")
        body = self._parse_block_statements()
        return FunctionDeclaration(
            span=self._span_from(start),
            token=name,
            params=tuple(params),
            body=tuple(body)
        )

    def _parse_print_statement(self) -> PrintStatement:
        start = self._advance()  # consume 'print'
        value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after value")
        return PrintStatement(span=self._span_from(start), expression=value)

    def _parse_expression_statement(self) -> ExpressionStatement:
        start = self._current()
        expr = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after expression")
        return ExpressionStatement(span=self._span_from(start), expression=expr)

    def _parse_block_statements(self) -> List[Statement]:
        """Parse declarations up to and including the closing '}'."""
        statements = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            stmt = self._parse_declaration()
            if stmt is not None:
                statements.append(stmt)
        self._consume(TokenType.RBRACE, "'}' at end of block")
        return statements

    def _parse_block(self) -> Block:
        start = self._advance()  # consume '{'
        statements = self._parse_block_statements()
        return Block(span=self._span_from(start), statements=tuple(statements))

    def _parse_if_statement(self) -> IfStatement:
        start = self._advance()  # consume 'if'
        self._consume(TokenType.LPAREN, "'(' after 'if'")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')' after if condition")

        then_branch = self._parse_statement()
        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch
        )

    def _parse_while_statement(self) -> WhileStatement:
        start = self._advance()  # consume 'while'
        self._consume(TokenType.LPAREN, "'(' after 'while'")
        condition = self._parse_expression()
        self._consume(TokenType.RPAREN, "')' after while condition")
        body = self._parse_statement()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_for_statement(self) -> Statement:
        """Parse a for loop, desugared into an optional initializer and a while loop."""
        start = self._advance()  # consume 'for'
        self._consume(TokenType.LPAREN, "'(' after 'for'")

        initializer: Optional[Statement]
        if self._match(TokenType.SEMICOLON):
            initializer = None
        elif self._match(TokenType.VAR):
            initializer = self._parse_var_declaration()
        else:
            initializer = self._parse_expression_statement()

        if self._check(TokenType.SEMICOLON):
            semicolon = self._current()
            condition: Expression = Literal(span=semicolon.span, value=True)
        else:
            condition = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after loop condition")

        increment = None
        if not self._check(TokenType.RPAREN):
            increment = self._parse_expression()
        self._consume(TokenType.RPAREN, "')' after for clauses")

        body = self._parse_statement()
        span = self._span_from(start)
        loop: Statement = WhileStatement(
            span=span,
            condition=condition,
            body=body,
            increment=increment
        )
        if initializer is not None:
            loop = Block(span=span, statements=(initializer, loop))
        return loop

    def _parse_break_statement(self) -> BreakStatement:
        keyword = self._advance()
        self._consume(TokenType.SEMICOLON, "';' after 'break'")
        return BreakStatement(span=self._span_from(keyword), keyword=keyword)

    def _parse_continue_statement(self) -> ContinueStatement:
        keyword = self._advance()
        self._consume(TokenType.SEMICOLON, "';' after 'continue'")
        return ContinueStatement(span=self._span_from(keyword), keyword=keyword)

    def _parse_return_statement(self) -> ReturnStatement:
        keyword = self._advance()  # consume 'return'
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after return value")
        return ReturnStatement(span=self._span_from(keyword), keyword=keyword, value=value)

    # =========================================================================
    # Entry points
    # =========================================================================

    def parse(self) -> List[Statement]:
        """Parse a whole program. Errors are in `self.diagnostics`."""
        statements = []
        while not self._is_at_end() and not self.diagnostics.should_stop:
            stmt = self._parse_declaration()
            if stmt is not None:
                statements.append(stmt)
        logger.debug("parsed %d top-level statements", len(statements))
        return statements

    def parse_expression(self) -> Expression:
        """Parse a single expression spanning all the tokens.

        Raises:
            ParserError: on any syntax error (also reported to the sink)
        """
        try:
            expr = self._parse_expression()
            if not self._is_at_end():
                raise self._error("end of expression")
        except ParserError as e:
            self.diagnostics.add_error(e)
            raise
        return expr


def parse(tokens: List[Token], operators: Optional[OperatorTable] = None,
          diagnostics: Optional[DiagnosticCollector] = None) -> List[Statement]:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        operators: Operator table (defaults to the language's table)
        diagnostics: Sink for syntax errors. If omitted, the first error
            is raised instead.

    Returns:
        The program's statements

    Raises:
        ParserError: If parsing fails and no sink was supplied
    """
    sink = diagnostics if diagnostics is not None else DiagnosticCollector()
    statements = Parser(tokens, operators, sink).parse()
    if diagnostics is None and sink.had_error:
        raise ParserError(sink.errors[0])
    return statements
