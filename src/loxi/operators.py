"""
Operator table for the precedence-climbing parser.

Operators are registered in increasing order of precedence. Each
registration takes the next one or two integers from a counter, so
levels never collide:

    left infix:   lbp = n,  rbp = n + 1
    right infix:  rbp = n,  lbp = n + 1
    prefix:       rbp = n   (next integer skipped)
    postfix:      lbp = n   (next integer skipped)

A missing side is -1. The parser keeps no precedence logic of its own.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .tokens import TokenType


NO_POWER = -1


class Fixity(Enum):
    """Where an operator sits relative to its operand(s)."""
    PREFIX = "prefix"
    INFIX = "infix"
    POSTFIX = "postfix"


@dataclass(frozen=True)
class Operator:
    """Binding powers of one operator token in one position."""
    token_type: TokenType
    fixity: Fixity
    lbp: int = NO_POWER     # left binding power (infix/postfix)
    rbp: int = NO_POWER     # right binding power (prefix/infix)

    @property
    def is_right_associative(self) -> bool:
        return self.fixity == Fixity.INFIX and self.lbp > self.rbp


class OperatorTable:
    """Read-only lookup of prefix, infix and postfix operators by token type."""

    def __init__(self, prefix: Dict[TokenType, Operator],
                 infix: Dict[TokenType, Operator],
                 postfix: Dict[TokenType, Operator]):
        self._prefix: Mapping[TokenType, Operator] = MappingProxyType(dict(prefix))
        self._infix: Mapping[TokenType, Operator] = MappingProxyType(dict(infix))
        self._postfix: Mapping[TokenType, Operator] = MappingProxyType(dict(postfix))

    def prefix(self, token_type: TokenType) -> Optional[Operator]:
        """Look up a prefix operator, or None."""
        return self._prefix.get(token_type)

    def infix(self, token_type: TokenType) -> Optional[Operator]:
        """Look up an infix operator, or None."""
        return self._infix.get(token_type)

    def postfix(self, token_type: TokenType) -> Optional[Operator]:
        """Look up a postfix operator, or None."""
        return self._postfix.get(token_type)

    def left_power(self, token_type: TokenType) -> int:
        """Left binding power of an infix operator, 0 if not an operator."""
        op = self._infix.get(token_type)
        return op.lbp if op is not None else 0


class OperatorTableBuilder:
    """
    Assigns binding powers to operators in registration order.

    Usage:
        builder = OperatorTableBuilder()
        builder.left_infix(TokenType.PLUS, TokenType.MINUS)
        builder.left_infix(TokenType.STAR, TokenType.SLASH)
        table = builder.build()
    """

    def __init__(self):
        self._power = 1
        self._prefix: Dict[TokenType, Operator] = {}
        self._infix: Dict[TokenType, Operator] = {}
        self._postfix: Dict[TokenType, Operator] = {}

    def _next_power(self) -> int:
        power = self._power
        self._power += 1
        return power

    def left_infix(self, *token_types: TokenType) -> "OperatorTableBuilder":
        lbp = self._next_power()
        rbp = self._next_power()
        for token_type in token_types:
            self._infix[token_type] = Operator(token_type, Fixity.INFIX, lbp, rbp)
        return self

    def right_infix(self, *token_types: TokenType) -> "OperatorTableBuilder":
        rbp = self._next_power()
        lbp = self._next_power()
        for token_type in token_types:
            self._infix[token_type] = Operator(token_type, Fixity.INFIX, lbp, rbp)
        return self

    def prefix(self, *token_types: TokenType) -> "OperatorTableBuilder":
        rbp = self._next_power()
        for token_type in token_types:
            self._prefix[token_type] = Operator(token_type, Fixity.PREFIX, rbp=rbp)
        self._next_power()
        return self

    def postfix(self, *token_types: TokenType) -> "OperatorTableBuilder":
        lbp = self._next_power()
        for token_type in token_types:
            self._postfix[token_type] = Operator(token_type, Fixity.POSTFIX, lbp=lbp)
        self._next_power()
        return self

    def build(self) -> OperatorTable:
        return OperatorTable(self._prefix, self._infix, self._postfix)


def default_operator_table() -> OperatorTable:
    """The language's operators, weakest first."""
    return (
        OperatorTableBuilder()
        .left_infix(TokenType.COMMA)
        .right_infix(TokenType.ASSIGN)
        .right_infix(TokenType.QUESTION)
        .left_infix(TokenType.OR)
        .left_infix(TokenType.AND)
        .left_infix(TokenType.NE, TokenType.EQ)
        .left_infix(TokenType.GT, TokenType.GE, TokenType.LT, TokenType.LE)
        .left_infix(TokenType.PLUS, TokenType.MINUS)
        .left_infix(TokenType.STAR, TokenType.SLASH)
        .prefix(TokenType.BANG, TokenType.MINUS)
        .postfix(TokenType.LBRACKET)
        .postfix(TokenType.LPAREN)
        .build()
    )
