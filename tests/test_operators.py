"""
Tests for the operator table and its builder.
"""

import pytest
from loxi import (
    TokenType, Fixity, Operator, OperatorTableBuilder, default_operator_table,
)
from loxi.operators import NO_POWER


@pytest.fixture
def table():
    return default_operator_table()


class TestBuilder:
    """Test binding power assignment."""

    def test_powers_are_assigned_in_registration_order(self):
        """Each registration takes the next integers from the counter."""
        table = (
            OperatorTableBuilder()
            .left_infix(TokenType.PLUS)
            .right_infix(TokenType.ASSIGN)
            .prefix(TokenType.BANG)
            .postfix(TokenType.LPAREN)
            .build()
        )
        assert table.infix(TokenType.PLUS) == Operator(TokenType.PLUS, Fixity.INFIX, 1, 2)
        assert table.infix(TokenType.ASSIGN) == Operator(TokenType.ASSIGN, Fixity.INFIX, 4, 3)
        assert table.prefix(TokenType.BANG) == Operator(TokenType.BANG, Fixity.PREFIX, NO_POWER, 5)
        # prefix skipped 6
        assert table.postfix(TokenType.LPAREN) == Operator(TokenType.LPAREN, Fixity.POSTFIX, 7, NO_POWER)

    def test_same_level_shares_powers(self):
        """Operators registered together share a level."""
        table = OperatorTableBuilder().left_infix(TokenType.PLUS, TokenType.MINUS).build()
        plus = table.infix(TokenType.PLUS)
        minus = table.infix(TokenType.MINUS)
        assert (plus.lbp, plus.rbp) == (minus.lbp, minus.rbp)

    def test_levels_never_collide(self, table):
        """No two precedence levels share a binding power."""
        ops = [table.infix(t) for t in TokenType if table.infix(t) is not None]
        powers = {}
        for op in ops:
            for power in (op.lbp, op.rbp):
                powers.setdefault(power, set()).add((op.lbp, op.rbp))
        assert all(len(levels) == 1 for levels in powers.values())


class TestDefaultTable:
    """Test the language's operator precedence."""

    def test_factor_binds_tighter_than_term(self, table):
        """'*' binds tighter than '+'."""
        assert table.infix(TokenType.STAR).lbp > table.infix(TokenType.PLUS).lbp

    def test_term_is_left_associative(self, table):
        """'+' and '-' are left-associative."""
        for token_type in (TokenType.PLUS, TokenType.MINUS):
            op = table.infix(token_type)
            assert op.rbp == op.lbp + 1
            assert not op.is_right_associative

    def test_assignment_is_right_associative(self, table):
        """'=' is right-associative."""
        op = table.infix(TokenType.ASSIGN)
        assert op.lbp == op.rbp + 1
        assert op.is_right_associative

    def test_ternary_is_right_associative(self, table):
        """'?' is right-associative and binds tighter than '='."""
        op = table.infix(TokenType.QUESTION)
        assert op.is_right_associative
        assert op.lbp > table.infix(TokenType.ASSIGN).lbp

    def test_comma_is_weakest(self, table):
        """The comma operator has the lowest binding power."""
        comma = table.infix(TokenType.COMMA)
        others = [table.infix(t) for t in TokenType
                  if table.infix(t) is not None and t != TokenType.COMMA]
        assert all(comma.lbp < op.lbp for op in others)

    def test_logical_precedence(self, table):
        """'and' binds tighter than 'or', equality tighter than 'and'."""
        assert table.infix(TokenType.OR).lbp < table.infix(TokenType.AND).lbp
        assert table.infix(TokenType.AND).lbp < table.infix(TokenType.EQ).lbp
        assert table.infix(TokenType.EQ).lbp < table.infix(TokenType.LT).lbp

    def test_prefix_binds_tighter_than_factor(self, table):
        """Unary minus binds tighter than '*'."""
        assert table.prefix(TokenType.MINUS).rbp > table.infix(TokenType.STAR).lbp

    def test_postfix_binds_tightest(self, table):
        """Calls and indexing bind tighter than unary operators."""
        prefix_rbp = table.prefix(TokenType.BANG).rbp
        assert table.postfix(TokenType.LPAREN).lbp > prefix_rbp
        assert table.postfix(TokenType.LBRACKET).lbp > prefix_rbp

    def test_minus_is_prefix_and_infix(self, table):
        """'-' is registered both as prefix and infix."""
        assert table.prefix(TokenType.MINUS).fixity == Fixity.PREFIX
        assert table.infix(TokenType.MINUS).fixity == Fixity.INFIX

    def test_absent_lookups(self, table):
        """Non-operators are absent."""
        assert table.infix(TokenType.SEMICOLON) is None
        assert table.prefix(TokenType.STAR) is None
        assert table.postfix(TokenType.IDENTIFIER) is None
        assert table.left_power(TokenType.SEMICOLON) == 0

    def test_missing_sides_are_no_power(self, table):
        """Prefix operators have no left power, postfix no right power."""
        assert table.prefix(TokenType.BANG).lbp == NO_POWER
        assert table.postfix(TokenType.LPAREN).rbp == NO_POWER

    def test_operators_are_immutable(self, table):
        """Operator descriptors cannot be changed."""
        op = table.infix(TokenType.PLUS)
        with pytest.raises(AttributeError):
            op.lbp = 100
