"""Tests for the dicelang Pratt parser.

Trees are compared through their s-expression form, which spells out the
desugared structure: `a + b` prints as `(apply (apply + a) b)`.
"""

from __future__ import annotations

import pytest

from dicelang.core.errors import LexError, ParseError
from dicelang.core.expression_lang.parser import parse_expr
from dicelang.core.ir.expressions import (
    Apply,
    ArrayLiteral,
    FunctionLiteral,
    If,
    Let,
    NumberLiteral,
    StringLiteral,
    UnitLiteral,
    Variable,
)


def sexpr(source: str) -> str:
    return str(parse_expr(source))


# ============================================================================
# Prefix terms
# ============================================================================


class TestPrefix:
    def test_number(self) -> None:
        expr = parse_expr("42")
        assert isinstance(expr, NumberLiteral)
        assert expr.value == 42.0

    def test_fractional_number(self) -> None:
        assert sexpr("1.5") == "1.5"

    def test_string(self) -> None:
        expr = parse_expr('"a\\tb"')
        assert isinstance(expr, StringLiteral)
        assert expr.value == "a\tb"

    def test_unit(self) -> None:
        assert isinstance(parse_expr("()"), UnitLiteral)

    def test_parenthesized(self) -> None:
        assert isinstance(parse_expr("(x)"), Variable)

    def test_array(self) -> None:
        expr = parse_expr("[1. 2. 3]")
        assert isinstance(expr, ArrayLiteral)
        assert len(expr.elements) == 3

    def test_array_trailing_dot(self) -> None:
        assert sexpr("[1. 2.]") == "(array 1 2)"

    def test_empty_array(self) -> None:
        assert sexpr("[]") == "(array)"

    def test_array_elements_are_full_expressions(self) -> None:
        assert sexpr("[a, b. 1 + 2]") == "(array (apply a b) (apply (apply + 1) 2))"

    def test_function(self) -> None:
        expr = parse_expr("@x x")
        assert isinstance(expr, FunctionLiteral)
        assert expr.parameter == "x"

    def test_curried_function(self) -> None:
        assert sexpr("@a @b a") == "(fn a (fn b a))"

    def test_function_body_extends_right(self) -> None:
        assert sexpr("@x x + 1") == "(fn x (apply (apply + x) 1))"

    def test_let(self) -> None:
        expr = parse_expr("let a 1 and b 2 in a")
        assert isinstance(expr, Let)
        assert [name for name, _ in expr.bindings] == ["a", "b"]
        assert sexpr("let a 1 and b 2 in a") == "(let ((a 1) (b 2)) a)"

    def test_if(self) -> None:
        expr = parse_expr("if a then b else c")
        assert isinstance(expr, If)
        assert sexpr("if a then b else c") == "(if a b c)"

    def test_unary_operators(self) -> None:
        assert sexpr("-x") == "(apply -x x)"
        assert sexpr("+x") == "(apply +x x)"
        assert sexpr("!x") == "(apply ! x)"

    def test_ellipsis_name(self) -> None:
        assert sexpr("... [1. 2]") == "(apply ... (array 1 2))"


# ============================================================================
# Precedence and associativity
# ============================================================================


class TestPrecedence:
    def test_multiplication_binds_tighter(self) -> None:
        assert sexpr("1 + 2 * 3") == "(apply (apply + 1) (apply (apply * 2) 3))"

    def test_subtraction_is_left_associative(self) -> None:
        assert sexpr("a - b - c") == "(apply (apply - (apply (apply - a) b)) c)"

    def test_power_is_right_associative(self) -> None:
        assert sexpr("2 ** 3 ** 2") == "(apply (apply ** 2) (apply (apply ** 3) 2))"

    def test_unary_minus_binds_tighter_than_power(self) -> None:
        assert sexpr("-2 ** 2") == "(apply (apply ** (apply -x 2)) 2)"

    def test_equality_below_comparison(self) -> None:
        assert sexpr("a < b = c > d") == (
            "(apply (apply = (apply (apply < a) b)) (apply (apply > c) d))"
        )

    def test_or_below_and(self) -> None:
        assert sexpr("a | b & c") == "(apply (apply | a) (apply (apply & b) c))"

    def test_comparison_below_or(self) -> None:
        assert sexpr("a < b | c") == "(apply (apply < a) (apply (apply | b) c))"

    def test_parentheses_override(self) -> None:
        assert sexpr("(1 + 2) * 3") == "(apply (apply * (apply (apply + 1) 2)) 3)"

    def test_binary_operator_desugars(self) -> None:
        expr = parse_expr("1 + 2")
        assert isinstance(expr, Apply)
        assert isinstance(expr.callee, Apply)
        assert expr.callee.callee == Variable(name="+", start=2, end=3)


class TestApplication:
    def test_juxtaposition(self) -> None:
        assert sexpr("d 20") == "(apply d 20)"

    def test_juxtaposition_is_right_associative(self) -> None:
        assert sexpr("5 d20") == "(apply 5 (apply d 20))"
        assert sexpr("f g x") == "(apply f (apply g x))"

    def test_juxtaposition_binds_tighter_than_operators(self) -> None:
        assert sexpr("d 6 + 1") == "(apply (apply + (apply d 6)) 1)"

    def test_comma_application_is_left_associative(self) -> None:
        assert sexpr("f a, b, c") == "(apply (apply (apply f a) b) c)"

    def test_comma_binds_loosest(self) -> None:
        assert sexpr("highest 3, 4 d6") == "(apply (apply highest 3) (apply 4 (apply d 6)))"

    def test_call_syntax(self) -> None:
        assert sexpr("f(a, b)") == "(apply (apply f a) b)"

    def test_empty_call_passes_unit(self) -> None:
        assert sexpr("seq()") == "(apply seq ())"

    def test_call_binds_tighter_than_juxtaposition(self) -> None:
        assert sexpr("5 seq()") == "(apply 5 (apply seq ()))"

    def test_call_arguments_are_full_expressions(self) -> None:
        assert sexpr("f(1 + 2)") == "(apply f (apply (apply + 1) 2))"


# ============================================================================
# Spans
# ============================================================================


class TestSpans:
    def test_binary_span_covers_operands(self) -> None:
        expr = parse_expr("1 + 23")
        assert (expr.start, expr.end) == (0, 6)

    def test_call_span_includes_closing_paren(self) -> None:
        expr = parse_expr("f(a, b) ")
        assert (expr.start, expr.end) == (0, 7)

    def test_let_span(self) -> None:
        expr = parse_expr("  let x 1 in x")
        assert (expr.start, expr.end) == (2, 14)


# ============================================================================
# Errors
# ============================================================================


class TestParseErrors:
    @pytest.mark.parametrize(
        "source,message",
        [
            ("", "Expected expression, got end of input"),
            ("1 +", "Expected expression, got end of input"),
            ("(1 + 2", "Expected closing parenthesis, got end of input"),
            ("[1. 2", "Expected '.' or closing bracket, got end of input"),
            ("@ 1", "Expected parameter name after '@', got '1'"),
            ("let 1 in 2", "Expected variable name, got '1'"),
            ("let x 1 then x", "Expected 'and' or 'in', got 'then'"),
            ("if 1 else 2", "Expected 'then', got 'else'"),
            ("if 1 then 2", "Expected 'else', got end of input"),
            ("f(1, 2", "Expected ')' after arguments, got end of input"),
            ("1 2 )", "Unexpected token after expression: ')'"),
        ],
    )
    def test_messages(self, source: str, message: str) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_expr(source)
        assert exc_info.value.message == message

    def test_error_points_at_token(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_expr("(1 + 2")
        context = exc_info.value.context
        assert context is not None
        assert (context.line, context.column) == (1, 7)
        assert str(exc_info.value) == (
            "Line 1 column 7: Expected closing parenthesis, got end of input\n(1 + 2\n------^"
        )

    def test_multiline_source(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_expr("let x 1\nthen x")
        assert exc_info.value.context.line == 2
        assert str(exc_info.value).endswith("then x\n^^^^")

    def test_lex_errors_propagate(self) -> None:
        with pytest.raises(LexError):
            parse_expr("1 + $")

    @pytest.mark.parametrize("opener,closer", [("(", ")"), ("[", "]"), ("-", "")])
    def test_deep_nesting(self, opener: str, closer: str) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_expr(opener * 5000 + "1" + closer * 5000)
        assert exc_info.value.message == "Expression is nested too deeply"

    def test_moderate_nesting_parses(self) -> None:
        assert str(parse_expr("(" * 50 + "1" + ")" * 50)) == "1"
