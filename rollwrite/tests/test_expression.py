"""
Tests for the formula language.

Tests:
- Operator precedence and associativity
- Numeric semantics (int/float, division, modulo, rounding)
- Strict equality and boolean logic
- Builtins, host functions and dice
- Syntax errors with spans
"""

import pytest

from ..engine_core.expression import (
    BinaryExpression,
    CallExpression,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    NumberLiteral,
    compile_expression,
    evaluate_expression,
    parse_expression,
    tokenize,
)
from ..engine_core.rng import Xorshift128Plus


class TestParsing:
    """Tests for the lexer and parser."""

    def test_tokens_end_with_eof(self):
        tokens = tokenize("ore >= 3")

        assert [t.kind for t in tokens] == ["identifier", "operator", "number", "eof"]
        assert tokens[1].value == ">="

    def test_multiplication_binds_tighter(self):
        node = parse_expression("1 + 2 * 3")

        assert isinstance(node, BinaryExpression)
        assert node.operator == "+"
        assert isinstance(node.right, BinaryExpression)
        assert node.right.operator == "*"

    def test_call_arguments(self):
        node = parse_expression("MAX(1, ore, 3)")

        assert isinstance(node, CallExpression)
        assert node.name == "MAX"
        assert len(node.arguments) == 3

    def test_decimal_literal(self):
        node = parse_expression("2.5")

        assert isinstance(node, NumberLiteral)
        assert node.value == 2.5

    def test_identifiers_exclude_function_names(self):
        compiled = compile_expression("IF(combo > 0, ore, roll_total)")

        assert compiled.identifiers() == frozenset({"combo", "ore", "roll_total"})


class TestSyntaxErrors:
    """Malformed formulas raise ExpressionSyntaxError with a span."""

    def test_unexpected_character(self):
        with pytest.raises(ExpressionSyntaxError) as exc_info:
            parse_expression("1 $ 2")

        assert exc_info.value.span.start == 2
        assert exc_info.value.span.end == 3

    def test_dangling_operator(self):
        with pytest.raises(ExpressionSyntaxError) as exc_info:
            parse_expression("1 +")

        assert exc_info.value.span.start == 3

    def test_unclosed_parenthesis(self):
        with pytest.raises(ExpressionSyntaxError, match="closing parenthesis"):
            parse_expression("(1 + 2")

    def test_trailing_input(self):
        with pytest.raises(ExpressionSyntaxError, match="after expression"):
            parse_expression("1 2")

    def test_unclosed_call(self):
        with pytest.raises(ExpressionSyntaxError):
            parse_expression("MIN(1, 2")


class TestArithmetic:
    """Numeric evaluation."""

    @pytest.mark.parametrize("source,expected", [
        ("1 + 2 * 3", 7),
        ("(1 + 2) * 3", 9),
        ("10 - 4 - 3", 3),
        ("2 ^ 3 ^ 2", 64),
        ("-2 ^ 2", 4),
        ("--3", 3),
        ("7 % 3", 1),
        ("-7 % 3", -1),
        ("7 % -3", 1),
    ])
    def test_evaluates(self, source, expected):
        assert evaluate_expression(source) == expected

    def test_integers_stay_integers(self):
        result = evaluate_expression("ore * 3 + 1", {"ore": 4})

        assert result == 13
        assert isinstance(result, int)

    def test_division_is_true_division(self):
        assert evaluate_expression("7 / 2") == 3.5

    def test_division_by_zero(self):
        with pytest.raises(ExpressionEvaluationError, match="Division by zero"):
            evaluate_expression("1 / 0")

    def test_modulo_by_zero(self):
        with pytest.raises(ExpressionEvaluationError, match="Modulo by zero"):
            evaluate_expression("1 % 0")

    @pytest.mark.parametrize("source", [
        "10 ^ 400 + 0.5",
        "10 ^ 400 / 3",
        "10 ^ 400 % 2.5",
        "ROUND(1.5, 400)",
        "ROUND(10 ^ 400)",
        "FLOOR(10 ^ 300 * 1.0 * 10 ^ 300)",
    ])
    def test_huge_results_fail_as_evaluation_errors(self, source):
        with pytest.raises(ExpressionEvaluationError, match="out of range"):
            evaluate_expression(source)

    def test_huge_integers_stay_exact(self):
        assert evaluate_expression("10 ^ 400 - 10 ^ 400 + 1") == 1

    def test_arithmetic_on_boolean_fails(self):
        with pytest.raises(ExpressionEvaluationError):
            evaluate_expression("true + 1")

    def test_unknown_identifier(self):
        with pytest.raises(ExpressionEvaluationError, match="Unknown identifier 'gold'"):
            evaluate_expression("gold + 1", {"ore": 1})


class TestLogic:
    """Comparison, equality and boolean operators."""

    def test_comparison(self):
        assert evaluate_expression("roll_total >= 9", {"roll_total": 9}) is True
        assert evaluate_expression("roll_total >= 9", {"roll_total": 8}) is False

    def test_equality_is_strict(self):
        """A boolean never equals a number."""
        assert evaluate_expression("true == 1") is False
        assert evaluate_expression("false != 0") is True
        assert evaluate_expression("2 == 2.0") is True

    def test_null_equality(self):
        assert evaluate_expression("null == null") is True
        assert evaluate_expression("null == 0") is False

    def test_and_short_circuits(self):
        """The right side is never evaluated when the left is false."""
        assert evaluate_expression("false && missing > 0") is False

    def test_or_short_circuits(self):
        assert evaluate_expression("true || missing > 0") is True

    def test_not_requires_boolean(self):
        assert evaluate_expression("!(1 > 2)") is True
        with pytest.raises(ExpressionEvaluationError):
            evaluate_expression("!1")


class TestBuiltins:
    """Builtin functions."""

    def test_if_is_lazy(self):
        """Only the selected branch is evaluated."""
        assert evaluate_expression("IF(combo > 0, -1, 1 / 0)", {"combo": 2}) == -1
        assert evaluate_expression("IF(combo > 0, missing, 0)", {"combo": 0}) == 0

    def test_if_arity(self):
        with pytest.raises(ExpressionEvaluationError, match="three arguments"):
            evaluate_expression("IF(true, 1)")

    def test_min_max(self):
        assert evaluate_expression("MIN(4, 2, 9)") == 2
        assert evaluate_expression("MAX(4, 2, 9)") == 9

    def test_clamp(self):
        assert evaluate_expression("CLAMP(15, 0, 10)") == 10
        assert evaluate_expression("CLAMP(-3, 0, 10)") == 0
        with pytest.raises(ExpressionEvaluationError):
            evaluate_expression("CLAMP(1, 5, 2)")

    def test_rounding_functions(self):
        assert evaluate_expression("ABS(-4)") == 4
        assert evaluate_expression("FLOOR(2.7)") == 2
        assert evaluate_expression("CEIL(2.1)") == 3
        assert evaluate_expression("ROUND(2.5)") == 3
        assert evaluate_expression("ROUND(-2.5)") == -2
        assert evaluate_expression("ROUND(1.25, 1)") == pytest.approx(1.3)

    def test_unknown_function(self):
        with pytest.raises(ExpressionEvaluationError, match="Unknown function 'NOPE'"):
            evaluate_expression("NOPE(1)")

    def test_host_function_takes_precedence(self):
        functions = {"MAX": lambda args: -1, "DOUBLE": lambda args: args[0] * 2}

        assert evaluate_expression("MAX(1, 2)", functions=functions) == -1
        assert evaluate_expression("DOUBLE(ore)", {"ore": 5}, functions=functions) == 10


class TestDice:
    """D6 and D builtins."""

    def test_dice_need_rng(self):
        with pytest.raises(ExpressionEvaluationError, match="require an RNG"):
            evaluate_expression("D6()")

    def test_d6_range(self):
        rng = Xorshift128Plus(3)
        for _ in range(100):
            assert 1 <= evaluate_expression("D6()", rng=rng) <= 6

    def test_dice_are_deterministic(self):
        first = [evaluate_expression("D(20, 2)", rng=rng) for rng in [Xorshift128Plus(8)] * 10]
        second = [evaluate_expression("D(20, 2)", rng=rng) for rng in [Xorshift128Plus(8)] * 10]

        assert first == second

    def test_dice_count_must_be_positive_integer(self):
        with pytest.raises(ExpressionEvaluationError):
            evaluate_expression("D6(0)", rng=Xorshift128Plus(1))
        with pytest.raises(ExpressionEvaluationError):
            evaluate_expression("D(6, 1.5)", rng=Xorshift128Plus(1))

    def test_compiled_expression_reusable(self):
        compiled = compile_expression("ore + roll_total")

        assert evaluate_expression(compiled, {"ore": 1, "roll_total": 7}) == 8
        assert evaluate_expression(compiled, {"ore": 10, "roll_total": 2}) == 12
