"""
Tests for expression evaluator.
"""

import logging
from typing import Sequence

import pytest

from arithmetic_ast import (
    ArithmeticConfig,
    BuiltinContext,
    EvaluationError,
    ExprValue,
    FunctionContractError,
    FunctionDescriptor,
    Parameter,
    UnitConsistencyError,
    create_default_symbol_table,
    evaluate,
    evaluate_expression,
    parse,
)


def mock(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """Returns 0.42 plus the mean of its arguments."""
    if not args:
        return 0.42
    return sum(float(arg) for arg in args) / len(args) + 0.42


def mock_with_dashes(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    return float(args[0]) * 2


def make_symbols():
    symbols = create_default_symbol_table()
    symbols.add_function(
        FunctionDescriptor("mock", mock, (Parameter.optional(), Parameter.optional()))
    )
    symbols.add_function(
        FunctionDescriptor("mock-with-dashes", mock_with_dashes, (Parameter.required(),))
    )
    return symbols


def eval_expr(expression: str, symbols=None, config=None) -> ExprValue:
    """Helper to evaluate an expression and return the value."""
    ast = parse(expression, symbols=symbols or make_symbols(), config=config)
    return ast.evaluate()


def eval_normalized(expression: str, symbols=None) -> float:
    ast = parse(expression, symbols=symbols or make_symbols())
    return ast.normalized_value()


class TestArithmetic:
    """Tests for plain-number arithmetic."""

    def test_literal_evaluates_to_its_text(self):
        assert eval_expr("42") == "42"

    def test_precedence(self):
        assert eval_expr("1 + 2 * 3") == pytest.approx(7.0)

    def test_modulus(self):
        assert eval_expr("10 % 3") == pytest.approx(1.0)
        assert eval_expr("4 % 2") == pytest.approx(0.0)

    def test_nested_parentheses(self):
        expression = "1 + (2 * 3 % 5 - (2 + 3 + 4) + (5 / 2)) + (3 * 4)"
        assert eval_expr(expression) == pytest.approx(7.5)

    def test_left_to_right_subtraction(self):
        assert eval_expr("8 - 3 - 2") == pytest.approx(3.0)

    def test_negative_literals(self):
        assert eval_expr("-2 * -3") == pytest.approx(6.0)

    def test_exponent_notation(self):
        assert eval_expr("2e-3 * 1000") == pytest.approx(2.0)
        assert eval_expr("1.5E+2 - 50") == pytest.approx(100.0)

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError, match="Division by zero"):
            eval_expr("1 / 0")

    def test_modulo_by_zero(self):
        with pytest.raises(EvaluationError, match="Modulo by zero"):
            eval_expr("1 % 0")


class TestVariadicFunctions:
    """Tests for calls resolved with different argument counts."""

    def test_call_without_arguments(self):
        assert eval_expr("1 + mock()") == pytest.approx(1.42)

    def test_call_with_one_argument(self):
        assert eval_expr("1 + mock(1)") == pytest.approx(2.42)

    def test_call_with_two_arguments(self):
        assert eval_expr("(mock(1, 2) + 2.6) / 2") == pytest.approx(2.26)

    def test_compound_arguments(self):
        assert eval_expr("mock(1 + 1, 2)") == pytest.approx(2.42)

    def test_nested_dashed_calls(self):
        expression = (
            "mock-with-dashes(mock-with-dashes(mock-with-dashes(mock-with-dashes(2))))"
        )
        assert eval_expr(expression) == pytest.approx(32.0)

    def test_too_many_arguments(self):
        with pytest.raises(
            FunctionContractError,
            match="Function mock allows between 0 and 2 parameters, 3 given",
        ):
            eval_expr("mock(1, 2, 3)")

    def test_too_few_arguments(self):
        with pytest.raises(FunctionContractError, match="mock-with-dashes"):
            eval_expr("mock-with-dashes()")

    def test_invalid_argument_type(self):
        with pytest.raises(FunctionContractError) as exc_info:
            eval_expr("mock-with-dashes(2cm)")
        assert exc_info.value.function_name == "mock-with-dashes"
        assert exc_info.value.argument_index == 0
        assert exc_info.value.value == "2cm"
        assert "argument #1 has invalid type, 2cm given" in str(exc_info.value)

    def test_string_arguments_reach_the_implementation(self):
        received = []

        def url(args, ctx):
            received.append(args[0])
            return 0.0

        symbols = make_symbols()
        symbols.add_function(
            FunctionDescriptor("url", url, (Parameter.required("string"),))
        )
        eval_expr("url(http://a.fr/x y) + 1", symbols=symbols)
        assert received == ["http://a.fr/x y"]

    def test_custom_validator(self):
        symbols = make_symbols()
        symbols.add_validator("even", lambda value: float(value) % 2 == 0)
        symbols.add_function(
            FunctionDescriptor(
                "half", lambda args, ctx: float(args[0]) / 2, (Parameter.required("even"),)
            )
        )
        assert eval_expr("half(4)", symbols=symbols) == pytest.approx(2.0)
        with pytest.raises(FunctionContractError, match="half argument #1"):
            eval_expr("half(3)", symbols=symbols)

    def test_unknown_validator_warns_and_accepts(self, caplog):
        symbols = make_symbols()
        symbols.add_function(
            FunctionDescriptor(
                "ident", lambda args, ctx: float(args[0]), (Parameter.required("color"),)
            )
        )
        with caplog.at_level(logging.WARNING, logger="arithmetic_ast.evaluator"):
            assert eval_expr("ident(3)", symbols=symbols) == pytest.approx(3.0)
        assert "unknown_parameter_validator" in caplog.text

    def test_implementation_receives_context(self):
        seen = []

        def inspect_context(args, ctx):
            seen.append(ctx)
            return 1.0

        symbols = make_symbols()
        symbols.add_function(FunctionDescriptor("inspect", inspect_context))
        eval_expr("2 * inspect()", symbols=symbols)
        assert seen[0].position == 4
        assert seen[0].source == "2 * inspect()"
        assert seen[0].units.is_unit("cm")


class TestUnits:
    """Tests for the unit-power algebra."""

    @pytest.mark.parametrize(
        "expression,operator",
        [
            ("1pt + 2", "+"),
            ("1 + 2pt", "+"),
            ("1 + (2 + 3in)", "+"),
            ("1 - (2in + 3in)", "-"),
        ],
    )
    def test_mismatched_unit_powers(self, expression, operator):
        with pytest.raises(UnitConsistencyError) as exc_info:
            eval_expr(expression)
        assert exc_info.value.operator == operator
        assert f"'{operator}'" in str(exc_info.value)

    def test_mixed_units_keep_first_unit(self):
        value = eval_expr("1cm + 1in")
        assert isinstance(value, str)
        assert value.endswith("cm")
        assert float(value[:-2]) == pytest.approx(3.54)

    def test_pica_labels(self):
        assert eval_expr("1pica + 1pc") == "2pica"

    def test_addition_keeps_unit(self):
        assert eval_expr("1in + 1in") == "2in"

    def test_percentages(self):
        assert eval_expr("50% + 25%") == "75%"

    def test_division_drops_unit(self):
        assert eval_expr("2cm / 1cm") == pytest.approx(2.0)

    def test_normalized_value_in_points(self):
        assert eval_normalized("1in + 1in") == pytest.approx(144.0)
        assert eval_normalized("2.54cm") == pytest.approx(72.0)
        assert eval_normalized("3") == pytest.approx(3.0)

    def test_canonical_unit_from_config(self):
        config = ArithmeticConfig(canonical_unit="in")
        ast = parse("36pt + 36pt", symbols=make_symbols(), config=config)
        assert ast.evaluate() == "72pt"
        assert ast.normalized_value() == pytest.approx(1.0)

    def test_dpi_from_config(self):
        config = ArithmeticConfig(dpi=72)
        ast = parse("10px", symbols=make_symbols(), config=config)
        assert ast.normalized_value() == pytest.approx(10.0)


class TestMemoization:
    """Tests for write-once evaluation caching."""

    def test_function_runs_once(self):
        calls = []

        def counted(args, ctx):
            calls.append(args)
            return 1.0

        symbols = make_symbols()
        symbols.add_function(FunctionDescriptor("counted", counted))
        ast = parse("counted() + 1", symbols=symbols)
        assert ast.evaluate() == pytest.approx(2.0)
        assert ast.evaluate() == pytest.approx(2.0)
        assert ast.normalized_value() == pytest.approx(2.0)
        assert len(calls) == 1

    def test_cache_is_populated(self):
        ast = parse("1 + 2")
        ast.normalized_value()
        assert "value" in ast.cache
        assert "normalized_value" in ast.child.left.cache


class TestEvaluationResult:
    """Tests for typed results."""

    def test_success(self):
        result = evaluate(parse("1in + 1in"))
        assert result.success
        assert result.value == "2in"
        assert result.normalized_value == pytest.approx(144.0)
        assert result.error is None

    def test_evaluation_failure(self):
        result = evaluate(parse("1pt + 2"))
        assert not result.success
        assert result.value is None
        assert result.error_type == "UnitConsistencyError"
        assert "'+'" in result.error

    def test_parse_failure(self):
        result = evaluate_expression("")
        assert not result.success
        assert result.error_type == "BuildError"
        assert "No operation" in result.error

    def test_evaluate_expression(self):
        result = evaluate_expression("1 + mock(1)", symbols=make_symbols())
        assert result.success
        assert result.value == pytest.approx(2.42)

    def test_other_exceptions_propagate(self):
        def broken(args, ctx):
            raise RuntimeError("boom")

        symbols = make_symbols()
        symbols.add_function(FunctionDescriptor("broken", broken))
        with pytest.raises(RuntimeError, match="boom"):
            evaluate_expression("broken()", symbols=symbols)

    def test_empty_argument_fails(self):
        result = evaluate_expression("min(1,)")
        assert not result.success
        assert result.error_type == "ReductionError"
        assert "Empty argument" in result.error
