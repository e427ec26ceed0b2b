"""
Tests for expression parser.
"""

# pyright: reportAttributeAccessIssue=false

import pytest

from arithmetic_ast import (
    ArithmeticConfig,
    BuildError,
    FunctionDescriptor,
    LimitExceededError,
    Parameter,
    ReductionError,
    ast_to_string,
    calculate_ast_depth,
    count_ast_nodes,
    create_default_symbol_table,
    parse,
)


def make_symbols():
    symbols = create_default_symbol_table()
    symbols.add_function(
        FunctionDescriptor(
            "mock", lambda args, ctx: 0.42, (Parameter.optional(), Parameter.optional())
        )
    )
    return symbols


class TestTreeShape:
    """Tests for the built tree."""

    def test_parses_single_literal(self):
        ast = parse("2cm")
        assert ast.type == "Root"
        assert ast.source == "2cm"
        assert ast.child.type == "Literal"
        assert ast.child.text == "2cm"
        assert ast.child.position == 0

    def test_parses_binary_operation(self):
        ast = parse("1 + 2 * 3")
        root = ast.child
        assert root.type == "BinaryOp"
        assert root.operator.symbol == "+"
        assert root.position == 2
        assert root.left.text == "1"
        assert root.right.type == "BinaryOp"
        assert root.right.operator.symbol == "*"
        assert root.right.left.text == "2"
        assert root.right.right.text == "3"

    def test_parses_function_call_arguments_in_order(self):
        ast = parse("mock(1, 2cm)", symbols=make_symbols())
        call = ast.child
        assert call.type == "FunctionCall"
        assert call.function.name == "mock"
        assert [arg.text for arg in call.args] == ["1", "2cm"]

    def test_parses_zero_argument_call(self):
        ast = parse("mock()", symbols=make_symbols())
        assert ast.child.type == "FunctionCall"
        assert ast.child.args == ()

    def test_nodes_share_context(self):
        ast = parse("1 + 2")
        assert ast.child.context is ast.context
        assert ast.child.left.context is ast.context
        assert ast.context.source == "1 + 2"

    def test_ast_utilities(self):
        ast = parse("1 + abs(2)")
        assert count_ast_nodes(ast) == 5
        assert calculate_ast_depth(ast) == 4
        assert ast_to_string(ast) == (
            "Root: 1 + abs(2)\n"
            "  BinaryOp: +\n"
            "    Literal: 1\n"
            "    FunctionCall: abs:1\n"
            "      Literal: 2"
        )


class TestBuildErrors:
    """Tests for instructions that do not reduce to one tree."""

    def test_empty_expression(self):
        with pytest.raises(BuildError, match=r"No operation was done for \[empty string\]"):
            parse("")

    def test_whitespace_expression(self):
        with pytest.raises(BuildError, match="No operation"):
            parse("   ")

    def test_juxtaposed_literals(self):
        with pytest.raises(BuildError, match="not fully reduced"):
            parse("1 2")

    def test_missing_operand(self):
        with pytest.raises(BuildError, match="Missing operand for operator '\\*'"):
            parse("1 *")

    def test_leading_operator(self):
        with pytest.raises(BuildError, match="Missing operand"):
            parse("-(2)")

    def test_reduction_errors_propagate(self):
        with pytest.raises(ReductionError):
            parse("(1 + 2")


class TestLimits:
    """Tests for AST limits."""

    def test_rejects_deep_trees(self):
        config = ArithmeticConfig(expression_limits={"max_ast_depth": 3})
        with pytest.raises(LimitExceededError, match="max_ast_depth"):
            parse("1 + 2 + 3", config=config)

    def test_rejects_large_trees(self):
        config = ArithmeticConfig(expressionLimits={"maxAstNodes": 4})
        with pytest.raises(LimitExceededError, match="max_ast_nodes"):
            parse("1 + 2 + 3", config=config)

    def test_rejects_long_expressions(self):
        config = ArithmeticConfig(expression_limits={"max_expression_length": 3})
        with pytest.raises(LimitExceededError, match="max_expression_length"):
            parse("1 + 2", config=config)
