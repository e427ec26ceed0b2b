"""
Expression evaluator.

Walks an AST and computes each node's value and normalized value.

Unit semantics:
- Every value carries a unit power of 0 (plain number) or 1 (one unit).
- Both operands of a binary operator must have the same unit power.
- Operators compute on values normalized to the canonical unit; the
  operator's retention policy decides whether the result is converted back to
  the first operand's unit.
- Function arguments are checked against the declared parameters before the
  implementation runs.
"""

import logging
from dataclasses import dataclass
from typing import Optional, cast

from .ast import AstNode, BinaryOpNode, FunctionCallNode, LiteralNode, RootNode
from .builtins import BuiltinContext, ExprValue
from .config import ArithmeticConfig
from .errors import (
    ConversionError,
    EvaluationError,
    ExpressionError,
    FunctionContractError,
    UnitConsistencyError,
)
from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits
from .symbols import FunctionDescriptor, Parameter, SymbolTable
from .units import DEFAULT_CANONICAL_UNIT, UnitRegistry, format_quantity

logger = logging.getLogger(__name__)


@dataclass
class EvaluationContext:
    """Evaluation context shared by every node of an AST."""

    symbols: SymbolTable
    """Operators, functions and argument validators."""

    units: UnitRegistry
    """Unit registry used for unit powers and normalization."""

    canonical_unit: str = DEFAULT_CANONICAL_UNIT
    """Unit normalized values are expressed in."""

    source: Optional[str] = None
    """Source expression for error reporting."""

    limits: Optional[ExpressionLimits] = None
    """Expression limits."""


@dataclass
class EvaluationResult:
    """Result of expression evaluation."""

    value: Optional[ExprValue]
    """The evaluated value."""

    success: bool
    """Whether evaluation succeeded."""

    normalized_value: Optional[float] = None
    """The value in the canonical unit, if it could be normalized."""

    error: Optional[str] = None
    """Error message if evaluation failed."""

    error_type: Optional[str] = None
    """Class name of the error if evaluation failed."""


class Evaluator:
    """Evaluates AST nodes, caching results on the nodes."""

    def __init__(self, context: EvaluationContext):
        self._context = context
        self._symbols = context.symbols
        self._units = context.units
        self._canonical_unit = context.canonical_unit
        self._limits = context.limits or DEFAULT_EXPRESSION_LIMITS
        self._source = context.source or ""

    def evaluate(self, node: AstNode) -> ExprValue:
        """Evaluates an AST node and returns the value."""
        return node.cache.get_or_compute("value", lambda: self._evaluate_node(node))

    def normalize(self, node: AstNode) -> float:
        """Evaluates an AST node and returns its value in the canonical unit."""
        return node.cache.get_or_compute(
            "normalized_value", lambda: self._normalize_node(node)
        )

    def _evaluate_node(self, node: AstNode) -> ExprValue:
        node_type = node.type

        if node_type == "Literal":
            return cast(LiteralNode, node).text

        if node_type == "BinaryOp":
            return self._evaluate_binary_op(cast(BinaryOpNode, node))

        if node_type == "FunctionCall":
            return self._evaluate_function_call(cast(FunctionCallNode, node))

        if node_type == "Root":
            return self.evaluate(cast(RootNode, node).child)

        raise EvaluationError(f"Unknown node type: {node_type}", node.position, self._source)

    def _normalize_node(self, node: AstNode) -> float:
        value = self.evaluate(node)
        try:
            return self._units.normalize(value, self._canonical_unit)
        except ConversionError as error:
            raise ConversionError(
                error.message,
                value=error.value,
                unit=error.unit,
                position=node.position,
                expression=self._source,
            ) from error

    def _evaluate_binary_op(self, node: BinaryOpNode) -> ExprValue:
        """Evaluates a binary operation."""
        operator = node.operator
        left_value = self.evaluate(node.left)
        right_value = self.evaluate(node.right)

        left_power = self._units.unit_power(left_value)
        right_power = self._units.unit_power(right_value)
        if left_power != right_power:
            raise UnitConsistencyError(
                operator.symbol, left_power, right_power, node.position, self._source
            )

        left = self.normalize(node.left)
        right = self.normalize(node.right)
        try:
            result = operator.formula(left, right)
        except ZeroDivisionError as error:
            raise EvaluationError(str(error), node.position, self._source) from error

        if left_power == 0:
            return result

        left_unit = cast(str, self._units.unit_of(left_value))
        right_unit = cast(str, self._units.unit_of(right_value))
        if not operator.retains_unit(left_unit, right_unit):
            return result

        # The result is expressed in whatever the left unit normalizes to
        base_unit = self._units.normalized_unit(left_unit, self._canonical_unit)
        return format_quantity(
            self._units.convert(result, base_unit, left_unit), left_unit
        )

    def _evaluate_function_call(self, node: FunctionCallNode) -> ExprValue:
        """Evaluates a function call."""
        function = node.function
        argc = len(node.args)
        if argc < function.min_arity or argc > function.max_arity:
            raise FunctionContractError(
                function.name,
                f"Function {function.name} allows between {function.min_arity} "
                f"and {function.max_arity} parameters, {argc} given",
                position=node.position,
                expression=self._source,
            )

        args = []
        for index, (arg, parameter) in enumerate(zip(node.args, function.parameters)):
            value = self.evaluate(arg)
            self._check_argument(function, index, parameter, value, arg.position)
            args.append(value)

        builtin_context = BuiltinContext(
            limits=self._limits,
            position=node.position,
            source=self._source,
            units=self._units,
        )

        return function.implementation(args, builtin_context)

    def _check_argument(
        self,
        function: FunctionDescriptor,
        index: int,
        parameter: Parameter,
        value: ExprValue,
        position: int,
    ) -> None:
        validator = self._symbols.validators.get(parameter.type)
        if validator is None:
            logger.warning(
                "unknown_parameter_validator",
                extra={
                    "function_name": function.name,
                    "validator": parameter.type,
                    "argument_index": index,
                },
            )
            return

        if not validator(value):
            raise FunctionContractError(
                function.name,
                f"Function {function.name} argument #{index + 1} has invalid type, "
                f"{value} given",
                argument_index=index,
                value=value,
                position=position,
                expression=self._source,
            )


def evaluate(ast: AstNode) -> EvaluationResult:
    """
    Evaluates an AST and returns the result.

    Args:
        ast: The AST to evaluate, as returned by `parse`

    Returns:
        The evaluation result with value, normalized value and success status.
        Expression errors are reported in the result; any other exception
        propagates.
    """
    try:
        value = ast.evaluate()
    except ExpressionError as error:
        return EvaluationResult(
            value=None,
            success=False,
            error=str(error),
            error_type=type(error).__name__,
        )

    try:
        normalized_value: Optional[float] = ast.normalized_value()
    except ConversionError:
        # Raw string results have no normalized value
        normalized_value = None

    return EvaluationResult(value=value, success=True, normalized_value=normalized_value)


def evaluate_expression(
    source: str,
    symbols: Optional[SymbolTable] = None,
    units: Optional[UnitRegistry] = None,
    config: Optional[ArithmeticConfig] = None,
) -> EvaluationResult:
    """
    Parses and evaluates an expression string.

    Parse errors are reported in the result, like evaluation errors.
    """
    # Lazy import to avoid circular dependencies
    from .parser import parse

    try:
        ast = parse(source, symbols=symbols, units=units, config=config)
    except ExpressionError as error:
        return EvaluationResult(
            value=None,
            success=False,
            error=str(error),
            error_type=type(error).__name__,
        )

    return evaluate(ast)
