"""
Error types for the arithmetic expression engine.

All expression errors extend ExpressionError for consistent handling.
"""

from typing import Optional, Union


class ExpressionError(Exception):
    """
    Base error class for all expression-related errors.
    """

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.position = position
        self.expression = expression

    def format_with_context(self) -> str:
        """
        Returns a formatted error message with position context.
        """
        if self.expression is None or self.position is None:
            return self.message

        pointer = " " * self.position + "^"
        return f"{self.message}\n  {self.expression}\n  {pointer}"


class LimitExceededError(ExpressionError):
    """
    Error thrown when expression limits are exceeded.
    """

    def __init__(self, limit_name: str, limit: int, actual: int):
        message = f"Limit exceeded: {limit_name} (limit: {limit}, actual: {actual})"
        super().__init__(message)
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class ReductionError(ExpressionError):
    """
    Error thrown while reducing segments to postfix (shunting-yard phase).
    """

    pass


class BuildError(ExpressionError):
    """
    Error thrown while building the AST from postfix instructions.
    """

    pass


class EvaluationError(ExpressionError):
    """
    Error thrown during evaluation (runtime error).
    """

    pass


class UnitConsistencyError(EvaluationError):
    """
    Error thrown when both operands of a binary operator differ in unit power.
    """

    def __init__(
        self,
        operator: str,
        left_power: int,
        right_power: int,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        message = (
            f"Unit power must be same for '{operator}' operator "
            f"(left: {left_power}, right: {right_power})"
        )
        super().__init__(message, position, expression)
        self.operator = operator
        self.left_power = left_power
        self.right_power = right_power


class FunctionContractError(EvaluationError):
    """
    Error thrown when a call violates its function's arity or parameter types.
    """

    def __init__(
        self,
        function_name: str,
        message: str,
        argument_index: Optional[int] = None,
        value: Union[str, float, None] = None,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message, position, expression)
        self.function_name = function_name
        self.argument_index = argument_index
        self.value = value


class ConversionError(EvaluationError):
    """
    Error thrown when a value cannot be normalized or converted between units.
    """

    def __init__(
        self,
        message: str,
        value: Union[str, float, None] = None,
        unit: Optional[str] = None,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        super().__init__(message, position, expression)
        self.value = value
        self.unit = unit


class BuiltinError(EvaluationError):
    """
    Error thrown when a built-in function encounters an error.
    """

    def __init__(
        self,
        function_name: str,
        message: str,
        position: Optional[int] = None,
        expression: Optional[str] = None,
    ):
        full_message = f"{function_name}: {message}"
        super().__init__(full_message, position, expression)
        self.function_name = function_name
