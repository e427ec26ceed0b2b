"""
Built-in operators, functions and argument validators.

Built-in functions take unit-less numeric arguments. Apart from `rand`, they
are pure and deterministic.
"""

import math
import random
from typing import Callable, Optional, Sequence, Union

from .errors import BuiltinError
from .limits import ExpressionLimits
from .symbols import (
    TYPE_NUMERIC,
    TYPE_STRING,
    FunctionDescriptor,
    OperatorDescriptor,
    Parameter,
    SymbolTable,
    always_retain,
    never_retain,
)
from .units import Quantity, UnitRegistry, is_numeric

# Runtime value types for the expression language: a number, or text that
# may carry a unit suffix ("2cm") or the raw payload of a string argument.
ExprValue = Union[str, float]


class BuiltinContext:
    """Context passed to functions."""

    def __init__(
        self,
        limits: ExpressionLimits,
        position: int,
        source: str,
        units: UnitRegistry,
    ):
        self.limits = limits
        self.position = position
        self.source = source
        self.units = units


# Signature of a function implementation.
BuiltinFunction = Callable[[Sequence[ExprValue], BuiltinContext], ExprValue]

# Validates an argument value (or, while tokenizing, a partial segment).
ArgumentValidator = Callable[[Quantity], bool]


# ============================================================
# Validators
# ============================================================


def validate_numeric(value: Quantity) -> bool:
    """Accepts plain numbers, without a unit suffix."""
    return is_numeric(value)


def validate_string(value: Quantity) -> bool:
    """Accepts anything."""
    return True


BUILTIN_VALIDATORS = {
    TYPE_NUMERIC: validate_numeric,
    TYPE_STRING: validate_string,
}


# ============================================================
# Operators
# ============================================================


def _add(left: float, right: float) -> float:
    return left + right


def _subtract(left: float, right: float) -> float:
    return left - right


def _multiply(left: float, right: float) -> float:
    return left * right


def _divide(left: float, right: float) -> float:
    if right == 0:
        raise ZeroDivisionError("Division by zero")
    return left / right


def _modulus(left: float, right: float) -> float:
    if right == 0:
        raise ZeroDivisionError("Modulo by zero")
    return math.fmod(left, right)


BUILTIN_OPERATORS = (
    OperatorDescriptor("+", 1, _add, unary=True, retains_unit=always_retain),
    OperatorDescriptor("-", 1, _subtract, unary=True, retains_unit=always_retain),
    OperatorDescriptor("*", 2, _multiply, retains_unit=always_retain),
    OperatorDescriptor("/", 2, _divide, retains_unit=never_retain),
    OperatorDescriptor("%", 2, _modulus, retains_unit=never_retain),
)


# ============================================================
# Function Helpers
# ============================================================


def _get_number(args: Sequence[ExprValue], index: int, function_name: str) -> float:
    """Gets a numeric argument by index, throwing if not present."""
    if index >= len(args):
        raise BuiltinError(function_name, f"missing argument at index {index}")
    value = args[index]
    try:
        number = float(value)
    except ValueError as error:
        raise BuiltinError(
            function_name, f"argument #{index + 1} must be a number, got {value}"
        ) from error
    if not math.isfinite(number):
        raise BuiltinError(
            function_name, f"argument #{index + 1} must be finite, got {value}"
        )
    return number


def _get_optional_number(
    args: Sequence[ExprValue], index: int, function_name: str
) -> Optional[float]:
    if index >= len(args):
        return None
    return _get_number(args, index, function_name)


# ============================================================
# Functions
# ============================================================


def _rand(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """
    rand(a?: number, b?: number) -> number

    - ``rand()`` returns a float in [0, 1].
    - ``rand(n)`` returns a float in [0, n].
    - ``rand(a, b)`` returns an integer in [a, b].
    """
    if not args:
        return random.randint(0, 100000) / 100000

    first = int(_get_number(args, 0, "rand"))
    if len(args) == 1:
        if first < 0:
            raise BuiltinError("rand", f"upper bound must not be negative, got {first}")
        return random.randint(0, first * 100000) / 100000

    second = int(_get_number(args, 1, "rand"))
    if first > second:
        raise BuiltinError("rand", f"empty range [{first}, {second}]")
    return float(random.randint(first, second))


def _abs(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """abs(x: number) -> number"""
    return abs(_get_number(args, 0, "abs"))


def _floor(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """floor(x: number) -> number"""
    return float(math.floor(_get_number(args, 0, "floor")))


def _ceil(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """ceil(x: number) -> number"""
    return float(math.ceil(_get_number(args, 0, "ceil")))


def _round(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """
    round(x: number, digits?: number) -> number

    Rounds half away from zero, as layout engines usually expect.
    """
    value = _get_number(args, 0, "round")
    digits = int(_get_optional_number(args, 1, "round") or 0)
    try:
        scale = 10.0 ** digits
    except OverflowError:
        # Finer than any representable fraction of a float
        return value

    scaled = abs(value) * scale
    if not math.isfinite(scaled):
        return value
    if scale == 0:
        return math.copysign(0.0, value)
    return math.copysign(math.floor(scaled + 0.5) / scale, value)


def _min(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """min(x: number, ...) -> number"""
    return min(_get_number(args, index, "min") for index in range(len(args)))


def _max(args: Sequence[ExprValue], ctx: BuiltinContext) -> ExprValue:
    """max(x: number, ...) -> number"""
    return max(_get_number(args, index, "max") for index in range(len(args)))


# Variadic helpers accept one required and up to seven optional arguments
_VARIADIC_NUMBERS = (Parameter.required(),) + (Parameter.optional(),) * 7

BUILTIN_FUNCTIONS = (
    FunctionDescriptor(
        "rand", _rand, (Parameter.optional(), Parameter.optional())
    ),
    FunctionDescriptor("abs", _abs, (Parameter.required(),)),
    FunctionDescriptor("floor", _floor, (Parameter.required(),)),
    FunctionDescriptor("ceil", _ceil, (Parameter.required(),)),
    FunctionDescriptor(
        "round", _round, (Parameter.required(), Parameter.optional())
    ),
    FunctionDescriptor("min", _min, _VARIADIC_NUMBERS),
    FunctionDescriptor("max", _max, _VARIADIC_NUMBERS),
)


def create_default_symbol_table() -> SymbolTable:
    """Creates a symbol table seeded with the built-in operators and functions."""
    table = SymbolTable()
    table.operators.merge(BUILTIN_OPERATORS)
    table.functions.merge(BUILTIN_FUNCTIONS)
    for name, validator in BUILTIN_VALIDATORS.items():
        table.add_validator(name, validator)
    return table
