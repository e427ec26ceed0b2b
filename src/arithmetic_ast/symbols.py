"""
Operator and function descriptors, and the registries that hold them.

A SymbolTable is created once by the embedding application (usually from
`create_default_symbol_table`), extended with its own operators and functions,
and then passed to `parse`. Lookups are by symbol; re-registering a symbol
replaces the previous descriptor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
)

if TYPE_CHECKING:
    from .builtins import ArgumentValidator, BuiltinFunction


class Associativity(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class ParameterMode(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


# Parameter types with a built-in validator. Any other name refers to a
# custom validator registered on the SymbolTable.
TYPE_NUMERIC = "numeric"
TYPE_STRING = "string"


# Pure numeric formula of a binary operator, applied to normalized values.
OperatorFormula = Callable[[float, float], float]

# Decides whether the result of an operator keeps the unit of its first operand.
UnitRetentionPolicy = Callable[[str, str], bool]


def always_retain(unit1: str, unit2: str) -> bool:
    return True


def never_retain(unit1: str, unit2: str) -> bool:
    return False


@dataclass(frozen=True)
class Parameter:
    """A declared function parameter."""

    type: str = TYPE_NUMERIC
    mode: ParameterMode = ParameterMode.REQUIRED

    @classmethod
    def required(cls, type: str = TYPE_NUMERIC) -> "Parameter":
        return cls(type=type, mode=ParameterMode.REQUIRED)

    @classmethod
    def optional(cls, type: str = TYPE_NUMERIC) -> "Parameter":
        return cls(type=type, mode=ParameterMode.OPTIONAL)

    @property
    def is_required(self) -> bool:
        return self.mode == ParameterMode.REQUIRED


@dataclass(frozen=True)
class OperatorDescriptor:
    """Describes a binary operator."""

    symbol: str
    precedence: int
    """Higher binds tighter."""

    formula: OperatorFormula
    associativity: Associativity = Associativity.LEFT

    unary: bool = False
    """Whether the symbol may prefix a number (``-2``, ``+2``)."""

    retains_unit: UnitRetentionPolicy = never_retain

    @property
    def is_left_associative(self) -> bool:
        return self.associativity == Associativity.LEFT


@dataclass(frozen=True)
class FunctionDescriptor:
    """Describes a callable function and its parameters."""

    name: str
    implementation: BuiltinFunction
    parameters: Tuple[Parameter, ...] = ()

    @property
    def symbol(self) -> str:
        return self.name

    @property
    def min_arity(self) -> int:
        return sum(1 for parameter in self.parameters if parameter.is_required)

    @property
    def max_arity(self) -> int:
        return len(self.parameters)


class _Symbolic(Protocol):
    @property
    def symbol(self) -> str: ...


D = TypeVar("D", bound=_Symbolic)


class SymbolRegistry(Generic[D]):
    """Ordered mapping from symbol to descriptor."""

    def __init__(self, descriptors: Iterable[D] = ()):
        self._descriptors: Dict[str, D] = {}
        self.merge(descriptors)

    def add(self, descriptor: D) -> None:
        self._descriptors[descriptor.symbol] = descriptor

    def merge(self, descriptors: Iterable[D]) -> None:
        for descriptor in descriptors:
            self.add(descriptor)

    def remove(self, symbol: str) -> None:
        self._descriptors.pop(symbol, None)

    def get(self, symbol: str) -> Optional[D]:
        return self._descriptors.get(symbol)

    def require(self, symbol: str) -> D:
        """Returns the descriptor for a symbol, raising KeyError if unknown."""
        descriptor = self._descriptors.get(symbol)
        if descriptor is None:
            raise KeyError(f"Unknown symbol: {symbol}")
        return descriptor

    def symbols(self) -> List[str]:
        return list(self._descriptors)

    def copy(self) -> "SymbolRegistry[D]":
        return SymbolRegistry(self._descriptors.values())

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._descriptors

    def __iter__(self) -> Iterator[D]:
        return iter(list(self._descriptors.values()))

    def __len__(self) -> int:
        return len(self._descriptors)


@dataclass
class SymbolTable:
    """Operators, functions and argument validators known to the engine."""

    operators: SymbolRegistry[OperatorDescriptor] = field(
        default_factory=SymbolRegistry
    )
    functions: SymbolRegistry[FunctionDescriptor] = field(
        default_factory=SymbolRegistry
    )
    validators: Dict[str, ArgumentValidator] = field(default_factory=dict)

    def add_operator(self, descriptor: OperatorDescriptor) -> None:
        self.operators.add(descriptor)

    def add_function(self, descriptor: FunctionDescriptor) -> None:
        self.functions.add(descriptor)

    def add_validator(self, name: str, validator: ArgumentValidator) -> None:
        self.validators[name] = validator

    def word_symbols(self) -> List[str]:
        """
        Returns symbols the tokenizer matches as whole words, longest first.

        These are every function name and every multi-character operator.
        Sorting by length lets compound names such as ``rgb-icc`` win over
        ``rgb``.
        """
        words = set(self.functions.symbols())
        words.update(symbol for symbol in self.operators.symbols() if len(symbol) > 1)
        return sorted(words, key=lambda symbol: (-len(symbol), symbol))

    def copy(self) -> "SymbolTable":
        return SymbolTable(
            operators=self.operators.copy(),
            functions=self.functions.copy(),
            validators=dict(self.validators),
        )
