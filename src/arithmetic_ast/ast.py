"""
Abstract Syntax Tree (AST) node types for arithmetic expressions.

The AST is produced by the parser from postfix instructions. Nodes are
immutable; each one carries the shared evaluation context and a write-once
cache, so its value and normalized value are computed at most once.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Literal, Tuple, Union

from .symbols import FunctionDescriptor, OperatorDescriptor

if TYPE_CHECKING:
    from .builtins import ExprValue
    from .evaluator import EvaluationContext


class EvaluationCache:
    """Write-once storage for values computed from a node."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def get_or_compute(self, key: str, compute: Callable[[], Any]) -> Any:
        if key not in self._values:
            self._values[key] = compute()
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return key in self._values


# ============================================================
# AST Node Types
# ============================================================


@dataclass(frozen=True)
class AstNodeBase(ABC):
    """Base class for all AST nodes."""

    position: int
    """Position in source expression (for error reporting)."""

    context: EvaluationContext = field(repr=False, compare=False)
    """Symbols, units and limits shared by every node of a tree."""

    cache: EvaluationCache = field(
        default_factory=EvaluationCache, init=False, repr=False, compare=False
    )

    def evaluate(self) -> ExprValue:
        """Returns the value of this node: a number, or text with a unit suffix."""
        # Lazy import to avoid circular dependencies
        from .evaluator import Evaluator

        return Evaluator(self.context).evaluate(self)

    def normalized_value(self) -> float:
        """Returns the value of this node expressed in the canonical unit."""
        from .evaluator import Evaluator

        return Evaluator(self.context).normalize(self)


@dataclass(frozen=True)
class LiteralNode(AstNodeBase):
    """Number, number with a unit suffix, or raw string argument."""

    text: str

    @property
    def type(self) -> Literal["Literal"]:
        return "Literal"


@dataclass(frozen=True)
class BinaryOpNode(AstNodeBase):
    """Binary operation node."""

    operator: OperatorDescriptor
    left: AstNode
    right: AstNode

    @property
    def type(self) -> Literal["BinaryOp"]:
        return "BinaryOp"


@dataclass(frozen=True)
class FunctionCallNode(AstNodeBase):
    """Function call node."""

    function: FunctionDescriptor
    args: Tuple[AstNode, ...]

    @property
    def type(self) -> Literal["FunctionCall"]:
        return "FunctionCall"


@dataclass(frozen=True)
class RootNode(AstNodeBase):
    """Top of a parsed expression."""

    child: AstNode
    source: str

    @property
    def type(self) -> Literal["Root"]:
        return "Root"


# Union of all AST node types
AstNode = Union[LiteralNode, BinaryOpNode, FunctionCallNode, RootNode]


# ============================================================
# AST Utilities
# ============================================================


def count_ast_nodes(node: AstNode) -> int:
    """Counts the total number of nodes in an AST."""
    if node.type == "BinaryOp":
        return 1 + count_ast_nodes(node.left) + count_ast_nodes(node.right)

    if node.type == "FunctionCall":
        return 1 + sum(count_ast_nodes(arg) for arg in node.args)

    if node.type == "Root":
        return 1 + count_ast_nodes(node.child)

    return 1


def calculate_ast_depth(node: AstNode) -> int:
    """Calculates the maximum depth of an AST."""
    if node.type == "BinaryOp":
        return 1 + max(calculate_ast_depth(node.left), calculate_ast_depth(node.right))

    if node.type == "FunctionCall":
        max_arg_depth = 0
        for arg in node.args:
            max_arg_depth = max(max_arg_depth, calculate_ast_depth(arg))
        return 1 + max_arg_depth

    if node.type == "Root":
        return 1 + calculate_ast_depth(node.child)

    return 1


def ast_to_string(node: AstNode, indent: int = 0) -> str:
    """Returns a human-readable representation of an AST node for debugging."""
    prefix = "  " * indent

    if node.type == "Literal":
        return f"{prefix}Literal: {node.text}"

    if node.type == "BinaryOp":
        return (
            f"{prefix}BinaryOp: {node.operator.symbol}\n"
            f"{ast_to_string(node.left, indent + 1)}\n"
            f"{ast_to_string(node.right, indent + 1)}"
        )

    if node.type == "FunctionCall":
        header = f"{prefix}FunctionCall: {node.function.name}:{len(node.args)}"
        if not node.args:
            return header
        args_str = "\n".join(ast_to_string(arg, indent + 1) for arg in node.args)
        return f"{header}\n{args_str}"

    if node.type == "Root":
        return f"{prefix}Root: {node.source}\n{ast_to_string(node.child, indent + 1)}"

    return f"{prefix}Unknown: {node}"
