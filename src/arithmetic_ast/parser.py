"""
Parser for unit-aware arithmetic expressions.

Runs the tokenizer and the shunting-yard reducer, then builds an Abstract
Syntax Tree (AST) from the postfix instructions with a node stack:

- VALUE pushes a literal node.
- OPERATOR pops the right, then the left operand.
- CALL ``name:argc`` pops exactly ``argc`` arguments.

Exactly one node must be left once every instruction is consumed.
"""

import logging
from typing import List, Optional

from .ast import (
    AstNode,
    BinaryOpNode,
    FunctionCallNode,
    LiteralNode,
    RootNode,
    calculate_ast_depth,
    count_ast_nodes,
)
from .builtins import create_default_symbol_table
from .config import DEFAULT_CONFIG, ArithmeticConfig
from .errors import BuildError
from .evaluator import EvaluationContext
from .limits import (
    DEFAULT_EXPRESSION_LIMITS,
    ExpressionLimits,
    check_ast_depth,
    check_ast_node_count,
)
from .shunting_yard import Instruction, InstructionType, ShuntingYard
from .symbols import SymbolTable
from .tokenizer import tokenize
from .units import UnitRegistry, create_default_unit_registry

logger = logging.getLogger(__name__)


class Parser:
    """Builds an AST from postfix instructions."""

    def __init__(
        self,
        instructions: List[Instruction],
        context: EvaluationContext,
        limits: ExpressionLimits = DEFAULT_EXPRESSION_LIMITS,
    ):
        self._instructions = instructions
        self._context = context
        self._source = context.source or ""
        self._limits = limits
        self._stack: List[AstNode] = []

    def parse(self) -> RootNode:
        """Builds the instructions into an AST."""
        for instruction in self._instructions:
            if instruction.type == InstructionType.OPERATOR:
                self._build_binary_op(instruction)
            elif instruction.type == InstructionType.CALL:
                self._build_function_call(instruction)
            else:
                self._stack.append(
                    LiteralNode(
                        position=instruction.position,
                        context=self._context,
                        text=instruction.value,
                    )
                )

        if not self._stack:
            described = self._source if self._source.strip() else "[empty string]"
            raise BuildError(f"No operation was done for {described}", 0, self._source)

        if len(self._stack) > 1:
            raise BuildError(
                f"Expression was not fully reduced: {len(self._stack)} operands left",
                self._stack[1].position,
                self._source,
            )

        ast = RootNode(
            position=0,
            context=self._context,
            child=self._stack.pop(),
            source=self._source,
        )

        # Validate AST limits
        node_count = count_ast_nodes(ast)
        check_ast_node_count(node_count, self._limits)

        depth = calculate_ast_depth(ast)
        check_ast_depth(depth, self._limits)

        return ast

    def _build_binary_op(self, instruction: Instruction) -> None:
        if len(self._stack) < 2:
            raise BuildError(
                f"Missing operand for operator '{instruction.value}'",
                instruction.position,
                self._source,
            )

        right = self._stack.pop()
        left = self._stack.pop()
        self._stack.append(
            BinaryOpNode(
                position=instruction.position,
                context=self._context,
                operator=self._context.symbols.operators.require(instruction.value),
                left=left,
                right=right,
            )
        )

    def _build_function_call(self, instruction: Instruction) -> None:
        if len(self._stack) < instruction.argc:
            raise BuildError(
                f"Missing arguments for function call {instruction}",
                instruction.position,
                self._source,
            )

        args = self._stack[len(self._stack) - instruction.argc :]
        del self._stack[len(self._stack) - instruction.argc :]
        self._stack.append(
            FunctionCallNode(
                position=instruction.position,
                context=self._context,
                function=self._context.symbols.functions.require(instruction.value),
                args=tuple(args),
            )
        )


def parse(
    source: str,
    symbols: Optional[SymbolTable] = None,
    units: Optional[UnitRegistry] = None,
    config: Optional[ArithmeticConfig] = None,
) -> RootNode:
    """
    Parses an expression string into an AST.

    Args:
        source: The expression string to parse
        symbols: Operators and functions (defaults to the built-ins)
        units: Unit registry (defaults to the built-in converters)
        config: Canonical unit, DPI and expression limits

    Returns:
        The root of the parsed AST, ready to be evaluated

    Raises:
        LimitExceededError: If the expression exceeds a configured limit
        ReductionError: If parentheses, commas or calls are malformed
        BuildError: If operands are missing or left over
    """
    config = config or DEFAULT_CONFIG
    symbols = symbols or create_default_symbol_table()
    units = units or create_default_unit_registry(
        dpi=config.dpi, canonical_unit=config.canonical_unit
    )
    limits = config.expression_limits

    segments = tokenize(source, symbols, units, limits)
    instructions = ShuntingYard(segments, symbols, source, limits).reduce()

    context = EvaluationContext(
        symbols=symbols,
        units=units,
        canonical_unit=config.canonical_unit,
        source=source,
        limits=limits,
    )
    ast = Parser(instructions, context, limits).parse()

    logger.debug(
        "expression_parsed",
        extra={
            "expression": source,
            "segment_count": len(segments),
            "postfix": " ".join(str(instruction) for instruction in instructions),
        },
    )
    return ast
