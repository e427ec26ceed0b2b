"""
Shunting-yard reduction of segments to postfix instructions.

Functions may be variadic, so every call is emitted together with the number
of arguments it was actually given (rendered ``name:argc``). The count is
taken while reducing: each argument increments the counter of the innermost
call when it starts directly after the call's parenthesis or a comma.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import ReductionError
from .limits import ExpressionLimits, check_function_arg_count
from .symbols import SymbolTable
from .tokenizer import Segment, SegmentType


class InstructionType(Enum):
    """Postfix instruction types."""

    VALUE = "VALUE"
    OPERATOR = "OPERATOR"
    CALL = "CALL"


@dataclass(frozen=True)
class Instruction:
    """A postfix instruction."""

    type: InstructionType
    value: str
    position: int

    argc: int = 0
    """Resolved argument count, for CALL instructions."""

    def __str__(self) -> str:
        if self.type == InstructionType.CALL:
            return f"{self.value}:{self.argc}"
        return self.value


class ShuntingYard:
    """Reduces infix segments to postfix instructions."""

    def __init__(
        self,
        segments: List[Segment],
        symbols: SymbolTable,
        source: str = "",
        limits: Optional[ExpressionLimits] = None,
    ):
        self._segments = segments
        self._symbols = symbols
        self._source = source
        self._limits = limits
        self._output: List[Instruction] = []
        self._stack: List[Segment] = []
        self._counters: List[int] = []

    def reduce(self) -> List[Instruction]:
        """
        Reduces the segments to postfix order.

        Raises:
            ReductionError: On unbalanced parentheses, misplaced commas or
                functions not followed by a parenthesis
            LimitExceededError: If a call has too many arguments
        """
        for index, segment in enumerate(self._segments):
            if segment.type == SegmentType.FUNCTION:
                self._reduce_function(index, segment)
            elif segment.type == SegmentType.OPERATOR:
                self._reduce_operator(segment)
            elif segment.type == SegmentType.COMMA:
                self._reduce_comma(index, segment)
            elif segment.type == SegmentType.LPAREN:
                self._count_argument_start(segment)
                self._stack.append(segment)
            elif segment.type == SegmentType.RPAREN:
                self._reduce_right_paren(index, segment)
            else:
                self._count_argument_start(segment)
                self._output.append(
                    Instruction(InstructionType.VALUE, segment.value, segment.position)
                )

        while self._stack:
            top = self._stack.pop()
            if top.type == SegmentType.LPAREN:
                raise ReductionError(
                    "Unbalanced parenthesis: missing ')'", top.position, self._source
                )
            self._pop_to_output(top)

        return self._output

    def _reduce_function(self, index: int, segment: Segment) -> None:
        following = self._segments[index + 1] if index + 1 < len(self._segments) else None
        if following is None or following.type != SegmentType.LPAREN:
            raise ReductionError(
                f"Function '{segment.value}' must be followed by '('",
                segment.position,
                self._source,
            )

        self._count_argument_start(segment)
        self._stack.append(segment)
        self._counters.append(0)

    def _reduce_operator(self, segment: Segment) -> None:
        operator = self._symbols.operators.get(segment.value)
        if operator is None:
            raise ReductionError(
                f"Unknown operator: '{segment.value}'", segment.position, self._source
            )

        while self._stack and self._stack[-1].type == SegmentType.OPERATOR:
            top = self._symbols.operators.require(self._stack[-1].value)
            if top.precedence > operator.precedence or (
                top.precedence == operator.precedence and operator.is_left_associative
            ):
                self._pop_to_output(self._stack.pop())
            else:
                break

        self._stack.append(segment)

    def _reduce_comma(self, index: int, segment: Segment) -> None:
        while self._stack and self._stack[-1].type != SegmentType.LPAREN:
            self._pop_to_output(self._stack.pop())

        if not self._is_call_open():
            raise ReductionError(
                "Misplaced comma: not inside a function call",
                segment.position,
                self._source,
            )
        self._check_argument_present(index, segment)

    def _reduce_right_paren(self, index: int, segment: Segment) -> None:
        while self._stack and self._stack[-1].type != SegmentType.LPAREN:
            self._pop_to_output(self._stack.pop())

        if not self._stack:
            raise ReductionError(
                "Cannot find previous left parenthesis", segment.position, self._source
            )

        if self._previous_type(index) == SegmentType.COMMA:
            self._raise_empty_argument(segment)

        self._stack.pop()

        if self._stack and self._stack[-1].type == SegmentType.FUNCTION:
            self._pop_to_output(self._stack.pop())

    def _pop_to_output(self, segment: Segment) -> None:
        if segment.type == SegmentType.FUNCTION:
            argc = self._counters.pop()
            check_function_arg_count(argc, self._limits)
            self._output.append(
                Instruction(InstructionType.CALL, segment.value, segment.position, argc)
            )
            return

        self._output.append(
            Instruction(InstructionType.OPERATOR, segment.value, segment.position)
        )

    def _is_call_open(self) -> bool:
        """Checks if the top of the stack is the parenthesis opening a call."""
        return (
            len(self._stack) >= 2
            and self._stack[-1].type == SegmentType.LPAREN
            and self._stack[-2].type == SegmentType.FUNCTION
        )

    def _previous_type(self, index: int) -> Optional[SegmentType]:
        return self._segments[index - 1].type if index > 0 else None

    def _check_argument_present(self, index: int, segment: Segment) -> None:
        """Rejects a comma closing an empty argument, as in ``f(,1)``."""
        if self._previous_type(index) in (SegmentType.LPAREN, SegmentType.COMMA):
            self._raise_empty_argument(segment)

    def _raise_empty_argument(self, segment: Segment) -> None:
        raise ReductionError(
            f"Empty argument in call to '{self._stack[-2].value}'",
            segment.position,
            self._source,
        )

    def _count_argument_start(self, segment: Segment) -> None:
        """
        Counts an argument starting right after a call's parenthesis or a comma.

        Every function pushes its counter together with itself, so the
        underflow check only guards against a corrupted reducer state.
        """
        if not self._is_call_open():
            return

        if not self._counters:
            raise ReductionError(
                "Malformed function call nesting", segment.position, self._source
            )
        self._counters[-1] += 1
