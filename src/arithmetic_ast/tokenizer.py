"""
Tokenizer (lexer) for unit-aware arithmetic expressions.

Splits an expression string into typed segments for the shunting-yard
reducer. Segment boundaries depend on the symbol table: functions and
multi-character operators are matched as words, and the declared parameters
of the enclosing function decide whether characters such as ``/`` or spaces
belong to an argument or split it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .limits import ExpressionLimits, check_expression_length
from .symbols import FunctionDescriptor, SymbolTable
from .units import UnitRegistry, create_default_unit_registry, is_numeric


class SegmentType(Enum):
    """Segment types produced by the tokenizer."""

    LITERAL = "LITERAL"
    OPERATOR = "OPERATOR"
    FUNCTION = "FUNCTION"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    COMMA = "COMMA"


@dataclass(frozen=True)
class Segment:
    """A trimmed, non-empty piece of the source expression."""

    type: SegmentType
    value: str
    position: int


@dataclass
class _FunctionFrame:
    """Tracks a function call while its arguments are being scanned."""

    descriptor: FunctionDescriptor

    # Parenthesis depth inside the call; 0 until its "(" is seen
    depth: int = 0

    # Commas seen at depth 1, i.e. the index of the current argument
    commas: int = 0


_STRUCTURAL = {
    "(": SegmentType.LPAREN,
    ")": SegmentType.RPAREN,
    ",": SegmentType.COMMA,
}


def _is_digit(ch: str) -> bool:
    """Checks if a character is a digit."""
    return "0" <= ch <= "9"


def _is_word_part(ch: str) -> bool:
    """Checks if a character can be part of a number or identifier."""
    return ch.isalnum() or ch in ("_", ".")


def _is_identifier_like(symbol: str) -> bool:
    return symbol[0].isalpha() or symbol[0] == "_"


def _is_whitespace(ch: str) -> bool:
    """Checks if a character is whitespace."""
    return ch in (" ", "\t", "\n", "\r")


class Tokenizer:
    """Tokenizer for arithmetic expression strings."""

    def __init__(
        self,
        source: str,
        symbols: SymbolTable,
        units: Optional[UnitRegistry] = None,
        limits: Optional[ExpressionLimits] = None,
    ):
        self._source = source
        self._symbols = symbols
        self._units = units or create_default_unit_registry()
        self._limits = limits
        self._words = symbols.word_symbols()
        self._position = 0
        self._segments: List[Segment] = []
        self._buffer = ""
        self._buffer_start = 0
        self._frames: List[_FunctionFrame] = []

    def tokenize(self) -> List[Segment]:
        """Tokenizes the source expression and returns all segments."""
        check_expression_length(self._source, self._limits)

        while not self._is_at_end():
            self._scan_segment()

        self._flush()
        return self._segments

    def _is_at_end(self) -> bool:
        return self._position >= len(self._source)

    def _peek(self) -> str:
        if self._is_at_end():
            return ""
        return self._source[self._position]

    def _peek_next(self) -> str:
        if self._position + 1 >= len(self._source):
            return ""
        return self._source[self._position + 1]

    # ============================================================
    # Segment output
    # ============================================================

    def _append(self, ch: str) -> None:
        if not self._buffer:
            self._buffer_start = self._position
        self._buffer += ch
        self._position += 1

    def _flush(self) -> None:
        """Emits the pending literal, if any."""
        value = self._buffer.strip()
        if value:
            offset = len(self._buffer) - len(self._buffer.lstrip())
            self._segments.append(
                Segment(SegmentType.LITERAL, value, self._buffer_start + offset)
            )
        self._buffer = ""

    def _emit(self, segment_type: SegmentType, value: str) -> None:
        self._flush()
        self._segments.append(Segment(segment_type, value, self._position))
        self._position += len(value)

    # ============================================================
    # Scanning
    # ============================================================

    def _scan_segment(self) -> None:
        ch = self._peek()

        if ch in _STRUCTURAL:
            self._scan_structural(ch)
            return

        frame = self._argument_frame()
        if frame is not None and self._argument_accepts(frame, ch):
            self._append(ch)
            return

        word = self._scan_word_symbol()
        if word is not None:
            descriptor = self._symbols.functions.get(word)
            if descriptor is not None:
                self._emit(SegmentType.FUNCTION, word)
                self._frames.append(_FunctionFrame(descriptor))
            else:
                self._emit(SegmentType.OPERATOR, word)
            return

        if ch in self._symbols.operators:
            if (
                self._is_unary_prefix(ch)
                or self._is_exponent_sign(ch)
                or self._is_unit_suffix(ch)
            ):
                self._append(ch)
            else:
                self._emit(SegmentType.OPERATOR, ch)
            return

        if _is_whitespace(ch):
            self._flush()
            self._position += 1
            return

        self._append(ch)

    def _scan_structural(self, ch: str) -> None:
        self._emit(_STRUCTURAL[ch], ch)

        if ch == "(":
            if self._frames:
                self._frames[-1].depth += 1
            return

        if ch == ",":
            if self._frames and self._frames[-1].depth == 1:
                self._frames[-1].commas += 1
            return

        # A function name never followed by its parenthesis cannot be closed
        while self._frames and self._frames[-1].depth == 0:
            self._frames.pop()
        if self._frames:
            self._frames[-1].depth -= 1
            if self._frames[-1].depth == 0:
                self._frames.pop()

    def _scan_word_symbol(self) -> Optional[str]:
        """Matches a function name or multi-character operator at the cursor."""
        preceding = self._source[self._position - 1] if self._position > 0 else ""

        for symbol in self._words:
            if not self._source.startswith(symbol, self._position):
                continue

            following = self._source[self._position + len(symbol) :][:1]
            if following != "(" and not _is_whitespace(following):
                continue

            if _is_identifier_like(symbol) and preceding and _is_word_part(preceding):
                continue

            return symbol

        return None

    # ============================================================
    # Function arguments
    # ============================================================

    def _argument_frame(self) -> Optional[_FunctionFrame]:
        """Returns the innermost function call whose arguments are being read."""
        if self._frames and self._frames[-1].depth >= 1:
            return self._frames[-1]
        return None

    def _argument_accepts(self, frame: _FunctionFrame, ch: str) -> bool:
        """
        Checks if the current argument's parameter accepts another character.

        Optional parameters rejecting the tentative segment are skipped, as
        the argument may fill a later parameter; a required one ends the
        search.
        """
        tentative = self._buffer + ch

        for parameter in frame.descriptor.parameters[frame.commas :]:
            validator = self._symbols.validators.get(parameter.type)
            if validator is not None and validator(tentative):
                return True
            if parameter.is_required:
                return False

        return False

    # ============================================================
    # Operators
    # ============================================================

    def _is_unary_prefix(self, ch: str) -> bool:
        """Checks for a sign directly prefixing a number, as in ``-2`` or ``(+.5``."""
        descriptor = self._symbols.operators.get(ch)
        if descriptor is None or not descriptor.unary:
            return False

        if self._buffer.strip():
            return False

        if self._segments and self._segments[-1].type not in (
            SegmentType.OPERATOR,
            SegmentType.LPAREN,
            SegmentType.COMMA,
        ):
            return False

        following = self._peek_next()
        if _is_digit(following):
            return True
        after = self._source[self._position + 2 : self._position + 3]
        return following == "." and _is_digit(after)

    def _is_exponent_sign(self, ch: str) -> bool:
        """Checks for the sign of a number's exponent, as in ``2e-3``."""
        if ch not in ("+", "-"):
            return False

        mantissa = self._buffer.lstrip()
        if len(mantissa) < 2 or mantissa[-1] not in ("e", "E"):
            return False

        return is_numeric(mantissa[:-1]) and _is_digit(self._peek_next())

    def _is_unit_suffix(self, ch: str) -> bool:
        """Checks for a unit label directly following a number, as in ``50%``."""
        if not self._units.is_unit(ch):
            return False

        if not self._buffer or _is_whitespace(self._buffer[-1]):
            return False

        if not is_numeric(self._buffer):
            return False

        following = self._peek_next()
        return following == "" or _is_whitespace(following) or following in (")", ",")


def tokenize(
    source: str,
    symbols: SymbolTable,
    units: Optional[UnitRegistry] = None,
    limits: Optional[ExpressionLimits] = None,
) -> List[Segment]:
    """
    Tokenizes an expression string into segments.

    Args:
        source: The expression string to tokenize
        symbols: Operators and functions to recognize
        units: Unit registry, used to recognize unit labels that are also operators
        limits: Optional expression limits

    Returns:
        List of segments

    Raises:
        LimitExceededError: If the expression is too long
    """
    tokenizer = Tokenizer(source, symbols, units, limits)
    return tokenizer.tokenize()
