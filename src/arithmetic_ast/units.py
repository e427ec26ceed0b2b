"""
Unit registry and built-in unit converters.

Values travel through the engine as numbers or as text with a unit suffix
(e.g. ``"2.5cm"``). The registry knows which suffixes are units, how many
units a value carries (its unit power), and how to convert between units.

Each converter links a unit to a base unit with two pure formulas. Conversions
go through the base unit, so ``cm -> in`` is computed as ``cm -> pt -> in``.
The dimensionless unit is the empty string; a converter whose base unit is
``""`` (the percentage) describes a dimensionless scale.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .errors import ConversionError

logger = logging.getLogger(__name__)

# Canonical unit used when no target unit is given
DEFAULT_CANONICAL_UNIT = "pt"

# Dots per inch used by the pixel converter
DEFAULT_DPI = 96.0

DIMENSIONLESS = ""

_QUANTITY_PATTERN = re.compile(
    r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)\s*(.*?)\s*$"
)

Quantity = Union[str, float, int]


@dataclass(frozen=True)
class Converter:
    """Converts between a unit and its base unit."""

    base_unit: str
    """Unit the formulas convert to and from (e.g. "pt")."""

    unit: str
    """Unit handled by this converter (e.g. "cm")."""

    to_base: Callable[[float], float]
    """Converts a value expressed in `unit` to `base_unit`."""

    from_base: Callable[[float], float]
    """Converts a value expressed in `base_unit` to `unit`."""

    @property
    def key(self) -> Tuple[str, str]:
        return (self.base_unit, self.unit)


def centimeter_converter() -> Converter:
    """1cm = 72 / 2.54 pt."""
    return Converter(
        base_unit="pt",
        unit="cm",
        to_base=lambda cm: cm * (72 / 25.4) * 10,
        from_base=lambda pt: pt * (25.4 / 72) / 10,
    )


def inch_converter() -> Converter:
    return Converter(
        base_unit="pt",
        unit="in",
        to_base=lambda inches: inches * 72,
        from_base=lambda pt: pt / 72,
    )


def millimeter_converter() -> Converter:
    return Converter(
        base_unit="pt",
        unit="mm",
        to_base=lambda mm: mm * (72 / 25.4),
        from_base=lambda pt: pt * (25.4 / 72),
    )


def pica_converter(unit: str = "pc") -> Converter:
    """1pc = 12pt; also registered under the spelled-out label "pica"."""
    return Converter(
        base_unit="pt",
        unit=unit,
        to_base=lambda pc: pc * 12,
        from_base=lambda pt: pt / 12,
    )


def pixel_converter(dpi: float = DEFAULT_DPI) -> Converter:
    """Pixels depend on the output resolution: 1px = 72 / dpi pt."""
    return Converter(
        base_unit="pt",
        unit="px",
        to_base=lambda px: px * (72 / dpi),
        from_base=lambda pt: pt * (dpi / 72),
    )


def percentage_converter() -> Converter:
    return Converter(
        base_unit=DIMENSIONLESS,
        unit="%",
        to_base=lambda percentage: percentage / 100,
        from_base=lambda fraction: fraction * 100,
    )


def format_quantity(value: float, unit: str = DIMENSIONLESS) -> str:
    """
    Formats a number with a unit suffix.

    Integral values drop their fractional part: ``format_quantity(3.0, "cm")``
    returns ``"3cm"``.
    """
    if math.isfinite(value) and int(value) == value:
        text = repr(int(value))
    else:
        text = repr(value)
    return f"{text}{unit}"


def split_quantity(value: Quantity) -> Optional[Tuple[float, str]]:
    """
    Splits a value into its number and raw suffix.

    Returns None when the value does not start with a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return (float(value), DIMENSIONLESS)

    match = _QUANTITY_PATTERN.match(value)
    if match is None:
        return None
    return (float(match.group(1)), match.group(2))


def is_numeric(value: Quantity) -> bool:
    """Checks if a value is a plain number without any suffix."""
    parts = split_quantity(value)
    return parts is not None and parts[1] == DIMENSIONLESS


class UnitRegistry:
    """Registry of unit converters."""

    def __init__(
        self,
        converters: Iterable[Converter] = (),
        canonical_unit: str = DEFAULT_CANONICAL_UNIT,
    ):
        self._converters: Dict[Tuple[str, str], Converter] = {}
        self.canonical_unit = canonical_unit
        for converter in converters:
            self.add_converter(converter)

    # ============================================================
    # Registration
    # ============================================================

    def add_converter(self, converter: Converter) -> None:
        """Adds a converter; a converter for the same unit pair is replaced."""
        self._converters[converter.key] = converter

    def remove_converter(self, base_unit: str, unit: str) -> None:
        self._converters.pop((base_unit, unit), None)

    def converters(self) -> List[Converter]:
        return list(self._converters.values())

    def units(self) -> List[str]:
        """Returns every known non-empty unit label, longest first."""
        labels = {DIMENSIONLESS}
        for base_unit, unit in self._converters:
            labels.add(base_unit)
            labels.add(unit)
        labels.discard(DIMENSIONLESS)
        return sorted(labels, key=lambda label: (-len(label), label))

    def is_unit(self, label: str) -> bool:
        return label != DIMENSIONLESS and label in self.units()

    # ============================================================
    # Inspection
    # ============================================================

    def unit_of(self, value: Quantity) -> Optional[str]:
        """Returns the unit carried by a value, or None if it has no known unit."""
        parts = split_quantity(value)
        if parts is None:
            return None
        suffix = parts[1]
        if self.is_unit(suffix):
            return suffix
        return None

    def unit_power(self, value: Quantity) -> int:
        """
        Counts the units carried by a value.

        - ``unit_power("1")`` returns 0, ``1`` is dimensionless.
        - ``unit_power("1cm")`` returns 1, ``1cm`` carries one unit.
        """
        return 0 if self.unit_of(value) is None else 1

    # ============================================================
    # Conversion
    # ============================================================

    def normalize(self, value: Quantity, target_unit: Optional[str] = None) -> float:
        """
        Normalizes a value to the target unit (the canonical unit by default).

        Raises:
            ConversionError: If the value is not numeric or its unit is unknown
        """
        target_unit = self.canonical_unit if target_unit is None else target_unit
        parts = split_quantity(value)
        if parts is None:
            raise ConversionError(
                f"Cannot normalize non-numeric value: {value}", value=value
            )

        number, suffix = parts
        if suffix != DIMENSIONLESS and not self.is_unit(suffix):
            raise ConversionError(
                f"Invalid unit found: {suffix}", value=value, unit=suffix
            )
        return self.convert(number, suffix, target_unit)

    def convert(self, number: float, from_unit: str, to_unit: str) -> float:
        """Converts a number expressed in `from_unit` to `to_unit`."""
        return self._resolve(number, from_unit, to_unit)[0]

    def normalized_unit(self, unit: str, target_unit: Optional[str] = None) -> str:
        """
        Returns the unit a value in `unit` actually ends up in after normalization.

        This is the target unit, except for dimensionless scales (``%``), which
        normalize to a bare number.
        """
        target_unit = self.canonical_unit if target_unit is None else target_unit
        return self._resolve(1.0, unit, target_unit)[1]

    def _resolve(
        self, number: float, from_unit: str, to_unit: str
    ) -> Tuple[float, str]:
        if from_unit == to_unit:
            return (number, to_unit)

        value, base_unit = self._to_base(number, from_unit)
        if base_unit == to_unit:
            return (value, to_unit)

        converter = self._converters.get((base_unit, to_unit))
        if converter is not None:
            return (converter.from_base(value), to_unit)

        # A dimensionless number adopts any unit
        if base_unit == DIMENSIONLESS:
            return (value, DIMENSIONLESS)

        raise ConversionError(
            f"Cannot convert from '{from_unit}' to '{to_unit}'", unit=from_unit
        )

    def _to_base(self, number: float, unit: str) -> Tuple[float, str]:
        if unit == DIMENSIONLESS:
            return (number, DIMENSIONLESS)

        for converter in self._converters.values():
            if converter.unit == unit:
                return (converter.to_base(number), converter.base_unit)

        for base_unit, _ in self._converters:
            if base_unit == unit:
                return (number, unit)

        raise ConversionError(f"Invalid unit found: {unit}", unit=unit)


def create_default_unit_registry(
    dpi: float = DEFAULT_DPI,
    canonical_unit: str = DEFAULT_CANONICAL_UNIT,
) -> UnitRegistry:
    """Creates a unit registry seeded with the built-in converters."""
    registry = UnitRegistry(
        [
            centimeter_converter(),
            inch_converter(),
            millimeter_converter(),
            percentage_converter(),
            pica_converter(),
            pica_converter("pica"),
            pixel_converter(dpi),
        ],
        canonical_unit=canonical_unit,
    )
    logger.debug(
        "unit_registry_created",
        extra={"dpi": dpi, "canonical_unit": canonical_unit, "units": registry.units()},
    )
    return registry
