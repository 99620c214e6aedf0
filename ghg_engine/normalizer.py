# -*- coding: utf-8 -*-
"""
Numeric Normalizer

Locale-tolerant string to number parsing used by every calculation stage.
Each standard module owns a normalizer with a fixed NormalizationMode;
the mode is never inferred per call.

Modes:
    EUROPEAN:    ``.`` groups thousands, ``,`` is the decimal separator.
                 Without a comma, several dots group and a single dot is
                 the decimal point.
    US:          ``,`` groups thousands, ``.`` is the decimal separator.
                 Without a dot, several commas group and a single comma is
                 the decimal point.
    SPREADSHEET: dot-grouping heuristic of the ISCC spreadsheet port. A
                 comma makes the value European; more than one dot groups;
                 a single dot with at most two trailing digits is decimal,
                 otherwise it groups ("20.000" is twenty thousand).

Null, empty, digit-free, unparsable and non-finite input parse to 0. Text
around the number ("3.5kg") makes the whole input unparsable.
Parsing never rounds; ``format_number`` is for presentation only.

Example:
    >>> from ghg_engine.normalizer import NumericNormalizer, NormalizationMode
    >>> NumericNormalizer(NormalizationMode.EUROPEAN).parse("1.234,5")
    Decimal('1234.5')
    >>> NumericNormalizer(NormalizationMode.US).parse("1,234.5")
    Decimal('1234.5')

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import re
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

RawNumber = Union[str, int, float, Decimal, None]

_ZERO = Decimal("0")
_WHITESPACE = re.compile(r"\s+")
_DIGIT = re.compile(r"[0-9]")
# Whole input: optional sign, digits and separators, optional exponent.
_NUMERIC_TOKEN = re.compile(r"([+-]?[0-9.,]+)((?:[eE][+-]?[0-9]+)?)")


class NormalizationMode(str, Enum):
    """Decimal/grouping convention fixed per standard module."""

    EUROPEAN = "european"
    US = "us"
    SPREADSHEET = "spreadsheet"


class NumericNormalizer:
    """Parses raw user input into Decimal under one fixed convention.

    Attributes:
        mode: The NormalizationMode applied by every parse() call.

    Example:
        >>> n = NumericNormalizer(NormalizationMode.SPREADSHEET)
        >>> n.parse("20.000.000")
        Decimal('20000000')
        >>> n.parse("12.5")
        Decimal('12.5')
        >>> n.parse(None)
        Decimal('0')
    """

    def __init__(self, mode: Union[NormalizationMode, str]) -> None:
        self.mode = NormalizationMode(mode)

    def parse(self, raw: RawNumber) -> Decimal:
        """Parse raw input into a finite Decimal (0 on anything invalid)."""
        if raw is None or isinstance(raw, bool):
            return _ZERO

        if isinstance(raw, Decimal):
            return raw if raw.is_finite() else _ZERO
        if isinstance(raw, (int, float)):
            return self._from_number(raw)

        text = _WHITESPACE.sub("", str(raw))
        if not text or not _DIGIT.search(text):
            return _ZERO

        match = _NUMERIC_TOKEN.fullmatch(text)
        if match is None:
            logger.debug("Unparsable numeric input %r, using 0", raw)
            return _ZERO
        token, exponent = match.groups()

        if self.mode is NormalizationMode.EUROPEAN:
            canonical = self._european(token)
        elif self.mode is NormalizationMode.US:
            canonical = self._us(token)
        else:
            canonical = self._spreadsheet(token)

        return self._to_decimal(canonical + exponent, raw)

    __call__ = parse

    # ------------------------------------------------------------------
    # Mode rules
    # ------------------------------------------------------------------

    @staticmethod
    def _european(token: str) -> str:
        if "," in token:
            return token.replace(".", "").replace(",", ".", 1)
        if token.count(".") > 1:
            return token.replace(".", "")
        return token

    @staticmethod
    def _us(token: str) -> str:
        if "." in token:
            return token.replace(",", "")
        if token.count(",") > 1:
            return token.replace(",", "")
        return token.replace(",", ".")

    @staticmethod
    def _spreadsheet(token: str) -> str:
        if "," in token:
            return token.replace(".", "").replace(",", ".", 1)
        parts = token.split(".")
        if len(parts) > 2:
            return token.replace(".", "")
        if len(parts) == 2 and len(parts[1]) <= 2:
            return token
        return token.replace(".", "")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _from_number(raw: Union[int, float]) -> Decimal:
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            return _ZERO
        return value if value.is_finite() else _ZERO

    @staticmethod
    def _to_decimal(canonical: str, raw: RawNumber) -> Decimal:
        try:
            value = Decimal(canonical)
        except InvalidOperation:
            logger.debug("Unparsable numeric input %r, using 0", raw)
            return _ZERO
        if not value.is_finite():
            return _ZERO
        return value

    def __repr__(self) -> str:
        return f"NumericNormalizer(mode={self.mode.value!r})"


# ---------------------------------------------------------------------------
# Presentation formatting
# ---------------------------------------------------------------------------

_ROUNDING = {
    "round": ROUND_HALF_UP,
    "floor": ROUND_FLOOR,
    "ceil": ROUND_CEILING,
}


def format_number(value: RawNumber, decimals: int = 0, mode: str = "none") -> str:
    """Format a value for display with id-ID grouping (``1.234,50``).

    Only for presentation boundaries; formulas never see the output.

    Args:
        value: Number (or numeric string in canonical form) to format.
        decimals: Fraction digits shown.
        mode: ``none`` (half-up at display), ``round``, ``floor`` or ``ceil``.

    Returns:
        Formatted string, ``"0"`` for non-finite input.
    """
    if mode not in ("none", "round", "floor", "ceil"):
        raise ValueError(f"Unknown format mode: {mode}")

    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        return "0"
    if not number.is_finite():
        return "0"

    places = max(0, decimals)
    quantum = Decimal(1).scaleb(-places)
    rounded = number.quantize(quantum, rounding=_ROUNDING.get(mode, ROUND_HALF_UP))

    sign = "-" if rounded < 0 else ""
    integer_part, _, fraction = f"{abs(rounded):f}".partition(".")
    grouped = f"{int(integer_part):,}".replace(",", ".")
    if places:
        return f"{sign}{grouped},{fraction.ljust(places, '0')}"
    return f"{sign}{grouped}"


# Module-level normalizers fixed per standard.
EUROPEAN_NORMALIZER = NumericNormalizer(NormalizationMode.EUROPEAN)
US_NORMALIZER = NumericNormalizer(NormalizationMode.US)
SPREADSHEET_NORMALIZER = NumericNormalizer(NormalizationMode.SPREADSHEET)


__all__ = [
    "NormalizationMode",
    "NumericNormalizer",
    "format_number",
    "EUROPEAN_NORMALIZER",
    "US_NORMALIZER",
    "SPREADSHEET_NORMALIZER",
]
