"""Utility functions for the arxmldiff engine."""

from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Optional


_FLOAT_PREFIX = re.compile(
    r'^\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))'
)
_INT_PREFIX = re.compile(r'^\s*([+-]?\d+)')


def parse_float(text: Optional[str]) -> Optional[float]:
    """
    Parse the leading numeric part of a string.

    Trailing garbage is ignored ("12.5ms" -> 12.5). Returns None when the
    string does not start with a number.

    Example:
        >>> parse_float(" 0.25 ")
        0.25
        >>> parse_float("abc") is None
        True
    """
    if text is None:
        return None
    match = _FLOAT_PREFIX.match(text)
    if not match:
        return None
    return float(match.group(1).replace('Infinity', 'inf'))


def parse_int(text: Optional[str]) -> Optional[int]:
    """Parse the leading decimal integer of a string, or None."""
    if text is None:
        return None
    match = _INT_PREFIX.match(text)
    if not match:
        return None
    return int(match.group(1))


def format_number(value: float) -> str:
    """
    Render a number in its shortest decimal form.

    Integral values drop the fractional part and plain notation is used
    between 1e-6 and 1e21.

    Example:
        >>> format_number(255.0)
        '255'
        >>> format_number(0.1)
        '0.1'
        >>> format_number(1e-7)
        '1e-7'
    """
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    magnitude = abs(value)
    if magnitude >= 1e21 or magnitude < 1e-6:
        mantissa, exponent = repr(value).split('e')
        exponent = int(exponent)
        sign = '+' if exponent > 0 else '-'
        return f"{mantissa}e{sign}{abs(exponent)}"

    # Past 2**53 integral floats still print their shortest round-trip digits
    if value.is_integer() and magnitude < 2 ** 53:
        return str(int(value))

    text = format(Decimal(repr(value)), 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def seconds_to_ms(seconds: float) -> float | int:
    """Convert seconds to milliseconds, as an int when integral."""
    return as_number(seconds * 1000)


def as_number(value: float) -> float | int:
    """Return an int for integral floats so reports read 100 rather than 100.0."""
    if value.is_integer():
        return int(value)
    return value


def to_hex_id(value: int) -> str:
    """
    Render a CAN identifier as uppercase hex.

    Example:
        >>> to_hex_id(2024)
        '0x7E8'
    """
    return "0x" + format(value, 'X')
