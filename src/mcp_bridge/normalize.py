"""
Argument coercion for tool calls recovered from free text.

Models frequently stringify numeric parameters (``{"a": "2"}``). Structured
endpoints hand over typed arguments and never pass through here.
"""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Union

__all__ = ["normalize_arguments", "coerce_number"]

# Finite decimal literal: no leading zeros, no surrounding whitespace.
_INT_RE = re.compile(r"[+-]?(?:0|[1-9][0-9]*)")
_FLOAT_RE = re.compile(
    r"[+-]?(?:0|[1-9][0-9]*)(?:\.[0-9]+)?(?:[eE][+-]?[0-9]+)?"
)


def coerce_number(value: str) -> Union[int, float, None]:
    """Return the numeric value of ``value``, or None if it is not a clean literal.

    >>> coerce_number("3"), coerce_number("-2.5"), coerce_number("NaN")
    (3, -2.5, None)
    """
    if _INT_RE.fullmatch(value):
        try:
            return int(value)
        except ValueError:
            # over the interpreter's int string conversion limit
            return None
    if _FLOAT_RE.fullmatch(value):
        number = float(value)
        # "1e999" overflows to inf
        return number if math.isfinite(number) else None
    return None


def normalize_arguments(arguments: Mapping[str, Any]) -> dict[str, Any]:
    """
    Replace top-level numeric strings with numbers; pass everything else through.

    Nested objects and arrays, booleans and null are left untouched, so running
    this on its own output is a no-op.
    """
    normalized: dict[str, Any] = {}
    for key, value in arguments.items():
        if isinstance(value, str):
            number = coerce_number(value)
            normalized[key] = value if number is None else number
        else:
            normalized[key] = value
    return normalized
