"""Quantity parsing and formatting — pure business logic.

Quantities travel as decimal text ("2", "0.5", "1,5"). Parsing is tolerant:
the leading number wins ("250 g" -> 250.0) and anything unparsable counts as
zero. Nothing in here raises on bad input.
"""

from __future__ import annotations

import re

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+))")


def parse_quantity(value: str | float | int | None) -> float:
    """Parse a quantity string into a float; unparsable input yields 0.0.

    A decimal comma is accepted ("1,5" -> 1.5).
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if value == value else 0.0  # NaN
    match = _LEADING_NUMBER.match(str(value))
    if match is None:
        return 0.0
    return float(match.group(1).replace(",", "."))


def format_quantity(value: float) -> str:
    """Fixed two-decimal text, the format stored for merged shopping rows."""
    return f"{value:.2f}"


def format_scaled(value: float) -> str:
    """Shortest plain decimal text: 4.0 -> "4", 0.5 -> "0.5", 1/3 -> "0.333333"."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text
