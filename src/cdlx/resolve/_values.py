"""Value system for binding resolution.

Provides literal parsing, literal formatting, and the conversion of a
resolved value back into a literal expression.  Reals are kept as exact
``Fraction``s so folded arithmetic does not drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Union

from cdlx.errors import UnsupportedConstructError
from cdlx.model.expressions import ArrayExpr, Expression, LiteralExpr


@dataclass(frozen=True)
class EnumTag:
    """An enumeration literal; compared by tag identity."""

    type_name: str
    member: str

    def __str__(self) -> str:
        return f"{self.type_name}#{self.member}"


Value = Union[bool, int, Fraction, float, str, EnumTag, tuple]


# ---------------------------------------------------------------------------
# Literal parsing
# ---------------------------------------------------------------------------

def parse_literal(value: str) -> Value:
    """Parse a literal string into a Python value.

    - "true"/"false" (any case) -> bool
    - Integer strings -> int
    - Real strings ("1.2", "1e3") -> Fraction (exact)
    - '"text"' or "'text'" -> str
    - "Type#Member" -> EnumTag
    """
    text = value.strip()
    lower = text.lower()

    # Boolean
    if lower == "true":
        return True
    if lower == "false":
        return False

    # Quoted string
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        return text[1:-1].replace('\\"', '"')

    # Enum literal: "Type#Member"
    if "#" in text:
        type_name, _, member = text.rpartition("#")
        if not type_name or not member:
            raise UnsupportedConstructError(f"Invalid enumeration literal: {value!r}")
        return EnumTag(type_name, member)

    try:
        return int(text)
    except ValueError:
        pass
    try:
        return Fraction(text)
    except ValueError:
        pass

    raise UnsupportedConstructError(f"Invalid literal: {value!r}")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_literal(value: Value) -> str:
    """Render a scalar value in literal syntax (inverse of parse_literal)."""
    # bool check before int (bool is subclass of int)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Fraction):
        if value.denominator == 1:
            return f"{value.numerator}.0"
        try:
            return repr(float(value))
        except OverflowError as exc:
            raise UnsupportedConstructError(
                "Real value out of floating-point range for a literal"
            ) from exc
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        return '"' + value.replace('"', '\\"') + '"'
    if isinstance(value, EnumTag):
        return str(value)
    raise UnsupportedConstructError(
        f"Cannot format {type(value).__name__} as a literal"
    )


def to_expression(value: Value) -> Expression:
    """Convert a resolved value into a literal (or array-of-literal) expression."""
    if isinstance(value, tuple):
        return ArrayExpr(elements=[to_expression(v) for v in value])
    return LiteralExpr(value=format_literal(value))


# ---------------------------------------------------------------------------
# Kind checks
# ---------------------------------------------------------------------------

def is_number(value: object) -> bool:
    return isinstance(value, (int, Fraction, float)) and not isinstance(value, bool)


def type_name(value: object) -> str:
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, (Fraction, float)):
        return "Real"
    if isinstance(value, str):
        return "String"
    if isinstance(value, EnumTag):
        return value.type_name
    if isinstance(value, tuple):
        return "array"
    return type(value).__name__
