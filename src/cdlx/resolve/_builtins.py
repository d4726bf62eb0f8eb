"""Built-in functions available to parameter bindings.

Each entry takes already-resolved literal values and returns a value.
Numeric results stay exact (``int``/``Fraction``) where the operation
allows it; transcendental functions return ``float``.
"""

from __future__ import annotations

import math
from fractions import Fraction

from cdlx.errors import EvaluationError

from ._values import EnumTag, Value, format_literal, is_number


def _flatten(value: Value) -> list[Value]:
    if isinstance(value, tuple):
        out: list[Value] = []
        for v in value:
            out.extend(_flatten(v))
        return out
    return [value]


def _numbers(*values: Value) -> list[Value]:
    flat: list[Value] = []
    for v in values:
        flat.extend(_flatten(v))
    for v in flat:
        if not is_number(v):
            raise EvaluationError(f"Expected a number, got {v!r}")
    return flat


def _min(*args: Value) -> Value:
    """min(a, b) or min(array)."""
    values = _numbers(*args)
    if not values:
        raise EvaluationError("min() of an empty array")
    return min(values)


def _max(*args: Value) -> Value:
    values = _numbers(*args)
    if not values:
        raise EvaluationError("max() of an empty array")
    return max(values)


def _sum(array: Value) -> Value:
    return sum(_numbers(array), 0)


def _product(array: Value) -> Value:
    return math.prod(_numbers(array))


def _abs(x: Value) -> Value:
    if isinstance(x, tuple):
        return tuple(_abs(v) for v in x)
    (x,) = _numbers(x)
    return abs(x)


def _sign(x: Value) -> int:
    (x,) = _numbers(x)
    return (x > 0) - (x < 0)


def _sqrt(x: Value) -> Value:
    (x,) = _numbers(x)
    if x < 0:
        raise EvaluationError(f"sqrt() of negative value {x}")
    # Keep perfect squares exact
    if isinstance(x, (int, Fraction)):
        x = Fraction(x)
        num, den = math.isqrt(x.numerator), math.isqrt(x.denominator)
        if num * num == x.numerator and den * den == x.denominator:
            return Fraction(num, den)
    return math.sqrt(x)


def _div(x: Value, y: Value) -> int:
    """Integer quotient truncated toward zero."""
    x, y = _numbers(x, y)
    if y == 0:
        raise EvaluationError("div() by zero")
    q = Fraction(x) / Fraction(y)
    return math.trunc(q)


def _mod(x: Value, y: Value) -> Value:
    """x - floor(x / y) * y"""
    x, y = _numbers(x, y)
    if y == 0:
        raise EvaluationError("mod() by zero")
    return x - math.floor(Fraction(x) / Fraction(y)) * y


def _rem(x: Value, y: Value) -> Value:
    """x - div(x, y) * y"""
    return x - _div(x, y) * y


def _integer(x: Value) -> int:
    (x,) = _numbers(x)
    return math.floor(x)


def _floor(x: Value) -> Fraction:
    (x,) = _numbers(x)
    return Fraction(math.floor(x))


def _ceil(x: Value) -> Fraction:
    (x,) = _numbers(x)
    return Fraction(math.ceil(x))


def _size(array: Value, dim: Value | None = None) -> Value:
    if not isinstance(array, tuple):
        raise EvaluationError(f"size() expects an array, got {array!r}")
    dims: list[int] = []
    current: Value = array
    while isinstance(current, tuple):
        dims.append(len(current))
        current = current[0] if current else None
    if dim is None:
        return tuple(dims)
    if not isinstance(dim, int) or not 1 <= dim <= len(dims):
        raise EvaluationError(f"size() dimension {dim!r} out of range")
    return dims[dim - 1]


def _fill(value: Value, *dims: Value) -> tuple:
    if not dims:
        raise EvaluationError("fill() needs at least one dimension")
    for d in dims:
        if not isinstance(d, int) or isinstance(d, bool) or d < 0:
            raise EvaluationError(f"fill() dimension must be a non-negative Integer, got {d!r}")
    result: Value = value
    for d in reversed(dims):
        result = tuple(result for _ in range(d))
    return result


def _zeros(*dims: Value) -> tuple:
    return _fill(0, *dims)


def _ones(*dims: Value) -> tuple:
    return _fill(1, *dims)


def _string(value: Value) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, EnumTag):
        return value.member
    return format_literal(value)


def _real_fn(fn):
    def wrapper(x: Value) -> float:
        (x,) = _numbers(x)
        return fn(float(x))

    wrapper.__name__ = fn.__name__
    return wrapper


BUILTIN_FUNCTIONS: dict[str, object] = {
    "abs": _abs,
    "sign": _sign,
    "sqrt": _sqrt,
    "min": _min,
    "max": _max,
    "sum": _sum,
    "product": _product,
    "size": _size,
    "fill": _fill,
    "zeros": _zeros,
    "ones": _ones,
    "integer": _integer,
    "floor": _floor,
    "ceil": _ceil,
    "div": _div,
    "mod": _mod,
    "rem": _rem,
    "exp": _real_fn(math.exp),
    "log": _real_fn(math.log),
    "log10": _real_fn(math.log10),
    "sin": _real_fn(math.sin),
    "cos": _real_fn(math.cos),
    "tan": _real_fn(math.tan),
    "String": _string,
}
