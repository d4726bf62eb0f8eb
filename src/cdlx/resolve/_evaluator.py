"""Expression evaluator: folds a binding expression into a single value.

The evaluator knows nothing about instances.  Every ``VariableRef`` leaf is
looked up in a *leaves* mapping keyed by ``leaf_key(ref)``; the binding
resolver supplies a lazy mapping so that only the leaves of branches
actually taken are ever resolved.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from fractions import Fraction

from pydantic import BaseModel

from cdlx.errors import (
    EvaluationError,
    NonLiteralQualifiedParameterError,
    RecordOperandError,
    UnsupportedConstructError,
)
from cdlx.model.export import RecordFieldReference
from cdlx.model.expressions import (
    ArrayAccessExpr,
    ArrayExpr,
    BinaryExpr,
    BinaryOp,
    Expression,
    ForExpr,
    FunctionCallExpr,
    IfExpr,
    LiteralExpr,
    RangeExpr,
    ScopeKind,
    UnaryExpr,
    UnaryOp,
    VariableRef,
)

from ._builtins import BUILTIN_FUNCTIONS
from ._values import EnumTag, Value, is_number, parse_literal, type_name

LeafKey = tuple[ScopeKind, str]


def leaf_key(ref: VariableRef) -> LeafKey:
    return (ref.scope, ref.name)


def collect_references(expr: Expression) -> list[VariableRef]:
    """Free variable references of *expr*, in source order, loop indices excluded."""
    found: list[VariableRef] = []

    def _walk(node: Expression, bound: frozenset[str]) -> None:
        if isinstance(node, VariableRef):
            if node.scope != ScopeKind.NONE or node.name not in bound:
                found.append(node)
        elif isinstance(node, ForExpr):
            _walk(node.iterable, bound)
            _walk(node.body, bound | {node.index})
        elif isinstance(node, BinaryExpr):
            _walk(node.left, bound)
            _walk(node.right, bound)
        elif isinstance(node, UnaryExpr):
            _walk(node.operand, bound)
        elif isinstance(node, IfExpr):
            for branch in node.branches:
                _walk(branch.condition, bound)
                _walk(branch.value, bound)
            _walk(node.else_value, bound)
        elif isinstance(node, ArrayExpr):
            for e in node.elements:
                _walk(e, bound)
        elif isinstance(node, RangeExpr):
            _walk(node.start, bound)
            _walk(node.stop, bound)
            if node.step is not None:
                _walk(node.step, bound)
        elif isinstance(node, ArrayAccessExpr):
            _walk(node.array, bound)
            for i in node.indices:
                _walk(i, bound)
        elif isinstance(node, FunctionCallExpr):
            for a in node.args:
                _walk(a, bound)

    _walk(expr, frozenset())
    return found


def contains_kind(expr: Expression, kind: str) -> bool:
    """Whether any node of *expr* has the given ``kind`` tag."""
    if getattr(expr, "kind", None) == kind:
        return True
    for field_name in type(expr).model_fields:
        child = getattr(expr, field_name)
        children = child if isinstance(child, list) else [child]
        for c in children:
            if isinstance(c, BaseModel) and contains_kind(c, kind):
                return True
    return False


def evaluate(expr: Expression, leaves: Mapping[LeafKey, object] | None = None) -> Value:
    """Evaluate *expr* with every variable reference taken from *leaves*."""
    return ExpressionEvaluator(leaves or {}).evaluate(expr)


_ARITHMETIC_OPS = frozenset({BinaryOp.ADD, BinaryOp.SUB, BinaryOp.MUL, BinaryOp.DIV, BinaryOp.EXPT})
_ORDERING_OPS = frozenset({BinaryOp.LT, BinaryOp.LE, BinaryOp.GT, BinaryOp.GE})


class ExpressionEvaluator:
    """Tree-walking evaluator over the supported expression subset.

    Parameters
    ----------
    leaves : Mapping[LeafKey, object]
        Resolved value of each variable reference.  A value that is a
        ``RecordFieldReference`` cannot be folded and is rejected.
    """

    def __init__(self, leaves: Mapping[LeafKey, object]) -> None:
        self.leaves = leaves
        # Innermost loop scope last
        self._loop_scopes: list[dict[str, Value]] = []

    def evaluate(self, expr: Expression) -> Value:
        return self._eval(expr)

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------

    def _eval(self, expr: Expression) -> Value:
        handler = self._EXPR_DISPATCH.get(getattr(expr, "kind", None))
        if handler is None:
            raise UnsupportedConstructError(
                f"Unsupported expression kind: {getattr(expr, 'kind', type(expr).__name__)}"
            )
        return handler(self, expr)

    def _eval_literal(self, expr: LiteralExpr) -> Value:
        return parse_literal(expr.value)

    def _eval_variable_ref(self, expr: VariableRef) -> Value:
        if expr.scope == ScopeKind.NONE:
            for scope in reversed(self._loop_scopes):
                if expr.name in scope:
                    return scope[expr.name]
        try:
            value = self.leaves[leaf_key(expr)]
        except KeyError:
            raise EvaluationError(f"No value supplied for reference '{expr.name}'") from None
        if isinstance(value, RecordFieldReference):
            raise RecordOperandError(expr.name, value.qualified_name())
        return value

    def _eval_unary(self, expr: UnaryExpr) -> Value:
        operand = self._eval(expr.operand)
        if expr.op == UnaryOp.NEG:
            return _elementwise(lambda v: -_require_number(v, "-"), operand)
        if expr.op == UnaryOp.NOT:
            return not _require_bool(operand, "not")
        raise UnsupportedConstructError(f"Unsupported unary op: {expr.op}")

    def _eval_binary(self, expr: BinaryExpr) -> Value:
        op = expr.op
        # Right operand is not evaluated when the left one decides the result
        if op == BinaryOp.AND:
            if not _require_bool(self._eval(expr.left), "and"):
                return False
            return _require_bool(self._eval(expr.right), "and")
        if op == BinaryOp.OR:
            if _require_bool(self._eval(expr.left), "or"):
                return True
            return _require_bool(self._eval(expr.right), "or")

        left = self._eval(expr.left)
        right = self._eval(expr.right)
        if op in _ARITHMETIC_OPS:
            return _arithmetic(op, left, right)
        return _compare(op, left, right)

    def _eval_if(self, expr: IfExpr) -> Value:
        for branch in expr.branches:
            if _require_bool(self._eval(branch.condition), "if"):
                return self._eval(branch.value)
        return self._eval(expr.else_value)

    def _eval_array(self, expr: ArrayExpr) -> Value:
        return tuple(self._eval(e) for e in expr.elements)

    def _eval_range(self, expr: RangeExpr) -> Value:
        start = _require_number(self._eval(expr.start), "range")
        stop = _require_number(self._eval(expr.stop), "range")
        step = _require_number(self._eval(expr.step), "range") if expr.step is not None else 1
        if step == 0:
            raise EvaluationError("Range step cannot be zero")
        count = math.floor(Fraction(stop - start) / Fraction(step)) + 1
        return tuple(start + i * step for i in range(max(count, 0)))

    def _eval_for(self, expr: ForExpr) -> Value:
        iterable = self._eval(expr.iterable)
        if not isinstance(iterable, tuple):
            raise EvaluationError(
                f"For-loop over '{expr.index}' needs an array, got {type_name(iterable)}"
            )
        result = []
        scope: dict[str, Value] = {}
        self._loop_scopes.append(scope)
        try:
            for item in iterable:
                scope[expr.index] = item
                result.append(self._eval(expr.body))
        finally:
            self._loop_scopes.pop()
        return tuple(result)

    def _eval_array_access(self, expr: ArrayAccessExpr) -> Value:
        result = self._eval(expr.array)
        for idx_expr in expr.indices:
            idx = self._eval(idx_expr)
            if not isinstance(result, tuple):
                raise EvaluationError("Too many indices for array dimensions")
            if isinstance(idx, Fraction) and idx.denominator == 1:
                idx = idx.numerator
            if not isinstance(idx, int) or isinstance(idx, bool):
                raise EvaluationError(f"Array index must be an Integer, got {idx!r}")
            if idx < 1 or idx > len(result):
                raise EvaluationError(
                    f"Array index {idx} out of bounds (1..{len(result)})"
                )
            result = result[idx - 1]
        return result

    def _eval_function_call(self, expr: FunctionCallExpr) -> Value:
        fn = BUILTIN_FUNCTIONS.get(expr.function_name)
        if fn is None:
            raise UnsupportedConstructError(f"Unsupported function: {expr.function_name}")
        try:
            args = [self._eval(a) for a in expr.args]
        except NonLiteralQualifiedParameterError as exc:
            raise UnsupportedConstructError(
                f"Function '{expr.function_name}' called with a non-literal argument: {exc.reason}"
            ) from exc
        try:
            return fn(*args)
        except (TypeError, ValueError, ZeroDivisionError, OverflowError) as exc:
            raise EvaluationError(
                f"Cannot evaluate {expr.function_name}(): {exc}"
            ) from exc

    # Expression dispatch table
    _EXPR_DISPATCH: dict[str, Callable[[ExpressionEvaluator, Expression], Value]] = {
        "literal": _eval_literal,
        "variable_ref": _eval_variable_ref,
        "unary": _eval_unary,
        "binary": _eval_binary,
        "if": _eval_if,
        "array": _eval_array,
        "range": _eval_range,
        "for": _eval_for,
        "array_access": _eval_array_access,
        "function_call": _eval_function_call,
    }


# ---------------------------------------------------------------------------
# Operator helpers
# ---------------------------------------------------------------------------

def _require_bool(value: Value, context: str) -> bool:
    if not isinstance(value, bool):
        raise EvaluationError(f"'{context}' expects a Boolean, got {type_name(value)}")
    return value


def _require_number(value: Value, context: str) -> Value:
    if not is_number(value):
        raise EvaluationError(f"'{context}' expects a number, got {type_name(value)}")
    return value


def _elementwise(fn: Callable[[Value], Value], value: Value) -> Value:
    if isinstance(value, tuple):
        return tuple(_elementwise(fn, v) for v in value)
    return fn(value)


def _arithmetic(op: BinaryOp, left: Value, right: Value) -> Value:
    left_array, right_array = isinstance(left, tuple), isinstance(right, tuple)

    if left_array and right_array:
        if op not in (BinaryOp.ADD, BinaryOp.SUB):
            raise UnsupportedConstructError(f"Array-by-array {op.value} is not supported")
        if len(left) != len(right):
            raise EvaluationError(
                f"Array sizes differ for {op.value}: {len(left)} vs {len(right)}"
            )
        return tuple(_arithmetic(op, a, b) for a, b in zip(left, right))
    if left_array:
        if op == BinaryOp.EXPT or (op in (BinaryOp.ADD, BinaryOp.SUB)):
            raise EvaluationError(f"Array-by-scalar {op.value} is not supported")
        return tuple(_arithmetic(op, a, right) for a in left)
    if right_array:
        if op != BinaryOp.MUL:
            raise EvaluationError(f"Scalar-by-array {op.value} is not supported")
        return tuple(_arithmetic(op, left, b) for b in right)

    if op == BinaryOp.ADD and isinstance(left, str) and isinstance(right, str):
        return left + right

    _require_number(left, op.value)
    _require_number(right, op.value)

    if op == BinaryOp.ADD:
        return left + right
    if op == BinaryOp.SUB:
        return left - right
    if op == BinaryOp.MUL:
        return left * right
    if op == BinaryOp.DIV:
        if right == 0:
            raise EvaluationError("Division by zero")
        if isinstance(left, float) or isinstance(right, float):
            return left / right
        # Real division, exact
        return Fraction(left) / Fraction(right)
    if op == BinaryOp.EXPT:
        return _power(left, right)
    raise UnsupportedConstructError(f"Unsupported binary op: {op}")


def _power(base: Value, exponent: Value) -> Value:
    if isinstance(exponent, Fraction) and exponent.denominator == 1:
        exponent = exponent.numerator
    if isinstance(exponent, int) and not isinstance(base, float):
        if base == 0 and exponent < 0:
            raise EvaluationError("Zero raised to a negative power")
        if isinstance(base, int) and exponent >= 0:
            return base ** exponent
        return Fraction(base) ** exponent
    try:
        result = float(base) ** float(exponent)
    except (OverflowError, ZeroDivisionError) as exc:
        raise EvaluationError(f"Cannot evaluate {base} ^ {exponent}: {exc}") from exc
    if isinstance(result, complex):
        raise EvaluationError(f"{base} ^ {exponent} is not a real number")
    return result


def _compare(op: BinaryOp, left: Value, right: Value) -> bool:
    if is_number(left) and is_number(right):
        pass
    elif isinstance(left, str) and isinstance(right, str):
        pass
    elif isinstance(left, bool) and isinstance(right, bool):
        pass
    elif isinstance(left, EnumTag) and isinstance(right, EnumTag):
        if op in _ORDERING_OPS:
            raise UnsupportedConstructError("Enumerations only support '==' and '<>'")
    else:
        raise EvaluationError(
            f"Cannot compare {type_name(left)} with {type_name(right)}"
        )

    if op == BinaryOp.EQ:
        return left == right
    if op == BinaryOp.NE:
        return left != right
    if op == BinaryOp.GT:
        return left > right
    if op == BinaryOp.GE:
        return left >= right
    if op == BinaryOp.LT:
        return left < right
    if op == BinaryOp.LE:
        return left <= right
    raise UnsupportedConstructError(f"Unsupported binary op: {op}")
