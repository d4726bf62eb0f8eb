"""Downstream policy checks on an assembled export.

The resolver folds every construct it supports; whether the target
language accepts what was *declared* (conditional bindings in particular)
is a policy question answered here.
"""

from __future__ import annotations

from cdlx.config import ExportConfig
from cdlx.errors import PolicyViolationError
from cdlx.model.export import ExportedInstance, ExportModel
from cdlx.model.expressions import ArrayExpr, Expression, LiteralExpr
from cdlx.model.instances import Instance
from cdlx.resolve import InstanceIndex
from cdlx.resolve._evaluator import contains_kind


def validate_export(
    model: ExportModel,
    tree: Instance,
    config: ExportConfig | None = None,
    *,
    strict: bool = True,
) -> list[str]:
    """Check *model* (exported from *tree*) against the target policy.

    Returns the list of violations; with *strict* a non-empty list raises
    ``PolicyViolationError`` instead.
    """
    config = config or ExportConfig()
    index = InstanceIndex(tree)
    violations: list[str] = []

    for seq in model.sequences:
        for inst in _walk(seq):
            node = index.get(inst.path)
            for param in inst.parameters:
                qualified = f"{inst.path}.{param.name}" if inst.path else param.name
                if param.value is not None and not _is_literal(param.value):
                    violations.append(f"{qualified}: exported value is not a literal")
                if not config.allow_conditionals and node is not None:
                    declared = node.parameter(param.name)
                    if declared is not None and declared.expression is not None \
                            and contains_kind(declared.expression, "if"):
                        violations.append(
                            f"{qualified}: conditional binding not allowed by target policy"
                        )

    if violations and strict:
        raise PolicyViolationError(
            f"{len(violations)} policy violation(s):\n"
            + "\n".join(f"  - {v}" for v in violations)
        )
    return violations


def _walk(node: ExportedInstance):
    yield node
    for child in node.children:
        yield from _walk(child)


def _is_literal(expr: Expression) -> bool:
    if isinstance(expr, LiteralExpr):
        return True
    if isinstance(expr, ArrayExpr):
        return all(_is_literal(e) for e in expr.elements)
    return False
