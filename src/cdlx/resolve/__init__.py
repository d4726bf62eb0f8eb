"""cdlx resolution engine: classification, scope lookup, binding folding.

Entry points::

    from cdlx.resolve import BindingResolver, InstanceIndex

    resolver = BindingResolver(InstanceIndex(tree))
    resolver.resolve_binding("ctl", "VPriSysMax_flow")
"""

from ._binding import BindingResolver, ResolutionState
from ._classify import Classification, InstanceClassifier
from ._evaluator import ExpressionEvaluator, collect_references, evaluate, leaf_key
from ._scope import BoundParameter, BoundRecordField, ScopeResolver
from ._tree import InstanceIndex, join_path, parent_path
from ._values import EnumTag, Value, format_literal, parse_literal, to_expression

__all__ = [
    "BindingResolver",
    "BoundParameter",
    "BoundRecordField",
    "Classification",
    "EnumTag",
    "ExpressionEvaluator",
    "InstanceClassifier",
    "InstanceIndex",
    "ResolutionState",
    "ScopeResolver",
    "Value",
    "collect_references",
    "evaluate",
    "format_literal",
    "join_path",
    "leaf_key",
    "parent_path",
    "parse_literal",
    "to_expression",
]
