"""Binding resolver: folds one parameter binding to a literal or a record reference.

Three cases, in order:

1. The binding is a literal: returned as parsed.
2. The binding is a single reference to a record field: returned as a
   ``RecordFieldReference``, the record's value is never read.  A single
   reference to another parameter yields whatever that parameter yields.
3. Anything else is folded by the expression evaluator, each reference
   resolved recursively (possibly through the non-exported model) when the
   evaluator first needs it.

Results, failures included, are memoized per ``(instance path, parameter)``
for the lifetime of the resolver, i.e. one export run.  The chain of
bindings currently being resolved is passed down explicitly, so a binding
that depends on itself is reported with its full chain instead of
recursing without bound.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from enum import Enum

from cdlx.errors import (
    NonLiteralQualifiedParameterError,
    RecordOperandError,
    ResolutionCycleError,
    UnboundReferenceError,
)
from cdlx.model.export import RecordFieldReference
from cdlx.model.expressions import Expression, LiteralExpr, VariableRef

from ._evaluator import ExpressionEvaluator, LeafKey, collect_references, leaf_key
from ._scope import Binding, BoundRecordField, ScopeResolver
from ._tree import InstanceIndex
from ._values import Value, parse_literal

logger = logging.getLogger(__name__)

Key = tuple[str, str]
Resolved = Value | RecordFieldReference


class ResolutionState(str, Enum):
    UNRESOLVED = "unresolved"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    FAILED = "failed"


class _Entry:
    """Memo slot for one binding; computed at most once, by its owner thread."""

    __slots__ = ("state", "value", "error", "owner", "done")

    def __init__(self, owner: int) -> None:
        self.state = ResolutionState.IN_PROGRESS
        self.value: Resolved | None = None
        self.error: Exception | None = None
        self.owner = owner
        self.done = threading.Event()

    def result(self) -> Resolved:
        if self.error is not None:
            raise self.error
        return self.value


class BindingResolver:
    """Resolves parameter bindings of one instance tree.

    Parameters
    ----------
    index : InstanceIndex
        Path index over the flattened tree.
    scopes : ScopeResolver | None
        Reference lookup; built from *index* when omitted.
    """

    def __init__(self, index: InstanceIndex, scopes: ScopeResolver | None = None) -> None:
        self.index = index
        self.scopes = scopes or ScopeResolver(index)
        self._entries: dict[Key, _Entry] = {}
        self._lock = threading.Lock()
        # thread ident -> key it is blocked on
        self._waiting: dict[int, Key] = {}

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def resolve_binding(self, path: str, parameter: str) -> Resolved:
        """Resolve parameter *parameter* of the instance at *path*."""
        return self._resolve(path, parameter, ())

    def resolve_instance(self, path: str) -> dict[str, Resolved]:
        """Resolve every parameter of one instance, in declaration order."""
        node = self.index.node(path)
        return {p.name: self.resolve_binding(path, p.name) for p in node.parameters}

    def state(self, path: str, parameter: str) -> ResolutionState:
        with self._lock:
            entry = self._entries.get((path, parameter))
        return entry.state if entry is not None else ResolutionState.UNRESOLVED

    # -----------------------------------------------------------------------
    # Memoized recursion
    # -----------------------------------------------------------------------

    def _resolve(self, path: str, parameter: str, chain: tuple[Key, ...]) -> Resolved:
        key = (path, parameter)
        if key in chain:
            raise ResolutionCycleError(list(chain[chain.index(key):]) + [key])

        me = threading.get_ident()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _Entry(owner=me)
                self._entries[key] = entry
                owned = True
            else:
                owned = False
                if entry.state == ResolutionState.IN_PROGRESS:
                    if entry.owner == me:
                        raise ResolutionCycleError(list(chain) + [key])
                    self._check_wait(key, me, chain)
                    self._waiting[me] = key

        if not owned:
            entry.done.wait()
            with self._lock:
                self._waiting.pop(me, None)
            return entry.result()

        try:
            value = self._compute(path, parameter, chain + (key,))
        except Exception as exc:
            with self._lock:
                entry.error = exc
                entry.state = ResolutionState.FAILED
            raise
        else:
            with self._lock:
                entry.value = value
                entry.state = ResolutionState.RESOLVED
            return value
        finally:
            entry.done.set()

    def _check_wait(self, key: Key, me: int, chain: tuple[Key, ...]) -> None:
        """Refuse to block on *key* if its owner is (transitively) blocked on us.

        Called with the lock held.
        """
        owner = self._entries[key].owner
        seen: set[int] = set()
        while owner not in seen:
            if owner == me:
                raise ResolutionCycleError(list(chain) + [key])
            seen.add(owner)
            blocked_on = self._waiting.get(owner)
            if blocked_on is None:
                return
            owner = self._entries[blocked_on].owner

    # -----------------------------------------------------------------------
    # Cases
    # -----------------------------------------------------------------------

    def _compute(self, path: str, parameter: str, chain: tuple[Key, ...]) -> Resolved:
        node = self.index.node(path)
        binding = node.parameter(parameter)
        if binding is None:
            raise UnboundReferenceError(parameter, path, "no such parameter")
        expr = binding.expression
        if expr is None:
            raise NonLiteralQualifiedParameterError(path, parameter, "parameter has no binding")
        scope = binding.scope if binding.scope is not None else path

        # Case 1: literal
        if isinstance(expr, LiteralExpr):
            value = parse_literal(expr.value)
            logger.debug("%s: literal %r", _show(path, parameter), value)
            return value

        # Case 2: lone reference, record field or propagated parameter
        if isinstance(expr, VariableRef):
            target = self.scopes.resolve(expr, scope)
            if isinstance(target, BoundRecordField):
                ref = RecordFieldReference(
                    record=target.record, field=target.field, record_class=target.record_class,
                )
                logger.debug("%s: record field %s", _show(path, parameter), ref.qualified_name())
                return ref
            return self._resolve(target.path, target.name, chain)

        # Case 3: general expression
        leaves = _LazyLeaves(self, expr, scope, chain)
        try:
            value = ExpressionEvaluator(leaves).evaluate(expr)
        except RecordOperandError as exc:
            raise NonLiteralQualifiedParameterError(path, parameter, exc.reason) from exc
        logger.debug("%s: folded to %r", _show(path, parameter), value)
        return value

    def _bind(self, ref: VariableRef, scope: str) -> Binding:
        return self.scopes.resolve(ref, scope)


class _LazyLeaves(Mapping[LeafKey, Resolved]):
    """Leaf values of one expression, resolved on first access."""

    def __init__(
        self, resolver: BindingResolver, expr: Expression, scope: str, chain: tuple[Key, ...],
    ) -> None:
        self._resolver = resolver
        self._scope = scope
        self._chain = chain
        self._keys = list(dict.fromkeys(leaf_key(r) for r in collect_references(expr)))
        self._cache: dict[LeafKey, Resolved] = {}

    def __getitem__(self, key: LeafKey) -> Resolved:
        if key in self._cache:
            return self._cache[key]
        if key not in self._keys:
            raise KeyError(key)
        scope_kind, name = key
        target = self._resolver._bind(VariableRef(name=name, scope=scope_kind), self._scope)
        if isinstance(target, BoundRecordField):
            value: Resolved = RecordFieldReference(
                record=target.record, field=target.field, record_class=target.record_class,
            )
        else:
            value = self._resolver._resolve(target.path, target.name, self._chain)
        self._cache[key] = value
        return value

    def __iter__(self) -> Iterator[LeafKey]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)


def _show(path: str, parameter: str) -> str:
    return f"{path}.{parameter}" if path else parameter
