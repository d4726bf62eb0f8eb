"""Scope resolver: maps a reference to the declaration it denotes.

Lookup is lexical over the instance tree.  Every call names its
originating instance explicitly; ``outer`` declarations are redirected by
walking the ancestor chain of the declaring instance to the nearest
``inner`` counterpart.
"""

from __future__ import annotations

from dataclasses import dataclass

from cdlx.errors import RecordFieldMismatchError, UnboundReferenceError
from cdlx.model.expressions import ScopeKind, VariableRef
from cdlx.model.instances import InnerOuter, Instance

from ._tree import InstanceIndex, join_path

_INNER = (InnerOuter.INNER, InnerOuter.INNER_OUTER)


@dataclass(frozen=True)
class BoundParameter:
    """A parameter binding: owning instance path + parameter name."""

    path: str
    name: str


@dataclass(frozen=True)
class BoundRecordField:
    """A field of a record instance; its value is never read."""

    record: str
    field: str
    record_class: str


Binding = BoundParameter | BoundRecordField


class ScopeResolver:
    def __init__(self, index: InstanceIndex) -> None:
        self.index = index

    def resolve(self, ref: VariableRef, origin: str) -> Binding:
        """Resolve *ref* as written in the scope of instance *origin*.

        Raises ``UnboundReferenceError`` when no declaration is found and
        ``RecordFieldMismatchError`` when the path enters a record instance
        that lacks the named field.
        """
        segments = ref.name.split(".")
        if not all(segments):
            raise UnboundReferenceError(ref.name, origin, "malformed reference")
        if origin not in self.index:
            raise UnboundReferenceError(ref.name, origin, "scope does not exist")

        if ref.scope == ScopeKind.OUTER:
            return self._resolve_outer(ref, segments, origin)
        # Inner references see the local declaration even when it is also
        # declared outer.
        redirect = ref.scope != ScopeKind.INNER
        return self._walk(ref, segments, origin, redirect_first=redirect)

    # -----------------------------------------------------------------------
    # Lookup steps
    # -----------------------------------------------------------------------

    def _resolve_outer(self, ref: VariableRef, segments: list[str], origin: str) -> Binding:
        kind, path = self._find_inner(ref, segments[0], origin)
        if kind == "parameter":
            if len(segments) > 1:
                raise UnboundReferenceError(
                    ref.name, origin, f"'{segments[0]}' is a parameter, not an instance",
                )
            return BoundParameter(path, segments[0])
        if len(segments) == 1:
            raise UnboundReferenceError(
                ref.name, origin, "names an instance, not a parameter",
            )
        return self._descend(ref, segments, 1, path, origin)

    def _walk(
        self, ref: VariableRef, segments: list[str], origin: str, *, redirect_first: bool,
    ) -> Binding:
        node = self.index.node(origin)
        first = segments[0]

        if len(segments) == 1:
            param = node.parameter(first)
            if param is None:
                detail = "names an instance, not a parameter" if node.child(first) else ""
                raise UnboundReferenceError(ref.name, origin, detail)
            if redirect_first and param.inner_outer == InnerOuter.OUTER:
                kind, path = self._find_inner(ref, first, origin)
                if kind != "parameter":
                    raise UnboundReferenceError(
                        ref.name, origin, "inner declaration is not a parameter",
                    )
                return BoundParameter(path, first)
            return BoundParameter(origin, first)

        child = node.child(first)
        if child is None:
            raise UnboundReferenceError(ref.name, origin)
        child_path = join_path(origin, first)
        if redirect_first and child.inner_outer == InnerOuter.OUTER:
            child_path = self._inner_instance(ref, first, origin)
        return self._descend(ref, segments, 1, child_path, origin)

    def _descend(
        self, ref: VariableRef, segments: list[str], pos: int, path: str, origin: str,
    ) -> Binding:
        """Continue the lookup of ``segments[pos:]`` inside instance *path*."""
        node = self.index.node(path)
        while True:
            if node.is_record:
                return self._record_field(path, node, segments[pos:])
            if pos == len(segments) - 1:
                break
            seg = segments[pos]
            child = node.child(seg)
            if child is None:
                raise UnboundReferenceError(
                    ref.name, origin, f"'{path}' has no component '{seg}'",
                )
            child_path = join_path(path, seg)
            if child.inner_outer == InnerOuter.OUTER:
                child_path = self._inner_instance(ref, seg, path)
            path, node, pos = child_path, self.index.node(child_path), pos + 1

        last = segments[-1]
        param = node.parameter(last)
        if param is None:
            raise UnboundReferenceError(
                ref.name, origin, f"'{path or '<root>'}' has no parameter '{last}'",
            )
        if param.inner_outer == InnerOuter.OUTER:
            kind, inner_path = self._find_inner(ref, last, path)
            if kind == "parameter":
                return BoundParameter(inner_path, last)
        return BoundParameter(path, last)

    def _record_field(self, record_path: str, record: Instance, fields: list[str]) -> BoundRecordField:
        field = ".".join(fields)
        node = record
        for seg in fields[:-1]:
            child = node.child(seg)
            if child is None or not child.is_record:
                raise RecordFieldMismatchError(record_path, field)
            node = child
        if not fields or node.parameter(fields[-1]) is None:
            raise RecordFieldMismatchError(record_path, field)
        return BoundRecordField(record_path, field, record.class_path)

    # -----------------------------------------------------------------------
    # inner / outer
    # -----------------------------------------------------------------------

    def _find_inner(self, ref: VariableRef, name: str, declaring: str) -> tuple[str, str]:
        """Nearest ancestor of *declaring* with an ``inner`` element *name*.

        Returns ``("instance", path)`` or ``("parameter", owner path)``.
        """
        for ancestor in self.index.ancestors(declaring):
            node = self.index.node(ancestor)
            child = node.child(name)
            if child is not None and child.inner_outer in _INNER:
                return "instance", join_path(ancestor, name)
            param = node.parameter(name)
            if param is not None and param.inner_outer in _INNER:
                return "parameter", ancestor
        raise UnboundReferenceError(
            ref.name, declaring, f"no inner declaration of '{name}' in enclosing scopes",
        )

    def _inner_instance(self, ref: VariableRef, name: str, declaring: str) -> str:
        kind, path = self._find_inner(ref, name, declaring)
        if kind != "instance":
            raise UnboundReferenceError(
                ref.name, declaring, f"inner declaration of '{name}' is not an instance",
            )
        return path
