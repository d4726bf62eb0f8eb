"""Protocol for the upstream flattening pass.

The resolver only ever reads a fully flattened instance tree.  Front-ends
that still hold inheritance, extension or redeclaration chains hand over an
object satisfying ``Flattener``; export calls it once before resolution.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from cdlx.model.instances import Instance


@runtime_checkable
class Flattener(Protocol):
    """Anything that can produce one concrete instance tree."""

    def flatten(self) -> Instance: ...


def resolve_tree(target: Any) -> Instance:
    """Resolve an export target to a flattened ``Instance`` tree."""
    if isinstance(target, Instance):
        return target
    if isinstance(target, Flattener):
        tree = target.flatten()
        if not isinstance(tree, Instance):
            raise TypeError(
                f"{type(target).__name__}.flatten() must return an Instance, "
                f"got {type(tree).__name__}"
            )
        return tree
    raise TypeError(
        f"export expects an Instance tree or a Flattener, got {type(target).__name__}"
    )
