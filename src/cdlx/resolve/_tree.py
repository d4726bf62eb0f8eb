"""Path index over a flattened instance tree.

The IR nodes carry only local names; the index assigns every node its
dotted path (the root is ``""``) and records the parent chain used by
outward lookups.
"""

from __future__ import annotations

from collections.abc import Iterator

from cdlx.model.instances import Instance


def join_path(prefix: str, name: str) -> str:
    return f"{prefix}.{name}" if prefix else name


def parent_path(path: str) -> str | None:
    """Path of the enclosing instance, or None for the root."""
    if not path:
        return None
    head, _, _ = path.rpartition(".")
    return head


class InstanceIndex:
    """Path -> Instance map in declaration (pre-)order."""

    def __init__(self, root: Instance) -> None:
        self.root = root
        self._nodes: dict[str, Instance] = {}
        self._add(root, "")

    def _add(self, node: Instance, path: str) -> None:
        self._nodes[path] = node
        for child in node.children:
            self._add(child, join_path(path, child.name))

    def __contains__(self, path: str) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, path: str) -> Instance | None:
        return self._nodes.get(path)

    def node(self, path: str) -> Instance:
        try:
            return self._nodes[path]
        except KeyError:
            raise KeyError(f"No instance at path '{path}'") from None

    def paths(self) -> Iterator[str]:
        """All paths in declaration order, root first."""
        return iter(self._nodes)

    def items(self) -> Iterator[tuple[str, Instance]]:
        return iter(self._nodes.items())

    def ancestors(self, path: str) -> Iterator[str]:
        """Enclosing instance paths, nearest first, ending at the root."""
        current = parent_path(path)
        while current is not None:
            yield current
            current = parent_path(current)
