"""Flattened instance tree: the input handed over by the flattening pass.

A tree of ``Instance`` nodes, each owning its sub-instances, its parameter
bindings, and the connections declared inside it.  Paths are not stored on
the nodes; they follow from position in the tree (see
``cdlx.resolve._tree.InstanceIndex``).
"""

from __future__ import annotations

from enum import Enum
from typing import Self

from pydantic import BaseModel, model_validator

from .expressions import Expression


class InnerOuter(str, Enum):
    """Declaration prefix of a component."""

    INNER = "inner"
    OUTER = "outer"
    INNER_OUTER = "inner outer"


class ParameterBinding(BaseModel):
    """A parameter and the right-hand side it was declared with.

    *scope* is the path of the instance whose lexical scope *expression* is
    written in, for bindings propagated from an enclosing instance.  ``None``
    means the owning instance.  *expression* is ``None`` for a parameter
    declared without a binding.
    """

    name: str
    expression: Expression | None = None
    scope: str | None = None
    inner_outer: InnerOuter | None = None


class Endpoint(BaseModel):
    """One side of a connection: instance path + (possibly dotted) port."""

    instance: str = ""
    port: str

    def qualified_name(self) -> str:
        if self.instance:
            return f"{self.instance}.{self.port}"
        return self.port


class Connection(BaseModel):
    """A point-to-point ``connect(a, b)`` statement."""

    a: Endpoint
    b: Endpoint
    annotated: bool = False
    a_expandable: bool = False
    b_expandable: bool = False


class Instance(BaseModel):
    name: str
    class_path: str
    children: list[Instance] = []
    annotations: list[str] = []
    parameters: list[ParameterBinding] = []
    connections: list[Connection] = []
    inner_outer: InnerOuter | None = None
    is_record: bool = False

    @model_validator(mode="after")
    def _unique_names(self) -> Self:
        seen: set[str] = set()
        for name in [c.name for c in self.children] + [p.name for p in self.parameters]:
            if name in seen:
                raise ValueError(
                    f"Instance '{self.name}' declares '{name}' more than once"
                )
            seen.add(name)
        return self

    def child(self, name: str) -> Instance | None:
        for c in self.children:
            if c.name == name:
                return c
        return None

    def parameter(self, name: str) -> ParameterBinding | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None


Instance.model_rebuild()
