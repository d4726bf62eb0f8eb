"""Export document: the resolved, pruned control sequences.

Handed to a CDL document writer.  Every parameter of an exported instance
carries either a literal expression or a record field reference; nothing
else survives resolution.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, model_validator

from .expressions import Expression
from .instances import Connection, Endpoint


class Grouping(str, Enum):
    """How exported sequences are split into documents."""

    SEQUENCE = "sequence"
    PARAMETER_SET = "parameter_set"


class RecordFieldReference(BaseModel):
    """Symbolic pointer to a field of a separately exported record instance."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["record_field"] = "record_field"
    record: str
    field: str
    record_class: str = ""

    def qualified_name(self) -> str:
        return f"{self.record}.{self.field}" if self.record else self.field


class ExportedParameter(BaseModel):
    """A resolved parameter: exactly one of *value* / *reference* is set."""

    name: str
    value: Expression | None = None
    reference: RecordFieldReference | None = None

    @model_validator(mode="after")
    def _one_binding(self) -> Self:
        if (self.value is None) == (self.reference is None):
            raise ValueError(
                f"Parameter '{self.name}' must have exactly one of "
                f"'value' or 'reference'"
            )
        return self


class ExportedInstance(BaseModel):
    name: str
    path: str
    class_path: str
    annotations: list[str] = []
    parameters: list[ExportedParameter] = []
    children: list[ExportedInstance] = []
    parameter_set: str | None = None


class BoundaryPort(BaseModel):
    """A qualified endpoint whose link into the equipment model was dropped.

    *external* lists the equipment-side endpoints reached through the
    dropped link, including those behind an expandable connector.
    """

    name: str
    endpoint: Endpoint
    external: list[Endpoint] = []


class RecordExport(BaseModel):
    """A record instance referenced by at least one exported parameter."""

    path: str
    class_path: str


class ParameterSet(BaseModel):
    """Resolved parameters of one sequence, keyed independently of its path.

    Parameter names are relative to the sequence root (``sub.k``).
    """

    key: str
    class_path: str
    parameters: list[ExportedParameter] = []


class ExportModel(BaseModel):
    name: str
    class_path: str
    sequences: list[ExportedInstance] = []
    connections: list[Connection] = []
    boundary_ports: list[BoundaryPort] = []
    records: list[RecordExport] = []
    parameter_sets: list[ParameterSet] = []


class ExportDocument(BaseModel):
    """One output document under a given Grouping."""

    name: str
    class_path: str
    instances: list[str]
    structure: ExportedInstance
    parameter_sets: list[ParameterSet] = []


ExportedParameter.model_rebuild()
ExportedInstance.model_rebuild()
