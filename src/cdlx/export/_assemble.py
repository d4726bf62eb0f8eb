"""Export assembler: composes the resolved, pruned export model."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from cdlx.config import ExportConfig, RecordClassPolicy
from cdlx.errors import (
    CdlExportError,
    ExportAbortedError,
    NonLiteralQualifiedParameterError,
    UnsupportedConstructError,
)
from cdlx.model.export import (
    BoundaryPort,
    ExportedInstance,
    ExportedParameter,
    ExportModel,
    RecordExport,
    RecordFieldReference,
)
from cdlx.model.expressions import LiteralExpr
from cdlx.model.instances import Connection
from cdlx.resolve import Classification, InstanceIndex, to_expression

from ._grouping import parameter_set_for

logger = logging.getLogger(__name__)


class ExportAssembler:
    """Builds the ``ExportModel`` from upstream results.

    Pure composition: it never resolves anything itself and refuses to
    produce a document when any qualified parameter is missing or failed.
    """

    def __init__(self, index: InstanceIndex, config: ExportConfig | None = None) -> None:
        self.index = index
        self.config = config or ExportConfig()

    def assemble(
        self,
        classifications: Mapping[str, Classification],
        resolved: Mapping[str, Mapping[str, object]],
        connections: Sequence[Connection],
        boundary_ports: Sequence[BoundaryPort],
        failures: Sequence[CdlExportError] = (),
    ) -> ExportModel:
        if failures:
            raise ExportAbortedError(list(failures))

        qualified = [
            path for path in self.index.paths()
            if classifications.get(path) == Classification.QUALIFIED
        ]
        exported: dict[str, ExportedInstance] = {}
        roots: list[ExportedInstance] = []
        records: dict[str, RecordExport] = {}

        for path in qualified:
            node = self.index.node(path)
            params = [
                self._parameter(path, p.name, resolved, records) for p in node.parameters
            ]
            inst = ExportedInstance(
                name=node.name,
                path=path,
                class_path=node.class_path,
                annotations=list(node.annotations),
                parameters=params,
            )
            exported[path] = inst
            parent = next(
                (a for a in self.index.ancestors(path) if a in exported), None,
            )
            if parent is None:
                roots.append(inst)
            else:
                exported[parent].children.append(inst)

        parameter_sets = {}
        for root in roots:
            ps = parameter_set_for(root)
            root.parameter_set = ps.key
            parameter_sets.setdefault(ps.key, ps)

        model = ExportModel(
            name=self.index.root.name,
            class_path=self.index.root.class_path,
            sequences=roots,
            connections=list(connections),
            boundary_ports=list(boundary_ports),
            records=sorted(records.values(), key=lambda r: r.path),
            parameter_sets=list(parameter_sets.values()),
        )
        logger.info(
            "Assembled '%s': %d sequences, %d instances, %d records",
            model.name, len(roots), len(exported), len(records),
        )
        return model

    def _parameter(
        self,
        path: str,
        name: str,
        resolved: Mapping[str, Mapping[str, object]],
        records: dict[str, RecordExport],
    ) -> ExportedParameter:
        values = resolved.get(path, {})
        if name not in values:
            raise NonLiteralQualifiedParameterError(path, name, "was not resolved")
        value = values[name]
        if isinstance(value, RecordFieldReference):
            ref = value.model_copy(update={"record_class": self.record_class(value.record_class)})
            records.setdefault(ref.record, RecordExport(path=ref.record, class_path=ref.record_class))
            return ExportedParameter(name=name, reference=ref)
        binding = self.index.node(path).parameter(name)
        if binding is not None and isinstance(binding.expression, LiteralExpr):
            # Literal bindings keep their source text
            return ExportedParameter(name=name, value=binding.expression.model_copy())
        try:
            return ExportedParameter(name=name, value=to_expression(value))
        except UnsupportedConstructError as exc:
            raise NonLiteralQualifiedParameterError(path, name, str(exc)) from exc

    def record_class(self, declared: str) -> str:
        """Class name written for a record under the configured policy."""
        if self.config.record_class_policy == RecordClassPolicy.PROJECT:
            return f"{self.config.project_package}.{declared.rpartition('.')[2]}"
        return declared
