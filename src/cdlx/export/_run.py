"""One export run: classify, resolve, prune, assemble."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from cdlx.config import ExportConfig
from cdlx.errors import CdlExportError
from cdlx.flatten import resolve_tree
from cdlx.model.export import ExportModel
from cdlx.resolve import BindingResolver, Classification, InstanceClassifier, InstanceIndex

from ._assemble import ExportAssembler
from ._prune import ConnectionPruner, ExpandableSignals, collect_connections

logger = logging.getLogger(__name__)

_Unit = list[str]
_UnitResult = tuple[dict[str, dict[str, object]], list[CdlExportError]]


def export_template(target: Any, config: ExportConfig | None = None) -> ExportModel:
    """Export the control sequences of one equipment template.

    Parameters
    ----------
    target
        A flattened ``Instance`` tree or a ``Flattener``.
    config
        Export configuration; defaults apply when omitted.

    Raises
    ------
    ExportAbortedError
        If any parameter of a qualified instance fails to resolve.  No
        partial model is ever returned.
    """
    config = config or ExportConfig()
    tree = resolve_tree(target)
    index = InstanceIndex(tree)

    classifier = InstanceClassifier(config.qualified_prefixes, config.marker_prefix)
    classifications = classifier.classify_tree(index)

    resolver = BindingResolver(index)
    units = _sequence_units(index, classifications)
    logger.info(
        "Exporting '%s': %d instances, %d top-level sequences",
        tree.name, len(index), len(units),
    )

    if config.max_workers > 1 and len(units) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            results = list(pool.map(lambda u: _resolve_unit(resolver, index, u), units))
    else:
        results = [_resolve_unit(resolver, index, u) for u in units]

    resolved: dict[str, dict[str, object]] = {}
    failures: list[CdlExportError] = []
    for values, errors in results:
        resolved.update(values)
        failures.extend(e for e in errors if e not in failures)

    connections = collect_connections(index)
    pruner = ConnectionPruner(index, ExpandableSignals(connections))
    retained, boundary_ports = pruner.prune(connections, classifications)

    assembler = ExportAssembler(index, config)
    return assembler.assemble(classifications, resolved, retained, boundary_ports, failures)


def _sequence_units(
    index: InstanceIndex, classifications: dict[str, Classification],
) -> list[_Unit]:
    """Qualified paths grouped under their top-most qualified ancestor."""
    units: dict[str, _Unit] = {}
    for path in index.paths():
        if classifications[path] != Classification.QUALIFIED:
            continue
        top = path
        for ancestor in index.ancestors(path):
            if classifications[ancestor] == Classification.QUALIFIED:
                top = ancestor
        units.setdefault(top, []).append(path)
    return list(units.values())


def _resolve_unit(resolver: BindingResolver, index: InstanceIndex, unit: _Unit) -> _UnitResult:
    values: dict[str, dict[str, object]] = {}
    errors: list[CdlExportError] = []
    for path in unit:
        params: dict[str, object] = {}
        for p in index.node(path).parameters:
            try:
                params[p.name] = resolver.resolve_binding(path, p.name)
            except CdlExportError as exc:
                logger.debug("Failed to resolve %s.%s: %s", path, p.name, exc)
                if exc not in errors:
                    errors.append(exc)
        values[path] = params
    return values, errors
