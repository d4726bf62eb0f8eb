"""Parameter-set keying and document grouping.

A parameter set is the resolved parameters of one exported sequence,
named relative to the sequence root, so two instances of the same
sequence with the same values share one key regardless of where they sit
in the template.  Either grouping can then be built from an
``ExportModel`` without resolving anything again.
"""

from __future__ import annotations

import hashlib
import json

from cdlx.config import ExportConfig
from cdlx.model.export import (
    ExportDocument,
    ExportedInstance,
    ExportedParameter,
    ExportModel,
    Grouping,
    ParameterSet,
)

_KEY_LENGTH = 16


def parameter_set_for(sequence: ExportedInstance) -> ParameterSet:
    """Relative-named parameters of *sequence* and its exported descendants."""
    params: list[ExportedParameter] = []
    _collect(sequence, "", params)
    payload = json.dumps(
        {
            "class_path": sequence.class_path,
            "parameters": [p.model_dump(mode="json") for p in params],
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    key = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:_KEY_LENGTH]
    return ParameterSet(key=key, class_path=sequence.class_path, parameters=params)


def _collect(node: ExportedInstance, prefix: str, out: list[ExportedParameter]) -> None:
    for p in node.parameters:
        out.append(p.model_copy(update={"name": f"{prefix}{p.name}"}))
    for child in node.children:
        _collect(child, f"{prefix}{child.name}.", out)


def strip_parameters(node: ExportedInstance) -> ExportedInstance:
    """Copy of *node* with every parameter list emptied (structure only)."""
    return node.model_copy(update={
        "parameters": [],
        "parameter_set": None,
        "children": [strip_parameters(c) for c in node.children],
    })


def group_documents(
    model: ExportModel,
    grouping: Grouping | None = None,
    *,
    config: ExportConfig | None = None,
) -> list[ExportDocument]:
    """Split *model* into documents.

    *grouping* defaults to the one configured in *config*.

    ``SEQUENCE``: one document per sequence class, holding the structure
    once and every parameter set used by its instances.
    ``PARAMETER_SET``: one document per (sequence class, parameter set).
    """
    if grouping is None:
        grouping = (config or ExportConfig()).grouping
    sets = {ps.key: ps for ps in model.parameter_sets}
    groups: dict[tuple[str, ...], list[ExportedInstance]] = {}
    for seq in model.sequences:
        if grouping == Grouping.SEQUENCE:
            group_key: tuple[str, ...] = (seq.class_path,)
        else:
            group_key = (seq.class_path, seq.parameter_set or "")
        groups.setdefault(group_key, []).append(seq)

    documents: list[ExportDocument] = []
    for group_key, members in groups.items():
        first = members[0]
        keys = list(dict.fromkeys(m.parameter_set for m in members if m.parameter_set))
        name = first.class_path.rpartition(".")[2]
        if grouping == Grouping.PARAMETER_SET and first.parameter_set:
            name = f"{name}_{first.parameter_set}"
        documents.append(ExportDocument(
            name=name,
            class_path=first.class_path,
            instances=[m.path for m in members],
            structure=strip_parameters(first),
            parameter_sets=[sets[k] for k in keys if k in sets],
        ))
    return documents
