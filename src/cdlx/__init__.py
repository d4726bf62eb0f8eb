"""cdlx: control-sequence export for equipment templates.

Resolves every parameter of the control instances of a flattened template
to a literal or a record field reference, and prunes the connection set to
the links a CDL document can hold::

    from cdlx import ExportConfig, export_template

    model = export_template(tree, ExportConfig(max_workers=4))
    print(model.model_dump_json(indent=2))
"""

from cdlx.config import ExportConfig, RecordClassPolicy
from cdlx.errors import (
    CdlExportError,
    EvaluationError,
    ExportAbortedError,
    NonLiteralQualifiedParameterError,
    PolicyViolationError,
    RecordFieldMismatchError,
    ResolutionCycleError,
    UnboundReferenceError,
    UnsupportedConstructError,
)
from cdlx.export import export_batch, export_template, group_documents, validate_export
from cdlx.flatten import Flattener

__all__ = [
    "CdlExportError",
    "EvaluationError",
    "ExportAbortedError",
    "ExportConfig",
    "Flattener",
    "NonLiteralQualifiedParameterError",
    "PolicyViolationError",
    "RecordClassPolicy",
    "RecordFieldMismatchError",
    "ResolutionCycleError",
    "UnboundReferenceError",
    "UnsupportedConstructError",
    "export_batch",
    "export_template",
    "group_documents",
    "validate_export",
]
