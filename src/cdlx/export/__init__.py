"""cdlx export: CDL export of equipment templates.

Public API::

    from cdlx.export import export_template
    model = export_template(tree)
"""

from ._assemble import ExportAssembler
from ._batch import BatchResult, export_batch
from ._grouping import group_documents, parameter_set_for
from ._prune import ConnectionPruner, ExpandableSignals, collect_connections
from ._run import export_template
from ._validate import validate_export

__all__ = [
    "BatchResult",
    "ConnectionPruner",
    "ExpandableSignals",
    "ExportAssembler",
    "collect_connections",
    "export_batch",
    "export_template",
    "group_documents",
    "parameter_set_for",
    "validate_export",
]
