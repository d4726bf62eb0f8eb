"""Pydantic IR for the instance tree and the export document."""

from .export import (
    BoundaryPort,
    ExportDocument,
    ExportedInstance,
    ExportedParameter,
    ExportModel,
    Grouping,
    ParameterSet,
    RecordExport,
    RecordFieldReference,
)
from .expressions import (
    ArrayAccessExpr,
    ArrayExpr,
    BinaryExpr,
    BinaryOp,
    Expression,
    ForExpr,
    FunctionCallExpr,
    IfBranch,
    IfExpr,
    LiteralExpr,
    RangeExpr,
    ScopeKind,
    UnaryExpr,
    UnaryOp,
    VariableRef,
)
from .instances import Connection, Endpoint, InnerOuter, Instance, ParameterBinding

__all__ = [
    "ArrayAccessExpr",
    "ArrayExpr",
    "BinaryExpr",
    "BinaryOp",
    "BoundaryPort",
    "Connection",
    "Endpoint",
    "ExportDocument",
    "ExportedInstance",
    "ExportedParameter",
    "ExportModel",
    "Expression",
    "ForExpr",
    "FunctionCallExpr",
    "Grouping",
    "IfBranch",
    "IfExpr",
    "InnerOuter",
    "Instance",
    "LiteralExpr",
    "ParameterBinding",
    "ParameterSet",
    "RangeExpr",
    "RecordExport",
    "RecordFieldReference",
    "ScopeKind",
    "UnaryExpr",
    "UnaryOp",
    "VariableRef",
]
