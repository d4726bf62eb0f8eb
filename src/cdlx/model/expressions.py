"""Expression AST nodes for parameter bindings."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class BinaryOp(str, Enum):
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    EXPT = "EXPT"
    AND = "AND"
    OR = "OR"
    EQ = "EQ"
    NE = "NE"
    GT = "GT"
    GE = "GE"
    LT = "LT"
    LE = "LE"


class UnaryOp(str, Enum):
    NEG = "NEG"
    NOT = "NOT"


class ScopeKind(str, Enum):
    """How a reference is looked up relative to its originating instance."""

    NONE = "none"
    INNER = "inner"
    OUTER = "outer"


class LiteralExpr(BaseModel):
    """A constant value (e.g. true, 42, 1.2, "text", Types.Fan#SingleDamper)."""

    kind: Literal["literal"] = "literal"
    value: str


class VariableRef(BaseModel):
    """Reference to a parameter by (possibly dotted) name."""

    kind: Literal["variable_ref"] = "variable_ref"
    name: str
    scope: ScopeKind = ScopeKind.NONE


class BinaryExpr(BaseModel):
    kind: Literal["binary"] = "binary"
    op: BinaryOp
    left: Expression
    right: Expression


class UnaryExpr(BaseModel):
    kind: Literal["unary"] = "unary"
    op: UnaryOp
    operand: Expression


class IfBranch(BaseModel):
    condition: Expression
    value: Expression


class IfExpr(BaseModel):
    """``if c1 then v1 elseif c2 then v2 else v3``.

    The else value is mandatory: a conditional expression always yields.
    """

    kind: Literal["if"] = "if"
    branches: list[IfBranch] = Field(min_length=1)
    else_value: Expression


class ArrayExpr(BaseModel):
    """Array constructor: {e1, e2, ...}."""

    kind: Literal["array"] = "array"
    elements: list[Expression] = []


class RangeExpr(BaseModel):
    """Range ``start:stop`` or ``start:step:stop`` (bounds inclusive)."""

    kind: Literal["range"] = "range"
    start: Expression
    stop: Expression
    step: Expression | None = None


class ForExpr(BaseModel):
    """Array comprehension: {body for index in iterable}."""

    kind: Literal["for"] = "for"
    index: str
    iterable: Expression
    body: Expression


class ArrayAccessExpr(BaseModel):
    """Array subscript, 1-based: arr[i] or arr[i, j]."""

    kind: Literal["array_access"] = "array_access"
    array: Expression
    indices: list[Expression] = Field(min_length=1)


class FunctionCallExpr(BaseModel):
    """Call of a built-in function with positional arguments."""

    kind: Literal["function_call"] = "function_call"
    function_name: str
    args: list[Expression] = []


Expression = Annotated[
    Union[
        LiteralExpr,
        VariableRef,
        BinaryExpr,
        UnaryExpr,
        IfExpr,
        ArrayExpr,
        RangeExpr,
        ForExpr,
        ArrayAccessExpr,
        FunctionCallExpr,
    ],
    Field(discriminator="kind"),
]

# Rebuild models with recursive Expression references.
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
IfBranch.model_rebuild()
IfExpr.model_rebuild()
ArrayExpr.model_rebuild()
RangeExpr.model_rebuild()
ForExpr.model_rebuild()
ArrayAccessExpr.model_rebuild()
FunctionCallExpr.model_rebuild()
