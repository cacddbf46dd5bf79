"""
Rule expression contract models.

Button rules and callbacks are stored as a small closed expression tree
rather than free-form code. Every node is tagged with ``kind`` so the
persisted JSON routes back to the right model.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


CompareOp = Literal["==", "!=", "<", "<=", ">", ">=", "in", "not in"]

LogicalOp = Literal["and", "or"]

ArithOp = Literal["+", "-", "*", "/", "%"]

FunctionName = Literal["len", "empty", "lower", "upper", "number", "str", "trim"]


class ExpressionNode(BaseModel):
    """Base for all expression nodes."""

    model_config = ConfigDict(extra="forbid")


class LiteralExpr(ExpressionNode):
    """A constant value (string, number, boolean, null or list of those)."""

    kind: Literal["literal"] = "literal"
    value: Any = None


class FieldExpr(ExpressionNode):
    """Reads ``formData[name]``; a missing field reads as null."""

    kind: Literal["field"] = "field"
    name: str = Field(min_length=1)


class ErrorExpr(ExpressionNode):
    """The failure message. Only bound while running onError effects."""

    kind: Literal["error"] = "error"


class ListExpr(ExpressionNode):
    kind: Literal["list"] = "list"
    items: list["Expression"] = Field(default_factory=list)


class CompareExpr(ExpressionNode):
    kind: Literal["compare"] = "compare"
    op: CompareOp
    left: "Expression"
    right: "Expression"


class LogicalExpr(ExpressionNode):
    """Short-circuiting and/or over one or more operands."""

    kind: Literal["logical"] = "logical"
    op: LogicalOp
    operands: list["Expression"] = Field(min_length=1)


class NotExpr(ExpressionNode):
    kind: Literal["not"] = "not"
    operand: "Expression"


class ArithExpr(ExpressionNode):
    kind: Literal["arith"] = "arith"
    op: ArithOp
    left: "Expression"
    right: "Expression"


class CallExpr(ExpressionNode):
    """Call into the fixed function set; there is no user-defined code."""

    kind: Literal["call"] = "call"
    name: FunctionName
    args: list["Expression"] = Field(default_factory=list)


Expression = Annotated[
    Union[
        LiteralExpr,
        FieldExpr,
        ErrorExpr,
        ListExpr,
        CompareExpr,
        LogicalExpr,
        NotExpr,
        ArithExpr,
        CallExpr,
    ],
    Field(discriminator="kind"),
]


# -----------------------------------------------------------------------------
# Callback effects
# -----------------------------------------------------------------------------


class SetFieldEffect(BaseModel):
    """Produce a form data patch ``{field: value}`` for the caller to apply."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["set_field"] = "set_field"
    field: str = Field(min_length=1)
    value: Expression


class EmitEffect(BaseModel):
    """Emit an engine event; delivery belongs to whoever subscribes."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["emit"] = "emit"
    event: str = Field(min_length=1)
    payload: dict[str, Expression] = Field(default_factory=dict)


CallbackEffect = Annotated[
    Union[SetFieldEffect, EmitEffect],
    Field(discriminator="action"),
]


ListExpr.model_rebuild()
CompareExpr.model_rebuild()
LogicalExpr.model_rebuild()
NotExpr.model_rebuild()
ArithExpr.model_rebuild()
CallExpr.model_rebuild()
SetFieldEffect.model_rebuild()
EmitEffect.model_rebuild()
