"""
Rule Expression Service

Parses rule text into the closed expression tree and evaluates it against a
read-only view of the form data. This replaces executing builder-supplied
code: the only operations available are the node kinds in
formflow.models.contracts.expressions.

Accepted text is a small subset of Python expression syntax plus the
JavaScript spellings builders tend to write:

    formData.amount > 100 && formData.department === "IT"
    !empty(formData.comment) or formData.priority in ["low", "normal"]
"""

import ast
import logging
import math
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from formflow.core.exceptions import ExpressionError
from formflow.models.contracts.expressions import (
    ArithExpr,
    CallbackEffect,
    CallExpr,
    CompareExpr,
    EmitEffect,
    ErrorExpr,
    Expression,
    FieldExpr,
    ListExpr,
    LiteralExpr,
    LogicalExpr,
    NotExpr,
    SetFieldEffect,
)

logger = logging.getLogger(__name__)

MAX_EXPRESSION_LENGTH = 2000
MAX_EXPRESSION_DEPTH = 64

# Names that refer to the form data object in rule text
_FORM_DATA_NAMES = {"formData", "form_data", "data"}

_CONSTANT_NAMES = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

_COMPARE_OPS: dict[type, str] = {
    ast.Eq: "==",
    ast.NotEq: "!=",
    ast.Lt: "<",
    ast.LtE: "<=",
    ast.Gt: ">",
    ast.GtE: ">=",
    ast.In: "in",
    ast.NotIn: "not in",
}

_ARITH_OPS: dict[type, str] = {
    ast.Add: "+",
    ast.Sub: "-",
    ast.Mult: "*",
    ast.Div: "/",
    ast.Mod: "%",
}

_FUNCTIONS = {"len", "empty", "lower", "upper", "number", "str", "trim"}

# JavaScript operator spellings rewritten before parsing (longest first)
_JS_OPERATORS = [
    ("===", "=="),
    ("!==", "!="),
    ("&&", " and "),
    ("||", " or "),
]


# ==================== PARSING ====================


def _normalize_operators(text: str) -> str:
    """Rewrite JS operators outside of string literals."""
    out: list[str] = []
    i = 0
    quote: str | None = None
    while i < len(text):
        ch = text[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < len(text):
                out.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in ("'", '"'):
            quote = ch
            out.append(ch)
            i += 1
            continue
        for js, py in _JS_OPERATORS:
            if text.startswith(js, i):
                out.append(py)
                i += len(js)
                break
        else:
            if ch == "!" and not text.startswith("!=", i):
                out.append(" not ")
            else:
                out.append(ch)
            i += 1
    return "".join(out)


def _strip_return(text: str) -> str:
    """Allow the ``return <expr>;`` form older rules were written in."""
    stripped = text.strip().rstrip(";").strip()
    match = re.match(r"^return\s+(.*)$", stripped, re.DOTALL)
    return match.group(1) if match else stripped


def parse_expression(text: str) -> Expression:
    """
    Parse rule text into an expression tree.

    Raises:
        ExpressionError: If the text is empty, too long, not valid syntax, or
            uses anything outside the supported node set.
    """
    if not isinstance(text, str) or not text.strip():
        raise ExpressionError("Expression is empty")
    if len(text) > MAX_EXPRESSION_LENGTH:
        raise ExpressionError(f"Expression is longer than {MAX_EXPRESSION_LENGTH} characters")

    source = _normalize_operators(_strip_return(text))
    try:
        tree = ast.parse(source.strip(), mode="eval")
        return _convert(tree.body)
    except SyntaxError as e:
        raise ExpressionError(f"Invalid expression syntax: {e.msg}") from e
    except (RecursionError, MemoryError) as e:
        raise ExpressionError("Expression is too deeply nested") from e


def _field_name(node: ast.AST) -> str | None:
    """Return the field name for ``formData.x`` / ``formData["x"]``, else None."""
    if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
        if node.value.id in _FORM_DATA_NAMES:
            return node.attr
    if isinstance(node, ast.Subscript) and isinstance(node.value, ast.Name):
        if node.value.id in _FORM_DATA_NAMES:
            key = node.slice
            if isinstance(key, ast.Constant) and isinstance(key.value, str):
                return key.value
    return None


def _convert(node: ast.AST, depth: int = 1) -> Expression:
    if depth > MAX_EXPRESSION_DEPTH:
        raise ExpressionError(f"Expression is nested more than {MAX_EXPRESSION_DEPTH} levels deep")

    if isinstance(node, ast.Constant):
        if isinstance(node.value, (str, int, float, bool)) or node.value is None:
            return LiteralExpr(value=node.value)
        raise ExpressionError(f"Unsupported constant: {node.value!r}")

    if isinstance(node, ast.Name):
        if node.id in _CONSTANT_NAMES:
            return LiteralExpr(value=_CONSTANT_NAMES[node.id])
        if node.id == "error":
            return ErrorExpr()
        raise ExpressionError(f"Unknown name '{node.id}'; use formData.<field> to read a field")

    name = _field_name(node)
    if name is not None:
        return FieldExpr(name=name)
    if isinstance(node, (ast.Attribute, ast.Subscript)):
        raise ExpressionError("Only formData.<field> lookups are supported")

    if isinstance(node, (ast.List, ast.Tuple)):
        items = [_convert(item, depth + 1) for item in node.elts]
        if all(isinstance(item, LiteralExpr) for item in items):
            return LiteralExpr(value=[item.value for item in items])
        return ListExpr(items=items)

    if isinstance(node, ast.BoolOp):
        op = "and" if isinstance(node.op, ast.And) else "or"
        return LogicalExpr(op=op, operands=[_convert(v, depth + 1) for v in node.values])

    if isinstance(node, ast.UnaryOp):
        if isinstance(node.op, ast.Not):
            return NotExpr(operand=_convert(node.operand, depth + 1))
        if isinstance(node.op, ast.USub):
            operand = _convert(node.operand, depth + 1)
            if isinstance(operand, LiteralExpr) and isinstance(operand.value, (int, float)) \
                    and not isinstance(operand.value, bool):
                return LiteralExpr(value=-operand.value)
            return ArithExpr(op="-", left=LiteralExpr(value=0), right=operand)
        if isinstance(node.op, ast.UAdd):
            return _convert(node.operand, depth + 1)
        raise ExpressionError("Unsupported unary operator")

    if isinstance(node, ast.Compare):
        # a < b < c becomes (a < b) and (b < c)
        parts: list[Expression] = []
        left = _convert(node.left, depth + 1)
        for op, comparator in zip(node.ops, node.comparators):
            op_name = _COMPARE_OPS.get(type(op))
            if op_name is None:
                raise ExpressionError("Unsupported comparison operator")
            right = _convert(comparator, depth + 1)
            parts.append(CompareExpr(op=op_name, left=left, right=right))
            left = right
        if len(parts) == 1:
            return parts[0]
        return LogicalExpr(op="and", operands=parts)

    if isinstance(node, ast.BinOp):
        op_name = _ARITH_OPS.get(type(node.op))
        if op_name is None:
            raise ExpressionError("Unsupported arithmetic operator")
        return ArithExpr(op=op_name, left=_convert(node.left, depth + 1), right=_convert(node.right, depth + 1))

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise ExpressionError("Only len, empty, lower, upper, number, str and trim may be called")
        if node.keywords:
            raise ExpressionError("Keyword arguments are not supported")
        return CallExpr(name=node.func.id, args=[_convert(arg, depth + 1) for arg in node.args])

    raise ExpressionError(f"Unsupported expression element: {type(node).__name__}")


# ==================== EVALUATION ====================


@dataclass(frozen=True)
class ExpressionScope:
    """
    Values visible to an expression.

    form_data is exposed read-only; error is only set while running onError.
    """

    form_data: Mapping[str, Any]
    error: str | None = None

    @classmethod
    def of(cls, form_data: Mapping[str, Any] | None, error: str | None = None) -> "ExpressionScope":
        return cls(form_data=MappingProxyType(dict(form_data or {})), error=error)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _to_number(value: Any) -> float | int:
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text:
            number = float(text)
            if math.isnan(number):
                raise ValueError(f"not a number: {value!r}")
            return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    raise ValueError(f"not a number: {value!r}")


def _coerce_pair(left: Any, right: Any) -> tuple[Any, Any]:
    """Compare a numeric field value typed as text against a number literal."""
    if _is_number(left) and isinstance(right, str):
        try:
            return left, _to_number(right)
        except ValueError:
            return left, right
    if isinstance(left, str) and _is_number(right):
        try:
            return _to_number(left), right
        except ValueError:
            return left, right
    return left, right


def _compare(op: str, left: Any, right: Any) -> bool:
    if op in ("in", "not in"):
        if right is None:
            found = False
        elif isinstance(right, str):
            found = left is not None and str(left) in right
        else:
            found = left in right
        return found if op == "in" else not found

    left, right = _coerce_pair(left, right)
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    # Ordering comparisons against null are false rather than a type error
    if left is None or right is None:
        return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    if op == ">=":
        return left >= right
    raise ExpressionError(f"Unsupported comparison operator: {op}")


def _arith(op: str, left: Any, right: Any) -> Any:
    if op == "+" and (isinstance(left, str) or isinstance(right, str)):
        return f"{'' if left is None else left}{'' if right is None else right}"
    a = _to_number(left)
    b = _to_number(right)
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if op == "/":
        return a / b
    if op == "%":
        return a % b
    raise ExpressionError(f"Unsupported arithmetic operator: {op}")


def _call(name: str, args: list[Any]) -> Any:
    if len(args) != 1:
        raise ExpressionError(f"{name}() takes exactly one argument")
    value = args[0]
    if name == "len":
        return 0 if value is None else len(value)
    if name == "empty":
        return _is_empty(value)
    if name == "lower":
        return "" if value is None else str(value).lower()
    if name == "upper":
        return "" if value is None else str(value).upper()
    if name == "trim":
        return "" if value is None else str(value).strip()
    if name == "number":
        return _to_number(value)
    if name == "str":
        return "" if value is None else str(value)
    raise ExpressionError(f"Unknown function: {name}")


def _eval(expr: Expression, scope: ExpressionScope) -> Any:
    if isinstance(expr, LiteralExpr):
        return expr.value
    if isinstance(expr, FieldExpr):
        return scope.form_data.get(expr.name)
    if isinstance(expr, ErrorExpr):
        return scope.error
    if isinstance(expr, ListExpr):
        return [_eval(item, scope) for item in expr.items]
    if isinstance(expr, LogicalExpr):
        if expr.op == "and":
            result: Any = True
            for operand in expr.operands:
                result = _eval(operand, scope)
                if not result:
                    return result
            return result
        result = False
        for operand in expr.operands:
            result = _eval(operand, scope)
            if result:
                return result
        return result
    if isinstance(expr, NotExpr):
        return not _eval(expr.operand, scope)
    if isinstance(expr, CompareExpr):
        return _compare(expr.op, _eval(expr.left, scope), _eval(expr.right, scope))
    if isinstance(expr, ArithExpr):
        return _arith(expr.op, _eval(expr.left, scope), _eval(expr.right, scope))
    if isinstance(expr, CallExpr):
        return _call(expr.name, [_eval(arg, scope) for arg in expr.args])
    raise ExpressionError(f"Unsupported expression node: {type(expr).__name__}")


def evaluate(expr: Expression, scope: ExpressionScope) -> Any:
    """
    Evaluate an expression tree.

    Raises:
        ExpressionError: If evaluation fails for any reason (type mismatch,
            division by zero, bad number conversion...).
    """
    try:
        return _eval(expr, scope)
    except ExpressionError:
        raise
    except Exception as e:
        raise ExpressionError(f"Expression evaluation failed: {e}") from e


def evaluate_rule(expr: Expression | None, form_data: Mapping[str, Any]) -> bool:
    """
    Evaluate a button validation rule, failing closed.

    No rule passes. Any evaluation error counts as a failed rule.
    """
    if expr is None:
        return True
    try:
        return bool(evaluate(expr, ExpressionScope.of(form_data)))
    except ExpressionError as e:
        logger.warning(f"Validation rule evaluation failed, treating as not valid: {e.message}")
        return False


# ==================== CALLBACK EFFECTS ====================


@dataclass
class EffectResult:
    """Outcome of running a callback's effect list."""

    data_patch: dict[str, Any] = field(default_factory=dict)
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def run_effects(
    effects: list[CallbackEffect] | None,
    form_data: Mapping[str, Any],
    error: str | None = None,
) -> EffectResult:
    """
    Run onSuccess/onError effects against a snapshot of the form data.

    Effects never mutate form_data: set_field results accumulate in
    data_patch and later effects see earlier patches. A failing effect is
    recorded and the remaining effects still run.
    """
    result = EffectResult()
    for index, effect in enumerate(effects or []):
        scope = ExpressionScope.of({**form_data, **result.data_patch}, error=error)
        try:
            if isinstance(effect, SetFieldEffect):
                result.data_patch[effect.field] = evaluate(effect.value, scope)
            elif isinstance(effect, EmitEffect):
                payload = {key: evaluate(value, scope) for key, value in effect.payload.items()}
                result.events.append((effect.event, payload))
        except ExpressionError as e:
            logger.warning(f"Callback effect {index} ({effect.action}) failed: {e.message}")
            result.errors.append(f"effect {index} ({effect.action}): {e.message}")
    return result
