"""Literal and identifier resolution shared by lowering and the fallback grammar."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import cast

from odata_orm.errors import UnsupportedConstructError
from odata_orm.filter_language.ast import Expr, Group, Literal, LiteralType, MemberPath, MethodCall
from odata_orm.navigation import FilterObject, build_nested_where


type NumericValue = int | float

COMPARISON_TARGET_OPERATORS: dict[str, str] = {
    "eq": "equals",
    "ne": "not",
    "gt": "gt",
    "ge": "gte",
    "lt": "lt",
    "le": "lte",
}

COMPARISON_SYMBOLS: dict[str, str] = {
    "eq": "=",
    "ne": "!=",
    "gt": ">",
    "ge": ">=",
    "lt": "<",
    "le": "<=",
}

ARITHMETIC_SYMBOLS: dict[str, str] = {
    "*": "mul",
    "/": "div",
    "+": "add",
    "-": "sub",
}

CASE_INSENSITIVE_MODE = "insensitive"

# Methods that only transform the field they wrap.
FIELD_WRAPPER_METHODS = frozenset({"tolower", "toupper", "trim"})

NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")
_INTEGER_PATTERN = re.compile(r"[+-]?\d+")


def format_iso_utc(value: datetime) -> str:
    """Format datetime as a UTC ISO-8601 string with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{value.microsecond // 1000:03d}Z"


def parse_iso_datetime(text: str) -> datetime | None:
    """Parse an ISO-8601 date or date-time, returning None when invalid.

    Naive values are interpreted as UTC.
    """
    try:
        parsed = datetime.fromisoformat(text.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def utc_month_start(year: int, month: int) -> str:
    """Return the ISO string for midnight UTC on the first day of a month."""
    return format_iso_utc(datetime(year, month, 1, tzinfo=UTC))


def parse_number(raw: str) -> NumericValue:
    """Parse a numeric token into int or float."""
    if _INTEGER_PATTERN.fullmatch(raw):
        return int(raw)
    return float(raw)


def is_number(value: object) -> bool:
    """Return whether value is a real number (booleans excluded)."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def field_path(expr: Expr) -> tuple[str, ...]:
    """Extract the field path segments an expression refers to."""
    match expr:
        case MemberPath(segments=segments):
            return segments
        case Group(expr=inner):
            return field_path(inner)
        case MethodCall(name=name, arguments=arguments) if (
            name.lower() in FIELD_WRAPPER_METHODS and arguments
        ):
            return field_path(arguments[0])
        case MethodCall(name=name):
            raise UnsupportedConstructError(f"Cannot extract field name from method: {name}", name)
    raise UnsupportedConstructError(
        f"Unsupported field expression type: {expr.kind}", str(expr.kind)
    )


def literal_value(expr: Expr) -> object:
    """Convert a literal AST node into its native value."""
    match expr:
        case Group(expr=inner):
            return literal_value(inner)
        case Literal(raw=raw, literal_type=literal_type):
            return _resolve_literal(raw, literal_type)
    raise UnsupportedConstructError(f"Expected a literal value, got: {expr.kind}", str(expr.kind))


def _quoted_body(raw: str) -> str:
    """Return text between the first and last single quote."""
    start = raw.index("'")
    return raw[start + 1 : -1].replace("''", "'")


def _resolve_literal(raw: str, literal_type: LiteralType) -> object:
    """Resolve raw literal text by its inferred type."""
    match literal_type:
        case LiteralType.STRING:
            return _quoted_body(raw)
        case LiteralType.BOOLEAN:
            return raw.lower() == "true"
        case LiteralType.NULL:
            return None
        case LiteralType.DATETIME:
            text = _quoted_body(raw)
            parsed = parse_iso_datetime(text)
            return format_iso_utc(parsed) if parsed is not None else text
        case LiteralType.DATE:
            parsed = parse_iso_datetime(raw)
            return format_iso_utc(parsed) if parsed is not None else raw
        case LiteralType.GUID:
            return _quoted_body(raw) if "'" in raw else raw
        case LiteralType.NUMBER:
            return parse_number(raw)
    return raw


def coerce_value(raw: str) -> object:
    """Coerce a raw value string matched by a regex pattern.

    Single-quoted text becomes a string, `true`/`false` a boolean, `null` None
    and plain or decimal numbers a number. Anything else stays the raw string.
    """
    text = raw.strip()
    if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
        return text[1:-1].replace("''", "'")
    if text == "true":
        return True
    if text == "false":
        return False
    if text == "null":
        return None
    if NUMBER_PATTERN.fullmatch(text):
        return parse_number(text)
    return text


def _round_threshold(value: NumericValue) -> NumericValue:
    """Round to 2 decimals, collapsing integral floats to int."""
    rounded = round(value, 2)
    if isinstance(rounded, float) and rounded.is_integer():
        return int(rounded)
    return rounded


def invert_arithmetic(operator: str, operand: object, threshold: object) -> NumericValue:
    """Solve `field <operator> operand <cmp> threshold` for the field alone."""
    if not is_number(operand) or not is_number(threshold):
        raise UnsupportedConstructError(
            f"Arithmetic comparison requires numeric operands, got: {operand!r}, {threshold!r}",
            operator,
        )
    left = cast(NumericValue, threshold)
    right = cast(NumericValue, operand)
    match operator:
        case "mul":
            if right == 0:
                raise UnsupportedConstructError("Cannot invert multiplication by zero", operator)
            result = left / right
        case "div":
            result = left * right
        case "add":
            result = left - right
        case "sub":
            result = left + right
        case _:
            raise UnsupportedConstructError(
                f"Unsupported arithmetic operation: {operator}", operator
            )
    return _round_threshold(result)


def comparison_filter(path: tuple[str, ...], operator: str, value: object) -> FilterObject:
    """Build a field filter for a plain comparison."""
    target = COMPARISON_TARGET_OPERATORS.get(operator)
    if target is None:
        raise UnsupportedConstructError(f"Unsupported comparison operator: {operator}", operator)
    if value is None and operator == "eq":
        return build_nested_where(path, None)
    if value is None and operator == "ne":
        return build_nested_where(path, {"not": None})
    return build_nested_where(path, {target: value})


def arithmetic_filter(path: tuple[str, ...], operator: str, value: NumericValue) -> FilterObject:
    """Build a field filter for a pre-solved arithmetic comparison."""
    target = COMPARISON_TARGET_OPERATORS.get(operator)
    if target is None:
        raise UnsupportedConstructError(
            f"Unsupported arithmetic comparison: {operator}", operator
        )
    if operator == "ne":
        return build_nested_where(path, {"not": {"equals": value}})
    return build_nested_where(path, {target: value})


def string_filter(operation: str, value: object, insensitive: bool) -> FilterObject:
    """Build a string-method operator object with optional case-insensitive marker."""
    result: FilterObject = {operation: value}
    if insensitive:
        result["mode"] = CASE_INSENSITIVE_MODE
    return result
