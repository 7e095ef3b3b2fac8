"""Recursive lowering of filter AST nodes into target filter objects."""

from __future__ import annotations

from odata_orm.config import ConverterOptions
from odata_orm.errors import (
    RawSqlRequiredError,
    UnsupportedConstructError,
    UnsupportedNodeError,
)
from odata_orm.filter_language.ast import (
    And,
    Arithmetic,
    Comparison,
    Expr,
    Group,
    InList,
    MemberPath,
    MethodCall,
    Not,
    Or,
)
from odata_orm.filter_language.literals import (
    COMPARISON_SYMBOLS,
    FIELD_WRAPPER_METHODS,
    arithmetic_filter,
    comparison_filter,
    field_path,
    invert_arithmetic,
    is_number,
    literal_value,
    string_filter,
    utc_month_start,
)
from odata_orm.navigation import FilterObject, build_nested_where


STRING_METHOD_OPERATIONS: dict[str, str] = {
    "contains": "contains",
    "substringof": "contains",
    "startswith": "startsWith",
    "endswith": "endsWith",
    "indexof": "contains",
}

RAW_SQL_MATH_FUNCTIONS = frozenset({"round", "floor", "ceiling"})

LOWER_BOUND_OPERATORS: dict[str, str] = {"ge": "gte", "gt": "gt"}
UPPER_BOUND_OPERATORS: dict[str, str] = {"le": "lte", "lt": "lt"}


def lower_expr(expr: Expr, options: ConverterOptions) -> FilterObject:
    """Lower one AST node into a target filter object."""
    match expr:
        case Comparison():
            return _lower_comparison(expr, options)
        case And(left=left, right=right):
            merged = _merge_conjunction(left, right)
            if merged is not None:
                return merged
            return {"AND": [lower_expr(left, options), lower_expr(right, options)]}
        case Or(left=left, right=right):
            return {"OR": [lower_expr(left, options), lower_expr(right, options)]}
        case Not(operand=operand):
            return {"NOT": lower_expr(operand, options)}
        case MethodCall():
            return _lower_method(expr, options)
        case Group(expr=inner):
            return lower_expr(inner, options)
        case InList(field=field, items=items):
            values = [literal_value(item) for item in items]
            if len(values) == 1:
                return comparison_filter(field_path(field), "eq", values[0])
            return build_nested_where(field_path(field), {"in": values})
    raise UnsupportedNodeError(str(expr.kind))


def _unwrap_group(expr: Expr) -> Expr:
    while isinstance(expr, Group):
        expr = expr.expr
    return expr


def _is_case_insensitive(options: ConverterOptions) -> bool:
    """Return whether string filters should carry the case-insensitive marker."""
    return options.case_sensitive is False


def _argument(call: MethodCall, index: int, expected: int) -> Expr:
    """Return a method argument, checking the method arity."""
    if len(call.arguments) != expected:
        raise UnsupportedConstructError(
            f"Method {call.name} expects {expected} argument(s), got {len(call.arguments)}",
            call.name,
        )
    return call.arguments[index]


def _lower_comparison(node: Comparison, options: ConverterOptions) -> FilterObject:
    left = _unwrap_group(node.left)
    match left:
        case Arithmetic():
            return _lower_arithmetic_comparison(node.operator, left, node.right)
        case MethodCall():
            return _lower_function_comparison(node.operator, left, node.right, options)
    return comparison_filter(field_path(left), node.operator, literal_value(node.right))


def _lower_arithmetic_comparison(operator: str, left: Arithmetic, right: Expr) -> FilterObject:
    """Solve `field <op> operand <cmp> threshold` for the field alone."""
    path = field_path(_unwrap_group(left.left))
    threshold = invert_arithmetic(left.operator, literal_value(left.right), literal_value(right))
    return arithmetic_filter(path, operator, threshold)


def _lower_function_comparison(
    operator: str,
    call: MethodCall,
    right: Expr,
    options: ConverterOptions,
) -> FilterObject:
    name = call.name.lower()
    match name:
        case "year":
            if operator != "eq":
                raise UnsupportedConstructError(f"Unsupported year comparison: {operator}", name)
            path = field_path(_argument(call, 0, 1))
            year = _year_value(literal_value(right))
            return build_nested_where(
                path, {"gte": utc_month_start(year, 1), "lt": utc_month_start(year + 1, 1)}
            )
        case "month" | "day":
            if operator != "eq":
                raise UnsupportedConstructError(f"Unsupported {name} comparison: {operator}", name)
            field = ".".join(field_path(_argument(call, 0, 1)))
            raise RawSqlRequiredError(
                f"{name.capitalize()} extraction requires raw SQL. "
                f"Run a raw query filtering on {name}({field}) instead",
                name,
            )
        case "indexof":
            return _lower_indexof_comparison(operator, call, right, options)
        case "length":
            field = ".".join(field_path(_argument(call, 0, 1)))
            raise RawSqlRequiredError(
                "Length comparison requires raw SQL: "
                f"SELECT * FROM table WHERE LENGTH({field}) "
                f"{COMPARISON_SYMBOLS[operator]} {literal_value(right)}",
                name,
            )
        case _ if name in RAW_SQL_MATH_FUNCTIONS:
            raise RawSqlRequiredError(f"Math function {name} requires raw SQL implementation", name)
        case _ if name in STRING_METHOD_OPERATIONS and operator in ("eq", "ne"):
            flag = literal_value(right)
            if not isinstance(flag, bool):
                raise UnsupportedConstructError(
                    f"Method {call.name} can only be compared with true or false", name
                )
            matched = _lower_method(call, options)
            return matched if flag == (operator == "eq") else {"NOT": matched}
    raise UnsupportedConstructError(f"Unsupported function in comparison: {call.name}", call.name)


def _lower_indexof_comparison(
    operator: str,
    call: MethodCall,
    right: Expr,
    options: ConverterOptions,
) -> FilterObject:
    """Map `indexof(field, text)` comparisons onto contains checks."""
    threshold = literal_value(right)
    contains = _lower_method(call, options)
    if is_number(threshold):
        if (operator, threshold) in (("ge", 0), ("gt", -1)):
            return contains
        if (operator, threshold) in (("eq", -1), ("lt", 0)):
            return {"NOT": contains}
    raise UnsupportedConstructError(
        f"Unsupported indexof comparison: {operator} with threshold {threshold}", "indexof"
    )


def _year_value(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value < 9999:
        raise UnsupportedConstructError(f"Invalid year value: {value!r}", "year")
    return value


def _lower_method(call: MethodCall, options: ConverterOptions) -> FilterObject:
    """Lower a standalone string method call."""
    name = call.name.lower()
    if name in FIELD_WRAPPER_METHODS:
        raise UnsupportedConstructError(
            f"String transformation function {call.name} should be used in comparison context",
            name,
        )
    if name == "concat":
        raise UnsupportedConstructError("concat function should be used in comparison context", name)
    operation = STRING_METHOD_OPERATIONS.get(name)
    if operation is None:
        raise UnsupportedConstructError(f"Unsupported method: {call.name}", call.name)

    if name == "substringof":
        value_node, field_node = _argument(call, 0, 2), _argument(call, 1, 2)
    else:
        field_node, value_node = _argument(call, 0, 2), _argument(call, 1, 2)

    insensitive = _is_case_insensitive(options)
    if name in ("startswith", "endswith"):
        # Lowering the field before comparing always means a case-insensitive match.
        wrapped = _unwrap_group(field_node)
        if isinstance(wrapped, MethodCall) and wrapped.name.lower() == "tolower":
            insensitive = True

    return build_nested_where(
        field_path(field_node),
        string_filter(operation, literal_value(value_node), insensitive),
    )


def _merge_conjunction(left: Expr, right: Expr) -> FilterObject | None:
    """Try the year+month and date-range merges in both operand orders."""
    for first, second in ((left, right), (right, left)):
        merged = _merge_year_month(first, second)
        if merged is not None:
            return merged
    for first, second in ((left, right), (right, left)):
        merged = _merge_range(first, second)
        if merged is not None:
            return merged
    return None


def _date_part_equality(expr: Expr, part: str) -> tuple[tuple[str, ...], object] | None:
    """Match `part(field) eq value`, returning the field path and value."""
    expr = _unwrap_group(expr)
    if not isinstance(expr, Comparison) or expr.operator != "eq":
        return None
    call = _unwrap_group(expr.left)
    if not isinstance(call, MethodCall) or call.name.lower() != part or len(call.arguments) != 1:
        return None
    return field_path(call.arguments[0]), literal_value(expr.right)


def _merge_year_month(first: Expr, second: Expr) -> FilterObject | None:
    year_part = _date_part_equality(first, "year")
    month_part = _date_part_equality(second, "month")
    if year_part is None or month_part is None:
        return None
    (year_path, year_raw), (month_path, month) = year_part, month_part
    if year_path != month_path:
        return None

    year = _year_value(year_raw)
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise UnsupportedConstructError(f"Invalid month value: {month!r}", "month")
    end = utc_month_start(year + 1, 1) if month == 12 else utc_month_start(year, month + 1)
    return build_nested_where(year_path, {"gte": utc_month_start(year, month), "lt": end})


def _merge_range(first: Expr, second: Expr) -> FilterObject | None:
    """Fold a lower and an upper bound on one field into a single filter."""
    first = _unwrap_group(first)
    second = _unwrap_group(second)
    if not isinstance(first, Comparison) or not isinstance(second, Comparison):
        return None
    lower_operator = LOWER_BOUND_OPERATORS.get(first.operator)
    upper_operator = UPPER_BOUND_OPERATORS.get(second.operator)
    if lower_operator is None or upper_operator is None:
        return None

    lower_field = _unwrap_group(first.left)
    upper_field = _unwrap_group(second.left)
    if not isinstance(lower_field, MemberPath) or not isinstance(upper_field, MemberPath):
        return None
    if lower_field.segments != upper_field.segments:
        return None

    return build_nested_where(
        lower_field.segments,
        {
            lower_operator: literal_value(first.right),
            upper_operator: literal_value(second.right),
        },
    )
