"""Regex-based grammar for filters the primary parser rejects."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from odata_orm.errors import FallbackParseError, FilterParseError
from odata_orm.filter_language.literals import (
    ARITHMETIC_SYMBOLS,
    arithmetic_filter,
    coerce_value,
    comparison_filter,
    invert_arithmetic,
    parse_number,
)
from odata_orm.filter_language.preprocess import split_in_list_items
from odata_orm.navigation import (
    ConditionConverter,
    FilterObject,
    build_nested_where,
    closing_paren,
    collection_filter_to_where,
    parse_collection_filter,
)


logger = logging.getLogger("odata_orm")

_PATH = r"(?P<path>[A-Za-z_][A-Za-z0-9_]*(?:/[A-Za-z_][A-Za-z0-9_]*)*)"
_VALUE = r"(?P<value>'(?:[^']|'')*'|[^\s']+)"
_NUMBER = r"-?\d+(?:\.\d+)?"

COMPARISON_PATTERN = re.compile(rf"{_PATH}\s+(?P<operator>eq|ne|gt|ge|lt|le)\s+{_VALUE}")
ARITHMETIC_PATTERN = re.compile(
    rf"{_PATH}(?:\s+(?P<keyword>mul|div|add|sub)\s+|\s*(?P<symbol>[*/+-])\s*)"
    rf"(?P<operand>{_NUMBER})\s+(?P<operator>eq|ne|gt|ge|lt|le)\s+(?P<threshold>{_NUMBER})"
)
IN_LIST_PATTERN = re.compile(rf"{_PATH}\s+in\s*\((?P<values>[^)]*)\)")
LOGICAL_SEPARATORS: dict[str, re.Pattern[str]] = {
    "OR": re.compile(r"\s+or\s+"),
    "AND": re.compile(r"\s+and\s+"),
}

type FallbackPattern = Callable[[str, ConditionConverter], FilterObject | None]


def simple_condition(condition: str) -> FilterObject:
    """Convert a single `path op value` comparison."""
    result = _field_comparison(condition.strip(), simple_condition)
    if result is None:
        raise FallbackParseError("Fallback parsing failed")
    return result


def _collection_lambda(text: str, converter: ConditionConverter) -> FilterObject | None:
    collection_filter = parse_collection_filter(text)
    if collection_filter is None:
        return None
    return collection_filter_to_where(collection_filter, converter)


def _field_comparison(text: str, _converter: ConditionConverter) -> FilterObject | None:
    match = COMPARISON_PATTERN.fullmatch(text)
    if match is None:
        return None
    return comparison_filter(
        tuple(match.group("path").split("/")),
        match.group("operator"),
        coerce_value(match.group("value")),
    )


def _arithmetic_comparison(text: str, _converter: ConditionConverter) -> FilterObject | None:
    match = ARITHMETIC_PATTERN.fullmatch(text)
    if match is None:
        return None
    operator = match.group("keyword") or ARITHMETIC_SYMBOLS[match.group("symbol")]
    threshold = invert_arithmetic(
        operator,
        parse_number(match.group("operand")),
        parse_number(match.group("threshold")),
    )
    return arithmetic_filter(tuple(match.group("path").split("/")), match.group("operator"), threshold)


def _in_list(text: str, _converter: ConditionConverter) -> FilterObject | None:
    match = IN_LIST_PATTERN.fullmatch(text)
    if match is None:
        return None
    values = [coerce_value(item) for item in split_in_list_items(match.group("values"))]
    path = tuple(match.group("path").split("/"))
    if len(values) == 1:
        return comparison_filter(path, "eq", values[0])
    return build_nested_where(path, {"in": values})


def _top_level_split(text: str, separator: re.Pattern[str]) -> list[str]:
    """Split on separator matches outside quotes and parentheses."""
    parts: list[str] = []
    position = 0
    in_string = False
    index = 0
    while index < len(text):
        char = text[index]
        if char == "'":
            in_string = not in_string
        elif in_string:
            pass
        elif char == "(":
            close = closing_paren(text, index)
            index = close if close is not None else len(text)
        elif (match := separator.match(text, index)) is not None:
            parts.append(text[position:index])
            position = index = match.end()
            continue
        index += 1
    parts.append(text[position:])
    return parts


def _logical(combinator: str) -> FallbackPattern:
    separator = LOGICAL_SEPARATORS[combinator]

    def pattern(text: str, converter: ConditionConverter) -> FilterObject | None:
        parts = _top_level_split(text, separator)
        if len(parts) < 2:
            return None
        try:
            return {combinator: [converter(part.strip()) for part in parts]}
        except FilterParseError:
            return None

    pattern.__name__ = f"_{combinator.lower()}_chain"
    return pattern


FALLBACK_PATTERNS: tuple[FallbackPattern, ...] = (
    _collection_lambda,
    _field_comparison,
    _arithmetic_comparison,
    _in_list,
    _logical("OR"),
    _logical("AND"),
)


def fallback_parse(
    filter_text: str,
    condition_converter: ConditionConverter | None = None,
) -> FilterObject:
    """Convert filter text by trying each fallback pattern in order.

    condition_converter turns a nested condition (a lambda body or one operand
    of a top-level `and`/`or`) into a filter object; simple_condition is used
    when it is omitted.
    """
    converter = condition_converter or simple_condition
    text = filter_text.strip()
    for pattern in FALLBACK_PATTERNS:
        result = pattern(text, converter)
        if result is not None:
            logger.debug("Fallback pattern %s matched: %s", pattern.__name__, text)
            return result
    raise FallbackParseError("Fallback parsing failed")
