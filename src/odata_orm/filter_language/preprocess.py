"""Rewrite filter syntax the primary grammar cannot handle."""

from __future__ import annotations

import re
from collections.abc import Callable

from odata_orm.filter_language.literals import format_iso_utc, parse_iso_datetime


DATETIME_LITERAL_PATTERN = re.compile(r"datetime'([^']*)'", re.IGNORECASE)

# Plain (single-segment) field followed by `in (...)`; path segments are left to the grammar.
IN_LIST_PATTERN = re.compile(r"(?<![\w/])([A-Za-z_]\w*)\s+in\s*\(([^)]*)\)", re.IGNORECASE)

IN_LIST_ITEM_PATTERN = re.compile(r"'(?:[^']|'')*'|[^,\s]+")

STRING_LITERAL_PATTERN = re.compile(r"'(?:[^']|'')*'")


def _rewrite_datetime(match: re.Match[str]) -> str:
    """Turn a datetime literal into a quoted UTC ISO string when it parses."""
    parsed = parse_iso_datetime(match.group(1))
    if parsed is None:
        return match.group(0)
    return f"'{format_iso_utc(parsed)}'"


def split_in_list_items(values: str) -> list[str]:
    """Split the body of an `in (...)` list, keeping quoted commas intact."""
    return IN_LIST_ITEM_PATTERN.findall(values)


def _rewrite_in_list(match: re.Match[str]) -> str:
    """Turn `field in (a, b, ...)` into an equivalent parenthesized disjunction."""
    field = match.group(1)
    items = split_in_list_items(match.group(2))
    if not items:
        return match.group(0)
    conditions = [f"{field} eq {item}" for item in items]
    if len(conditions) == 1:
        return conditions[0]
    return f"({' or '.join(conditions)})"


def _sub_outside_strings(
    pattern: re.Pattern[str],
    rewrite: Callable[[re.Match[str]], str],
    text: str,
) -> str:
    """Apply rewrite to matches of pattern that start outside string literals."""
    string_spans = [match.span() for match in STRING_LITERAL_PATTERN.finditer(text)]
    pieces: list[str] = []
    position = 0
    search_from = 0
    while (match := pattern.search(text, search_from)) is not None:
        enclosing_end = next(
            (end for start, end in string_spans if start <= match.start() < end), None
        )
        if enclosing_end is not None:
            search_from = enclosing_end
            continue
        pieces.append(text[position : match.start()])
        pieces.append(rewrite(match))
        position = search_from = match.end()
    pieces.append(text[position:])
    return "".join(pieces)


def preprocess(filter_text: str) -> str:
    """Rewrite datetime literals and `in` lists into grammar-legal syntax.

    Text inside quoted string literals is never rewritten.
    """
    processed = _sub_outside_strings(DATETIME_LITERAL_PATTERN, _rewrite_datetime, filter_text)
    return _sub_outside_strings(IN_LIST_PATTERN, _rewrite_in_list, processed)
