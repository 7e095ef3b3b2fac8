"""Compiler entrypoint turning OData filter text into target filter objects."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterator

from odata_orm.config import ConverterOptions
from odata_orm.errors import FilterParseError
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
from odata_orm.filter_language.fallback import fallback_parse
from odata_orm.filter_language.lowering import lower_expr
from odata_orm.filter_language.optimizer import optimize
from odata_orm.filter_language.parser import parse_filter
from odata_orm.filter_language.preprocess import preprocess
from odata_orm.navigation import FilterObject, validate_filter_field_paths


logger = logging.getLogger("odata_orm")


def iter_member_paths(expr: Expr) -> Iterator[tuple[str, ...]]:
    """Yield the segments of every member path referenced by an expression."""
    match expr:
        case MemberPath(segments=segments):
            yield segments
        case Comparison(left=left, right=right) | Arithmetic(left=left, right=right):
            yield from iter_member_paths(left)
            yield from iter_member_paths(right)
        case And(left=left, right=right) | Or(left=left, right=right):
            yield from iter_member_paths(left)
            yield from iter_member_paths(right)
        case Not(operand=inner) | Group(expr=inner) | InList(field=inner):
            yield from iter_member_paths(inner)
        case MethodCall(arguments=arguments):
            for argument in arguments:
                yield from iter_member_paths(argument)


def validate_member_paths(expr: Expr, options: ConverterOptions) -> None:
    """Reject member paths missing from the schema in strict mode."""
    schema = options.schema
    if schema is None or not schema.is_strict(options.strict_fields):
        return
    for segments in iter_member_paths(expr):
        schema.validate_strict(segments, "filter")


def compile_expr(expr: Expr, options: ConverterOptions | None = None) -> FilterObject:
    """Validate, lower and optimize a parsed filter expression."""
    if options is None:
        options = ConverterOptions()
    validate_member_paths(expr, options)
    lowered = lower_expr(expr, options)
    logger.debug("Lowered filter: %s", lowered)
    return optimize(lowered)


def convert(filter_text: object, options: ConverterOptions | None = None) -> FilterObject:
    """Convert OData filter text into a target filter object.

    Empty or non-string input yields an empty filter. Text the primary grammar
    rejects is retried with the fallback grammar; when both fail the raised
    FilterParseError carries the primary grammar's reason.
    """
    if not isinstance(filter_text, str) or not filter_text.strip():
        return {}
    if options is None:
        options = ConverterOptions()

    # Lambda bodies never reach the primary grammar, so the text scan covers them.
    validate_filter_field_paths(filter_text, options.schema, options.strict_fields)

    preprocessed = preprocess(filter_text)
    logger.debug("Preprocessed filter: %s", preprocessed)
    try:
        expr = parse_filter(preprocessed)
    except FilterParseError as exc:
        logger.info("Primary grammar rejected filter, trying fallback: %s", filter_text)
        # Nested conditions were validated above as part of the whole filter.
        nested_options = dataclasses.replace(options, strict_fields=False)
        try:
            return fallback_parse(filter_text, lambda condition: convert(condition, nested_options))
        except FilterParseError as fallback_exc:
            raise FilterParseError(f"Failed to parse OData filter: {exc}") from fallback_exc

    return compile_expr(expr, options)
