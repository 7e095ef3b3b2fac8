"""Query building from OData system query options, with pagination helpers."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from odata_orm.config import ConverterOptions
from odata_orm.filter_language import convert
from odata_orm.navigation import (
    build_nested_where,
    parse_nested_order_by,
    parse_nested_select,
    select_to_target,
    split_select_fields,
)


type SortDirection = Literal["asc", "desc"]
type QueryObject = dict[str, object]


@dataclass(frozen=True)
class ODataQueryParams:
    """Values of `$filter`, `$top`, `$skip`, `$orderby`, `$select` and `$count`."""

    filter: str | None = None
    top: int | None = None
    skip: int | None = None
    orderby: str | None = None
    select: str | None = None
    count: bool = False


@dataclass(frozen=True)
class PaginationQueries:
    """A find query and the matching count query."""

    find_query: QueryObject
    count_query: QueryObject


@dataclass(frozen=True)
class PaginationInfo:
    has_next: bool
    has_previous: bool
    total_pages: int | None = None
    current_page: int | None = None
    page_size: int | None = None


@dataclass(frozen=True)
class PaginatedResult[T]:
    """A page of results with pagination metadata."""

    data: list[T]
    pagination: PaginationInfo
    count: int | None = None


def parse_order_by(orderby: str | None) -> dict[str, SortDirection]:
    """Parse `name desc, age` into field directions, defaulting to ascending."""
    if not orderby:
        return {}
    result: dict[str, SortDirection] = {}
    for item in orderby.split(","):
        parts = item.split()
        if not parts:
            continue
        result[parts[0]] = "desc" if len(parts) > 1 and parts[1].lower() == "desc" else "asc"
    return result


def parse_select(select: str | None) -> dict[str, object]:
    """Parse `name,user(name,email)` into selected fields, one nesting level deep."""
    if not select:
        return {}
    result: dict[str, object] = {}
    for field in split_select_fields(select):
        name, paren, rest = field.partition("(")
        if not paren:
            result[name.strip()] = True
            continue
        inner = rest[:-1] if rest.endswith(")") else rest
        result[name.strip()] = {item.strip(): True for item in inner.split(",") if item.strip()}
    return result


def _order_by_entries(order_by: dict[str, SortDirection], nested: bool) -> list[QueryObject]:
    if not nested:
        return [{field: direction} for field, direction in order_by.items()]
    return [build_nested_where(field.split("."), direction) for field, direction in order_by.items()]


def build_query(params: ODataQueryParams, options: ConverterOptions | None = None) -> QueryObject:
    """Build a target query object from OData query parameters."""
    if options is None:
        options = ConverterOptions()
    query: QueryObject = {}

    if params.filter:
        query["where"] = convert(params.filter, options)
    if params.top is not None and params.top > 0:
        query["take"] = params.top
    if params.skip is not None and params.skip > 0:
        query["skip"] = params.skip

    if options.enable_nested_queries:
        order_by = parse_nested_order_by(params.orderby or "", options.schema, options.strict_fields)
        nested_select = parse_nested_select(params.select or "", options.schema, options.strict_fields)
        select = select_to_target(nested_select)
    else:
        order_by = parse_order_by(params.orderby)
        select = parse_select(params.select)

    if order_by:
        query["orderBy"] = _order_by_entries(order_by, options.enable_nested_queries)
    if select:
        query["select"] = select
    return query


def build_count_query(find_query: QueryObject) -> QueryObject:
    """Keep only the filter of a find query."""
    return {"where": find_query["where"]} if "where" in find_query else {}


def build_pagination_query(
    params: ODataQueryParams, options: ConverterOptions | None = None
) -> PaginationQueries:
    """Build the find query and its count query."""
    find_query = build_query(params, options)
    return PaginationQueries(find_query=find_query, count_query=build_count_query(find_query))


def calculate_pagination(total: int, skip: int = 0, take: int | None = None) -> PaginationInfo:
    """Compute page metadata for a result window."""
    has_previous = skip > 0
    if take is None or take <= 0:
        return PaginationInfo(has_next=False, has_previous=has_previous)
    return PaginationInfo(
        has_next=skip + take < total,
        has_previous=has_previous,
        total_pages=math.ceil(total / take),
        current_page=skip // take + 1,
        page_size=take,
    )


def process_pagination_result[T](
    data: Sequence[T], total: int, params: ODataQueryParams
) -> PaginatedResult[T]:
    """Attach pagination metadata, and the total when `$count` was requested."""
    pagination = calculate_pagination(total, params.skip or 0, params.top)
    return PaginatedResult(
        data=list(data),
        pagination=pagination,
        count=total if params.count else None,
    )
