"""odata_orm - Translate OData query options into ORM query objects."""

from odata_orm.cli import main
from odata_orm.config import ConverterOptions
from odata_orm.errors import (
    FilterLanguageError,
    FilterParseError,
    RawSqlRequiredError,
    SchemaValidationError,
    UnsupportedConstructError,
    UnsupportedNodeError,
)
from odata_orm.filter_language import convert, optimize
from odata_orm.navigation import (
    CollectionFilter,
    NavigationPath,
    collection_filter_to_where,
    parse_collection_filter,
    parse_collection_filters,
    parse_navigation_path,
    parse_nested_order_by,
    parse_nested_select,
)
from odata_orm.query import (
    ODataQueryParams,
    PaginatedResult,
    PaginationInfo,
    PaginationQueries,
    build_pagination_query,
    build_query,
    calculate_pagination,
    process_pagination_result,
)
from odata_orm.schema import SchemaValidator


__version__ = "0.1.0"

__all__ = [
    "CollectionFilter",
    "ConverterOptions",
    "FilterLanguageError",
    "FilterParseError",
    "NavigationPath",
    "ODataQueryParams",
    "PaginatedResult",
    "PaginationInfo",
    "PaginationQueries",
    "RawSqlRequiredError",
    "SchemaValidationError",
    "SchemaValidator",
    "UnsupportedConstructError",
    "UnsupportedNodeError",
    "__version__",
    "build_pagination_query",
    "build_query",
    "calculate_pagination",
    "collection_filter_to_where",
    "convert",
    "main",
    "optimize",
    "parse_collection_filter",
    "parse_collection_filters",
    "parse_navigation_path",
    "parse_nested_order_by",
    "parse_nested_select",
]
