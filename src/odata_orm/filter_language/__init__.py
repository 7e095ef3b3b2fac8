"""Public API for the OData filter parser, lowering engine and optimizer."""

from odata_orm.errors import (
    ConfigError,
    FallbackParseError,
    FilterLanguageError,
    FilterParseError,
    RawSqlRequiredError,
    SchemaValidationError,
    UnsupportedConstructError,
    UnsupportedNodeError,
)
from odata_orm.filter_language.compiler import compile_expr, convert
from odata_orm.filter_language.fallback import fallback_parse
from odata_orm.filter_language.lowering import lower_expr
from odata_orm.filter_language.optimizer import optimize
from odata_orm.filter_language.parser import parse_filter
from odata_orm.filter_language.preprocess import preprocess
from odata_orm.navigation import FilterObject


__all__ = [
    "ConfigError",
    "FallbackParseError",
    "FilterLanguageError",
    "FilterObject",
    "FilterParseError",
    "RawSqlRequiredError",
    "SchemaValidationError",
    "UnsupportedConstructError",
    "UnsupportedNodeError",
    "compile_expr",
    "convert",
    "fallback_parse",
    "lower_expr",
    "optimize",
    "parse_filter",
    "preprocess",
]
