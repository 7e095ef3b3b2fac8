"""Error taxonomy for filter compilation, schema validation and configuration."""


class FilterLanguageError(Exception):
    """Base exception for filter language failures."""


class FilterParseError(FilterLanguageError):
    """Raised when filter text cannot be parsed."""


class FallbackParseError(FilterParseError):
    """Raised when no fallback pattern matches the filter text."""


class UnsupportedNodeError(FilterLanguageError):
    """Raised when an AST node kind has no lowering handler."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported AST node type: {kind}")
        self.kind = kind


class UnsupportedConstructError(FilterLanguageError):
    """Raised for a method, operator or combination with no lowering handler."""

    def __init__(self, message: str, construct: str) -> None:
        super().__init__(message)
        self.construct = construct


class RawSqlRequiredError(UnsupportedConstructError):
    """Raised for valid OData functions the target filter language cannot express."""

    def __init__(self, message: str, function: str) -> None:
        super().__init__(message, function)
        self.function = function


class SchemaValidationError(FilterLanguageError):
    """Raised when a field path is rejected by the schema validator."""

    def __init__(self, message: str, field_path: str, operation: str = "filter") -> None:
        super().__init__(message)
        self.field_path = field_path
        self.operation = operation


class ConfigError(FilterLanguageError):
    """Raised when converter options are malformed."""
