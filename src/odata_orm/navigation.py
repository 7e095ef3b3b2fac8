"""Navigation paths, collection lambdas and nested $select/$orderby parsing."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Literal

from odata_orm.errors import SchemaValidationError, UnsupportedConstructError
from odata_orm.schema import SchemaValidator


type Quantifier = Literal["any", "all"]
type SortDirection = Literal["asc", "desc"]
type NestedSelect = dict[str, bool | NestedSelect]
type FilterObject = dict[str, object]
type ConditionConverter = Callable[[str], FilterObject]

_PATH = r"[A-Za-z_][A-Za-z0-9_]*(?:/[A-Za-z_][A-Za-z0-9_]*)*"

LAMBDA_HEAD_PATTERN = re.compile(rf"(?<![\w/])(?P<path>{_PATH})/(?P<quantifier>any|all)\(")
LAMBDA_BODY_PATTERN = re.compile(r"\s*(?P<variable>[A-Za-z_]\w*)\s*:\s*(?P<condition>.+?)\s*", re.DOTALL)
QUOTED_STRING_PATTERN = re.compile(r"'(?:[^']|'')*'")
FIELD_BEFORE_OPERATOR_PATTERN = re.compile(
    rf"(?<![\w/])({_PATH})\s+(?:eq|ne|gt|ge|lt|le|in|add|sub|mul|div|mod)\b"
)
METHOD_ARGUMENT_PATTERN = re.compile(
    rf"\b(?:contains|startswith|endswith|indexof|length|tolower|toupper|trim|year|month|day)"
    rf"\s*\(\s*({_PATH})\s*[,)]"
)
SUBSTRINGOF_ARGUMENT_PATTERN = re.compile(rf"\bsubstringof\s*\(\s*''\s*,\s*({_PATH})\s*\)")
NESTED_SELECT_PATTERN = re.compile(r"^([^(]+)\((.+)\)$", re.DOTALL)

KEYWORD_TOKENS = frozenset({"and", "or", "not", "true", "false", "null"})
QUANTIFIER_TARGETS: dict[str, str] = {"any": "some", "all": "every"}


@dataclass(frozen=True, slots=True)
class LambdaAnnotation:
    """Collection quantifier attached to the end of a navigation path."""

    quantifier: Quantifier
    variable: str
    condition: str


@dataclass(frozen=True, slots=True)
class NavigationPath:
    """Identifier segments traversing related entities."""

    segments: tuple[str, ...]
    lambda_annotation: LambdaAnnotation | None = None

    @property
    def is_navigation(self) -> bool:
        return len(self.segments) > 1

    @property
    def is_collection(self) -> bool:
        return self.lambda_annotation is not None


@dataclass(frozen=True, slots=True)
class CollectionFilter:
    """An `any`/`all` lambda over a collection path."""

    quantifier: Quantifier
    variable: str
    condition: str
    path: tuple[str, ...]


def build_nested_where(path: Sequence[str], condition: object) -> FilterObject:
    """Wrap a condition in one single-key object per path segment."""
    if not path:
        if not isinstance(condition, dict):
            raise UnsupportedConstructError("Empty field path", "path")
        return condition
    current: object = condition
    for segment in reversed(path):
        current = {segment: current}
    return current  # type: ignore[return-value]


def closing_paren(text: str, open_index: int) -> int | None:
    """Return the index of the parenthesis closing the one at open_index."""
    depth = 0
    in_string = False
    for index in range(open_index, len(text)):
        char = text[index]
        if char == "'":
            in_string = not in_string
        elif in_string:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def _scan_lambdas(filter_text: str) -> Iterator[tuple[int, int, CollectionFilter]]:
    """Yield (start, end, filter) for each top-level lambda expression."""
    position = 0
    while (head := LAMBDA_HEAD_PATTERN.search(filter_text, position)) is not None:
        close = closing_paren(filter_text, head.end() - 1)
        if close is None:
            return
        body = LAMBDA_BODY_PATTERN.fullmatch(filter_text, head.end(), close)
        if body is not None:
            yield (
                head.start(),
                close + 1,
                CollectionFilter(
                    quantifier="any" if head.group("quantifier") == "any" else "all",
                    variable=body.group("variable"),
                    condition=body.group("condition"),
                    path=tuple(head.group("path").split("/")),
                ),
            )
        position = close + 1


def parse_collection_filter(expression: str) -> CollectionFilter | None:
    """Parse a whole expression of the form `path/any(v: condition)`."""
    text = expression.strip()
    first = next(_scan_lambdas(text), None)
    if first is None:
        return None
    start, end, collection_filter = first
    if start == 0 and end == len(text):
        return collection_filter
    return None


def parse_navigation_path(text: str) -> NavigationPath:
    """Parse `a/b/c` or `a/b/any(v: ...)` into a navigation path."""
    collection_filter = parse_collection_filter(text)
    if collection_filter is not None:
        return NavigationPath(
            collection_filter.path,
            LambdaAnnotation(
                collection_filter.quantifier,
                collection_filter.variable,
                collection_filter.condition,
            ),
        )
    return NavigationPath(tuple(segment.strip() for segment in text.strip().split("/")))


def strip_lambda_variable(condition: str, variable: str) -> str:
    """Remove the bound-variable prefix so the condition reads as plain fields.

    A condition that uses the variable itself (`t: t eq 'red'`) has no field to
    filter on and is rejected.
    """
    masked = QUOTED_STRING_PATTERN.sub("''", condition)
    if re.search(rf"(?<![\w/]){re.escape(variable)}\b(?!/)", masked):
        raise UnsupportedConstructError(
            f"Lambda condition must compare fields of '{variable}', not '{variable}' itself",
            "lambda",
        )
    return re.sub(rf"\b{re.escape(variable)}/", "", condition)


def validate_collection_path(
    validator: SchemaValidator, path: Sequence[str], quantifier: str
) -> None:
    """Reject unknown paths and lambdas over non-collection fields."""
    validator.validate_strict(path, "filter")
    if not validator.is_collection_path(path):
        joined = "/".join(path)
        raise SchemaValidationError(
            f"Schema validation failed for $filter: Field '{joined}' is not a collection "
            f"and cannot be used with {quantifier}()",
            joined,
            "filter",
        )


def parse_collection_filters(
    filter_text: str,
    validator: SchemaValidator | None = None,
    strict: bool = False,
) -> list[CollectionFilter]:
    """Find every lambda expression in a filter string."""
    if not filter_text:
        return []
    check = validator is not None and validator.is_strict(strict)
    filters: list[CollectionFilter] = []
    for _start, _end, collection_filter in _scan_lambdas(filter_text):
        if check and validator is not None:
            validate_collection_path(validator, collection_filter.path, collection_filter.quantifier)
        filters.append(collection_filter)
    return filters


def collection_filter_to_where(
    collection_filter: CollectionFilter, converter: ConditionConverter
) -> FilterObject:
    """Convert a lambda into a nested `some`/`every` clause."""
    condition = strip_lambda_variable(collection_filter.condition, collection_filter.variable)
    return build_nested_where(
        collection_filter.path,
        {QUANTIFIER_TARGETS[collection_filter.quantifier]: converter(condition)},
    )


def _remove_lambdas(filter_text: str) -> str:
    pieces: list[str] = []
    position = 0
    for start, end, _collection_filter in _scan_lambdas(filter_text):
        pieces.append(filter_text[position:start])
        position = end
    pieces.append(filter_text[position:])
    return " ".join(pieces)


def extract_filter_field_paths(filter_text: str) -> list[str]:
    """Extract field paths compared or passed to methods in a filter string.

    Lambda expressions and quoted strings are removed first so bound variables
    and literal text are never reported as fields.
    """
    if not filter_text:
        return []
    cleaned = QUOTED_STRING_PATTERN.sub("''", _remove_lambdas(filter_text))
    paths: list[str] = []
    for pattern in (
        FIELD_BEFORE_OPERATOR_PATTERN,
        METHOD_ARGUMENT_PATTERN,
        SUBSTRINGOF_ARGUMENT_PATTERN,
    ):
        for match in pattern.finditer(cleaned):
            path = match.group(1)
            if path not in KEYWORD_TOKENS and path not in paths:
                paths.append(path)
    return paths


def validate_filter_field_paths(
    filter_text: str,
    validator: SchemaValidator | None,
    strict: bool = False,
) -> None:
    """Validate every field path of a filter string in strict mode.

    Fields inside a lambda condition are checked relative to the collection path.
    """
    if not filter_text or validator is None or not validator.is_strict(strict):
        return
    for path in extract_filter_field_paths(filter_text):
        validator.validate_strict(path.split("/"), "filter")
    for collection_filter in parse_collection_filters(filter_text, validator, strict):
        condition = strip_lambda_variable(collection_filter.condition, collection_filter.variable)
        for path in extract_filter_field_paths(condition):
            validator.validate_strict((*collection_filter.path, *path.split("/")), "filter")


def split_select_fields(select: str) -> list[str]:
    """Split a select list on commas outside parentheses."""
    fields: list[str] = []
    current: list[str] = []
    depth = 0
    for char in select:
        if char == "," and depth == 0:
            fields.append("".join(current).strip())
            current = []
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current.append(char)
    fields.append("".join(current).strip())
    return [field for field in fields if field]


def _set_nested_value(target: NestedSelect, path: Sequence[str], value: bool | NestedSelect) -> None:
    current = target
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def parse_nested_select(
    select: str,
    validator: SchemaValidator | None = None,
    strict: bool = False,
    context: tuple[str, ...] = (),
) -> NestedSelect:
    """Parse `a,b/c,d(e,f(g))` into nested dicts of selected fields."""
    if not select:
        return {}
    check = validator is not None and validator.is_strict(strict)
    result: NestedSelect = {}
    for field in split_select_fields(select):
        nested = NESTED_SELECT_PATTERN.match(field)
        base = nested.group(1) if nested else field
        path = [segment.strip() for segment in base.split("/")]
        if check and validator is not None:
            validator.validate_strict((*context, *path), "select")
        if nested is None:
            _set_nested_value(result, path, True)
        else:
            _set_nested_value(
                result,
                path,
                parse_nested_select(nested.group(2), validator, strict, (*context, *path)),
            )
    return result


def select_to_target(nested: NestedSelect) -> dict[str, object]:
    """Wrap each nested level of a parsed select in a `select` key."""
    return {
        key: True if value is True else {"select": select_to_target(value)}
        for key, value in nested.items()
        if value is True or isinstance(value, dict)
    }


def parse_nested_order_by(
    orderby: str,
    validator: SchemaValidator | None = None,
    strict: bool = False,
) -> dict[str, SortDirection]:
    """Parse `name, profile/bio desc` into dotted paths with directions."""
    if not orderby:
        return {}
    check = validator is not None and validator.is_strict(strict)
    result: dict[str, SortDirection] = {}
    for item in orderby.split(","):
        parts = item.split()
        if not parts:
            continue
        path = parts[0].split("/")
        if check and validator is not None:
            validator.validate_strict(path, "orderby")
        direction: SortDirection = "desc" if len(parts) > 1 and parts[1].lower() == "desc" else "asc"
        result[".".join(path)] = direction
    return result
