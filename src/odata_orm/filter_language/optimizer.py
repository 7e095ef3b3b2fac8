"""Post-lowering rewrites of target filter objects."""

from __future__ import annotations

from collections.abc import Iterator

from odata_orm.navigation import FilterObject


COMBINATOR_KEYS = frozenset({"AND", "OR", "NOT"})


def optimize(filter_object: FilterObject) -> FilterObject:
    """Collapse same-field OR chains of equality checks into IN lists."""
    return _optimize_object(filter_object)


def _optimize_value(value: object) -> object:
    if isinstance(value, dict):
        return _optimize_object(value)
    if isinstance(value, list):
        return [_optimize_value(item) for item in value]
    return value


def _optimize_object(filter_object: FilterObject) -> FilterObject:
    branches = filter_object.get("OR")
    if len(filter_object) == 1 and isinstance(branches, list):
        collapsed = _collapse_or(branches)
        if collapsed is not None:
            return collapsed
    return {key: _optimize_value(value) for key, value in filter_object.items()}


def _flatten_or(branches: list[object]) -> Iterator[object]:
    """Yield the leaves of arbitrarily nested OR lists."""
    for branch in branches:
        if isinstance(branch, dict) and len(branch) == 1 and isinstance(branch.get("OR"), list):
            yield from _flatten_or(branch["OR"])
        else:
            yield branch


def _collapse_or(branches: list[object]) -> FilterObject | None:
    """Return one equality or IN filter when every leaf tests the same field."""
    field: str | None = None
    values: list[object] = []
    for leaf in _flatten_or(branches):
        if not isinstance(leaf, dict) or len(leaf) != 1:
            return None
        ((key, condition),) = leaf.items()
        if key in COMBINATOR_KEYS or not isinstance(condition, dict) or len(condition) != 1:
            return None
        if field is not None and key != field:
            return None
        field = key
        if "equals" in condition:
            values.append(condition["equals"])
        elif isinstance(condition.get("in"), list):
            values.extend(condition["in"])
        else:
            return None

    if field is None:
        return None
    unique = _unique(values)
    if len(unique) == 1:
        return {field: {"equals": unique[0]}}
    return {field: {"in": unique}}


def _unique(values: list[object]) -> list[object]:
    """Deduplicate preserving order; `1`, `1.0` and `True` stay distinct."""
    unique: list[object] = []
    for value in values:
        if not any(type(seen) is type(value) and seen == value for seen in unique):
            unique.append(value)
    return unique
