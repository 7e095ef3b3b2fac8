"""Tests for navigation paths, lambdas and nested select/orderby parsing."""

from __future__ import annotations

import pytest

from odata_orm.errors import SchemaValidationError, UnsupportedConstructError
from odata_orm.navigation import (
    CollectionFilter,
    LambdaAnnotation,
    build_nested_where,
    closing_paren,
    collection_filter_to_where,
    extract_filter_field_paths,
    parse_collection_filter,
    parse_collection_filters,
    parse_navigation_path,
    parse_nested_order_by,
    parse_nested_select,
    select_to_target,
    split_select_fields,
    strip_lambda_variable,
    validate_filter_field_paths,
)
from odata_orm.schema import SchemaValidator


SCHEMA = SchemaValidator(
    {
        "name": "string",
        "profile": {"bio": "string", "avatar": {"url": "string"}},
        "orders": [{"amount": "number", "items": [{"sku": "string"}]}],
    }
)


def test_parse_navigation_path_segments() -> None:
    """Slash-separated paths should split into segments."""
    path = parse_navigation_path("Customer/Address/City")

    assert path.segments == ("Customer", "Address", "City")
    assert path.is_navigation is True
    assert path.is_collection is False


def test_parse_navigation_path_single_segment() -> None:
    """A single identifier is not a navigation."""
    path = parse_navigation_path("Name")

    assert path.segments == ("Name",)
    assert path.is_navigation is False


def test_parse_navigation_path_with_lambda() -> None:
    """A trailing lambda should be attached as an annotation."""
    path = parse_navigation_path("Orders/any(o: o/Amount gt 100)")

    assert path.segments == ("Orders",)
    assert path.is_collection is True
    assert path.lambda_annotation == LambdaAnnotation("any", "o", "o/Amount gt 100")


def test_parse_collection_filter_requires_whole_expression() -> None:
    """Only a lambda spanning the whole expression should parse."""
    assert parse_collection_filter("Orders/all(o: o/Paid eq true)") == CollectionFilter(
        quantifier="all", variable="o", condition="o/Paid eq true", path=("Orders",)
    )
    assert parse_collection_filter("Orders/any(o: o/Paid eq true) and A eq 1") is None
    assert parse_collection_filter("Name eq 'x'") is None


def test_parse_collection_filters_finds_every_lambda() -> None:
    """All lambdas in a filter should be returned in order."""
    filters = parse_collection_filters(
        "Orders/any(o: o/Amount gt 1) and Items/all(i: contains(i/Sku, ')'))"
    )

    assert [(item.path, item.quantifier) for item in filters] == [
        (("Orders",), "any"),
        (("Items",), "all"),
    ]
    assert filters[1].condition == "contains(i/Sku, ')')"


def test_parse_collection_filters_strict_rejects_non_collection() -> None:
    """Strict parsing should reject lambdas over object fields."""
    with pytest.raises(SchemaValidationError, match="cannot be used with any"):
        parse_collection_filters("profile/any(p: p/bio eq 'x')", SCHEMA, strict=True)


def test_closing_paren_ignores_quoted_parentheses() -> None:
    """Parentheses inside string literals should not affect matching."""
    text = "f('a)b', c)"

    assert closing_paren(text, 1) == len(text) - 1
    assert closing_paren("f(a", 1) is None


def test_strip_lambda_variable() -> None:
    """The bound variable prefix should be removed from every field."""
    assert strip_lambda_variable("o/Amount gt 100 and o/Qty lt 2", "o") == (
        "Amount gt 100 and Qty lt 2"
    )
    assert strip_lambda_variable("foo/Bar eq 1", "o") == "foo/Bar eq 1"


@pytest.mark.parametrize("condition", ["t eq 'red'", "contains(t, 'x')", "t/Name eq 'a' or t ne null"])
def test_strip_lambda_variable_rejects_bare_variable(condition: str) -> None:
    """Conditions on the bound variable itself should be rejected."""
    with pytest.raises(UnsupportedConstructError, match="not 't' itself"):
        strip_lambda_variable(condition, "t")


def test_strip_lambda_variable_ignores_variable_in_strings() -> None:
    """The variable name inside a quoted literal is not a reference."""
    assert strip_lambda_variable("t/Label eq 't'", "t") == "Label eq 't'"


def test_collection_filter_to_where_nests_quantifier() -> None:
    """The converted condition should sit under some or every at the path end."""
    collection_filter = CollectionFilter("all", "o", "o/Paid eq true", ("Customer", "Orders"))

    result = collection_filter_to_where(collection_filter, lambda text: {"raw": text})

    assert result == {"Customer": {"Orders": {"every": {"raw": "Paid eq true"}}}}


def test_build_nested_where() -> None:
    """Each path segment should become one nesting level."""
    assert build_nested_where(("a", "b"), {"equals": 1}) == {"a": {"b": {"equals": 1}}}
    assert build_nested_where((), {"AND": []}) == {"AND": []}
    with pytest.raises(UnsupportedConstructError):
        build_nested_where((), 1)


def test_extract_filter_field_paths() -> None:
    """Fields should be extracted outside lambdas and string literals."""
    paths = extract_filter_field_paths(
        "Name eq 'Age gt 1' and contains(Email, 'x') and "
        "Orders/any(o: o/Amount gt 1) and Price mul 2 gt 10 and substringof('a', Title)"
    )

    assert paths == ["Name", "Price", "Email", "Title"]


def test_validate_filter_field_paths_only_in_strict_mode() -> None:
    """Unknown fields should only be rejected in strict mode."""
    validate_filter_field_paths("missing eq 1", SCHEMA, strict=False)
    validate_filter_field_paths("missing eq 1", None, strict=True)

    with pytest.raises(SchemaValidationError, match="Field 'missing' does not exist"):
        validate_filter_field_paths("missing eq 1", SCHEMA, strict=True)


def test_validate_filter_field_paths_checks_lambda_conditions() -> None:
    """Lambda condition fields should be validated under the collection path."""
    validate_filter_field_paths("orders/any(o: o/amount gt 1)", SCHEMA, strict=True)

    with pytest.raises(SchemaValidationError, match="orders.total"):
        validate_filter_field_paths("orders/any(o: o/total gt 1)", SCHEMA, strict=True)


def test_split_select_fields_respects_parentheses() -> None:
    """Commas inside nested selections should not split fields."""
    assert split_select_fields("a, b(c,d), e") == ["a", "b(c,d)", "e"]
    assert split_select_fields("") == []


def test_parse_nested_select() -> None:
    """Nested selections and slash paths should produce nested dicts."""
    result = parse_nested_select("name,profile/bio,orders(amount,items(sku))")

    assert result == {
        "name": True,
        "profile": {"bio": True},
        "orders": {"amount": True, "items": {"sku": True}},
    }


def test_parse_nested_select_strict_validates_nested_paths() -> None:
    """Strict select parsing should validate paths inside nested selections."""
    assert parse_nested_select("profile(avatar(url))", SCHEMA, strict=True) == {
        "profile": {"avatar": {"url": True}}
    }

    with pytest.raises(SchemaValidationError) as exc_info:
        parse_nested_select("profile(missing)", SCHEMA, strict=True)

    assert exc_info.value.operation == "select"
    assert exc_info.value.field_path == "profile/missing"


def test_select_to_target_wraps_nested_levels() -> None:
    """Nested selections should be wrapped in select keys."""
    nested = {"name": True, "profile": {"bio": True, "avatar": {"url": True}}}

    assert select_to_target(nested) == {
        "name": True,
        "profile": {"select": {"bio": True, "avatar": {"select": {"url": True}}}},
    }


def test_parse_nested_order_by() -> None:
    """Order by paths should become dotted keys with directions."""
    assert parse_nested_order_by("name, profile/bio desc, orders/amount ASC") == {
        "name": "asc",
        "profile.bio": "desc",
        "orders.amount": "asc",
    }
    assert parse_nested_order_by("") == {}


def test_parse_nested_order_by_strict_rejects_unknown() -> None:
    """Strict order by parsing should reject unknown paths."""
    with pytest.raises(SchemaValidationError) as exc_info:
        parse_nested_order_by("profile/missing desc", SCHEMA, strict=True)

    assert exc_info.value.operation == "orderby"
