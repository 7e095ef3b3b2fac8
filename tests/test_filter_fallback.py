"""Tests for the regex fallback grammar."""

from __future__ import annotations

import pytest

from odata_orm.errors import FallbackParseError, FilterParseError
from odata_orm.filter_language import fallback_parse
from odata_orm.filter_language.fallback import simple_condition


@pytest.mark.parametrize(
    ("filter_text", "expected"),
    [
        ("Name eq 'John'", {"Name": {"equals": "John"}}),
        ("Name eq 'O''Brien'", {"Name": {"equals": "O'Brien"}}),
        ("Age ge 18", {"Age": {"gte": 18}}),
        ("Active eq true", {"Active": {"equals": True}}),
        ("Deleted eq null", {"Deleted": None}),
        ("Customer/Name ne 'x'", {"Customer": {"Name": {"not": "x"}}}),
        ("Code eq ABC", {"Code": {"equals": "ABC"}}),
    ],
)
def test_fallback_field_comparisons(filter_text: str, expected: dict[str, object]) -> None:
    """Simple comparisons should be converted with coerced values."""
    assert fallback_parse(filter_text) == expected


@pytest.mark.parametrize(
    ("filter_text", "expected"),
    [
        ("Price mul 1.1 gt 100", {"Price": {"gt": 90.91}}),
        ("Price * 2 le 50", {"Price": {"lte": 25}}),
        ("Price+10 lt 50", {"Price": {"lt": 40}}),
        ("Price sub 5 ne 20", {"Price": {"not": {"equals": 25}}}),
    ],
)
def test_fallback_arithmetic_comparisons(filter_text: str, expected: dict[str, object]) -> None:
    """Arithmetic comparisons should be pre-solved and rounded."""
    assert fallback_parse(filter_text) == expected


def test_fallback_in_list() -> None:
    """In lists should become IN filters with coerced values."""
    assert fallback_parse("Status in ('open', 'closed', 3)") == {
        "Status": {"in": ["open", "closed", 3]}
    }


def test_fallback_single_item_in_list_is_equality() -> None:
    """A one-item in list should become a plain equality."""
    assert fallback_parse("Customer/Tier in ('gold')") == {"Customer": {"Tier": {"equals": "gold"}}}


@pytest.mark.parametrize(
    ("filter_text", "expected"),
    [
        (
            "Orders/any(o: o/Amount gt 100)",
            {"Orders": {"some": {"Amount": {"gt": 100}}}},
        ),
        (
            "Orders/all(o: o/Status eq 'done')",
            {"Orders": {"every": {"Status": {"equals": "done"}}}},
        ),
        (
            "Customer/Orders/any(order: order/Total ge 10)",
            {"Customer": {"Orders": {"some": {"Total": {"gte": 10}}}}},
        ),
    ],
)
def test_fallback_collection_lambdas(filter_text: str, expected: dict[str, object]) -> None:
    """Lambdas should nest their condition under some or every."""
    assert fallback_parse(filter_text) == expected


def test_fallback_lambda_uses_condition_converter() -> None:
    """The lambda condition should be handed to the supplied converter."""
    seen: list[str] = []

    def converter(condition: str) -> dict[str, object]:
        seen.append(condition)
        return {"converted": condition}

    result = fallback_parse("Orders/any(o: o/Amount gt 100 and o/Paid eq true)", converter)

    assert seen == ["Amount gt 100 and Paid eq true"]
    assert result == {"Orders": {"some": {"converted": "Amount gt 100 and Paid eq true"}}}


@pytest.mark.parametrize(
    ("filter_text", "combinator"),
    [
        ("A eq 1 and B eq 'x and y'", "AND"),
        ("A eq 1 or B eq 2", "OR"),
    ],
)
def test_fallback_top_level_logical_chains(filter_text: str, combinator: str) -> None:
    """Top-level and/or chains should convert each operand."""
    result = fallback_parse(filter_text)

    assert list(result) == [combinator]
    assert result[combinator][0] == {"A": {"equals": 1}}  # type: ignore[index]


def test_fallback_or_binds_looser_than_and() -> None:
    """A mixed chain should split on or before and."""
    result = fallback_parse("A eq 1 and B eq 2 or C eq 3", lambda text: {"part": text})

    assert result == {"OR": [{"part": "A eq 1 and B eq 2"}, {"part": "C eq 3"}]}


@pytest.mark.parametrize(
    "filter_text",
    [
        "garbage ???",
        "A eq 1 and ???",
        "Name eq",
        "",
    ],
)
def test_fallback_rejects_unmatched_text(filter_text: str) -> None:
    """Text no pattern accepts should raise the fallback error."""
    with pytest.raises(FallbackParseError, match="Fallback parsing failed"):
        fallback_parse(filter_text)


def test_fallback_error_is_a_parse_error() -> None:
    """Fallback failures should be catchable as parse errors."""
    with pytest.raises(FilterParseError):
        simple_condition("not a comparison")
