"""Tests for literal resolution helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from odata_orm.errors import UnsupportedConstructError
from odata_orm.filter_language.literals import (
    coerce_value,
    format_iso_utc,
    invert_arithmetic,
    parse_iso_datetime,
)


def test_format_iso_utc_converts_offsets() -> None:
    """Aware datetimes should be shifted to UTC with millisecond precision."""
    value = datetime(2023, 6, 15, 12, 30, 5, 123456, tzinfo=timezone(timedelta(hours=2)))

    assert format_iso_utc(value) == "2023-06-15T10:30:05.123Z"


def test_parse_iso_datetime_treats_naive_as_utc() -> None:
    """Naive date-times should be interpreted as UTC."""
    assert parse_iso_datetime("2023-01-01T08:00:00") == datetime(2023, 1, 1, 8, tzinfo=UTC)
    assert parse_iso_datetime("yesterday") is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("'text'", "text"),
        ("'it''s'", "it's"),
        ("true", True),
        ("false", False),
        ("null", None),
        ("42", 42),
        ("-3.5", -3.5),
        ("ABC", "ABC"),
    ],
)
def test_coerce_value(raw: str, expected: object) -> None:
    """Raw fallback values should be coerced by their shape."""
    assert coerce_value(raw) == expected


@pytest.mark.parametrize(
    ("operator", "operand", "threshold", "expected"),
    [
        ("mul", 1.1, 100, 90.91),
        ("mul", 4, 10, 2.5),
        ("div", 3, 7, 21),
        ("add", 0.1, 0.3, 0.2),
        ("sub", 2, 8, 10),
    ],
)
def test_invert_arithmetic(operator: str, operand: float, threshold: float, expected: float) -> None:
    """Inverted thresholds should be rounded to two decimals."""
    assert invert_arithmetic(operator, operand, threshold) == expected


def test_invert_arithmetic_rejects_non_numbers() -> None:
    """Non-numeric operands should be rejected."""
    with pytest.raises(UnsupportedConstructError):
        invert_arithmetic("add", True, 3)
