"""Tests for schema-driven field path validation."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from odata_orm.errors import ConfigError, SchemaValidationError
from odata_orm.schema import FieldDescriptor, SchemaValidator, descriptor_from_mapping


DESCRIPTOR = {
    "name": "string",
    "email": "string?",
    "profile": {"bio": "string?", "address": {"city": "string"}},
    "tags": ["string"],
    "orders": [{"amount": "number", "items": [{"sku": "string"}]}],
}


class Address(BaseModel):
    city: str
    zip_code: str | None = None


class Order(BaseModel):
    amount: float


class User(BaseModel):
    name: str
    nickname: str | None = None
    address: Address
    orders: list[Order]
    tags: list[str] = []


@pytest.mark.parametrize(
    "path",
    [
        ["name"],
        ["profile"],
        ["profile", "bio"],
        ["profile", "address", "city"],
        ["tags"],
        ["orders", "amount"],
        ["orders", "items", "sku"],
    ],
)
def test_validate_accepts_known_paths(path: list[str]) -> None:
    """Known paths and their prefixes should validate."""
    assert SchemaValidator(DESCRIPTOR).validate(path).is_valid is True


@pytest.mark.parametrize(
    ("path", "error"),
    [
        (["unknown"], "Field 'unknown' does not exist in schema"),
        (["profile", "missing"], "Field 'profile.missing' does not exist in schema"),
        (["missing", "bio"], "Field 'missing' does not exist in schema"),
        (["orders", "total"], "Field 'orders.total' does not exist in schema"),
    ],
)
def test_validate_reports_first_missing_prefix(path: list[str], error: str) -> None:
    """Unknown paths should report the first missing prefix."""
    result = SchemaValidator(DESCRIPTOR).validate(path)

    assert result.is_valid is False
    assert result.error == error


def test_validate_without_schema_accepts_everything() -> None:
    """An empty validator should accept any path."""
    validator = SchemaValidator()

    assert validator.validate(["anything", "at", "all"]).is_valid is True
    assert validator.is_strict(True) is False


def test_descriptor_nullability() -> None:
    """A trailing question mark should mark a scalar nullable."""
    schema_map = SchemaValidator(DESCRIPTOR).schema_map

    assert schema_map["email"] == FieldDescriptor("scalar", nullable=True)
    assert schema_map["name"].nullable is False
    assert schema_map["tags"].kind == "array"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        (["orders"], True),
        (["orders", "amount"], True),
        (["tags"], True),
        (["profile"], False),
        (["profile", "address", "city"], False),
        (["unknown"], False),
    ],
)
def test_is_collection_path(path: list[str], expected: bool) -> None:
    """Paths through array fields should be reported as collections."""
    assert SchemaValidator(DESCRIPTOR).is_collection_path(path) is expected


def test_valid_paths_lists_scalars_and_arrays() -> None:
    """valid_paths should omit plain object containers."""
    paths = SchemaValidator(DESCRIPTOR).valid_paths()

    assert "name" in paths
    assert "orders" in paths
    assert "orders.items.sku" in paths
    assert "profile" not in paths
    assert "profile.address" not in paths


def test_validate_strict_raises_with_operation() -> None:
    """validate_strict should raise with the failing path and operation."""
    validator = SchemaValidator(DESCRIPTOR)

    with pytest.raises(SchemaValidationError) as exc_info:
        validator.validate_strict(["profile", "missing"], "select")

    assert str(exc_info.value) == (
        "Schema validation failed for $select: Field 'profile.missing' does not exist in schema"
    )
    assert exc_info.value.field_path == "profile/missing"
    assert exc_info.value.operation == "select"


def test_schema_map_is_read_only() -> None:
    """The flattened schema map should not be mutable by callers."""
    schema_map = SchemaValidator(DESCRIPTOR).schema_map

    with pytest.raises(TypeError):
        schema_map["extra"] = FieldDescriptor("scalar")  # type: ignore[index]


def test_pydantic_model_schema() -> None:
    """Pydantic models should be flattened like descriptor mappings."""
    validator = SchemaValidator(User)
    schema_map = validator.schema_map

    assert schema_map["name"].kind == "scalar"
    assert schema_map["nickname"].nullable is True
    assert schema_map["address"].kind == "object"
    assert schema_map["address.zip_code"].nullable is True
    assert schema_map["orders"].kind == "array"
    assert schema_map["tags"].kind == "array"
    assert validator.validate(["orders", "amount"]).is_valid is True
    assert validator.is_collection_path(["orders"]) is True
    assert validator.validate(["address", "street"]).is_valid is False


@pytest.mark.parametrize(
    "value",
    [5, ["string", "number"], [], None],
)
def test_invalid_descriptor_is_rejected(value: object) -> None:
    """Descriptor values other than strings, mappings or one-item lists fail."""
    with pytest.raises(ConfigError, match="Invalid schema descriptor for field 'field'"):
        descriptor_from_mapping("field", value)


def test_unsupported_schema_type_is_rejected() -> None:
    """Schemas that are neither mappings nor models should be rejected."""
    with pytest.raises(ConfigError, match="Unsupported schema type"):
        SchemaValidator(42)  # type: ignore[arg-type]
