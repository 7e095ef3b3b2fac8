"""Field path validation against a structural schema descriptor."""

from __future__ import annotations

import types
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Literal, Union, get_args, get_origin

from pydantic import BaseModel

from odata_orm.errors import ConfigError, SchemaValidationError


type FieldKind = Literal["scalar", "object", "array"]
type Operation = Literal["filter", "select", "orderby"]
type SchemaSource = Mapping[str, object] | type[BaseModel] | None

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset, Sequence)


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Metadata for one schema field."""

    kind: FieldKind
    nullable: bool = False
    fields: Mapping[str, FieldDescriptor] = field(default_factory=dict)
    item: FieldDescriptor | None = None


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating one field path."""

    is_valid: bool
    error: str | None = None


def descriptor_from_mapping(name: str, value: object) -> FieldDescriptor:
    """Build a field descriptor from the JSON-compatible descriptor syntax.

    A string names a scalar type (a trailing `?` marks it nullable), a mapping
    describes an object and a single-element list describes an array of its item.
    """
    match value:
        case str():
            return FieldDescriptor("scalar", nullable=value.endswith("?"))
        case Mapping():
            return FieldDescriptor(
                "object",
                fields={key: descriptor_from_mapping(f"{name}.{key}", sub) for key, sub in value.items()},
            )
        case [item]:
            return FieldDescriptor("array", item=descriptor_from_mapping(name, item))
    raise ConfigError(f"Invalid schema descriptor for field '{name}': {value!r}")


def _unwrap_optional(annotation: object) -> tuple[object, bool]:
    """Strip `None` from a union annotation, reporting whether it was present."""
    if get_origin(annotation) not in (Union, types.UnionType):
        return annotation, False
    members = [arg for arg in get_args(annotation) if arg is not type(None)]
    nullable = len(members) != len(get_args(annotation))
    if len(members) == 1:
        return members[0], nullable
    return annotation, nullable


def descriptor_from_annotation(annotation: object) -> FieldDescriptor:
    """Build a field descriptor from a pydantic field annotation."""
    core, nullable = _unwrap_optional(annotation)
    if isinstance(core, type) and issubclass(core, BaseModel):
        return FieldDescriptor("object", nullable=nullable, fields=_model_fields(core))
    origin = get_origin(core)
    if origin is not None and isinstance(origin, type) and issubclass(origin, _SEQUENCE_ORIGINS):
        args = get_args(core)
        item = descriptor_from_annotation(args[0]) if args else FieldDescriptor("scalar")
        return FieldDescriptor("array", nullable=nullable, item=item)
    return FieldDescriptor("scalar", nullable=nullable)


def _model_fields(model: type[BaseModel]) -> dict[str, FieldDescriptor]:
    return {
        name: descriptor_from_annotation(info.annotation)
        for name, info in model.model_fields.items()
    }


def _object_fields(descriptor: FieldDescriptor) -> Mapping[str, FieldDescriptor]:
    """Return sub-fields reachable from an object or an array of objects."""
    if descriptor.kind == "object":
        return descriptor.fields
    if descriptor.kind == "array" and descriptor.item is not None and descriptor.item.kind == "object":
        return descriptor.item.fields
    return {}


def build_schema_map(fields: Mapping[str, FieldDescriptor], prefix: str = "") -> dict[str, FieldDescriptor]:
    """Flatten nested descriptors into a dotted-path lookup map."""
    schema_map: dict[str, FieldDescriptor] = {}
    for name, descriptor in fields.items():
        path = f"{prefix}.{name}" if prefix else name
        schema_map[path] = descriptor
        schema_map.update(build_schema_map(_object_fields(descriptor), path))
    return schema_map


class SchemaValidator:
    """Validate field paths against a flattened schema map.

    The map is built once at construction and never mutated, so one validator
    can be shared by concurrent callers. Without a schema every path is valid.
    """

    def __init__(self, schema: SchemaSource = None) -> None:
        if schema is None:
            fields: Mapping[str, FieldDescriptor] = {}
        elif isinstance(schema, type) and issubclass(schema, BaseModel):
            fields = _model_fields(schema)
        elif isinstance(schema, Mapping):
            fields = {name: descriptor_from_mapping(name, value) for name, value in schema.items()}
        else:
            raise ConfigError(f"Unsupported schema type: {type(schema).__name__}")
        self._schema_map = build_schema_map(fields)

    @property
    def schema_map(self) -> Mapping[str, FieldDescriptor]:
        return types.MappingProxyType(self._schema_map)

    def validate(self, path: Sequence[str]) -> ValidationResult:
        """Check that a path and each of its prefixes exist in the schema."""
        if not self._schema_map:
            return ValidationResult(True)
        for index in range(len(path)):
            current = ".".join(path[: index + 1])
            if current not in self._schema_map:
                return ValidationResult(False, f"Field '{current}' does not exist in schema")
        return ValidationResult(True)

    def is_collection_path(self, path: Sequence[str]) -> bool:
        """Return whether any prefix of the path resolves to an array field."""
        for index in range(len(path)):
            descriptor = self._schema_map.get(".".join(path[: index + 1]))
            if descriptor is not None and descriptor.kind == "array":
                return True
        return False

    def valid_paths(self) -> list[str]:
        """Return paths that can be filtered or selected directly."""
        return [
            path
            for path, descriptor in self._schema_map.items()
            if descriptor.kind in ("scalar", "array")
        ]

    def validate_strict(self, path: Sequence[str], operation: Operation = "filter") -> None:
        """Raise SchemaValidationError when the path is not valid."""
        result = self.validate(path)
        if not result.is_valid:
            raise SchemaValidationError(
                f"Schema validation failed for ${operation}: {result.error}",
                "/".join(path),
                operation,
            )

    def is_strict(self, strict_fields: bool) -> bool:
        """Return whether strict validation applies for this validator."""
        return bool(self._schema_map) and strict_fields
