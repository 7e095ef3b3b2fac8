"""Converter options and configuration file handling for the odata-orm CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer
from pydantic import BaseModel

from odata_orm.errors import ConfigError
from odata_orm.schema import SchemaValidator


logger = logging.getLogger("odata_orm")

DEFAULT_CONFIG_FILE = ".odata-orm.json"

OPTION_KEY_ALIASES: dict[str, str] = {
    "caseSensitive": "case_sensitive",
    "case_sensitive": "case_sensitive",
    "schema": "schema",
    "enableNestedQueries": "enable_nested_queries",
    "enable_nested_queries": "enable_nested_queries",
    "strictFields": "strict_fields",
    "strict_fields": "strict_fields",
}

CONFIG_KEY_TO_DEST: dict[str, str] = {
    "caseSensitive": "case_sensitive",
    "strictFields": "strict",
    "enableNestedQueries": "nested",
    "schema": "schema",
    "verbose": "verbose",
}


@dataclass(frozen=True)
class ConverterOptions:
    """Options recognised by the filter compiler and query builder.

    case_sensitive: None or True keeps the target store's native case handling,
        False marks string filters case-insensitive.
    schema: validator used for field path checks, or None to accept every path.
    enable_nested_queries: use nested $select/$orderby parsing in the query builder.
    strict_fields: reject field paths missing from the schema.
    """

    case_sensitive: bool | None = None
    schema: SchemaValidator | None = None
    enable_nested_queries: bool = False
    strict_fields: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> ConverterOptions:
        """Build options from camelCase or snake_case keys."""
        values: dict[str, object] = {}
        for key, value in data.items():
            name = OPTION_KEY_ALIASES.get(key)
            if name is None:
                raise ConfigError(f"Unknown converter option: {key}")
            values[name] = value

        case_sensitive = values.get("case_sensitive")
        if case_sensitive is not None and not isinstance(case_sensitive, bool):
            raise ConfigError("Option caseSensitive must be a boolean")
        for name in ("enable_nested_queries", "strict_fields"):
            if not isinstance(values.get(name, False), bool):
                raise ConfigError(f"Option {name} must be a boolean")

        return cls(
            case_sensitive=case_sensitive,
            schema=_coerce_schema(values.get("schema")),
            enable_nested_queries=bool(values.get("enable_nested_queries", False)),
            strict_fields=bool(values.get("strict_fields", False)),
        )


def _coerce_schema(value: object) -> SchemaValidator | None:
    """Accept a validator, a descriptor mapping or a pydantic model class."""
    if value is None or isinstance(value, SchemaValidator):
        return value
    if isinstance(value, Mapping) or (isinstance(value, type) and issubclass(value, BaseModel)):
        return SchemaValidator(value)
    raise ConfigError(f"Unsupported schema option: {type(value).__name__}")


def _read_json_object(path: Path) -> dict[str, object]:
    """Read a file that must hold a single JSON object.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not JSON or not an object
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("must contain a JSON object")
    return data


def load_config(filepath: str) -> tuple[dict[str, object], bool]:
    """Read converter settings from a JSON config file.

    A missing file means no settings. The returned flag is set when the file
    exists but is unreadable or does not hold a JSON object.
    """
    path = Path(filepath)
    if not path.exists():
        return ({}, False)
    try:
        return (_read_json_object(path), False)
    except (OSError, ValueError):
        return ({}, True)


def load_schema(filepath: str | None) -> SchemaValidator | None:
    """Build a schema validator from a JSON descriptor file given on the command line.

    Raises:
        typer.BadParameter: If the file is missing, unreadable or not a valid descriptor
    """
    if filepath is None:
        return None

    path = Path(filepath)
    if not path.exists():
        raise typer.BadParameter(f"Schema file '{filepath}' not found")
    try:
        descriptor = _read_json_object(path)
    except OSError as err:
        raise typer.BadParameter(f"Schema file '{filepath}' cannot be read: {err}") from err
    except json.JSONDecodeError as err:
        raise typer.BadParameter(f"Schema file '{filepath}' is not valid JSON") from err
    except ValueError as err:
        raise typer.BadParameter(f"Schema file '{filepath}' {err}") from err

    try:
        return SchemaValidator(descriptor)
    except ConfigError as err:
        raise typer.BadParameter(f"Invalid schema descriptor in '{filepath}': {err}") from err


def parse_config_argument(argv: list[str]) -> str:
    """Parse only the --config argument from argv."""
    for idx, arg in enumerate(argv[1:], start=1):
        if arg == "--config" and idx + 1 < len(argv):
            return argv[idx + 1]
        if arg.startswith("--config="):
            return arg.split("=", 1)[1]
    return DEFAULT_CONFIG_FILE


def build_config_defaults(config: dict[str, object]) -> dict[str, object] | None:
    """Translate config file keys into CLI option defaults.

    Returns None when the config holds an unknown key or a wrongly typed value.
    """
    defaults: dict[str, object] = {}
    for key, value in config.items():
        dest = CONFIG_KEY_TO_DEST.get(key)
        if dest is None:
            return None
        if dest == "schema":
            if not isinstance(value, str):
                return None
        elif not isinstance(value, bool):
            return None
        defaults[dest] = value
    return defaults


def load_cli_config(argv: list[str]) -> dict[str, object]:
    """Load config defaults from the configured file path."""
    config_name = parse_config_argument(argv)
    config_path = Path(config_name)
    if not config_path.is_absolute():
        config_path = Path.cwd() / config_name
    config, load_error = load_config(str(config_path))

    if load_error:
        raise typer.BadParameter(f"Malformed config file '{config_path}': expected a JSON object")

    defaults = build_config_defaults(config)
    if defaults is None:
        raise typer.BadParameter(
            f"Malformed config file '{config_path}': unknown key or wrongly typed value"
        )

    if defaults:
        logger.debug("Loaded config defaults from %s: %s", config_path, sorted(defaults))
    return defaults


def build_default_map(defaults: dict[str, object]) -> dict[str, dict[str, object]]:
    """Build Click default_map for Typer commands."""
    convert_defaults = {key: value for key, value in defaults.items() if key != "nested"}
    return {
        "convert": convert_defaults,
        "query": dict(defaults),
    }
