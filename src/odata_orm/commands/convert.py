"""Convert command printing the target filter for an OData filter string."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import click
import typer

from odata_orm import config as config_module
from odata_orm.config import ConverterOptions
from odata_orm.filter_language import FilterLanguageError, convert
from odata_orm.output import DEFAULT_OUTPUT_THEME, build_console, print_json, should_use_color


logger = logging.getLogger("odata_orm")


@dataclass
class ConvertArgs:
    """Arguments for the convert command."""

    filter_text: str
    case_sensitive: bool | None
    schema: str | None
    strict: bool
    config: str
    color_flag: bool | None
    out_theme: str


def build_options(
    case_sensitive: bool | None, schema: str | None, strict: bool, nested: bool = False
) -> ConverterOptions:
    """Build converter options from command line values."""
    return ConverterOptions(
        case_sensitive=case_sensitive,
        schema=config_module.load_schema(schema),
        enable_nested_queries=nested,
        strict_fields=strict,
    )


def run_convert(args: ConvertArgs) -> None:
    """Run the convert command."""
    color_enabled = should_use_color(args.color_flag)
    console = build_console(color_enabled)
    options = build_options(args.case_sensitive, args.schema, args.strict)
    logger.info("Converting filter: %s", args.filter_text)
    try:
        result = convert(args.filter_text, options)
    except FilterLanguageError as exc:
        raise click.UsageError(str(exc)) from exc
    print_json(console, result, color_enabled, args.out_theme)


def register(app: typer.Typer) -> None:
    """Register the convert command."""

    @app.command("convert")
    def convert_command(
        filter_text: str = typer.Argument(..., metavar="FILTER", help="OData $filter expression"),
        case_sensitive: bool | None = typer.Option(
            None,
            "--case-sensitive/--case-insensitive",
            help="Mark string filters case-insensitive with --case-insensitive",
        ),
        schema: str | None = typer.Option(
            None,
            "--schema",
            metavar="FILE",
            help="JSON schema descriptor used for field validation",
        ),
        strict: bool = typer.Option(
            False,
            "--strict",
            help="Reject field paths missing from the schema",
        ),
        config: str = typer.Option(
            config_module.DEFAULT_CONFIG_FILE,
            "--config",
            metavar="FILE",
            help="Config file name to load from current directory",
        ),
        color_flag: bool | None = typer.Option(
            None,
            "--color/--no-color",
            help="Force colored output",
        ),
        out_theme: str = typer.Option(
            DEFAULT_OUTPUT_THEME,
            "--out-theme",
            help="Syntax theme for highlighted JSON output",
        ),
    ) -> None:
        """Convert an OData filter into a target filter object."""
        run_convert(
            ConvertArgs(
                filter_text=filter_text,
                case_sensitive=case_sensitive,
                schema=schema,
                strict=strict,
                config=config,
                color_flag=color_flag,
                out_theme=out_theme,
            )
        )
