"""Query command building a full target query from OData query options."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import click
import typer

from odata_orm import config as config_module
from odata_orm.commands.convert import build_options
from odata_orm.filter_language import FilterLanguageError
from odata_orm.output import DEFAULT_OUTPUT_THEME, build_console, print_json, should_use_color
from odata_orm.query import ODataQueryParams, build_pagination_query, build_query


logger = logging.getLogger("odata_orm")


@dataclass
class QueryArgs:
    """Arguments for the query command."""

    filter_text: str | None
    top: int | None
    skip: int | None
    orderby: str | None
    select: str | None
    count: bool
    nested: bool
    case_sensitive: bool | None
    schema: str | None
    strict: bool
    config: str
    color_flag: bool | None
    out_theme: str


def run_query(args: QueryArgs) -> None:
    """Run the query command."""
    if args.top is not None and args.top < 0:
        raise typer.BadParameter("--top must be non-negative")
    if args.skip is not None and args.skip < 0:
        raise typer.BadParameter("--skip must be non-negative")

    color_enabled = should_use_color(args.color_flag)
    console = build_console(color_enabled)
    options = build_options(args.case_sensitive, args.schema, args.strict, args.nested)
    params = ODataQueryParams(
        filter=args.filter_text,
        top=args.top,
        skip=args.skip,
        orderby=args.orderby,
        select=args.select,
        count=args.count,
    )
    logger.info("Building query: %s", params)

    try:
        if args.count:
            queries = build_pagination_query(params, options)
            output: object = {"findQuery": queries.find_query, "countQuery": queries.count_query}
        else:
            output = build_query(params, options)
    except FilterLanguageError as exc:
        raise click.UsageError(str(exc)) from exc

    print_json(console, output, color_enabled, args.out_theme)


def register(app: typer.Typer) -> None:
    """Register the query command."""

    @app.command("query")
    def query_command(  # noqa: PLR0913
        filter_text: str | None = typer.Option(
            None, "--filter", metavar="FILTER", help="OData $filter expression"
        ),
        top: int | None = typer.Option(None, "--top", metavar="N", help="OData $top value"),
        skip: int | None = typer.Option(None, "--skip", metavar="N", help="OData $skip value"),
        orderby: str | None = typer.Option(
            None, "--orderby", metavar="ORDERBY", help="OData $orderby expression"
        ),
        select: str | None = typer.Option(
            None, "--select", metavar="SELECT", help="OData $select expression"
        ),
        count: bool = typer.Option(
            False, "--count", help="Also print the count query ($count=true)"
        ),
        nested: bool = typer.Option(
            False, "--nested", help="Parse nested $select and $orderby navigation paths"
        ),
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
        """Build a target query from OData query options."""
        run_query(
            QueryArgs(
                filter_text=filter_text,
                top=top,
                skip=skip,
                orderby=orderby,
                select=select,
                count=count,
                nested=nested,
                case_sensitive=case_sensitive,
                schema=schema,
                strict=strict,
                config=config,
                color_flag=color_flag,
                out_theme=out_theme,
            )
        )
