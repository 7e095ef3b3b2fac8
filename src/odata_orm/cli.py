"""Command line entry point: `odata-orm convert` and `odata-orm query`."""

from __future__ import annotations

import sys

import typer

from odata_orm import config, logging_config
from odata_orm.commands import convert, query


app = typer.Typer(
    help=(
        "Translate OData $filter, $select and $orderby options into ORM query objects. "
        "Defaults are read from .odata-orm.json in the working directory."
    ),
    no_args_is_help=True,
)

# Set from the config file's "verbose" key before the command line is parsed.
DEFAULT_VERBOSE: dict[str, bool] = {"value": False}


@app.callback()
def main_callback(
    verbose: bool | None = typer.Option(
        None,
        "--verbose",
        "-v",
        help="Log parser fallbacks and config defaults to stderr",
    ),
) -> None:
    """Options shared by every odata-orm command."""
    enabled = DEFAULT_VERBOSE["value"] if verbose is None else verbose
    if verbose is not None or enabled:
        logging_config.configure_logging(enabled)


convert.register(app)
query.register(app)


def main() -> None:
    """Run the CLI with defaults from the config file applied."""
    defaults = config.load_cli_config(sys.argv)
    DEFAULT_VERBOSE["value"] = bool(defaults.pop("verbose", False))

    command = typer.main.get_command(app)
    command.main(
        args=sys.argv[1:],
        prog_name="odata-orm",
        standalone_mode=True,
        default_map=config.build_default_map(defaults) if defaults else None,
    )


if __name__ == "__main__":
    main()
