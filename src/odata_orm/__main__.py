"""Entry point for `python -m odata_orm`."""

from odata_orm import cli


if __name__ == "__main__":
    cli.main()
