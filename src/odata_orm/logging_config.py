"""Diagnostic logging for the odata-orm command line."""

from __future__ import annotations

import logging
import sys


LOGGER_NAME = "odata_orm"
HANDLER_NAME = "odata-orm-cli"
LOG_FORMAT = "[odata-orm] %(levelname)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    """Send compiler diagnostics to stderr when verbose, keep only warnings otherwise.

    Diagnostics go to stderr so the JSON printed on stdout stays machine readable.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False

    if not verbose:
        logger.setLevel(logging.WARNING)
        logger.handlers.clear()
        return

    logger.setLevel(logging.INFO)
    if any(handler.get_name() == HANDLER_NAME for handler in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
