"""JSON rendering for CLI output."""

from __future__ import annotations

import json
import sys

from rich.console import Console
from rich.syntax import Syntax


DEFAULT_OUTPUT_THEME = "github-dark"


def should_use_color(color_flag: bool | None) -> bool:
    """Determine if color should be used based on flag and TTY detection.

    Args:
        color_flag: Explicit color preference (True/False) or None for auto-detect

    Returns:
        True if colors should be used, False otherwise
    """
    if color_flag is None:
        return sys.stdout.isatty()
    return color_flag


def build_console(color_enabled: bool) -> Console:
    """Build the console used for command output."""
    return Console(highlight=False, no_color=not color_enabled)


def to_json_text(value: object) -> str:
    """Serialize a query object as indented JSON."""
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _write_plain_output(console: Console, text: str) -> None:
    """Write plain output directly to console stream."""
    console.file.write(f"{text}\n")
    console.file.flush()


def print_json(
    console: Console,
    value: object,
    color_enabled: bool,
    out_theme: str = DEFAULT_OUTPUT_THEME,
) -> None:
    """Print a value as JSON, syntax highlighted when color is enabled."""
    text = to_json_text(value)
    if not color_enabled:
        _write_plain_output(console, text)
        return
    console.print(
        Syntax(
            text,
            "json",
            theme=out_theme.strip() or DEFAULT_OUTPUT_THEME,
            line_numbers=False,
            word_wrap=True,
        )
    )
