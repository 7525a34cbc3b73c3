"""Rich console utilities for cargo-rpm.

Status lines mimic Cargo's own output: a right-aligned, colored verb
followed by a message, e.g. ``    Building myapp-1.0.0-1.rpm``.
"""

import os

from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

# Force colors in GitHub Actions logs
IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

# Width of the verb column in status lines (matches Cargo)
STATUS_WIDTH = 12

custom_theme = Theme(
    {
        "info": "bold cyan",
        "warning": "bold yellow",
        "error": "bold red",
        "success": "bold green",
        "highlight": "magenta",
    }
)

# Shared console instance
console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
    highlight=False,
)

# Warnings and errors go to stderr
err_console = Console(
    theme=custom_theme,
    force_terminal=IS_GITHUB_ACTIONS or None,
    color_system="auto",
    highlight=False,
    stderr=True,
)


def _status(style: str, verb: str, message: str) -> None:
    console.print(f"[{style}]{escape(verb):>{STATUS_WIDTH}}[/{style}] {escape(message)}")


def status_ok(verb: str, message: str) -> None:
    """Print a successful status line, e.g. ``Created /path``."""
    _status("success", verb, message)


def status_info(verb: str, message: str) -> None:
    """Print an informational status line."""
    _status("info", verb, message)


def status_warn(message: str) -> None:
    """Print a warning line."""
    err_console.print(f"[warning]warning:[/warning] {escape(message)}")


def status_err(message: str) -> None:
    """Print an error line."""
    err_console.print(f"[error]error:[/error] {escape(message)}")

