"""CLI module for cargo-rpm.

This module provides the command-line interface (``build``, ``init``,
``version`` and ``help`` subcommands).
"""

from .main import cli, main, resolve_paths

__all__ = [
    "cli",
    "main",
    "resolve_paths",
]
