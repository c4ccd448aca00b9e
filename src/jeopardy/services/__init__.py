"""Service modules for the console and CLI."""

from . import cli, console

__all__ = ["cli", "console"]
