"""
Shared terminal output helpers for the CLI commands.
"""

import json
import sys

import click


class Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def yellow(cls, s: str) -> str:
        return f"\033[33m{s}\033[0m" if cls._on else s

    @classmethod
    def cyan(cls, s: str) -> str:
        return f"\033[36m{s}\033[0m" if cls._on else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"\033[1m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


def row_ok(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.green('✅')}  {value}"


def row_fail(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}  {Color.red('❌')}  {value}"


def row_info(label: str, value: str) -> str:
    return f"  {Color.dim(f'{label:<16}')}     {Color.dim(value)}"


def emit_error(root_key: str, msg: str, fmt: str, quiet: bool = False) -> None:
    """Emit an error in the requested format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({root_key: {"error": msg, "valid": False}}))
    else:
        click.echo(Color.red(f"\n  ❌  ERROR: {msg}\n"), err=True)
