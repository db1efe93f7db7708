"""
salvo/cli/output.py

Terminal rendering shared by every salvo command.
"""

import json
import sys
from typing import Any, Dict

import click

BAR_HEAVY = "═" * 68
BAR_LIGHT = "─" * 68


class _Color:
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
    label_col = _Color.dim(f"{label:<16}")
    return f"  {label_col}  {_Color.green('✅')}  {value}"


def row_fail(label: str, value: str) -> str:
    label_col = _Color.dim(f"{label:<16}")
    return f"  {label_col}  {_Color.red('❌')}  {value}"


def row_info(label: str, value: str) -> str:
    label_col = _Color.dim(f"{label:<16}")
    return f"  {label_col}     {value}"


def header(title: str) -> None:
    click.echo()
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo(_Color.bold(f"  salvo  ·  {title}"))
    click.echo(_Color.bold(f"  {BAR_HEAVY}"))
    click.echo()


def verdict(ok: bool, ok_text: str, fail_text: str) -> None:
    click.echo(f"  {BAR_LIGHT}")
    if ok:
        click.echo(_Color.green(_Color.bold(f"  ✅  {ok_text}")))
    else:
        click.echo(_Color.red(_Color.bold(f"  ❌  {fail_text}")))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


def short_hash(value: str) -> str:
    return value[:16] + "..." + value[-8:] if value and len(value) > 24 else str(value)


def emit_json(tool: str, body: Dict[str, Any]) -> None:
    click.echo(json.dumps({tool: body}, indent=2))


def emit_error(tool: str, msg: str, fmt: str = "human", quiet: bool = False) -> None:
    """Emit an error in the requested format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({tool: {"error": msg, "valid": False}}))
    else:
        click.echo(_Color.red(f"\n  ❌  ERROR: {msg}\n"), err=True)
