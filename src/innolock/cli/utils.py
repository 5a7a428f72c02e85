"""
CLI utility helpers: consoles, settings overrides, error output.
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from innolock.errors import ConfigError, InnolockError, SequenceError
from innolock.settings import LockTestSettings

console = Console()
err_console = Console(stderr=True)


def load_settings(**overrides: Any) -> LockTestSettings:
    """Settings from env/.env, with CLI flags that were given taking precedence."""
    try:
        return LockTestSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}", cause=e) from e


def echo(text: str) -> None:
    """Print report text verbatim."""
    console.print(text, markup=False, highlight=False, emoji=False, soft_wrap=True)


def fail(error: InnolockError) -> None:
    """Print an error to stderr and exit with status 1."""
    err_console.print(
        f"[bold red]Error[/bold red] ({error.category.value}): {escape(error.message)}"
    )
    if isinstance(error, SequenceError):
        err_console.print(f"  failing pair #{error.index}: {escape(error.pair.label)}")
        if error.completed:
            err_console.print(f"  {len(error.completed)} earlier pair(s) completed")
    for note in getattr(error, "__notes__", []):
        err_console.print(f"  {escape(note)}")
    raise typer.Exit(code=1)
