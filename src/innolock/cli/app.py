"""
Root Typer application for the innolock CLI.

    innolock run                      # built-in statement catalog
    innolock run -s "DELETE FROM test WHERE pri = 4" --delay-ms 200
    innolock run -f pairs.yaml --json
    innolock parse status.txt         # parse a saved status dump
    innolock statements               # list the pairs a run would use
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from rich.table import Table
from typer import Typer

from innolock.cli.utils import console, echo, fail, load_settings
from innolock.errors import InnolockError, SequenceError
from innolock.logging import configure_logging
from innolock.parser import parse_status
from innolock.protocol import SettleStrategy
from innolock.render import render_report, render_text, report_payload, result_payload
from innolock.sequencer import PairResult
from innolock.statements import DEFAULT_PAIRS, StatementPair, load_pairs, parse_pairs

app = Typer(
    name="innolock",
    help="innolock: observe InnoDB lock contention between two sessions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from innolock import __version__

        typer.echo(f"innolock {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
) -> None:
    """innolock CLI: run lock tests and parse InnoDB status dumps."""
    try:
        settings = load_settings(log_level=log_level)
    except InnolockError as e:
        fail(e)
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


# ── Helpers ──────────────────────────────────────────────────────────────


def _resolve_pairs(pairs_file: Path | None, statements: list[str] | None) -> list[StatementPair]:
    if pairs_file is not None and statements:
        raise typer.BadParameter("Use either --pairs-file or --statement, not both")
    if pairs_file is not None:
        return load_pairs(pairs_file)
    if statements:
        return parse_pairs(statements)
    return list(DEFAULT_PAIRS)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    pairs_file: Path | None = typer.Option(None, "--pairs-file", "-f", help="YAML file of statement pairs"),
    statement: list[str] | None = typer.Option(
        None, "--statement", "-s", help="Statement to run on both sessions (repeatable)"
    ),
    delay_ms: int | None = typer.Option(None, "--delay-ms", min=0, help="Settle delay before sampling"),
    strategy: SettleStrategy | None = typer.Option(None, "--strategy", help="sleep or poll"),
    table: str | None = typer.Option(None, "--table", help="Fixture table name"),
    no_setup: bool = typer.Option(False, "--no-setup", help="Skip lock monitor and fixture setup"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
    raw: bool = typer.Option(False, "--raw", help="Include the raw status dump"),
) -> None:
    """Run statement pairs on two sessions and report held/awaited locks."""
    from innolock.runner import run_lock_tests

    try:
        settings = load_settings(
            settle_delay_ms=delay_ms,
            settle_strategy=strategy,
            table_name=table,
        )
        pairs = _resolve_pairs(pairs_file, statement)
    except InnolockError as e:
        fail(e)

    def _print(result: PairResult) -> None:
        echo(render_text(result, raw=raw))

    try:
        results = asyncio.run(
            run_lock_tests(
                settings,
                pairs,
                prepare=not no_setup,
                on_result=None if json_out else _print,
            )
        )
    except SequenceError as e:
        if json_out:
            console.print_json(
                data={
                    "results": [result_payload(r, raw=raw) for r in e.completed],
                    "error": e.to_dict(),
                }
            )
        fail(e)
    except InnolockError as e:
        fail(e)

    if json_out:
        console.print_json(data={"results": [result_payload(r, raw=raw) for r in results]})


@app.command()
def parse(
    dump: str = typer.Argument(..., help="File with SHOW ENGINE INNODB STATUS output, or '-' for stdin"),
    table: str = typer.Option("test", "--table", help="Fixture table name"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Parse a saved status dump and print held/awaited locks."""
    if dump == "-":
        text = sys.stdin.read()
    else:
        path = Path(dump)
        if not path.is_file():
            raise typer.BadParameter(f"File not found: {dump}", param_hint="DUMP")
        text = path.read_text(encoding="utf-8")

    report = parse_status(text, table)
    if json_out:
        console.print_json(data=report_payload(report))
    else:
        echo(render_report(report))


@app.command()
def statements(
    pairs_file: Path | None = typer.Option(None, "--pairs-file", "-f", help="YAML file of statement pairs"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """List the statement pairs a run would use."""
    try:
        pairs = _resolve_pairs(pairs_file, None)
    except InnolockError as e:
        fail(e)

    if json_out:
        console.print_json(
            data=[{"primary": p.primary, "secondary": p.secondary, "note": p.note} for p in pairs]
        )
        return

    table = Table(title="Statement Pairs")
    table.add_column("#", justify="right")
    table.add_column("Session 1")
    table.add_column("Session 2")
    table.add_column("Note")
    for index, pair in enumerate(pairs):
        table.add_row(
            str(index),
            pair.primary,
            "(same)" if pair.is_symmetric else pair.secondary,
            pair.note or "",
        )
    console.print(table)


@app.command()
def setup(
    table: str | None = typer.Option(None, "--table", help="Fixture table name"),
) -> None:
    """Enable the lock monitor and (re)create the fixture table."""
    from innolock.runner import setup as run_setup

    try:
        settings = load_settings(table_name=table)
        asyncio.run(run_setup(settings))
    except InnolockError as e:
        fail(e)
    console.print(f"Fixture table [bold]{settings.table_name}[/bold] ready.")


@app.command()
def teardown(
    table: str | None = typer.Option(None, "--table", help="Fixture table name"),
    drop_table: bool = typer.Option(False, "--drop-table", help="Also drop the fixture table"),
) -> None:
    """Disable the lock monitor."""
    from innolock.runner import teardown as run_teardown

    try:
        settings = load_settings(table_name=table)
        asyncio.run(run_teardown(settings, drop_table=drop_table))
    except InnolockError as e:
        fail(e)
    console.print("Lock monitor disabled.")
