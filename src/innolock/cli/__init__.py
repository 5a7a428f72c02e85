"""
CLI layer for innolock.

Provides a Typer application whose commands delegate to the runner, the
parser and the fixture helpers. This package only handles the terminal:
argument parsing, coloured errors and report output.

Entry point::

    innolock --help
"""

from innolock.cli.app import app

__all__ = ["app"]
