"""CLI package for qsysbridge.

This package contains the Typer application and all subcommands.
"""

from qsysbridge.cli.main import app

__all__ = ["app"]
