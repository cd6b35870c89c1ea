"""CLI commands for qsysbridge.

This package contains all subcommand implementations.
"""

from qsysbridge.cli.commands import action, connect, debug, errors, fs, sources

__all__ = ["action", "connect", "debug", "errors", "fs", "sources"]
