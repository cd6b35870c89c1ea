"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer

from qsysbridge import __version__
from qsysbridge.cli.commands import action, connect, debug, errors, fs, sources

# Create main Typer app
app = typer.Typer(
    name="qsysbridge",
    help="Work with IBM i members, stream files and compile Actions from the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"qsysbridge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Answer every prompt with its first choice.",
        ),
    ] = False,
) -> None:
    """qsysbridge - IBM i resources, Actions and debug setup.

    Connections are saved in ~/.config/qsysbridge/connections.toml;
    passwords are read from QSYSBRIDGE_PASSWORD or prompted for.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["yes"] = yes


# Register commands
app.add_typer(connect.app, name="connect")
app.add_typer(fs.app, name="fs")
app.add_typer(action.app, name="action")
app.add_typer(errors.app, name="errors")
app.add_typer(debug.app, name="debug")
app.add_typer(sources.app, name="sources")


if __name__ == "__main__":
    app()
