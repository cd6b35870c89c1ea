"""Open errors: show diagnostics stored in an EVFEVENT member."""

from typing import Annotated

import typer

from qsysbridge.cli.types import ConnectionName, connected_session
from qsysbridge.core.errors import InvalidResourceUriError
from qsysbridge.core.executor import refresh_diagnostics, resolve_error_target
from qsysbridge.utils.formatting import (
    console,
    create_diagnostic_table,
    format_diagnostic_row,
    print_error,
    print_success,
)

app = typer.Typer(
    help="Show compile errors from event files.",
    no_args_is_help=True,
)


@app.command()
def show(
    ctx: typer.Context,
    name: ConnectionName,
    target: Annotated[str, typer.Argument(help="Compiled object as LIB/OBJECT[.EXT].")],
) -> None:
    """Load and display the diagnostics recorded for a compiled object."""
    try:
        library, object_name, extension = resolve_error_target(target)
    except InvalidResourceUriError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    with connected_session(ctx, name) as cli:
        published = refresh_diagnostics(cli.session, cli.host, library, object_name, extension)

    if not published:
        print_success(f"No errors recorded for {library}/{object_name}.")
        return

    for uri, diagnostics in published.items():
        table = create_diagnostic_table(uri)
        for diagnostic in diagnostics:
            table.add_row(*format_diagnostic_row(diagnostic))
        console.print(table)
