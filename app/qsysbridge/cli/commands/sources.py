"""Go-to-file commands: source suggestions and opening sources."""

from typing import Annotated

import typer

from qsysbridge.cli.types import ConnectionName, connected_session, resolve_uri
from qsysbridge.core.errors import NotFoundError
from qsysbridge.utils.formatting import console, print_info, print_warning

app = typer.Typer(
    help="Find and open sources.",
    no_args_is_help=True,
)


@app.command()
def find(
    ctx: typer.Context,
    name: ConnectionName,
    pattern: Annotated[str, typer.Argument(help="Go-to-file input such as MYLIB/QRPG* or MYLIB/QRPGLESRC/A*.")],
) -> None:
    """Suggest libraries, source files or members matching a pattern."""
    with connected_session(ctx, name) as cli:
        settings = cli.session.settings
        if not (settings.enable_sql and settings.go_to_file_auto_suggest):
            print_warning("Suggestions need SQL and go-to-file suggestions enabled.")
            raise typer.Exit(code=1)

        suggestions = cli.session.autosuggest.suggest(pattern)
        if not suggestions:
            print_info("No suggestions. Patterns need a '*' and must not start with '/'.")
            return
        for suggestion in suggestions:
            console.print(f"{suggestion.label}  [muted]{suggestion.detail}[/]")


@app.command("open")
def open_command(
    ctx: typer.Context,
    name: ConnectionName,
    paths: Annotated[list[str], typer.Argument(help="Sources to open (paths or URIs).")],
) -> None:
    """Open sources and show the recently opened list.

    Members are checked for invalid characters on open.
    """
    with connected_session(ctx, name) as cli:
        for path in paths:
            uri = resolve_uri(path)
            try:
                document = cli.filesystem.open_document(uri, cli.host)
            except NotFoundError as e:
                print_warning(str(e))
                continue
            cli.host.show_document(document)
            if document.is_dirty:
                cli.host.save_document(document)

        for entry in cli.session.source_list.entries():
            console.print(entry)
