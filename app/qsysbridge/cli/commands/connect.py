"""Connection management commands.

Saves connection settings, lists them and tests connecting, either by
name or from a ``/connect`` URI.
"""

from typing import Annotated

import paramiko
import typer
from rich.table import Table

from qsysbridge.cli.types import ConnectionName, connected_session, get_host, open_connection
from qsysbridge.core.errors import QsysBridgeError, SettingsError, SettingsNotFoundError
from qsysbridge.core.lifecycle import ConnectionCoordinator
from qsysbridge.core.settings import (
    ConnectionSettings,
    list_connections,
    load_connection_settings,
    save_connection_settings,
)
from qsysbridge.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage and test IBM i connections.",
    no_args_is_help=True,
)


@app.command("list")
def list_command() -> None:
    """List saved connections."""
    try:
        names = list_connections()
        connections = [load_connection_settings(name) for name in names]
    except SettingsError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not connections:
        print_info("No connections saved. Use 'qsysbridge connect save' to add one.")
        return

    table = Table(title="Connections", header_style="bold_header", border_style="border")
    table.add_column("Name", no_wrap=True)
    table.add_column("Host")
    table.add_column("User", style="muted")
    table.add_column("Current library", style="info")
    for settings in connections:
        table.add_row(
            settings.name,
            f"{settings.host}:{settings.port}",
            settings.username,
            settings.current_library,
        )
    console.print(table)


@app.command()
def save(
    name: ConnectionName,
    host: Annotated[str, typer.Option("--host", "-H", help="Host name or address.")],
    user: Annotated[str, typer.Option("--user", "-u", help="User profile.")],
    port: Annotated[int, typer.Option("--port", "-p", help="SSH port.")] = 22,
    library: Annotated[
        str | None, typer.Option("--library", "-l", help="Current library.")
    ] = None,
    protect: Annotated[
        list[str] | None,
        typer.Option("--protect", help="Protected library or IFS path (repeatable)."),
    ] = None,
) -> None:
    """Save or update a connection."""
    try:
        try:
            settings = load_connection_settings(name).model_copy(
                update={"host": host, "username": user, "port": port}
            )
        except SettingsNotFoundError:
            settings = ConnectionSettings(name=name, host=host, username=user, port=port)
        if library:
            settings = settings.model_copy(update={"current_library": library.upper()})
        if protect:
            settings = settings.model_copy(update={"protected_paths": list(protect)})
        path = save_connection_settings(settings)
    except (SettingsError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Saved connection {name} to {path}")


@app.command()
def test(ctx: typer.Context, name: ConnectionName) -> None:
    """Connect, show what was discovered, and disconnect."""
    with connected_session(ctx, name) as cli:
        connection = cli.session.connection
        print_success(f"Connected to {connection.current_host} as {connection.current_user}")
        features = connection.remote_features
        if features:
            console.print(f"[muted]Remote features:[/] {', '.join(sorted(features))}")
        actions = cli.session.get_actions()
        console.print(f"[muted]Actions configured:[/] {len(actions)}")
        flags = sorted(flag for flag, value in cli.host.contexts.items() if value)
        if flags:
            console.print(f"[muted]Context:[/] {', '.join(flags)}")


@app.command()
def uri(
    ctx: typer.Context,
    connect_uri: Annotated[
        str,
        typer.Argument(help="URI like /connect?server=host[:port]&user=..&pass=<base64>&save=true"),
    ],
) -> None:
    """Connect from a connect URI (prompting for anything missing)."""
    host = get_host(ctx)
    coordinator = ConnectionCoordinator(host)
    try:
        session = coordinator.connect_uri(connect_uri, open_connection)
    except (QsysBridgeError, paramiko.SSHException, OSError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if session is None:
        print_error("Connection cancelled.")
        raise typer.Exit(code=1)

    print_success(f"Connected to {session.settings.host} as {session.settings.username}")
    coordinator.disconnect()
