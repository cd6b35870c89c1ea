"""Debug commands: certificate setup, service start and session launch."""

from typing import Annotated

import typer

from qsysbridge.cli.types import ConnectionName, ResourceArg, connected_session, resolve_uri
from qsysbridge.core.debug import DebugBootstrap

app = typer.Typer(
    help="Set up and start IBM i debug sessions.",
    no_args_is_help=True,
)


@app.command()
def setup(
    ctx: typer.Context,
    name: ConnectionName,
    local: Annotated[
        bool,
        typer.Option("--local", help="Only make sure the local certificate copy exists."),
    ] = False,
    force: Annotated[
        bool,
        typer.Option("--force", help="Download the local certificate again."),
    ] = False,
) -> None:
    """Create the debug service certificate and its local copy."""
    with connected_session(ctx, name) as cli:
        bootstrap = DebugBootstrap(cli.session, cli.host)
        if local or force:
            outcome = bootstrap.setup_local(force=force)
        else:
            outcome = bootstrap.setup_remote()
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command()
def service(ctx: typer.Context, name: ConnectionName) -> None:
    """Start the debug service on the server."""
    with connected_session(ctx, name) as cli:
        outcome = DebugBootstrap(cli.session, cli.host).start_service()
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command()
def start(ctx: typer.Context, name: ConnectionName, resource: ResourceArg) -> None:
    """Print the launch configuration for debugging the program built from a source."""
    with connected_session(ctx, name) as cli:
        outcome = DebugBootstrap(cli.session, cli.host).start(resolve_uri(resource))
    if not outcome.success:
        raise typer.Exit(code=1)
