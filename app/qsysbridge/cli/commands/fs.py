"""Remote resource commands: stat, cat and put."""

import sys
from pathlib import Path
from typing import Annotated

import typer

from qsysbridge.cli.types import ConnectionName, ResourceArg, connected_session, resolve_uri
from qsysbridge.utils.formatting import console, print_success

app = typer.Typer(
    help="Read and write members, stream files and objects.",
    no_args_is_help=True,
)


@app.command()
def stat(ctx: typer.Context, name: ConnectionName, resource: ResourceArg) -> None:
    """Show size, change time and write protection of a resource."""
    with connected_session(ctx, name) as cli:
        uri = resolve_uri(resource)
        info = cli.filesystem.stat(uri)
        console.print(f"[bold]{uri}[/]")
        console.print(f"  kind      {info.kind.value}")
        console.print(f"  size      {info.size}")
        console.print(f"  changed   {info.mtime.isoformat() if info.mtime else '-'}")
        console.print(f"  readonly  {'yes' if info.readonly else 'no'}")


@app.command()
def cat(ctx: typer.Context, name: ConnectionName, resource: ResourceArg) -> None:
    """Print a resource's content to stdout."""
    with connected_session(ctx, name) as cli:
        data = cli.filesystem.read_file(resolve_uri(resource))
    sys.stdout.write(data.decode("utf-8", errors="replace"))


@app.command()
def put(
    ctx: typer.Context,
    name: ConnectionName,
    resource: ResourceArg,
    source: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Local file to upload."),
    ],
    create: Annotated[
        bool,
        typer.Option("--create", help="Create the member or stream file if missing."),
    ] = False,
) -> None:
    """Upload a local file as the content of a resource."""
    with connected_session(ctx, name) as cli:
        uri = resolve_uri(resource)
        cli.filesystem.write_file(uri, source.read_bytes(), create=create)
    print_success(f"Wrote {source} to {uri}")
