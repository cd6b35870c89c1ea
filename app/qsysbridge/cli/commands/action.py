"""Action commands: list configured Actions and run one against a resource."""

from typing import Annotated

import typer

from qsysbridge.cli.types import ConnectionName, ResourceArg, connected_session, resolve_uri
from qsysbridge.core.executor import run_action, select_actions
from qsysbridge.core.uri import decode
from qsysbridge.utils.formatting import (
    console,
    create_action_table,
    create_diagnostic_table,
    format_action_row,
    format_diagnostic_row,
    print_info,
)

app = typer.Typer(
    help="List and run compile Actions.",
    no_args_is_help=True,
)


@app.command("list")
def list_command(
    ctx: typer.Context,
    name: ConnectionName,
    resource: Annotated[
        str | None,
        typer.Option("--for", help="Only show actions that may run on this resource."),
    ] = None,
) -> None:
    """List configured actions from the server and workspace."""
    with connected_session(ctx, name) as cli:
        actions = cli.session.get_actions()
        title = "Actions"
        if resource is not None:
            identity = decode(resolve_uri(resource))
            actions, _ = select_actions(actions, identity, cli.session.is_protected(identity))
            title = f"Actions for {identity.basename}"

        if not actions:
            print_info("No actions available.")
            return

        table = create_action_table(title)
        for action in actions:
            table.add_row(*format_action_row(action))
        console.print(table)


@app.command()
def run(
    ctx: typer.Context,
    name: ConnectionName,
    resource: ResourceArg,
    action_name: Annotated[
        str | None,
        typer.Option("--action", "-a", help="Action to run (asked when several match)."),
    ] = None,
) -> None:
    """Run an action against a resource and show its diagnostics."""
    with connected_session(ctx, name) as cli:
        uri = resolve_uri(resource)
        result = run_action(cli.session, uri, host=cli.host, action_name=action_name)

        if ctx.obj and ctx.obj.get("verbose"):
            for outcome in result.outcomes:
                console.print(f"[muted]$ {outcome.command}[/]")
                if outcome.result.output.strip():
                    console.print(outcome.result.output.rstrip(), markup=False, highlight=False)

        for diagnostics_uri, diagnostics in cli.host.diagnostics.items():
            table = create_diagnostic_table(diagnostics_uri)
            for diagnostic in diagnostics:
                table.add_row(*format_diagnostic_row(diagnostic))
            console.print(table)

    if not result.success:
        raise typer.Exit(code=1)
