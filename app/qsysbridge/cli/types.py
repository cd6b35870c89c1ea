"""Shared types and helpers for CLI commands.

Every remote command opens a session for a saved connection, runs and
disconnects again. :func:`connected_session` wraps that and turns
failures into a single error line.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import paramiko
import typer
from pydantic import ValidationError

from qsysbridge.cli.host import ConsoleHost
from qsysbridge.core.errors import QsysBridgeError
from qsysbridge.core.lifecycle import ConnectionCoordinator
from qsysbridge.core.session import ConnectionSession
from qsysbridge.core.settings import ConnectionSettings, load_connection_settings, save_connection_settings
from qsysbridge.core.uri import get_uri_from_path
from qsysbridge.remote.ssh import SshConnection
from qsysbridge.utils.formatting import print_error
from qsysbridge.vfs.provider import QsysFileSystem

ConnectionName = Annotated[str, typer.Argument(help="Saved connection name.")]
ResourceArg = Annotated[
    str,
    typer.Argument(help="Resource URI (member:/LIB/FILE/MBR.EXT) or LIB/FILE/MBR.EXT or /ifs/path."),
]


@dataclass
class CliSession:
    """Everything a command needs while connected."""

    host: ConsoleHost
    coordinator: ConnectionCoordinator
    session: ConnectionSession
    filesystem: QsysFileSystem


def get_host(ctx: typer.Context) -> ConsoleHost:
    """Build the console host from the global options."""
    obj = ctx.obj or {}
    return ConsoleHost(assume_yes=obj.get("yes", False), quiet=obj.get("quiet", False))


def resolve_uri(text: str) -> str:
    """Accept either a resource URI or a user-typed path."""
    scheme, sep, _ = text.partition(":")
    if sep and scheme.isalpha() and len(scheme) > 1:
        return text
    return get_uri_from_path(text)


def open_connection(settings: ConnectionSettings, password: str) -> SshConnection:
    return SshConnection.open(settings, password)


@contextmanager
def connected_session(ctx: typer.Context, name: str) -> Iterator[CliSession]:
    """Connect to a saved connection for the duration of a command.

    Raises:
        typer.Exit: With code 1 if connecting fails or a domain or
            configuration error escapes the block.
    """
    host = get_host(ctx)
    coordinator = ConnectionCoordinator(host)
    try:
        settings = load_connection_settings(name)
        key = host.secret_key(settings.name, "password")
        password = host.get_secret(key) or host.input_box(
            f"Password for {settings.username}@{settings.host}", password=True
        )
        if not password:
            print_error("No password given.")
            raise typer.Exit(code=1)

        connection = open_connection(settings, password)
        session = ConnectionSession(
            connection,
            settings,
            workspace_folder=Path.cwd(),
            settings_saver=save_connection_settings,
        )
        filesystem = QsysFileSystem(session)
        host.filesystem = filesystem
        try:
            coordinator.connect(session)
        except (QsysBridgeError, paramiko.SSHException, OSError):
            connection.end()
            raise
    except (QsysBridgeError, paramiko.SSHException, OSError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    try:
        yield CliSession(host, coordinator, session, filesystem)
    except QsysBridgeError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except ValidationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1) from e
    finally:
        # Console documents cannot outlive the command
        host.assume_yes = True
        coordinator.disconnect()
