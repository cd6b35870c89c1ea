"""Abstract base class for remote IBM i connections.

This module defines the RemoteConnection interface the core depends on.
Transports (SSH, test doubles) implement it; nothing in the core talks to
a socket directly.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from qsysbridge.models.action import ActionEnvironment
from qsysbridge.utils.shell import CommandResult

# A result set row from run_sql
Row = dict[str, Any]


@dataclass(frozen=True, slots=True)
class RemoteCommand:
    """A command to execute on the remote system.

    Attributes:
        command: Command text (CL, QShell or PASE shell).
        environment: Where the command runs.
        cwd: Working directory for qsh/pase commands.
        env: Extra environment variables for qsh/pase commands.
    """

    command: str
    environment: ActionEnvironment = "ile"
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate command data after initialization."""
        if not self.command.strip():
            msg = "Command cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class MemberInfo:
    """Metadata for a source member.

    Attributes:
        library: Library name.
        file: Source file name.
        name: Member name.
        extension: Source type.
        size: Data size in bytes.
        changed: Last change timestamp.
        text: Member description.
    """

    library: str
    file: str
    name: str
    extension: str
    size: int
    changed: datetime | None = None
    text: str = ""


class RemoteConnection(ABC):
    """Abstract base class for an active connection to an IBM i host.

    Attributes:
        connection_name: Name of the saved connection profile.
        current_user: Signed-on user profile.
        current_host: Host name.
        remote_features: Discovered tool scripts, keyed by file name, mapped
            to their remote path.
    """

    def __init__(self, connection_name: str, current_user: str, current_host: str) -> None:
        self.connection_name = connection_name
        self.current_user = current_user
        self.current_host = current_host
        self.remote_features: dict[str, str] = {}

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Check if the connection is still usable."""

    @abstractmethod
    def test_stream_file(self, path: str, mode: str) -> bool:
        """Test a stream file.

        Args:
            path: Absolute IFS path.
            mode: ``test`` style mode: ``r`` readable, ``w`` writable,
                ``x`` executable, ``e`` exists, ``f`` regular file,
                ``d`` directory.

        Returns:
            True if the test passes.
        """

    @abstractmethod
    def download_streamfile_raw(self, path: str) -> bytes:
        """Download a stream file's bytes.

        Raises:
            NotFoundError: If the file does not exist.
        """

    @abstractmethod
    def upload_streamfile_raw(self, path: str, data: bytes) -> None:
        """Replace a stream file's content."""

    @abstractmethod
    def download_member(self, library: str, file: str, member: str, asp: str | None = None) -> str:
        """Download a source member as text.

        Raises:
            NotFoundError: If the member does not exist.
        """

    @abstractmethod
    def upload_member(
        self, library: str, file: str, member: str, content: str, asp: str | None = None
    ) -> None:
        """Replace a source member's content."""

    @abstractmethod
    def get_member_info(self, library: str, file: str, member: str) -> MemberInfo | None:
        """Look up member metadata. Returns None if the member does not exist."""

    @abstractmethod
    def run_sql(self, statement: str) -> list[Row]:
        """Run an SQL statement and return the result rows."""

    @abstractmethod
    def run_command(self, command: RemoteCommand) -> CommandResult:
        """Run a command and return its exit code and output.

        A non-zero exit code is a normal result, not an exception.
        """

    @abstractmethod
    def end(self) -> None:
        """Close the connection."""
