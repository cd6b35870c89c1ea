"""Remote command results and command-line quoting helpers.

IBM i command strings travel through up to two shells (PASE ``sh`` and the
CL ``system`` wrapper), so quoting is centralised here.
"""

import shlex
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a remote command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
        command: The command line as it was sent to the remote side.
    """

    stdout: str
    stderr: str
    returncode: int
    command: str = ""

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined standard output and error, in that order."""
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


def sh_quote(value: str) -> str:
    """Quote a value for a POSIX shell."""
    return shlex.quote(value)


def cl_quote(value: str) -> str:
    """Quote a value as a CL string literal, doubling embedded apostrophes.

    Args:
        value: Raw string.

    Returns:
        The value wrapped in single quotes for use inside a CL command.
    """
    return "'" + value.replace("'", "''") + "'"


def wrap_ile_command(command: str) -> str:
    """Wrap a CL command so PASE runs it through the ``system`` utility.

    ``-s`` suppresses spooled output; ``-K`` keeps the job log messages on
    stderr so failures stay diagnosable.

    Args:
        command: A CL command string.

    Returns:
        Shell command line.
    """
    return f"system -Ks {sh_quote(command)}"


def wrap_qsh_command(command: str) -> str:
    """Wrap a command so it runs inside QShell."""
    return f"qsh -c {sh_quote(command)}"
