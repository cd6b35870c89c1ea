"""Exception taxonomy shared by every qsysbridge component.

Each class maps to one failure category that the CLI and the editor host
surface as a single human-readable message.
"""


class QsysBridgeError(Exception):
    """Base exception for all qsysbridge errors."""


class NotConnectedError(QsysBridgeError):
    """Raised when an operation needs a live remote connection and there is none."""


class NotFoundError(QsysBridgeError):
    """Raised when a remote member, object or stream file does not exist."""


class ReadOnlyError(QsysBridgeError):
    """Raised when a write is rejected by the resource or connection policy."""


class RemoteCommandError(QsysBridgeError):
    """Raised when a remote command exits non-zero and the caller needs it to succeed.

    Attributes:
        command: The command line that failed.
        returncode: Exit code reported by the remote side.
        stderr: Error output of the command.
    """

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit code {returncode}"
        super().__init__(f"Remote command failed: {command} ({detail})")


class CapabilityMissingError(QsysBridgeError):
    """Raised when a required remote capability is not installed."""


class InvalidResourceUriError(QsysBridgeError, ValueError):
    """Raised when a resource URI or path cannot be decoded."""


class SettingsError(QsysBridgeError):
    """Base exception for connection settings errors."""


class SettingsNotFoundError(SettingsError):
    """Raised when a named connection is not present in the settings file."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""
