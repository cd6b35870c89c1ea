"""Connection settings and their TOML store.

Each saved connection is a ``[connections.<name>]`` table in
~/.config/qsysbridge/connections.toml. Passwords are never written here;
they belong in the editor host's secret storage.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from qsysbridge.core.errors import SettingsError, SettingsNotFoundError, SettingsParseError
from qsysbridge.core.paths import get_connections_path

logger = logging.getLogger(__name__)


class ConnectionProfile(BaseModel):
    """A named set of overrides the user can switch to while connected."""

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Profile name")]
    current_library: Annotated[str | None, Field(description="Library override")] = None
    library_list: Annotated[list[str], Field(description="Library list override")] = []


class ConnectionSettings(BaseModel):
    """Settings for one IBM i connection.

    Attributes:
        name: Connection name, used as the secret-storage prefix.
        host: Host name or address.
        port: SSH port.
        username: User profile.
        current_library: Library used for local files and ``&CURLIB``.
        source_asp: ASP holding source libraries, if any.
        auto_save_before_action: Save dirty documents before running Actions.
        go_to_file_auto_suggest: Offer SQL-backed completions in go-to-file.
        enable_sql: SQL is available on the host.
        auto_fix_invalid_characters: Replace invalid source characters on open.
        read_only_mode: Reject every write through the virtual filesystem.
        protected_paths: Libraries or IFS prefixes that are never written.
        connection_profiles: Saved profiles.
        debug_port: Port of the remote debug service.
        command_timeout: Seconds to wait for one remote command.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1, description="Connection name")]
    host: Annotated[str, Field(min_length=1, description="Host name")]
    port: Annotated[int, Field(ge=1, le=65535, description="SSH port")] = 22
    username: Annotated[str, Field(min_length=1, description="User profile")]
    current_library: Annotated[str, Field(description="Current library")] = "QGPL"
    source_asp: Annotated[str | None, Field(description="Source ASP")] = None
    auto_save_before_action: Annotated[bool, Field(description="Autosave before Actions")] = False
    go_to_file_auto_suggest: Annotated[bool, Field(description="Go-to-file suggestions")] = True
    enable_sql: Annotated[bool, Field(description="SQL available")] = True
    auto_fix_invalid_characters: Annotated[
        bool, Field(description="Fix invalid source characters")
    ] = False
    read_only_mode: Annotated[bool, Field(description="Reject all writes")] = False
    protected_paths: Annotated[list[str], Field(description="Never-written paths")] = []
    connection_profiles: Annotated[
        list[ConnectionProfile], Field(description="Saved profiles")
    ] = []
    debug_port: Annotated[int, Field(ge=1, le=65535, description="Debug service port")] = 8005
    command_timeout: Annotated[
        int, Field(ge=1, le=3600, description="Remote command timeout (1-3600)")
    ] = 600

    def is_protected(self, library_or_path: str) -> bool:
        """Check if a library or IFS path is configured as protected.

        Libraries compare case-insensitively; IFS entries (leading ``/``)
        protect everything below them.

        Args:
            library_or_path: Library name or absolute IFS path.

        Returns:
            True if writes must be rejected.
        """
        for entry in self.protected_paths:
            if entry.startswith("/"):
                prefix = entry.rstrip("/")
                if library_or_path == prefix or library_or_path.startswith(prefix + "/"):
                    return True
            elif entry.upper() == library_or_path.upper():
                return True
        return False


def _read_store(path: Path) -> dict[str, Any]:
    """Read the raw settings document.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read.
    """
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise SettingsParseError(f"Invalid TOML syntax in {path}: {e}") from e
    except OSError as e:
        raise SettingsError(f"Failed to read connection settings: {e}") from e


def list_connections(path: Path | None = None) -> list[str]:
    """List saved connection names in file order."""
    data = _read_store(path or get_connections_path())
    connections = data.get("connections", {})
    return list(connections) if isinstance(connections, dict) else []


def load_connection_settings(name: str, path: Path | None = None) -> ConnectionSettings:
    """Load one connection's settings.

    Args:
        name: Connection name.
        path: Settings file. If None, uses the default connections path.

    Returns:
        Validated ConnectionSettings.

    Raises:
        SettingsNotFoundError: If the connection is not saved.
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the content doesn't match the schema.
    """
    settings_path = path or get_connections_path()
    data = _read_store(settings_path)
    raw = data.get("connections", {}).get(name)
    if raw is None:
        raise SettingsNotFoundError(f"Connection {name!r} not found in {settings_path}")

    if "password" in raw:
        logger.warning(
            "Ignoring 'password' stored in %s for connection %s; use secret storage",
            settings_path,
            name,
        )
        raw = {key: value for key, value in raw.items() if key != "password"}

    try:
        return ConnectionSettings.model_validate({"name": name, **raw})
    except (ValueError, ValidationError) as e:
        raise SettingsError(f"Invalid settings for connection {name!r}: {e}") from e


def save_connection_settings(settings: ConnectionSettings, path: Path | None = None) -> Path:
    """Save one connection's settings, keeping the other connections.

    The file is written atomically through a temporary file and os.replace().

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_connections_path()
    data = _read_store(settings_path)
    connections = data.setdefault("connections", {})
    connections[settings.name] = settings.model_dump(exclude={"name"}, exclude_none=True)

    settings_path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write connection settings: {e}") from e

    logger.debug("Saved connection %s to %s", settings.name, settings_path)
    return settings_path
