"""Connection-scoped JSON configuration documents.

A configuration document (for example the Action list) may exist on the
server at /etc/.vscode/<id>.json, in the local workspace at
.vscode/<id>.json, or both. ConfigFile loads, caches and combines them.
"""

import json
import logging
import posixpath
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Literal, TypeVar

from qsysbridge.core.paths import SERVER_CONFIG_ROOT, WORKSPACE_CONFIG_ROOT
from qsysbridge.remote.base import RemoteConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Load status of one configuration source
ConfigResult = Literal["not_loaded", "no_exist", "failed_to_parse", "ok"]


@dataclass(slots=True)
class LoadState:
    """Load status per configuration source."""

    server: ConfigResult = "not_loaded"
    workspace: ConfigResult = "not_loaded"


class ConfigFile(Generic[T]):
    """A configuration document resolved from server and workspace copies.

    One instance exists per connection. Server data is cached until
    :meth:`reset` is called on disconnect.

    Attributes:
        config_id: Document identifier, also the file stem.
        has_server_file: Whether a server copy may exist.
        merge_arrays: Concatenate list values from both sources instead of
            letting the workspace copy win.
        validate_and_clean: Optional callable turning the raw JSON value into
            ``T``. It must raise on invalid input; errors are not caught.
    """

    def __init__(
        self,
        connection: RemoteConnection,
        config_id: str,
        *,
        has_server_file: bool = False,
        merge_arrays: bool = False,
        validate_and_clean: Callable[[Any], T] | None = None,
    ) -> None:
        self._connection = connection
        self.config_id = config_id
        self.has_server_file = has_server_file
        self.merge_arrays = merge_arrays
        self.validate_and_clean = validate_and_clean
        self._state = LoadState()
        self._server_raw: Any | None = None
        self._server_data: Any | None = None

    @property
    def basename(self) -> str:
        return f"{self.config_id}.json"

    @property
    def workspace_file(self) -> str:
        """Workspace-relative path searched under each workspace folder."""
        return posixpath.join(WORKSPACE_CONFIG_ROOT, self.basename)

    @property
    def server_file(self) -> str:
        return posixpath.join(SERVER_CONFIG_ROOT, self.basename)

    def load_from_server(self) -> None:
        """Load and cache the server copy.

        A missing file is recorded as ``no_exist``. A file that is not valid
        JSON is recorded as ``failed_to_parse`` and the previously cached
        data is kept. Transport errors from the existence check or download propagate
        unchanged; they are never treated as a missing file.

        Raises:
            Exception: Whatever ``validate_and_clean`` raises for invalid data.
        """
        if not self.has_server_file:
            return

        self._state.server = "no_exist"
        server_config: Any | None = None

        if self._connection.test_stream_file(self.server_file, "r"):
            content = self._connection.download_streamfile_raw(self.server_file)
            try:
                server_config = json.loads(content.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                self._state.server = "failed_to_parse"
                logger.warning("Cannot parse %s: %s", self.server_file, e)
                return
            self._state.server = "ok"

        self._server_raw = server_config
        if server_config is not None and self.validate_and_clean is not None:
            server_config = self.validate_and_clean(server_config)

        self._server_data = server_config
        logger.debug("Server config %s: %s", self.config_id, self._state.server)

    def _load_workspace(self, workspace_folder: Path) -> Any | None:
        self._state.workspace = "no_exist"
        candidates = sorted(workspace_folder.glob(f"**/{self.workspace_file}"))
        if not candidates:
            return None

        config_path = candidates[0]
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._state.workspace = "failed_to_parse"
            logger.warning("Cannot parse %s: %s", config_path, e)
            return None
        self._state.workspace = "ok"
        return data

    def get(self, workspace_folder: Path | None = None) -> T | None:
        """Resolve the effective document.

        Without a workspace folder the cached server copy is returned as is.
        Otherwise the workspace copy is always read, even when server data
        is cached, so it can be merged with or override the server copy. It
        is searched recursively and combined:

        - ``merge_arrays`` and both copies present: for every key whose value
          is a list in both copies, the result becomes
          ``workspace[key] + server[key]``. Each matching key replaces the
          whole result, so the last matching key decides the final shape.
        - otherwise the workspace copy wins over the server copy entirely.

        Args:
            workspace_folder: Root of the current workspace folder.

        Returns:
            The combined document passed through ``validate_and_clean``, or
            None if neither source has data.

        Raises:
            Exception: Whatever ``validate_and_clean`` raises for invalid data.
        """
        if self._server_data is not None and workspace_folder is None:
            return self._server_data

        workspace_config = None
        if workspace_folder is not None:
            workspace_config = self._load_workspace(workspace_folder)

        if workspace_config is None and self._server_data is None:
            return None

        if workspace_config is None:
            return self._server_data

        result: Any
        if (
            self.merge_arrays
            and isinstance(workspace_config, dict)
            and isinstance(self._server_raw, dict)
        ):
            result = workspace_config
            for key in workspace_config:
                workspace_value = workspace_config[key]
                server_value = self._server_raw.get(key)
                if isinstance(workspace_value, list) and isinstance(server_value, list):
                    result = [*workspace_value, *server_value]
        else:
            result = workspace_config

        if self.validate_and_clean is not None:
            result = self.validate_and_clean(result)

        return result

    def reset(self) -> None:
        """Drop cached server data (called on disconnect)."""
        self._server_raw = None
        self._server_data = None
        self._state = LoadState()

    def get_state(self) -> LoadState:
        return self._state
