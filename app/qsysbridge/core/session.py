"""Connection session.

A ConnectionSession is created on connect and discarded on disconnect. It
bundles the live connection with everything whose lifetime is bound to it:
settings, cached configuration documents, the recently opened source list
and the go-to-file suggestion cache. Components receive the session
explicitly; there is no process-wide "current connection".
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from qsysbridge.core.autosuggest import AutosuggestCache, SourceList
from qsysbridge.core.config_file import ConfigFile
from qsysbridge.core.errors import NotConnectedError
from qsysbridge.core.settings import ConnectionSettings
from qsysbridge.models.action import ActionDefinition, parse_action_document
from qsysbridge.models.resource import ResourceIdentity, ResourceKind
from qsysbridge.remote.base import RemoteConnection

logger = logging.getLogger(__name__)

# Identifier of the Action configuration document
ACTIONS_CONFIG_ID = "actions"


class ConnectionSession:
    """State scoped to one active connection.

    Attributes:
        connection: Live remote connection.
        settings: Settings of the connection.
        workspace_folder: Local workspace root searched for configuration.
        actions: Action configuration document.
        source_list: Recently opened sources.
        autosuggest: Go-to-file suggestion cache.
    """

    def __init__(
        self,
        connection: RemoteConnection,
        settings: ConnectionSettings,
        *,
        workspace_folder: Path | None = None,
        settings_saver: Callable[[ConnectionSettings], Any] | None = None,
    ) -> None:
        self.connection = connection
        self.settings = settings
        self.workspace_folder = workspace_folder
        self._settings_saver = settings_saver
        self.actions: ConfigFile[list[ActionDefinition]] = ConfigFile(
            connection,
            ACTIONS_CONFIG_ID,
            has_server_file=True,
            merge_arrays=True,
            validate_and_clean=parse_action_document,
        )
        self.source_list = SourceList()
        self.autosuggest = AutosuggestCache(connection.run_sql)

    @property
    def config_files(self) -> list[ConfigFile[Any]]:
        return [self.actions]

    @property
    def connected(self) -> bool:
        return self.connection.connected

    def require_connection(self) -> RemoteConnection:
        """Return the live connection.

        Raises:
            NotConnectedError: If the connection has gone away.
        """
        if not self.connection.connected:
            msg = f"No connection to {self.settings.host} available."
            raise NotConnectedError(msg)
        return self.connection

    def load_server_config(self) -> None:
        """Load the server copy of every configuration document."""
        for config_file in self.config_files:
            config_file.load_from_server()

    def is_protected(self, identity: ResourceIdentity) -> bool:
        """Check whether only ``runOnProtected`` Actions may run on ``identity``.

        Members and objects follow the protected library list, stream files
        the protected path prefixes. Local files are never protected unless
        requested read only.
        """
        if identity.readonly:
            return True
        if identity.kind == ResourceKind.FILE:
            return False
        if self.settings.read_only_mode:
            return True
        if identity.kind in (ResourceKind.MEMBER, ResourceKind.OBJECT):
            return self.settings.is_protected(identity.library or "")
        return self.settings.is_protected(identity.path)

    def is_readonly(self, identity: ResourceIdentity) -> bool:
        """Check whether writes through the filesystem to ``identity`` are forbidden.

        Objects only have a rendered description, so they are never written.
        """
        return identity.kind == ResourceKind.OBJECT or self.is_protected(identity)

    def get_actions(self) -> list[ActionDefinition]:
        """Resolve the configured actions (empty when none are configured)."""
        return self.actions.get(self.workspace_folder) or []

    def update_settings(self, **changes: Any) -> ConnectionSettings:
        """Apply setting changes and persist them when a saver is configured.

        Args:
            **changes: Field values to replace.

        Returns:
            The updated settings.
        """
        self.settings = self.settings.model_copy(update=changes)
        if self._settings_saver is not None:
            self._settings_saver(self.settings)
        logger.debug("Updated settings for %s: %s", self.settings.name, sorted(changes))
        return self.settings

    def reset(self) -> None:
        """Drop every cache bound to this connection."""
        for config_file in self.config_files:
            config_file.reset()
        self.source_list.clear()
        self.autosuggest.clear()
