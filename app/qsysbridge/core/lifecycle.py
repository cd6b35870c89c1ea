"""Connection lifecycle.

ConnectionCoordinator owns the one active ConnectionSession of an editor
host: it wires a fresh session into the host on connect and tears
everything bound to it down again on disconnect.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

from pydantic import ValidationError

from qsysbridge.core.debug import (
    LOCAL_CERT_CONTEXT,
    PTF_CONTEXT,
    REMOTE_CERT_CONTEXT,
    detect_on_connect,
)
from qsysbridge.core.errors import InvalidResourceUriError, QsysBridgeError, SettingsNotFoundError
from qsysbridge.core.session import ConnectionSession
from qsysbridge.core.settings import (
    ConnectionSettings,
    load_connection_settings,
    save_connection_settings,
)
from qsysbridge.editor.host import EditorHost
from qsysbridge.models.resource import REMOTE_KINDS
from qsysbridge.remote.base import RemoteConnection

logger = logging.getLogger(__name__)

CONNECTED_CONTEXT = "connected"
HAS_PROFILES_CONTEXT = "hasProfiles"
DISCONNECT_ANYWAY = "Disconnect anyway"

ConnectionFactory = Callable[[ConnectionSettings, str], RemoteConnection]


@dataclass(frozen=True, slots=True)
class ConnectRequest:
    """Connection details carried by a ``/connect`` URI.

    Attributes:
        host: Host name or address.
        port: SSH port.
        user: User profile, if given.
        password: Decoded password, if given.
        save: Store the connection (and the password as a secret).
    """

    host: str
    port: int = 22
    user: str | None = None
    password: str | None = None
    save: bool = False


def parse_connect_uri(uri: str) -> ConnectRequest:
    """Parse ``.../connect?server=host[:port]&user=..&pass=<base64>&save=true``.

    Raises:
        InvalidResourceUriError: If the URI is not a usable connect request.
    """
    parts = urlsplit(uri)
    if parts.path.rstrip("/").rsplit("/", 1)[-1] != "connect":
        msg = f"Not a connect URI: {uri!r}"
        raise InvalidResourceUriError(msg)

    query = parse_qs(parts.query)
    server = query.get("server", [""])[0].strip()
    if not server:
        msg = "Connect URI has no server"
        raise InvalidResourceUriError(msg)

    host, _, port_text = server.partition(":")
    port = 22
    if port_text:
        try:
            port = int(port_text)
        except ValueError:
            msg = f"Invalid port in {server!r}"
            raise InvalidResourceUriError(msg) from None

    password = None
    if "pass" in query:
        try:
            password = base64.b64decode(query["pass"][0], validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            msg = "Password in connect URI is not valid base64"
            raise InvalidResourceUriError(msg) from e

    return ConnectRequest(
        host=host,
        port=port,
        user=query.get("user", [None])[0] or None,
        password=password,
        save=query.get("save", ["false"])[0].lower() == "true",
    )


class ConnectionCoordinator:
    """Connect and disconnect orchestration for one editor host.

    Attributes:
        host: Editor host the sessions are wired into.
        session: The active session, or None while disconnected.
    """

    def __init__(self, host: EditorHost) -> None:
        self.host = host
        self.session: ConnectionSession | None = None

    @property
    def connected(self) -> bool:
        return self.session is not None and self.session.connected

    def connect(self, session: ConnectionSession) -> ConnectionSession:
        """Make ``session`` the active one and publish its state.

        Raises:
            QsysBridgeError: If another session is still connected.
            OSError: If loading the server configuration fails in transport;
                the coordinator stays disconnected.
        """
        if self.connected:
            msg = "Already connected. Disconnect first."
            raise QsysBridgeError(msg)

        try:
            session.load_server_config()
        except ValidationError as e:
            logger.warning("Server configuration is invalid: %s", e)
            self.host.show_message(
                "The server Action configuration is invalid and was ignored.", level="warning"
            )

        self.session = session
        settings = session.settings
        self.host.set_context(CONNECTED_CONTEXT, True)
        self.host.set_status_visible(True, f"{settings.username}@{settings.host}")
        self.host.set_context(HAS_PROFILES_CONTEXT, bool(settings.connection_profiles))
        detect_on_connect(session, self.host)

        logger.info("Connected to %s as %s", settings.host, settings.username)
        return session

    def connect_uri(
        self,
        uri: str,
        factory: ConnectionFactory,
        *,
        settings_path: Path | None = None,
    ) -> ConnectionSession | None:
        """Connect from a ``/connect`` URI, prompting for missing details.

        Args:
            uri: The connect URI.
            factory: Opens a live connection from settings and a password.
            settings_path: Settings store location (default location if None).

        Returns:
            The new session, or None if a prompt was cancelled or a
            connection is already active.
        """
        if self.connected:
            self.host.show_message("Already connected. Disconnect first.", level="error")
            return None

        request = parse_connect_uri(uri)
        user = request.user or self.host.input_box(f"User for {request.host}")
        if not user:
            return None
        password = request.password or self.host.input_box(
            f"Password for {user}@{request.host}", password=True
        )
        if not password:
            return None

        try:
            settings = load_connection_settings(request.host, settings_path).model_copy(
                update={"port": request.port, "username": user}
            )
        except SettingsNotFoundError:
            settings = ConnectionSettings(
                name=request.host, host=request.host, port=request.port, username=user
            )

        connection = factory(settings, password)
        session = ConnectionSession(
            connection,
            settings,
            settings_saver=lambda changed: save_connection_settings(changed, settings_path),
        )
        if request.save:
            save_connection_settings(settings, settings_path)
            self.host.store_secret(self.host.secret_key(settings.name, "password"), password)

        try:
            return self.connect(session)
        except (QsysBridgeError, OSError):
            connection.end()
            raise

    def disconnect(self) -> bool:
        """Disconnect, guarding unsaved remote documents.

        The first dirty remote document is shown with a "Disconnect anyway"
        prompt. That single answer decides for every dirty document.

        Returns:
            False if the user kept the connection; nothing was changed then.
        """
        session = self.session
        if session is None:
            return True

        dirty = self.host.documents.dirty(REMOTE_KINDS)
        if dirty:
            self.host.show_document(dirty[0])
            choice = self.host.show_message(
                f"{len(dirty)} remote document(s) have unsaved changes.",
                DISCONNECT_ANYWAY,
                level="warning",
                modal=True,
            )
            if choice != DISCONNECT_ANYWAY:
                logger.debug("Disconnect cancelled by user")
                return False

        try:
            session.connection.end()
        except (QsysBridgeError, OSError) as e:
            logger.warning("Error while ending connection: %s", e)

        remote_schemes = {kind.value for kind in REMOTE_KINDS}
        for tab in self.host.tabs():
            if tab.uri.partition(":")[0] in remote_schemes and not tab.is_dirty:
                self.host.close_tab(tab)
        for document in list(self.host.documents):
            if document.uri.partition(":")[0] in remote_schemes and not document.is_dirty:
                self.host.documents.close(document.uri)

        session.reset()
        self.host.set_status_visible(False)
        for context in (HAS_PROFILES_CONTEXT, PTF_CONTEXT, REMOTE_CERT_CONTEXT, LOCAL_CERT_CONTEXT):
            self.host.set_context(context, None)
        self.host.set_context(CONNECTED_CONTEXT, None)
        self.session = None
        logger.info("Disconnected from %s", session.settings.host)
        return True
