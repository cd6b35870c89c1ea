"""Virtual filesystem for members, stream files and objects.

QsysFileSystem backs editor documents with remote content. It never polls
the remote system: change events are emitted only for writes made through
it and for explicit refresh notifications.
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from qsysbridge.core import charset
from qsysbridge.core.autosuggest import sql_string
from qsysbridge.core.errors import (
    InvalidResourceUriError,
    NotFoundError,
    ReadOnlyError,
    RemoteCommandError,
)
from qsysbridge.core.session import ConnectionSession
from qsysbridge.core.uri import decode
from qsysbridge.editor.host import EditorHost
from qsysbridge.models.document import OpenDocument
from qsysbridge.models.resource import ResourceIdentity, ResourceKind
from qsysbridge.remote.base import RemoteCommand, RemoteConnection, Row
from qsysbridge.utils.shell import cl_quote

logger = logging.getLogger(__name__)

# IBM i timestamp text, e.g. 2024-01-31-12.30.00.000000
_DB2_TIMESTAMP = re.compile(r"^(?P<date>\d{4}-\d{2}-\d{2})-(?P<time>\d{2}\.\d{2}\.\d{2}(?:\.\d+)?)$")

STREAMFILE_STAT_SQL = (
    "SELECT DATA_SIZE AS SIZE, DATA_CHANGE_TIMESTAMP AS CHANGED "
    "FROM TABLE(QSYS2.IFS_OBJECT_STATISTICS("
    "START_PATH_NAME => {path}, SUBTREE_DIRECTORIES => 'NO')) "
    "WHERE PATH_NAME = {path}"
)

OBJECT_STAT_SQL = (
    "SELECT OBJNAME, OBJTYPE, OBJATTRIBUTE, OBJTEXT, OBJSIZE, OBJCREATED, "
    "CHANGE_TIMESTAMP, OBJOWNER FROM TABLE(QSYS2.OBJECT_STATISTICS({library}, {type}, {name}))"
)


class FileChangeType(str, Enum):
    """Kind of change reported to watchers."""

    CHANGED = "changed"
    CREATED = "created"


@dataclass(frozen=True, slots=True)
class FileChangeEvent:
    """A change to one resource."""

    type: FileChangeType
    uri: str


@dataclass(frozen=True, slots=True)
class FileStat:
    """Remote resource metadata.

    Attributes:
        kind: Resource kind.
        size: Size in bytes.
        mtime: Last change timestamp, if known.
        readonly: Writes through the provider would be rejected.
    """

    kind: ResourceKind
    size: int
    mtime: datetime | None
    readonly: bool


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    match = _DB2_TIMESTAMP.match(text)
    if match:
        text = f"{match['date']}T{match['time'].replace('.', ':', 2)}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class QsysFileSystem:
    """Read/write backing store for remote resource URIs.

    Attributes:
        session: Session whose connection serves the content.
    """

    def __init__(self, session: ConnectionSession) -> None:
        self.session = session
        self._listeners: list[Callable[[FileChangeEvent], None]] = []

    def watch(self, listener: Callable[[FileChangeEvent], None]) -> Callable[[], None]:
        """Register a change listener.

        Returns:
            A callable that unregisters the listener.
        """
        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def _emit(self, change: FileChangeType, uri: str) -> None:
        event = FileChangeEvent(type=change, uri=uri)
        for listener in list(self._listeners):
            listener(event)

    def notify_refreshed(self, uri: str) -> None:
        """Report that ``uri`` was refreshed by an external command."""
        self._emit(FileChangeType.CHANGED, uri)

    def _identity(self, uri: str) -> ResourceIdentity:
        identity = decode(uri)
        if identity.kind == ResourceKind.FILE:
            msg = f"Local files are not served by the remote filesystem: {uri}"
            raise InvalidResourceUriError(msg)
        return identity

    def _object_rows(self, connection: RemoteConnection, identity: ResourceIdentity) -> list[Row]:
        return connection.run_sql(
            OBJECT_STAT_SQL.format(
                library=sql_string(identity.library_or_path.upper()),
                type=sql_string(f"*{identity.extension.upper()}" if identity.extension else "*ALL"),
                name=sql_string(identity.name.upper()),
            )
        )

    def stat(self, uri: str) -> FileStat:
        """Return metadata for a resource.

        Raises:
            NotConnectedError: If there is no live connection.
            NotFoundError: If the resource does not exist.
        """
        identity = self._identity(uri)
        connection = self.session.require_connection()
        readonly = self.session.is_readonly(identity)

        if identity.kind == ResourceKind.MEMBER:
            info = connection.get_member_info(
                identity.library or "", identity.source_file or "", identity.name
            )
            if info is None:
                raise NotFoundError(f"Member {identity.path} not found")
            return FileStat(identity.kind, info.size, info.changed, readonly)

        if identity.kind == ResourceKind.STREAMFILE:
            rows = connection.run_sql(STREAMFILE_STAT_SQL.format(path=sql_string(identity.path)))
            if not rows:
                raise NotFoundError(f"Stream file {identity.path} not found")
            row = rows[0]
            return FileStat(
                identity.kind, int(row.get("SIZE") or 0), _as_datetime(row.get("CHANGED")), readonly
            )

        rows = self._object_rows(connection, identity)
        if not rows:
            raise NotFoundError(f"Object {identity.path} not found")
        row = rows[0]
        return FileStat(
            identity.kind,
            int(row.get("OBJSIZE") or 0),
            _as_datetime(row.get("CHANGE_TIMESTAMP")),
            True,
        )

    def read_file(self, uri: str) -> bytes:
        """Download a resource's content.

        Objects are rendered as a JSON description.

        Raises:
            NotConnectedError: If there is no live connection.
            NotFoundError: If the resource does not exist.
        """
        identity = self._identity(uri)
        connection = self.session.require_connection()

        if identity.kind == ResourceKind.MEMBER:
            content = connection.download_member(
                identity.library or "",
                identity.source_file or "",
                identity.name,
                asp=identity.asp or self.session.settings.source_asp,
            )
            return content.encode("utf-8")

        if identity.kind == ResourceKind.STREAMFILE:
            if not connection.test_stream_file(identity.path, "e"):
                raise NotFoundError(f"Stream file {identity.path} not found")
            return connection.download_streamfile_raw(identity.path)

        rows = self._object_rows(connection, identity)
        if not rows:
            raise NotFoundError(f"Object {identity.path} not found")
        return json.dumps(rows[0], indent=2, default=str).encode("utf-8")

    def write_file(self, uri: str, data: bytes, *, create: bool = False) -> None:
        """Upload new content for a resource.

        Args:
            uri: Target resource.
            data: New content.
            create: Create the member or stream file if it does not exist.

        Raises:
            NotConnectedError: If there is no live connection.
            ReadOnlyError: If the resource or configuration forbids writes.
            NotFoundError: If the target is missing and ``create`` is False.
            RemoteCommandError: If creating a member fails.
        """
        identity = self._identity(uri)
        connection = self.session.require_connection()
        if self.session.is_readonly(identity):
            raise ReadOnlyError(f"{identity.path} is read only")

        created = False
        if identity.kind == ResourceKind.MEMBER:
            library, file = identity.library or "", identity.source_file or ""
            if connection.get_member_info(library, file, identity.name) is None:
                if not create:
                    raise NotFoundError(f"Member {identity.path} not found")
                self._add_member(connection, identity)
                created = True
            connection.upload_member(
                library,
                file,
                identity.name,
                data.decode("utf-8"),
                asp=identity.asp or self.session.settings.source_asp,
            )
        else:
            if not connection.test_stream_file(identity.path, "e"):
                if not create:
                    raise NotFoundError(f"Stream file {identity.path} not found")
                created = True
            connection.upload_streamfile_raw(identity.path, data)

        logger.info("Wrote %d bytes to %s", len(data), identity.path)
        self._emit(FileChangeType.CREATED if created else FileChangeType.CHANGED, uri)

    def _add_member(self, connection: RemoteConnection, identity: ResourceIdentity) -> None:
        command = (
            f"ADDPFM FILE({identity.library}/{identity.source_file}) MBR({identity.name}) "
            f"SRCTYPE({identity.extension or '*NONE'}) TEXT({cl_quote('')})"
        )
        result = connection.run_command(RemoteCommand(command=command))
        if not result.success:
            raise RemoteCommandError(command, result.returncode, result.stderr)

    def open_document(self, uri: str, host: EditorHost) -> OpenDocument:
        """Open a resource as an editor document.

        A resource that is already open (in any case or readonly variant)
        returns the existing document without downloading again.

        Args:
            uri: Requested resource.
            host: Editor host tracking open documents.

        Returns:
            The canonical open document.
        """
        existing = host.documents.get(uri)
        if existing is not None:
            return existing

        identity = self._identity(uri)
        text = self.read_file(uri).decode("utf-8", errors="replace")
        document = host.documents.open(uri, text)

        if identity.kind == ResourceKind.MEMBER:
            self.session.source_list.add(f"{identity.library_or_path}/{identity.basename}")
            charset.check_document(self.session, host, document)
        elif identity.kind == ResourceKind.STREAMFILE:
            self.session.source_list.add(identity.path)

        return document

    def save_document(self, document: OpenDocument) -> None:
        """Write a document back and clear its dirty flag."""
        self.write_file(document.uri, document.text.encode("utf-8"))
        document.is_dirty = False
