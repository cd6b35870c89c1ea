"""Resource URI scheme.

URIs take the form ``<scheme>:<path>[?readonly=true][#fragment]`` where the
scheme is one of ``member``, ``streamfile``, ``object`` or ``file``:

- member:      ``/[ASP/]LIB/SRCFILE/NAME.EXT``
- object:      ``/LIB/NAME.TYPE``
- streamfile:  absolute IFS path
- file:        absolute local path

Two URIs denote the same resource when their scheme and normalised path
match. The query and fragment never take part in identity.
"""

import posixpath
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import parse_qs

from qsysbridge.core.errors import InvalidResourceUriError
from qsysbridge.models.document import EditorTab, OpenDocument
from qsysbridge.models.resource import (
    ResourceIdentity,
    ResourceKind,
    is_case_sensitive_path,
)

# Characters that would otherwise be read as URI delimiters
_ESCAPES = {"%": "%25", "?": "%3F", "#": "%23"}


@dataclass(frozen=True, slots=True)
class MemberParts:
    """Components of a member path."""

    asp: str | None
    library: str
    file: str
    name: str
    extension: str

    @property
    def basename(self) -> str:
        return f"{self.name}.{self.extension}" if self.extension else self.name


def _escape(path: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in path)


def _unescape(path: str) -> str:
    for char, escaped in reversed(_ESCAPES.items()):
        path = path.replace(escaped, char).replace(escaped.lower(), char)
    return path


def _split(uri: str) -> tuple[str, str, str, str]:
    """Split a URI into scheme, unescaped path, query and fragment."""
    scheme, sep, rest = uri.partition(":")
    if not sep or not scheme:
        msg = f"Not a resource URI: {uri!r}"
        raise InvalidResourceUriError(msg)
    rest, _, fragment = rest.partition("#")
    path, _, query = rest.partition("?")
    return scheme, _unescape(path), query, fragment


def _split_name(basename: str) -> tuple[str, str]:
    name, dot, extension = basename.rpartition(".")
    if not dot or not name:
        return basename, ""
    return name, extension


def parse_member_path(path: str) -> MemberParts:
    """Parse ``[/][ASP/]LIB/FILE/NAME[.EXT]`` into its components.

    Args:
        path: Member path, with or without leading slash.

    Returns:
        MemberParts for the path.

    Raises:
        InvalidResourceUriError: If the path has the wrong number of segments.
    """
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if len(segments) == 3:
        asp = None
        library, file, basename = segments
    elif len(segments) == 4:
        asp, library, file, basename = segments
    else:
        msg = f"Invalid member path: {path!r} (expected LIB/FILE/NAME.EXT)"
        raise InvalidResourceUriError(msg)
    name, extension = _split_name(basename)
    return MemberParts(asp=asp, library=library, file=file, name=name, extension=extension)


def to_uri(identity: ResourceIdentity, fragment: str | None = None) -> str:
    """Render an identity as a URI string."""
    uri = f"{identity.kind.value}:{_escape(identity.path)}"
    if identity.readonly:
        uri += "?readonly=true"
    if fragment:
        uri += f"#{fragment}"
    return uri


def encode(
    kind: ResourceKind,
    library_or_path: str,
    name: str,
    *,
    extension: str = "",
    asp: str | None = None,
    readonly: bool = False,
    fragment: str | None = None,
) -> str:
    """Build the URI for a resource.

    Args:
        kind: Resource kind (also the scheme).
        library_or_path: ``LIB/SRCFILE`` for members, ``LIB`` for objects,
            parent directory otherwise.
        name: Resource name without extension.
        extension: Source type, object type or file extension.
        asp: Optional ASP qualifier for members.
        readonly: Request a read-only view.
        fragment: Optional fragment (e.g. a line anchor).

    Returns:
        URI string.
    """
    identity = ResourceIdentity(
        kind=kind,
        library_or_path=library_or_path,
        name=name,
        extension=extension,
        asp=asp,
        readonly=readonly,
    )
    return to_uri(identity, fragment=fragment)


def decode(uri: str) -> ResourceIdentity:
    """Decode a URI into a ResourceIdentity.

    Raises:
        InvalidResourceUriError: If the scheme is unknown or the path malformed.
    """
    scheme, path, query, _ = _split(uri)
    try:
        kind = ResourceKind(scheme)
    except ValueError:
        msg = f"Unsupported scheme {scheme!r} in {uri!r}"
        raise InvalidResourceUriError(msg) from None

    readonly = parse_qs(query).get("readonly") == ["true"]

    if kind == ResourceKind.MEMBER:
        parts = parse_member_path(path)
        return ResourceIdentity(
            kind=kind,
            library_or_path=f"{parts.library}/{parts.file}",
            name=parts.name,
            extension=parts.extension,
            asp=parts.asp,
            readonly=readonly,
        )

    if kind == ResourceKind.OBJECT:
        segments = [segment for segment in path.strip("/").split("/") if segment]
        if len(segments) != 2:
            msg = f"Invalid object path: {path!r} (expected LIB/NAME.TYPE)"
            raise InvalidResourceUriError(msg)
        name, extension = _split_name(segments[1])
        return ResourceIdentity(
            kind=kind,
            library_or_path=segments[0],
            name=name,
            extension=extension,
            readonly=readonly,
        )

    if not path.startswith("/") or path == "/":
        msg = f"Expected an absolute file path in {uri!r}"
        raise InvalidResourceUriError(msg)
    directory, basename = posixpath.split(path)
    name, extension = _split_name(basename)
    return ResourceIdentity(
        kind=kind,
        library_or_path=directory,
        name=name,
        extension=extension,
        readonly=readonly,
    )


def with_readonly(uri: str, readonly: bool) -> str:
    """Return the same resource URI with the readonly flag set or cleared."""
    _, _, _, fragment = _split(uri)
    identity = decode(uri)
    updated = ResourceIdentity(
        kind=identity.kind,
        library_or_path=identity.library_or_path,
        name=identity.name,
        extension=identity.extension,
        asp=identity.asp,
        readonly=readonly,
    )
    return to_uri(updated, fragment=fragment or None)


def normalize(uri: str) -> str:
    """Reduce a URI to its identity form ``scheme:path``.

    Everything is lower-cased except stream files under the case-sensitive
    root. Query and fragment are dropped.
    """
    scheme, path, _, _ = _split(uri)
    base = f"{scheme}:{path}"
    if scheme == ResourceKind.STREAMFILE.value and is_case_sensitive_path(
        ResourceKind.STREAMFILE, path
    ):
        return base
    return base.lower()


def same_resource(uri_a: str, uri_b: str) -> bool:
    """Check whether two URIs point to the same file, member or object."""
    return normalize(uri_a) == normalize(uri_b)


def find_existing_document(uri: str, documents: Iterable[OpenDocument]) -> OpenDocument | None:
    """Find an open document showing the same resource as ``uri``.

    Documents previously opened with a different case or readonly flag
    still match, so one resource is never opened twice.
    """
    target = normalize(uri)
    for document in documents:
        if not document.is_closed and normalize(document.uri) == target:
            return document
    return None


def find_existing(uri: str, documents: Iterable[OpenDocument]) -> str:
    """Return the URI of the canonical open document, or ``uri`` itself."""
    existing = find_existing_document(uri, documents)
    return existing.uri if existing else uri


def find_uri_tabs(tabs: Iterable[EditorTab], uri: str) -> list[EditorTab]:
    """Find all tabs where the resource behind ``uri`` is being edited."""
    target = normalize(uri)
    return [tab for tab in tabs if normalize(tab.uri) == target]


def find_path_tabs(tabs: Iterable[EditorTab], path_prefix: str) -> list[EditorTab]:
    """Find all tabs whose resource lies below ``path_prefix``.

    Used when a container (library, source file, directory) goes away.
    """
    prefix = path_prefix.rstrip("/") + "/"
    return [tab for tab in tabs if _split(tab.uri)[1].startswith(prefix)]


def get_uri_from_path(path: str, *, readonly: bool = False) -> str:
    """Map a user-typed path into a resource URI.

    ``/abs/path`` becomes a stream file; ``[ASP/]LIB/FILE/NAME.EXT``
    becomes a member.

    Raises:
        InvalidResourceUriError: If a member path is malformed.
    """
    if path.startswith("/"):
        directory, basename = posixpath.split(path)
        name, extension = _split_name(basename)
        return encode(
            ResourceKind.STREAMFILE, directory, name, extension=extension, readonly=readonly
        )
    parts = parse_member_path(path)
    return encode(
        ResourceKind.MEMBER,
        f"{parts.library}/{parts.file}",
        parts.name,
        extension=parts.extension,
        asp=parts.asp,
        readonly=readonly,
    )
