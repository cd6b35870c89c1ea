"""Resource identity models.

A ResourceIdentity names exactly one remote (or local) resource: a source
member, an object, a stream file or a plain local file. Identities are
recomputed from URIs on every request and never persisted.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum

# Stream files under this root live on a case-sensitive filesystem
CASE_SENSITIVE_ROOT = "/QOpenSys/"


class ResourceKind(str, Enum):
    """Kind of resource, doubling as the URI scheme tag.

    Attributes:
        MEMBER: Source member inside a source physical file.
        STREAMFILE: IFS stream file addressed by absolute path.
        OBJECT: Library object (program, file, ...), read-only.
        FILE: File in the local workspace.
    """

    MEMBER = "member"
    STREAMFILE = "streamfile"
    OBJECT = "object"
    FILE = "file"


# Schemes backed by the remote connection
REMOTE_KINDS: frozenset[ResourceKind] = frozenset(
    {ResourceKind.MEMBER, ResourceKind.STREAMFILE, ResourceKind.OBJECT}
)


def is_case_sensitive_path(kind: ResourceKind, path: str) -> bool:
    """Check whether a resource path must be compared exactly.

    Args:
        kind: Resource kind.
        path: Scheme path (leading slash).

    Returns:
        True only for stream files under the case-sensitive root.
    """
    return kind == ResourceKind.STREAMFILE and path.lower().startswith(
        CASE_SENSITIVE_ROOT.lower()
    )


@dataclass(frozen=True, slots=True)
class ResourceIdentity:
    """Immutable identity of one addressable resource.

    Attributes:
        kind: Resource kind.
        library_or_path: ``LIB/SRCFILE`` for members, ``LIB`` for objects,
            the parent directory for stream files and local files.
        name: Member, object or file name without extension.
        extension: Source type, object type or file extension (no dot).
        asp: Optional auxiliary storage pool qualifier (members only).
        readonly: Whether the resource was requested read-only.
    """

    kind: ResourceKind
    library_or_path: str
    name: str
    extension: str = ""
    asp: str | None = None
    readonly: bool = False

    def __post_init__(self) -> None:
        """Validate identity data after initialization."""
        if not self.name:
            msg = "Resource name cannot be empty"
            raise ValueError(msg)
        if self.kind == ResourceKind.MEMBER and self.library_or_path.count("/") != 1:
            msg = f"Member container must be LIB/SRCFILE, got {self.library_or_path!r}"
            raise ValueError(msg)

    @property
    def basename(self) -> str:
        """Name with its extension, as shown to the user."""
        return f"{self.name}.{self.extension}" if self.extension else self.name

    @property
    def path(self) -> str:
        """Scheme path for this identity (always absolute)."""
        if self.kind == ResourceKind.MEMBER:
            prefix = f"/{self.asp}" if self.asp else ""
            return f"{prefix}/{self.library_or_path}/{self.basename}"
        if self.kind == ResourceKind.OBJECT:
            return f"/{self.library_or_path}/{self.basename}"
        return posixpath.join(self.library_or_path or "/", self.basename)

    @property
    def qualified_name(self) -> str:
        """IBM i style name: ``LIB/FILE(MBR)``, ``LIB/OBJ`` or the path."""
        if self.kind == ResourceKind.MEMBER:
            return f"{self.library_or_path}({self.name})"
        if self.kind == ResourceKind.OBJECT:
            return f"{self.library_or_path}/{self.name}"
        return self.path

    @property
    def library(self) -> str | None:
        """Owning library for members and objects, None otherwise."""
        if self.kind == ResourceKind.MEMBER:
            return self.library_or_path.split("/")[0]
        if self.kind == ResourceKind.OBJECT:
            return self.library_or_path
        return None

    @property
    def source_file(self) -> str | None:
        """Source physical file containing a member."""
        if self.kind == ResourceKind.MEMBER:
            return self.library_or_path.split("/")[1]
        return None

    @property
    def is_case_sensitive(self) -> bool:
        return is_case_sensitive_path(self.kind, self.path)

    @property
    def key(self) -> tuple[str, str]:
        """Comparison key: scheme plus normalised path. Ignores ``readonly``."""
        path = self.path if self.is_case_sensitive else self.path.lower()
        return (self.kind.value, path)

    def same_resource(self, other: "ResourceIdentity") -> bool:
        """Check whether two identities denote the same resource."""
        return self.key == other.key
