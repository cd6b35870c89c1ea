"""Index of documents open in the editor.

Documents are keyed by normalised resource URI, so reopening a resource
with a different case or readonly flag returns the document already open.
"""

import threading
from collections.abc import Iterable, Iterator

from qsysbridge.core.uri import normalize
from qsysbridge.models.document import OpenDocument
from qsysbridge.models.resource import ResourceKind


class DocumentIndex:
    """Tracks open documents by resource identity."""

    def __init__(self) -> None:
        self._documents: dict[str, OpenDocument] = {}
        self._lock = threading.Lock()

    def __iter__(self) -> Iterator[OpenDocument]:
        with self._lock:
            return iter(list(self._documents.values()))

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, uri: str) -> OpenDocument | None:
        """Return the open document for the resource behind ``uri``, if any."""
        return self._documents.get(normalize(uri))

    def open(self, uri: str, text: str = "") -> OpenDocument:
        """Return the existing document for ``uri`` or register a new one.

        Args:
            uri: Requested resource URI.
            text: Content for a newly registered document.

        Returns:
            The canonical OpenDocument. Its ``uri`` is the one first opened.
        """
        key = normalize(uri)
        with self._lock:
            existing = self._documents.get(key)
            if existing is not None:
                return existing
            document = OpenDocument(uri=uri, text=text)
            self._documents[key] = document
            return document

    def close(self, uri: str) -> None:
        """Forget a document. Unknown URIs are ignored."""
        with self._lock:
            document = self._documents.pop(normalize(uri), None)
        if document is not None:
            document.is_closed = True

    def dirty(self, schemes: Iterable[ResourceKind] | None = None) -> list[OpenDocument]:
        """List documents with unsaved changes, optionally filtered by scheme."""
        wanted = {kind.value for kind in schemes} if schemes is not None else None
        return [
            document
            for document in self
            if document.is_dirty
            and not document.is_closed
            and (wanted is None or document.uri.partition(":")[0] in wanted)
        ]

    def clear(self) -> None:
        with self._lock:
            documents = list(self._documents.values())
            self._documents.clear()
        for document in documents:
            document.is_closed = True
