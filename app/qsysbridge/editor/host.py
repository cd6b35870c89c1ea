"""Abstract editor host.

qsysbridge never talks to an editor API directly. Everything user-facing
(prompts, documents, tabs, diagnostics, tree refresh, secrets, debug
launch) goes through an EditorHost. The CLI ships a console host; an
editor integration supplies its own.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Literal

from qsysbridge.editor.documents import DocumentIndex
from qsysbridge.models.action import RefreshScope
from qsysbridge.models.diagnostic import Diagnostic
from qsysbridge.models.document import EditorTab, OpenDocument

MessageLevel = Literal["info", "warning", "error"]


class EditorHost(ABC):
    """Abstract base class for the host editor surface.

    Attributes:
        documents: Documents currently open in the editor.
    """

    def __init__(self) -> None:
        self.documents = DocumentIndex()
        self._context_depth: dict[str, int] = {}
        self._context_lock = threading.Lock()

    @abstractmethod
    def tabs(self) -> list[EditorTab]:
        """Return all text editor tabs across all tab groups."""

    @abstractmethod
    def close_tab(self, tab: EditorTab) -> None:
        """Close a tab without saving."""

    @abstractmethod
    def show_document(self, document: OpenDocument) -> None:
        """Bring a document to the front."""

    @abstractmethod
    def save_document(self, document: OpenDocument) -> bool:
        """Save a document through its backing filesystem.

        Returns:
            True if the document was saved.
        """

    @abstractmethod
    def show_message(
        self,
        message: str,
        *choices: str,
        level: MessageLevel = "info",
        modal: bool = False,
        detail: str | None = None,
    ) -> str | None:
        """Show a message, optionally asking the user to pick one of ``choices``.

        Returns:
            The chosen label, or None if dismissed or no choices were given.
        """

    @abstractmethod
    def input_box(self, prompt: str, *, password: bool = False, value: str = "") -> str | None:
        """Ask the user for a value. Returns None when cancelled."""

    @abstractmethod
    def set_diagnostics(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        """Replace all diagnostics published for ``uri``."""

    @abstractmethod
    def clear_diagnostics(self) -> None:
        """Remove every published diagnostic."""

    @abstractmethod
    def refresh_tree(self, scope: RefreshScope, uri: str) -> None:
        """Ask the object browser to reload the given scope around ``uri``."""

    @abstractmethod
    def get_secret(self, key: str) -> str | None:
        """Read a secret."""

    @abstractmethod
    def store_secret(self, key: str, value: str) -> None:
        """Store a secret."""

    @abstractmethod
    def set_context(self, name: str, value: bool | None) -> None:
        """Set (or with None, clear) a context flag."""

    @abstractmethod
    def set_status_visible(self, visible: bool, label: str = "") -> None:
        """Show or hide the connection status indicators."""

    @abstractmethod
    def start_debugging(self, config: dict[str, Any]) -> bool:
        """Launch a debug session from a launch configuration."""

    def secret_key(self, connection_name: str, key: str) -> str:
        """Secret storage key scoped to a connection."""
        return f"{connection_name}_{key}"

    @contextmanager
    def with_context(self, name: str) -> Iterator[None]:
        """Keep a context flag set to True while the block runs.

        Nested and overlapping users of the same flag share it: only the last
        one to leave clears it. Users may run on different threads.

        Args:
            name: Context flag name.
        """
        with self._context_lock:
            depth = self._context_depth.get(name)
            if depth is None:
                self.set_context(name, True)
                self._context_depth[name] = 0
            else:
                self._context_depth[name] = depth + 1
        try:
            yield
        finally:
            with self._context_lock:
                depth = self._context_depth.get(name)
                if depth:
                    self._context_depth[name] = depth - 1
                elif depth is not None:
                    self.set_context(name, None)
                    del self._context_depth[name]
