"""Editor document and tab models.

These mirror what the host editor reports about open documents; the host
owns them and qsysbridge only reads the flags.
"""

from dataclasses import dataclass


@dataclass(slots=True)
class OpenDocument:
    """A document currently represented in the editor.

    Attributes:
        uri: Backing resource URI.
        text: Current content.
        is_dirty: Unsaved changes exist.
        is_closed: The editor has released the document.
    """

    uri: str
    text: str = ""
    is_dirty: bool = False
    is_closed: bool = False


@dataclass(slots=True)
class EditorTab:
    """A text editor tab.

    Attributes:
        uri: Resource shown in the tab.
        group: Index of the tab group holding the tab.
        is_dirty: The tab's document has unsaved changes.
    """

    uri: str
    group: int = 0
    is_dirty: bool = False
