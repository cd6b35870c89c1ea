"""Editor host contract and open-document tracking."""

from qsysbridge.editor.documents import DocumentIndex
from qsysbridge.editor.host import EditorHost

__all__ = ["DocumentIndex", "EditorHost"]
