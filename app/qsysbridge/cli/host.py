"""Console implementation of the editor host.

The command line has no editor: documents live only in memory for the
duration of a command, prompts are answered on the terminal and the debug
launch configuration is printed for an external debug client.
"""

import json
import logging
import os
from typing import Any

from rich.prompt import Prompt

from qsysbridge.core.diagnostics import DiagnosticCollection
from qsysbridge.core.errors import QsysBridgeError
from qsysbridge.editor.host import EditorHost, MessageLevel
from qsysbridge.models.action import RefreshScope
from qsysbridge.models.diagnostic import Diagnostic
from qsysbridge.models.document import EditorTab, OpenDocument
from qsysbridge.utils.formatting import console, print_error, print_info, print_warning
from qsysbridge.vfs.provider import QsysFileSystem

logger = logging.getLogger(__name__)

# Environment variable consulted for connection passwords
PASSWORD_ENV = "QSYSBRIDGE_PASSWORD"


class ConsoleHost(EditorHost):
    """EditorHost backed by the terminal.

    Attributes:
        assume_yes: Answer every choice prompt with its first option.
        quiet: Suppress informational messages.
        filesystem: Filesystem used to save documents, once connected.
        diagnostics: Diagnostics published during the command.
        contexts: Context flags currently set.
        status: Status label while connected.
    """

    def __init__(self, *, assume_yes: bool = False, quiet: bool = False) -> None:
        super().__init__()
        self.assume_yes = assume_yes
        self.quiet = quiet
        self.filesystem: QsysFileSystem | None = None
        self.diagnostics = DiagnosticCollection()
        self.contexts: dict[str, bool] = {}
        self.status: str | None = None
        self.launched: list[dict[str, Any]] = []
        self._secrets: dict[str, str] = {}

    def tabs(self) -> list[EditorTab]:
        return [EditorTab(uri=document.uri, is_dirty=document.is_dirty) for document in self.documents]

    def close_tab(self, tab: EditorTab) -> None:
        self.documents.close(tab.uri)

    def show_document(self, document: OpenDocument) -> None:
        console.print(f"[bold]{document.uri}[/]{' [warning](modified)[/]' if document.is_dirty else ''}")

    def save_document(self, document: OpenDocument) -> bool:
        if self.filesystem is None:
            print_error(f"Cannot save {document.uri}: not connected.")
            return False
        try:
            self.filesystem.save_document(document)
        except QsysBridgeError as e:
            print_error(str(e))
            return False
        return True

    def show_message(
        self,
        message: str,
        *choices: str,
        level: MessageLevel = "info",
        modal: bool = False,
        detail: str | None = None,
    ) -> str | None:
        if level == "error":
            print_error(message)
        elif level == "warning":
            print_warning(message)
        elif not self.quiet or choices:
            print_info(message)
        if detail:
            console.print(f"[muted]{detail}[/]")

        if not choices:
            return None
        if self.assume_yes:
            return choices[0]
        try:
            return Prompt.ask("Choose", choices=list(choices), console=console)
        except (EOFError, KeyboardInterrupt):
            return None

    def input_box(self, prompt: str, *, password: bool = False, value: str = "") -> str | None:
        try:
            answer = Prompt.ask(
                prompt, password=password, default=value or None, console=console
            )
        except (EOFError, KeyboardInterrupt):
            return None
        return answer or None

    def set_diagnostics(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.diagnostics.set(uri, diagnostics)

    def clear_diagnostics(self) -> None:
        self.diagnostics.clear()

    def refresh_tree(self, scope: RefreshScope, uri: str) -> None:
        logger.debug("Refresh %s for %s (no object browser in console)", scope.value, uri)

    def get_secret(self, key: str) -> str | None:
        secret = self._secrets.get(key)
        if secret is None and key.endswith("_password"):
            secret = os.environ.get(PASSWORD_ENV) or None
        return secret

    def store_secret(self, key: str, value: str) -> None:
        self._secrets[key] = value

    def set_context(self, name: str, value: bool | None) -> None:
        if value is None:
            self.contexts.pop(name, None)
        else:
            self.contexts[name] = value

    def set_status_visible(self, visible: bool, label: str = "") -> None:
        self.status = label if visible else None

    def start_debugging(self, config: dict[str, Any]) -> bool:
        self.launched.append(config)
        shown = {**config, "password": "********"}
        console.print_json(json.dumps(shown))
        return True
