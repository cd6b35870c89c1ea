"""Pytest configuration and shared fixtures.

This module contains the in-memory remote connection and editor host used
across all test modules.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from qsysbridge.core.session import ConnectionSession
from qsysbridge.core.settings import ConnectionSettings
from qsysbridge.editor.host import EditorHost, MessageLevel
from qsysbridge.models.action import RefreshScope
from qsysbridge.models.diagnostic import Diagnostic
from qsysbridge.models.document import EditorTab, OpenDocument
from qsysbridge.remote.base import MemberInfo, RemoteCommand, RemoteConnection, Row
from qsysbridge.utils.shell import CommandResult


class FakeRemote(RemoteConnection):
    """In-memory RemoteConnection.

    Stream files and members are plain dicts; commands return scripted
    results (success with empty output by default) and are recorded. A
    scripted exception is raised instead of returned.
    """

    def __init__(self) -> None:
        super().__init__("dev", "developer", "ibmi.example.com")
        self.is_connected = True
        self.streamfiles: dict[str, bytes] = {}
        self.members: dict[tuple[str, str, str], str] = {}
        self.commands: list[RemoteCommand] = []
        self.command_results: list[CommandResult | Exception] = []
        self.sql: list[str] = []
        self.sql_handler: Callable[[str], list[Row]] = lambda statement: []
        self.stat_error: Exception | None = None
        self.ended = False

    @property
    def connected(self) -> bool:
        return self.is_connected

    def test_stream_file(self, path: str, mode: str) -> bool:
        if self.stat_error is not None:
            raise self.stat_error
        return path in self.streamfiles

    def download_streamfile_raw(self, path: str) -> bytes:
        from qsysbridge.core.errors import NotFoundError

        if path not in self.streamfiles:
            raise NotFoundError(path)
        return self.streamfiles[path]

    def upload_streamfile_raw(self, path: str, data: bytes) -> None:
        self.streamfiles[path] = data

    def download_member(self, library: str, file: str, member: str, asp: str | None = None) -> str:
        from qsysbridge.core.errors import NotFoundError

        key = (library.upper(), file.upper(), member.upper())
        if key not in self.members:
            raise NotFoundError(f"{library}/{file}({member})")
        return self.members[key]

    def upload_member(
        self, library: str, file: str, member: str, content: str, asp: str | None = None
    ) -> None:
        self.members[(library.upper(), file.upper(), member.upper())] = content

    def get_member_info(self, library: str, file: str, member: str) -> MemberInfo | None:
        key = (library.upper(), file.upper(), member.upper())
        if key not in self.members:
            return None
        return MemberInfo(*key, extension="", size=len(self.members[key]))

    def run_sql(self, statement: str) -> list[Row]:
        self.sql.append(statement)
        return self.sql_handler(statement)

    def run_command(self, command: RemoteCommand) -> CommandResult:
        self.commands.append(command)
        if self.command_results:
            scripted = self.command_results.pop(0)
            if isinstance(scripted, Exception):
                raise scripted
            return scripted
        return CommandResult(stdout="", stderr="", returncode=0, command=command.command)

    def end(self) -> None:
        self.ended = True
        self.is_connected = False


class FakeHost(EditorHost):
    """Recording EditorHost with scripted answers.

    ``answers`` is consumed in order by show_message calls that offer
    choices; an exhausted queue behaves like a dismissed prompt.
    """

    def __init__(self) -> None:
        super().__init__()
        self.answers: list[str | None] = []
        self.inputs: list[str | None] = []
        self.messages: list[tuple[str, tuple[str, ...], str]] = []
        self.diagnostics: dict[str, list[Diagnostic]] = {}
        self.diagnostic_calls: list[str] = []
        self.refreshed: list[tuple[RefreshScope, str]] = []
        self.secrets: dict[str, str] = {}
        self.contexts: dict[str, bool] = {}
        self.context_log: list[tuple[str, bool | None]] = []
        self.status_visible = False
        self.launched: list[dict[str, Any]] = []
        self.launch_result = True
        self.shown: list[str] = []
        self.saved: list[str] = []
        self.save_result = True
        self.extra_tabs: list[EditorTab] = []
        self.closed_tabs: list[str] = []

    def tabs(self) -> list[EditorTab]:
        document_tabs = [EditorTab(d.uri, is_dirty=d.is_dirty) for d in self.documents]
        return document_tabs + self.extra_tabs

    def close_tab(self, tab: EditorTab) -> None:
        self.closed_tabs.append(tab.uri)
        self.documents.close(tab.uri)

    def show_document(self, document: OpenDocument) -> None:
        self.shown.append(document.uri)

    def save_document(self, document: OpenDocument) -> bool:
        self.saved.append(document.uri)
        if self.save_result:
            document.is_dirty = False
        return self.save_result

    def show_message(
        self,
        message: str,
        *choices: str,
        level: MessageLevel = "info",
        modal: bool = False,
        detail: str | None = None,
    ) -> str | None:
        self.messages.append((message, choices, level))
        if not choices:
            return None
        return self.answers.pop(0) if self.answers else None

    def input_box(self, prompt: str, *, password: bool = False, value: str = "") -> str | None:
        return self.inputs.pop(0) if self.inputs else None

    def set_diagnostics(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.diagnostic_calls.append(uri)
        if diagnostics:
            self.diagnostics[uri] = list(diagnostics)
        else:
            self.diagnostics.pop(uri, None)

    def clear_diagnostics(self) -> None:
        self.diagnostics.clear()

    def refresh_tree(self, scope: RefreshScope, uri: str) -> None:
        self.refreshed.append((scope, uri))

    def get_secret(self, key: str) -> str | None:
        return self.secrets.get(key)

    def store_secret(self, key: str, value: str) -> None:
        self.secrets[key] = value

    def set_context(self, name: str, value: bool | None) -> None:
        self.context_log.append((name, value))
        if value is None:
            self.contexts.pop(name, None)
        else:
            self.contexts[name] = value

    def set_status_visible(self, visible: bool, label: str = "") -> None:
        self.status_visible = visible

    def start_debugging(self, config: dict[str, Any]) -> bool:
        self.launched.append(config)
        return self.launch_result

    @property
    def message_texts(self) -> list[str]:
        return [message for message, _, _ in self.messages]


@pytest.fixture
def remote() -> FakeRemote:
    """A connected in-memory remote."""
    return FakeRemote()


@pytest.fixture
def host() -> FakeHost:
    """A recording editor host."""
    return FakeHost()


@pytest.fixture
def settings() -> ConnectionSettings:
    """Settings for the fake connection."""
    return ConnectionSettings(
        name="dev",
        host="ibmi.example.com",
        username="developer",
        current_library="DEVLIB",
    )


@pytest.fixture
def saved_settings() -> list[ConnectionSettings]:
    """Settings passed to the session's saver, in order."""
    return []


@pytest.fixture
def session(
    remote: FakeRemote,
    settings: ConnectionSettings,
    saved_settings: list[ConnectionSettings],
    tmp_path: Path,
) -> ConnectionSession:
    """A session on the fake remote with an empty workspace folder."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return ConnectionSession(
        remote,
        settings,
        workspace_folder=workspace,
        settings_saver=saved_settings.append,
    )


@pytest.fixture
def cli_remote(
    remote: FakeRemote, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> FakeRemote:
    """Saved connection "dev" whose CLI connections open the fake remote.

    The working directory becomes an empty workspace and the password is
    taken from the environment.
    """
    from qsysbridge.core.settings import save_connection_settings

    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("QSYSBRIDGE_PASSWORD", "secret")
    workspace = tmp_path / "cli-workspace"
    workspace.mkdir()
    monkeypatch.chdir(workspace)
    save_connection_settings(
        ConnectionSettings(
            name="dev",
            host="ibmi.example.com",
            username="developer",
            current_library="DEVLIB",
        )
    )
    monkeypatch.setattr(
        "qsysbridge.cli.types.open_connection", lambda settings, password: remote
    )
    return remote
