"""Unit tests for the SSH transport.

paramiko is replaced with mocks; commands are answered by a scripted
exec_command.
"""

import json
from collections.abc import Callable
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
from qsysbridge.core.errors import NotConnectedError, NotFoundError, RemoteCommandError
from qsysbridge.core.settings import ConnectionSettings
from qsysbridge.remote.base import RemoteCommand
from qsysbridge.remote.ssh import SshConnection, qsys_member_path

Responder = Callable[[str], tuple[str, str, int]]


def make_client(responder: Responder) -> MagicMock:
    """A mock SSHClient whose exec_command answers through ``responder``."""
    client = MagicMock()
    client.get_transport.return_value.is_active.return_value = True
    client.executed = []

    def exec_command(command: str, timeout: float | None = None) -> tuple[None, MagicMock, MagicMock]:
        client.executed.append(command)
        out, err, returncode = responder(command)
        stdout, stderr = MagicMock(), MagicMock()
        stdout.read.return_value = out.encode()
        stderr.read.return_value = err.encode()
        stdout.channel.recv_exit_status.return_value = returncode
        return None, stdout, stderr

    client.exec_command.side_effect = exec_command
    return client


def ok(command: str) -> tuple[str, str, int]:
    return "", "", 0


@pytest.fixture
def ssh_settings() -> ConnectionSettings:
    return ConnectionSettings(name="dev", host="ibmi.example.com", username="developer", port=2222)


class TestOpen:
    """Tests for SshConnection.open."""

    def test_connects_and_discovers_features(self, ssh_settings: ConnectionSettings) -> None:
        def responder(command: str) -> tuple[str, str, int]:
            if "/QOpenSys/pkgs/bin" in command:
                return "db2util\nbash\nvim\n", "", 0
            if "IBMiDebugService" in command:
                return "startDebugService.sh\n", "", 0
            return "", "No such file", 2

        client = make_client(responder)
        with patch("qsysbridge.remote.ssh.paramiko") as paramiko_mock:
            paramiko_mock.SSHClient.return_value = client

            connection = SshConnection.open(ssh_settings, "pw")

        kwargs = client.connect.call_args.kwargs
        assert (kwargs["hostname"], kwargs["port"], kwargs["username"], kwargs["password"]) == (
            "ibmi.example.com",
            2222,
            "developer",
            "pw",
        )
        assert connection.remote_features == {
            "db2util": "/QOpenSys/pkgs/bin/db2util",
            "bash": "/QOpenSys/pkgs/bin/bash",
            "startDebugService.sh": "/QIBM/ProdData/IBMiDebugService/bin/startDebugService.sh",
        }
        assert connection.connected


class TestRunCommand:
    """Tests for command wrapping."""

    def test_ile_command_runs_through_system(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        connection = SshConnection(ssh_settings, client)

        result = connection.run_command(RemoteCommand("DSPLIB LIB(DEVLIB)"))

        assert client.executed == ["system -Ks 'DSPLIB LIB(DEVLIB)'"]
        assert result.command == "DSPLIB LIB(DEVLIB)"
        assert result.success

    def test_pase_with_env_and_cwd(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ("built", "", 0))
        connection = SshConnection(ssh_settings, client)

        result = connection.run_command(
            RemoteCommand("make all", environment="pase", cwd="/home/dev", env={"LIB": "DEVLIB"})
        )

        assert client.executed == ["export LIB=DEVLIB && cd /home/dev && make all"]
        assert result.stdout == "built"

    def test_qsh(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)

        SshConnection(ssh_settings, client).run_command(RemoteCommand("ls", environment="qsh"))

        assert client.executed == ["qsh -c ls"]

    def test_non_zero_exit_is_a_result(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ("", "CPF0001", 1))

        result = SshConnection(ssh_settings, client).run_command(RemoteCommand("BAD"))

        assert result.returncode == 1
        assert result.stderr == "CPF0001"

    def test_timeout(self, ssh_settings: ConnectionSettings) -> None:
        client = MagicMock()
        client.get_transport.return_value.is_active.return_value = True
        client.exec_command.side_effect = TimeoutError()

        with pytest.raises(RemoteCommandError, match="timed out"):
            SshConnection(ssh_settings, client).run_command(RemoteCommand("SLOW"))

    def test_not_connected(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        client.get_transport.return_value.is_active.return_value = False

        with pytest.raises(NotConnectedError):
            SshConnection(ssh_settings, client).run_command(RemoteCommand("X"))


class TestMembers:
    """Tests for member transfer."""

    def test_qsys_member_path(self) -> None:
        assert qsys_member_path("devlib", "qrpglesrc", "hello") == "/QSYS.LIB/DEVLIB.LIB/QRPGLESRC.FILE/HELLO.MBR"
        assert qsys_member_path("a", "b", "c", asp="iasp1").startswith("/IASP1/QSYS.LIB/")

    def test_download_member(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        client.open_sftp.return_value.open.return_value.__enter__.return_value.read.return_value = b"**FREE"
        connection = SshConnection(ssh_settings, client)

        content = connection.download_member("DEVLIB", "QRPGLESRC", "HELLO")

        assert content == "**FREE"
        assert "CPYTOSTMF" in client.executed[0]
        assert client.executed[-1].startswith("rm -f /tmp/qsysbridge_")

    def test_download_missing_member(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(
            lambda command: ("", "CPF9815: Member HELLO not found.", 1) if "CPYTOSTMF" in command else ("", "", 0)
        )
        connection = SshConnection(ssh_settings, client)

        with pytest.raises(NotFoundError):
            connection.download_member("DEVLIB", "QRPGLESRC", "HELLO")

        assert client.executed[-1].startswith("rm -f ")

    def test_upload_member(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        remote_file = client.open_sftp.return_value.open.return_value.__enter__.return_value
        connection = SshConnection(ssh_settings, client)

        connection.upload_member("DEVLIB", "QRPGLESRC", "HELLO", "text")

        remote_file.write.assert_called_once_with(b"text")
        assert client.executed[0].startswith("setccsid 1208 ")
        assert "CPYFRMSTMF" in client.executed[1]

    def test_get_member_info(self, ssh_settings: ConnectionSettings) -> None:
        records = {
            "records": [
                {"NAME": "HELLO", "TYPE": "RPGLE", "TEXT": "Hello", "SIZE": 120, "CHANGED": "2024-01-31 12:30:00"}
            ]
        }
        client = make_client(lambda command: (json.dumps(records), "", 0))

        info = SshConnection(ssh_settings, client).get_member_info("devlib", "qrpglesrc", "hello")

        assert info is not None
        assert (info.library, info.extension, info.size) == ("DEVLIB", "RPGLE", 120)
        assert info.changed == datetime(2024, 1, 31, 12, 30)

    def test_get_member_info_missing(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ('{"records": []}', "", 0))

        assert SshConnection(ssh_settings, client).get_member_info("A", "B", "C") is None


class TestStreamFiles:
    """Tests for stream file access and SQL."""

    def test_test_stream_file(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ("", "", 1))

        assert not SshConnection(ssh_settings, client).test_stream_file("/a b", "f")
        assert client.executed == ["test -f '/a b'"]

    def test_download_missing_streamfile(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        client.open_sftp.return_value.open.side_effect = FileNotFoundError()

        with pytest.raises(NotFoundError):
            SshConnection(ssh_settings, client).download_streamfile_raw("/nope")

    def test_run_sql_failure(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ("", "SQL0204", 1))

        with pytest.raises(RemoteCommandError, match="SQL0204"):
            SshConnection(ssh_settings, client).run_sql("SELECT 1 FROM X")

    def test_run_sql_unreadable(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(lambda command: ("not json", "", 0))

        with pytest.raises(RemoteCommandError, match="unreadable"):
            SshConnection(ssh_settings, client).run_sql("SELECT 1")

    def test_end_closes_everything(self, ssh_settings: ConnectionSettings) -> None:
        client = make_client(ok)
        connection = SshConnection(ssh_settings, client)
        connection.download_streamfile_raw("/a")

        connection.end()

        client.open_sftp.return_value.close.assert_called_once()
        client.close.assert_called_once()
        assert not connection.connected
