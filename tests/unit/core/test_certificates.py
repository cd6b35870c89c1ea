"""Unit tests for debug certificate operations."""

import os
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeRemote
from qsysbridge.core.certificates import (
    CERTIFICATE_DIRECTORY,
    DebugCertificates,
    get_remote_certificate_path,
)
from qsysbridge.core.errors import NotFoundError, RemoteCommandError
from qsysbridge.utils.shell import CommandResult

REMOTE_PATH = "/QIBM/ProdData/IBMiDebugService/bin/certs/debug_service.pfx"


@pytest.fixture
def config_home(tmp_path: Path) -> Iterator[Path]:
    """Point the config directory at a temporary folder."""
    with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
        yield tmp_path


def test_remote_certificate_path() -> None:
    assert get_remote_certificate_path() == REMOTE_PATH


class TestDebugCertificates:
    """Tests for DebugCertificates class."""

    def test_check_remote_exists(self, remote: FakeRemote) -> None:
        certificates = DebugCertificates(remote)
        assert not certificates.check_remote_exists()

        remote.streamfiles[REMOTE_PATH] = b"pfx"

        assert certificates.check_remote_exists()

    def test_setup_runs_one_pase_script(self, remote: FakeRemote) -> None:
        DebugCertificates(remote).setup()

        command = remote.commands[0]
        assert command.environment == "pase"
        assert command.cwd == CERTIFICATE_DIRECTORY
        assert "openssl pkcs12" in command.command
        assert "pass:ibmi.example.com" in command.command
        assert command.command.endswith("chmod 444 debug_service.pfx")

    def test_setup_failure_carries_remote_error(self, remote: FakeRemote) -> None:
        remote.command_results = [CommandResult("", "openssl: not found", 127)]

        with pytest.raises(RemoteCommandError, match="openssl: not found") as excinfo:
            DebugCertificates(remote).setup()

        assert excinfo.value.returncode == 127

    def test_download_to_local(self, remote: FakeRemote, config_home: Path) -> None:
        remote.streamfiles[REMOTE_PATH] = b"pfx-bytes"
        certificates = DebugCertificates(remote)
        assert not certificates.check_local_exists()

        target = certificates.download_to_local()

        assert target == config_home / "qsysbridge" / "certs" / "ibmi.example.com" / "debug_service.pfx"
        assert target.read_bytes() == b"pfx-bytes"
        assert certificates.check_local_exists()

    def test_download_missing_remote(self, remote: FakeRemote, config_home: Path) -> None:
        with pytest.raises(NotFoundError):
            DebugCertificates(remote).download_to_local()
