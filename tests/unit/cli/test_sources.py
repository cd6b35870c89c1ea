"""Unit tests for go-to-file CLI commands."""

from conftest import FakeRemote
from qsysbridge.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestFind:
    """Tests for sources find."""

    def test_suggests_libraries(self, cli_remote: FakeRemote) -> None:
        cli_remote.sql_handler = lambda statement: [{"NAME": "DEVLIB", "TEXT": "Development"}]

        result = runner.invoke(app, ["sources", "find", "dev", "DEV*"])

        assert result.exit_code == 0
        assert "DEVLIB" in result.stdout

    def test_no_wildcard(self, cli_remote: FakeRemote) -> None:
        result = runner.invoke(app, ["sources", "find", "dev", "DEVLIB"])

        assert result.exit_code == 0
        assert "No suggestions" in result.stdout
        assert cli_remote.sql == []


class TestOpen:
    """Tests for sources open."""

    def test_opens_and_lists_recent(self, cli_remote: FakeRemote) -> None:
        cli_remote.members[("DEVLIB", "QRPGLESRC", "HELLO")] = "**FREE"
        cli_remote.streamfiles["/home/dev/a.txt"] = b"a"

        result = runner.invoke(
            app, ["sources", "open", "dev", "DEVLIB/QRPGLESRC/HELLO.RPGLE", "/home/dev/a.txt", "/nope.txt"]
        )

        assert result.exit_code == 0
        assert "DEVLIB/QRPGLESRC/HELLO.RPGLE" in result.stdout
        assert "/home/dev/a.txt" in result.stdout

    def test_fixes_invalid_characters(self, cli_remote: FakeRemote) -> None:
        cli_remote.members[("DEVLIB", "QRPGLESRC", "HELLO")] = "A\x01B"

        result = runner.invoke(app, ["--yes", "sources", "open", "dev", "DEVLIB/QRPGLESRC/HELLO.RPGLE"])

        assert result.exit_code == 0
        assert cli_remote.members[("DEVLIB", "QRPGLESRC", "HELLO")] == "A B"
