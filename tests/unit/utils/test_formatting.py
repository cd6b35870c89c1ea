"""Unit tests for Rich formatting helpers."""

from unittest.mock import patch

from qsysbridge.models.action import ActionDefinition
from qsysbridge.models.diagnostic import Diagnostic, Severity
from qsysbridge.utils.formatting import (
    create_action_table,
    create_diagnostic_table,
    format_action_row,
    format_diagnostic_row,
    print_error,
    print_warning,
)


class TestTables:
    """Tests for table builders and row formatters."""

    def test_diagnostic_row(self) -> None:
        diagnostic = Diagnostic("SRC", 12, 8, 12, 10, Severity.ERROR, 30, "RNF7030", "Not defined.")

        row = format_diagnostic_row(diagnostic)

        assert row[0] == "12"
        assert row[1] == "8"
        assert "[severity.error]error[/]" in row[2]
        assert row[3:] == ("RNF7030", "Not defined.")

    def test_diagnostic_table_columns(self) -> None:
        table = create_diagnostic_table("member:/A/B/C.RPGLE")

        assert [column.header for column in table.columns] == ["Line", "Col", "Severity", "Code", "Message"]

    def test_action_row_marks_protected(self) -> None:
        action = ActionDefinition(name="Build", command="make", type="streamfile", runOnProtected=True)

        row = format_action_row(action)

        assert "Build" in row[0]
        assert "[warning]" in row[0]
        assert row[1:4] == ("streamfile", "GLOBAL", "ile")

    def test_action_table_columns(self) -> None:
        assert len(create_action_table().columns) == 5


class TestPrintHelpers:
    """Tests for message helpers."""

    def test_errors_go_to_stderr_console(self) -> None:
        with patch("qsysbridge.utils.formatting.err_console") as err_console:
            print_error("boom")
            print_warning("careful")

        printed = [call.args[0] for call in err_console.print.call_args_list]
        assert printed == ["[error]Error:[/] boom", "[warning]Warning:[/] careful"]
