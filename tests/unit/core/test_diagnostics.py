"""Unit tests for event-file parsing and the diagnostic collection."""

from qsysbridge.core.diagnostics import (
    DiagnosticCollection,
    normalize_event_source,
    parse_event_output,
)
from qsysbridge.models.diagnostic import Diagnostic, Severity

EVENT_FILE = """\
TIMESTAMP  0 20240101120000
PROCESSOR  0 999 1
FILEID     0 001 000000 026 DEVLIB/QRPGLESRC(HELLO) 20240101120000 0
ERROR      0 001 1 000012 000012 008 000012 010 RNF7030 S 30 047 The name or indicator is not defined.
ERROR      0 001 1 000020 000020 001 000020 005 RNF7031 I 00 020 The name is not referenced.
FILEID     0 002 000000 020 /home/dev/copy.rpgleinc 20240101120000 0
ERROR      0 002 1 000003 000003 001 000003 004 RNF5377 W 20 010 Check this.
FILEEND    0 001 000046
"""


def make_diagnostic(source: str, line: int = 1) -> Diagnostic:
    return Diagnostic(source, line, 1, line, 2, Severity.ERROR, 30, "RNF0000", "msg")


class TestParseEventOutput:
    """Tests for parse_event_output function."""

    def test_groups_by_source(self) -> None:
        """ERROR records are grouped under their FILEID source."""
        grouped = parse_event_output(EVENT_FILE)

        assert list(grouped) == ["DEVLIB/QRPGLESRC/HELLO", "/home/dev/copy.rpgleinc"]
        first = grouped["DEVLIB/QRPGLESRC/HELLO"][0]
        assert (first.line, first.column, first.end_line, first.end_column) == (12, 8, 12, 10)
        assert first.code == "RNF7030"
        assert first.severity == Severity.ERROR
        assert first.message == "The name or indicator is not defined."

    def test_severity_mapping(self) -> None:
        """Levels map to error, warning and info."""
        grouped = parse_event_output(EVENT_FILE)

        assert grouped["DEVLIB/QRPGLESRC/HELLO"][1].severity == Severity.INFO
        assert grouped["/home/dev/copy.rpgleinc"][0].severity == Severity.WARNING

    def test_undeclared_file_id_uses_default_source(self) -> None:
        """Records without a FILEID use the default source."""
        text = "ERROR      0 009 1 000001 000001 001 000001 002 CPD0000 E 30 004 Oops"

        grouped = parse_event_output(text, default_source="/home/dev/a.clle")

        assert list(grouped) == ["/home/dev/a.clle"]

    def test_malformed_records_are_skipped(self) -> None:
        """Short or non-numeric records never raise."""
        text = "ERROR 0 001\nERROR      0 001 1 000001 x 001 000001 002 CPD0000 E 30 004 Oops\nrandom output"

        assert parse_event_output(text) == {}


class TestNormalizeEventSource:
    """Tests for normalize_event_source function."""

    def test_member_source(self) -> None:
        assert normalize_event_source("devlib/qrpglesrc(hello)") == "DEVLIB/QRPGLESRC/HELLO"

    def test_path_source_unchanged(self) -> None:
        assert normalize_event_source("/home/Dev/a.rpgle") == "/home/Dev/a.rpgle"


class TestDiagnosticCollection:
    """Tests for DiagnosticCollection class."""

    def test_set_replaces(self) -> None:
        """Publishing for a URI replaces previous entries."""
        collection = DiagnosticCollection()
        collection.set("member:/A/B/C.RPGLE", [make_diagnostic("x", 1), make_diagnostic("x", 2)])

        collection.set("member:/a/b/c.rpgle", [make_diagnostic("x", 9)])

        assert [d.line for d in collection.get("member:/A/B/C.RPGLE")] == [9]
        assert len(collection.items()) == 1

    def test_empty_list_removes(self) -> None:
        """An empty publish removes the entry."""
        collection = DiagnosticCollection()
        collection.set("streamfile:/a.txt", [make_diagnostic("x")])

        collection.set("streamfile:/a.txt", [])

        assert collection.items() == []

    def test_clear(self) -> None:
        collection = DiagnosticCollection()
        collection.set("streamfile:/a.txt", [make_diagnostic("x")])

        collection.clear()

        assert collection.get("streamfile:/a.txt") == []
