"""Compiler diagnostics: event-file parsing and the published collection.

IBM i compilers invoked with ``OPTION(*EVENTF)`` write an event file whose
records look like::

    FILEID     0 001 000000 026 LIB/QRPGLESRC(HELLO) 20240101120000 0
    ERROR      0 001 1 000012 000012 008 000012 010 RNF7030 S 30 047 The name ...

The same records may also appear inline in command output. Parsing never
raises: unreadable records are skipped.
"""

import logging
import re
import threading

from qsysbridge.core.uri import normalize
from qsysbridge.models.diagnostic import Diagnostic, Severity

logger = logging.getLogger(__name__)

_MEMBER_SOURCE = re.compile(r"^(?P<lib>[^/()]+)/(?P<file>[^/()]+)\((?P<member>[^()]+)\)$")


def normalize_event_source(name: str) -> str:
    """Turn an event-file source name into ``LIB/FILE/MEMBER`` or an IFS path."""
    match = _MEMBER_SOURCE.match(name)
    if match:
        return f"{match['lib']}/{match['file']}/{match['member']}".upper()
    return name


def _parse_error(line: str, source: str) -> Diagnostic | None:
    fields = line.split(None, 13)
    if len(fields) < 13:
        return None
    try:
        start_line, start_col = int(fields[5]), int(fields[6])
        end_line, end_col = int(fields[7]), int(fields[8])
        level = int(fields[11])
    except ValueError:
        logger.debug("Skipping malformed event record: %s", line)
        return None
    message = fields[13].strip() if len(fields) > 13 else ""
    return Diagnostic(
        source=source,
        line=start_line,
        column=start_col,
        end_line=end_line,
        end_column=end_col,
        severity=Severity.from_level(level),
        level=level,
        code=fields[9],
        message=message,
    )


def parse_event_output(text: str, default_source: str = "") -> dict[str, list[Diagnostic]]:
    """Collect diagnostics from event-file records in ``text``.

    Args:
        text: Event file content or command output containing event records.
        default_source: Source name for ERROR records whose file id was
            never declared by a FILEID record.

    Returns:
        Diagnostics grouped by source name, in record order.
    """
    sources: dict[str, str] = {}
    grouped: dict[str, list[Diagnostic]] = {}

    for line in text.splitlines():
        fields = line.split()
        if not fields:
            continue
        if fields[0] == "FILEID" and len(fields) >= 6:
            sources[fields[2]] = normalize_event_source(fields[5])
        elif fields[0] == "ERROR":
            file_id = fields[2] if len(fields) > 2 else ""
            source = sources.get(file_id, default_source)
            diagnostic = _parse_error(line, source)
            if diagnostic is not None:
                grouped.setdefault(source, []).append(diagnostic)

    return grouped


class DiagnosticCollection:
    """Published diagnostics, keyed by resource identity.

    Publishing for a URI always replaces what was there before.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[str, list[Diagnostic]]] = {}
        self._lock = threading.Lock()

    def set(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        with self._lock:
            if diagnostics:
                self._entries[normalize(uri)] = (uri, list(diagnostics))
            else:
                self._entries.pop(normalize(uri), None)

    def get(self, uri: str) -> list[Diagnostic]:
        entry = self._entries.get(normalize(uri))
        return list(entry[1]) if entry else []

    def items(self) -> list[tuple[str, list[Diagnostic]]]:
        with self._lock:
            return [(uri, list(diagnostics)) for uri, diagnostics in self._entries.values()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
