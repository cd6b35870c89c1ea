"""Go-to-file support: recently opened sources and SQL-backed suggestions.

The suggestion cache has three tiers (libraries, source files of one
library, members of one source file). A tier is cached for its parent
segment and dropped together with every tier below it as soon as the
parent changes.
"""

import logging
import posixpath
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Maximum member suggestions returned at once
MEMBER_SUGGESTION_LIMIT = 30

LIBRARIES_SQL = (
    "SELECT CAST(SYSTEM_SCHEMA_NAME AS CHAR(10) FOR BIT DATA) AS NAME, "
    "IFNULL(CAST(SCHEMA_TEXT AS CHAR(50) FOR BIT DATA), '') AS TEXT "
    "FROM QSYS2.SYSSCHEMAS WHERE SYSTEM_SCHEMA_NAME NOT LIKE 'Q%' ORDER BY 1"
)

SOURCE_FILES_SQL = (
    "SELECT IFNULL(CAST(SYSTEM_TABLE_NAME AS CHAR(10) FOR BIT DATA), '') AS NAME, "
    "IFNULL(TABLE_TEXT, '') AS TEXT FROM QSYS2.SYSTABLES "
    "WHERE TABLE_SCHEMA = {library} AND FILE_TYPE = 'S' ORDER BY 1"
)

MEMBERS_SQL = (
    "SELECT CAST(TABLE_PARTITION AS CHAR(10) FOR BIT DATA) AS NAME, "
    "IFNULL(PARTITION_TEXT, '') AS TEXT, LOWER(IFNULL(SOURCE_TYPE, '')) AS TYPE "
    "FROM QSYS2.SYSPARTITIONSTAT WHERE TABLE_SCHEMA = {library} "
    "AND TABLE_NAME = {file} AND SOURCE_TYPE IS NOT NULL ORDER BY 1"
)


def sql_string(value: str) -> str:
    """Render a value as an SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


@dataclass(frozen=True, slots=True)
class Suggestion:
    """A go-to-file completion."""

    label: str
    detail: str = ""


class SourceList:
    """Recently opened sources, grouped by container.

    Containers are ``LIB/FILE`` for members and the parent directory for
    stream files.
    """

    def __init__(self) -> None:
        self._sources: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def add(self, path: str) -> None:
        """Record a path; a repeated path moves to the end of its container."""
        directory, name = posixpath.split(path.rstrip("/"))
        if not name:
            return
        with self._lock:
            names = self._sources.setdefault(directory or "/", [])
            if name in names:
                names.remove(name)
            names.append(name)

    def entries(self) -> list[str]:
        """All recorded paths as typed into go-to-file."""
        with self._lock:
            return [
                f"{directory}{'' if directory.endswith('/') else '/'}{name}"
                for directory, names in self._sources.items()
                for name in names
            ]

    def clear(self) -> None:
        with self._lock:
            self._sources.clear()


class AutosuggestCache:
    """Three-tier completion cache for ``LIB/FILE/MEMBER.EXT`` input.

    Suggestions are only produced for input containing ``*`` that is not
    an IFS path. The text before ``*`` in the last segment filters the
    cached tier.
    """

    def __init__(self, run_sql: Callable[[str], list[dict[str, Any]]]) -> None:
        self._run_sql = run_sql
        self._libraries: list[Suggestion] | None = None
        self._files: list[Suggestion] | None = None
        self._files_parent: str | None = None
        self._members: list[Suggestion] | None = None
        self._members_parent: tuple[str, str] | None = None

    def clear(self) -> None:
        self._libraries = None
        self._clear_files()

    def _clear_files(self) -> None:
        self._files = None
        self._files_parent = None
        self._clear_members()

    def _clear_members(self) -> None:
        self._members = None
        self._members_parent = None

    def _libraries_tier(self) -> list[Suggestion]:
        if self._libraries is None:
            rows = self._run_sql(LIBRARIES_SQL)
            self._libraries = [
                Suggestion(str(row["NAME"]).strip(), str(row.get("TEXT", "")).strip())
                for row in rows
            ]
        return self._libraries

    def _files_tier(self, library: str) -> list[Suggestion]:
        if self._files_parent != library:
            self._clear_files()
        if self._files is None:
            rows = self._run_sql(SOURCE_FILES_SQL.format(library=sql_string(library)))
            self._files = [
                Suggestion(f"{library}/{str(row['NAME']).strip()}", str(row.get("TEXT", "")))
                for row in rows
            ]
            self._files_parent = library
        return self._files

    def _members_tier(self, library: str, file: str) -> list[Suggestion]:
        if self._files_parent != library:
            self._clear_files()
        if self._members_parent != (library, file):
            self._clear_members()
        if self._members is None:
            rows = self._run_sql(
                MEMBERS_SQL.format(library=sql_string(library), file=sql_string(file))
            )
            self._members = [
                Suggestion(
                    f"{library}/{file}/{str(row['NAME']).strip()}.{str(row.get('TYPE', '')).strip()}",
                    str(row.get("TEXT", "")),
                )
                for row in rows
            ]
            self._members_parent = (library, file)
        return self._members

    def suggest(self, value: str) -> list[Suggestion]:
        """Return completions for the text typed so far.

        Args:
            value: Go-to-file input, e.g. ``MYLIB/QRPG*``.

        Returns:
            Matching suggestions; empty for IFS paths or input without ``*``.
        """
        if value.startswith("/") or "*" not in value:
            return []

        segments = value.upper().split("/")
        prefix = segments[-1].split("*", 1)[0]

        if len(segments) == 1:
            self._clear_files()
            return [s for s in self._libraries_tier() if s.label.startswith(prefix)]

        if len(segments) == 2:
            library = segments[0]
            wanted = f"{library}/{prefix}"
            return [s for s in self._files_tier(library) if s.label.startswith(wanted)]

        if len(segments) == 3:
            library, file = segments[0], segments[1]
            wanted = f"{library}/{file}/{prefix}"
            matches = [
                s for s in self._members_tier(library, file) if s.label.upper().startswith(wanted)
            ]
            return matches[:MEMBER_SUGGESTION_LIMIT]

        logger.debug("No suggestions for %d path segments", len(segments))
        return []
