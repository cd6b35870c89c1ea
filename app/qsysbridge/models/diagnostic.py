"""Diagnostic records produced by compilers."""

from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    """Diagnostic severity as shown to the user."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def from_level(cls, level: int) -> "Severity":
        """Map an IBM i message severity (00-99) to a diagnostic severity.

        Args:
            level: Numeric severity from the event record.

        Returns:
            ERROR for 30 and above, WARNING for 20-29, INFO otherwise.
        """
        if level >= 30:
            return cls.ERROR
        if level >= 20:
            return cls.WARNING
        return cls.INFO


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One compiler message tied to a source location.

    Lines and columns are 1-based as reported by the compiler; a line of 0
    means the message is not tied to a line.

    Attributes:
        source: Source the message refers to (``LIB/FILE/MEMBER`` or IFS path).
        line: Start line.
        column: Start column.
        end_line: End line.
        end_column: End column.
        severity: Mapped severity.
        level: Raw numeric severity.
        code: Message identifier (e.g. ``RNF7030``).
        message: Message text.
    """

    source: str
    line: int
    column: int
    end_line: int
    end_column: int
    severity: Severity
    level: int
    code: str
    message: str
