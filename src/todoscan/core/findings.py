"""
Finding models for the keyword scanner.

A Finding is one reported keyword occurrence: where it is, what the
source line says from the keyword onwards, and how severe it is.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

DIAGNOSTIC_SOURCE = "todoscan"


class Severity(IntEnum):
    """Diagnostic severity levels, numbered the way editors number them."""

    ERROR = 0
    WARNING = 1
    INFORMATION = 2
    HINT = 3

    @classmethod
    def parse(cls, value: "str | int | Severity") -> "Severity":
        """
        Parse a severity from its name or numeric value.

        Names are case-insensitive; "info" is accepted for INFORMATION.

        Raises:
            ValueError: If the value names no known severity
        """
        if isinstance(value, Severity):
            return value
        if isinstance(value, int):
            return cls(value)

        name = str(value).strip().upper()
        if name == "INFO":
            name = "INFORMATION"
        try:
            return cls[name]
        except KeyError:
            valid = ", ".join(s.name.lower() for s in cls)
            raise ValueError(f"Unknown severity '{value}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class Finding:
    """
    One keyword occurrence within one file.

    Attributes:
        file_path: Path of the scanned file (empty when scanning a bare buffer)
        line: 0-based line number
        start_column: 0-based character offset of the keyword's first character
        end_column: 0-based, end-exclusive character offset after the keyword
        message: Preview of the line from the keyword onwards, possibly truncated
        severity: Severity attached to every finding of a scan
        keyword: The configured keyword that matched
    """

    file_path: str
    line: int
    start_column: int
    end_column: int
    message: str
    severity: Severity = Severity.INFORMATION
    keyword: str = ""
    source: str = DIAGNOSTIC_SOURCE

    def to_dict(self) -> dict[str, Any]:
        """Serialize the finding to a JSON-friendly dictionary."""
        return {
            "file_path": self.file_path,
            "line": self.line,
            "start_column": self.start_column,
            "end_column": self.end_column,
            "message": self.message,
            "severity": self.severity.name.lower(),
            "keyword": self.keyword,
            "source": self.source,
        }
