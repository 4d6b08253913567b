"""
Diagnostics service data models.
"""

from dataclasses import dataclass, field


@dataclass
class ScanResult:
    """Result of a full rescan or of applying lifecycle events."""

    total_files: int = 0
    files_with_findings: int = 0
    total_findings: int = 0
    rescanned_files: int = 0
    deleted_files: int = 0
    renamed_files: int = 0
    reused_files: int = 0
    failed_files: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Serialize for structured logging and JSON output."""
        return {
            "total_files": self.total_files,
            "files_with_findings": self.files_with_findings,
            "total_findings": self.total_findings,
            "rescanned_files": self.rescanned_files,
            "deleted_files": self.deleted_files,
            "renamed_files": self.renamed_files,
            "reused_files": self.reused_files,
            "failed_files": list(self.failed_files),
            "duration_seconds": self.duration_seconds,
        }
