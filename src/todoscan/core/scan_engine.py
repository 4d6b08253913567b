"""
Scan Engine for keyword findings.

Drives one forward pass over a file's raw bytes, asks every compiled
matcher at every byte position whether its keyword ends there, and turns
each hit into a Finding with a character-based range and a preview.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from todoscan.core.config import ScanConfig
from todoscan.core.findings import Finding, Severity
from todoscan.core.line_locator import LF, LineLocator
from todoscan.core.matcher import Matcher, compile_patterns
from todoscan.core.preview import build_preview

logger = logging.getLogger(__name__)


def scan_buffer(
    buffer: bytes,
    matchers: Sequence[Matcher],
    max_preview_length: int,
    *,
    file_path: str = "",
    severity: Severity = Severity.INFORMATION,
) -> tuple[Finding, ...] | None:
    """
    Scan raw content for keyword occurrences.

    Findings come out in ascending byte offset of the keyword's last byte;
    keywords ending at the same offset are reported in matcher order.
    Matches never span a line terminator.

    Args:
        buffer: Raw file content
        matchers: Compiled matchers in configured keyword order
        max_preview_length: Maximum preview length in characters
        file_path: Path recorded on every finding
        severity: Severity recorded on every finding

    Returns:
        The findings, or None when nothing matched
    """
    findings: list[Finding] = []
    locator = LineLocator()

    for index, byte in enumerate(buffer):
        if byte == LF:
            locator.observe_terminator(index)
            continue

        for matcher in matchers:
            length = matcher.match_end(buffer, index)
            if length is None:
                continue

            start = index - length + 1
            if start < locator.line_start:
                # Would cross into the previous line
                continue

            start_column = locator.column(buffer, start)
            end_column = locator.column(buffer, index + 1)
            findings.append(
                Finding(
                    file_path=file_path,
                    line=locator.line,
                    start_column=start_column,
                    end_column=end_column,
                    message=build_preview(start, buffer, max_preview_length),
                    severity=severity,
                    keyword=matcher.keyword,
                )
            )

    return tuple(findings) if findings else None


class ScanEngine:
    """
    Scans files against one immutable configuration snapshot.

    Matchers are compiled once when the engine is created; a new
    configuration means a new engine.
    """

    def __init__(self, config: ScanConfig):
        """
        Initialize the engine.

        Args:
            config: Scan configuration snapshot

        Raises:
            PatternCompileError: If a configured keyword is empty
        """
        self._config = config
        self._matchers = compile_patterns(config.patterns())
        logger.debug(
            "Compiled %d keyword matchers",
            len(self._matchers),
            extra={"keywords": [m.keyword for m in self._matchers]},
        )

    @property
    def config(self) -> ScanConfig:
        """The configuration this engine was built from."""
        return self._config

    @property
    def matchers(self) -> tuple[Matcher, ...]:
        """Compiled matchers in configured order."""
        return self._matchers

    def scan(self, path: Path | str, content: bytes) -> tuple[Finding, ...] | None:
        """
        Scan one file's content.

        Args:
            path: File path recorded on the findings
            content: Raw bytes of the file

        Returns:
            The findings, or None when nothing matched
        """
        return scan_buffer(
            content,
            self._matchers,
            self._config.max_preview_length,
            file_path=str(path),
            severity=self._config.severity,
        )
