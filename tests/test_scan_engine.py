"""
Tests for the scan engine.

Covers the reference scenarios for line and column computation, CRLF
content, multi-byte text, case handling and finding order.
"""

import pytest

from todoscan.core.config import ScanConfig
from todoscan.core.findings import Finding, Severity
from todoscan.core.matcher import KeywordPattern, PatternCompileError, compile_patterns
from todoscan.core.scan_engine import ScanEngine, scan_buffer


def _matchers(*keywords: str, case_sensitive: bool = False):
    return compile_patterns(KeywordPattern(k, case_sensitive) for k in keywords)


def _ranges(findings) -> list[tuple[int, int, int, str]]:
    return [(f.line, f.start_column, f.end_column, f.message) for f in findings]


class TestScanBuffer:
    def test_case_insensitive_findings_on_separate_lines(self):
        findings = scan_buffer(b"\nXTODOX\nXtodoX\n", _matchers("TODO"), 120)

        assert _ranges(findings) == [(1, 1, 5, "TODOX"), (2, 1, 5, "todoX")]

    def test_crlf_content_gives_same_positions(self):
        lf = scan_buffer(b"\nXTODOX\nXtodoX\n", _matchers("TODO"), 120)
        crlf = scan_buffer(b"\r\nXTODOX\r\nXtodoX\r\n", _matchers("TODO"), 120)

        assert _ranges(crlf) == _ranges(lf)

    def test_columns_count_characters(self):
        buffer = "中英文均可".encode("utf-8")
        findings = scan_buffer(buffer, _matchers("英文"), 120)

        assert _ranges(findings) == [(0, 1, 3, "英文均可")]

    def test_no_match_returns_none(self):
        assert scan_buffer(b"xxx", _matchers("TODO"), 120) is None

    def test_empty_buffer_returns_none(self):
        assert scan_buffer(b"", _matchers("TODO"), 120) is None

    def test_case_sensitive_ignores_other_case(self):
        assert scan_buffer(b"todo: later", _matchers("TODO", case_sensitive=True), 120) is None

    def test_two_keywords_on_one_line(self):
        findings = scan_buffer(b"// FIXME and TODO", _matchers("FIXME", "TODO"), 120)

        assert _ranges(findings) == [(0, 3, 8, "FIXME and TODO"), (0, 13, 17, "TODO")]
        assert [f.keyword for f in findings] == ["FIXME", "TODO"]

    def test_overlapping_keywords_are_both_reported(self):
        findings = scan_buffer(b"TODOX", _matchers("TODO", "TODOX"), 120)

        assert _ranges(findings) == [(0, 0, 4, "TODOX"), (0, 0, 5, "TODOX")]

    def test_same_end_offset_follows_configured_order(self):
        findings = scan_buffer(b"XTODO", _matchers("TODO", "XTODO"), 120)

        assert [f.keyword for f in findings] == ["TODO", "XTODO"]

        findings = scan_buffer(b"XTODO", _matchers("XTODO", "TODO"), 120)
        assert [f.keyword for f in findings] == ["XTODO", "TODO"]

    def test_repeated_keyword_on_one_line(self):
        findings = scan_buffer(b"TODO TODO", _matchers("TODO"), 120)

        assert _ranges(findings) == [(0, 0, 4, "TODO TODO"), (0, 5, 9, "TODO")]

    def test_preview_truncated(self):
        findings = scan_buffer(b"TODO: " + b"x" * 50, _matchers("TODO"), 8)

        assert findings[0].message == "TODO: xx..."

    def test_keyword_on_last_line_without_newline(self):
        findings = scan_buffer(b"a\nb\nTODO", _matchers("TODO"), 120)

        assert _ranges(findings) == [(2, 0, 4, "TODO")]

    def test_findings_carry_path_and_severity(self):
        findings = scan_buffer(
            b"TODO",
            _matchers("TODO"),
            120,
            file_path="src/lib.rs",
            severity=Severity.WARNING,
        )

        assert findings == (
            Finding(
                file_path="src/lib.rs",
                line=0,
                start_column=0,
                end_column=4,
                message="TODO",
                severity=Severity.WARNING,
                keyword="TODO",
            ),
        )

    def test_invalid_utf8_does_not_abort(self):
        findings = scan_buffer(b"\xff\xfe TODO", _matchers("TODO"), 120)

        assert len(findings) == 1
        assert findings[0].message == "TODO"

    def test_findings_are_ordered_by_end_offset(self):
        buffer = b"FIXME TODO\nTODO FIXME\n"
        findings = scan_buffer(buffer, _matchers("TODO", "FIXME"), 120)

        positions = [(f.line, f.end_column) for f in findings]
        assert positions == sorted(positions)


class TestScanEngine:
    def test_scan_uses_config(self):
        config = ScanConfig(
            keywords=("HACK",),
            case_sensitive=True,
            max_preview_length=3,
            severity="hint",
        )
        engine = ScanEngine(config)

        findings = engine.scan("a.rs", b"// HACK here\n// hack")

        assert len(findings) == 1
        assert findings[0].file_path == "a.rs"
        assert findings[0].message == "HAC..."
        assert findings[0].severity == Severity.HINT

    def test_per_keyword_case_override(self):
        config = ScanConfig(
            keywords=(KeywordPattern("FIXME", case_sensitive=True), "todo"),
            case_sensitive=False,
        )
        engine = ScanEngine(config)

        findings = engine.scan("a.rs", b"fixme TODO FIXME")

        assert [(f.keyword, f.start_column) for f in findings] == [("todo", 6), ("FIXME", 11)]

    def test_default_keywords(self):
        engine = ScanEngine(ScanConfig())

        assert [m.keyword for m in engine.matchers] == ["FIXME", "TODO"]

    def test_empty_keyword_fails_to_compile(self):
        with pytest.raises(PatternCompileError):
            ScanEngine(ScanConfig(keywords=("TODO", "")))

    def test_same_content_same_findings(self):
        engine = ScanEngine(ScanConfig())
        content = b"fn main() {} // TODO: args\n// fixme\n"

        assert engine.scan("x.rs", content) == engine.scan("x.rs", content)
