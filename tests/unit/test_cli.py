"""
Integration tests for CLI commands.

Tests the basic functionality of CLI commands and error handling.
"""

import json
from pathlib import Path

from typer.testing import CliRunner

from todoscan.cli import app

runner = CliRunner()


def _workspace(root: Path) -> Path:
    (root / "src").mkdir()
    (root / "src" / "main.rs").write_text(
        "fn main() {\n    // TODO: handle errors\n}\n", encoding="utf-8"
    )
    (root / "src" / "lib.rs").write_text("// fixme later\n// HACK around\n", encoding="utf-8")
    (root / "README.md").write_text("TODO: docs\n", encoding="utf-8")
    return root


class TestCLIHelp:
    """Test CLI help and usage information."""

    def test_main_help(self):
        """Main help should list the commands."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "scan" in result.stdout
        assert "watch" in result.stdout

    def test_scan_help(self):
        result = runner.invoke(app, ["scan", "--help"])

        assert result.exit_code == 0
        assert "--keyword" in result.stdout
        assert "--json" in result.stdout

    def test_watch_help(self):
        result = runner.invoke(app, ["watch", "--help"])

        assert result.exit_code == 0
        assert "--debounce-ms" in result.stdout


class TestScanCommand:
    def test_json_output_lists_findings(self, tmp_path: Path):
        root = _workspace(tmp_path)

        result = runner.invoke(app, ["scan", str(root), "--json", "--workers", "1"])

        assert result.exit_code == 0
        findings = [
            json.loads(line) for line in result.stdout.splitlines() if line.startswith("{")
        ]
        assert [(Path(f["file_path"]).name, f["keyword"]) for f in findings] == [
            ("lib.rs", "FIXME"),
            ("main.rs", "TODO"),
        ]
        todo = findings[1]
        assert (todo["line"], todo["start_column"], todo["end_column"]) == (1, 7, 11)
        assert todo["message"] == "TODO: handle errors"
        assert todo["severity"] == "information"

    def test_keyword_and_glob_overrides(self, tmp_path: Path):
        root = _workspace(tmp_path)

        result = runner.invoke(
            app,
            ["scan", str(root), "--json", "-w", "1", "-k", "HACK", "-k", "TODO", "-g", "**/*"],
        )

        assert result.exit_code == 0
        keywords = sorted(
            json.loads(line)["keyword"] for line in result.stdout.splitlines() if line.startswith("{")
        )
        assert keywords == ["HACK", "TODO", "TODO"]

    def test_case_sensitive_flag(self, tmp_path: Path):
        root = _workspace(tmp_path)

        result = runner.invoke(
            app, ["scan", str(root), "--json", "-w", "1", "--case-sensitive"]
        )

        assert result.exit_code == 0
        keywords = [
            json.loads(line)["keyword"] for line in result.stdout.splitlines() if line.startswith("{")
        ]
        assert keywords == ["TODO"]

    def test_table_output(self, tmp_path: Path):
        root = _workspace(tmp_path)

        result = runner.invoke(app, ["scan", str(root), "-w", "1"])

        assert result.exit_code == 0
        assert "Scan Complete" in result.stdout
        assert "main.rs" in result.stdout


class TestCLIErrorHandling:
    """Test CLI error handling for invalid inputs."""

    def test_scan_missing_argument(self):
        result = runner.invoke(app, ["scan"])
        assert result.exit_code != 0

    def test_scan_nonexistent_path(self, tmp_path: Path):
        result = runner.invoke(app, ["scan", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "does not exist" in result.stdout

    def test_scan_file_instead_of_directory(self, tmp_path: Path):
        file_path = tmp_path / "main.rs"
        file_path.write_text("// TODO\n", encoding="utf-8")

        result = runner.invoke(app, ["scan", str(file_path)])

        assert result.exit_code == 1
        assert "not a directory" in result.stdout

    def test_scan_empty_keyword(self, tmp_path: Path):
        result = runner.invoke(app, ["scan", str(tmp_path), "--keyword", ""])

        assert result.exit_code == 1

    def test_scan_invalid_config_file(self, tmp_path: Path):
        config = tmp_path / "todoscan.toml"
        config.write_text("", encoding="utf-8")

        result = runner.invoke(app, ["scan", str(tmp_path), "--config", str(config)])

        assert result.exit_code == 1
        assert "Unsupported config file format" in result.stdout

    def test_watch_nonexistent_path(self, tmp_path: Path):
        result = runner.invoke(app, ["watch", str(tmp_path / "missing")])
        assert result.exit_code == 1
