"""
Tests for the monitored-set predicate.
"""

from pathlib import Path

import pytest

from todoscan.core.monitored_set import MonitoredSet


@pytest.mark.parametrize(
    "path, expected",
    [
        ("main.rs", True),
        ("src/lib.rs", True),
        ("src/deep/nested/mod.rs", True),
        ("src/lib.rsx", False),
        ("README.md", False),
        ("src/rs", False),
    ],
)
def test_recursive_extension_glob(path: str, expected: bool):
    assert MonitoredSet("**/*.rs").matches(path) is expected


def test_directory_scoped_glob():
    monitored = MonitoredSet("src/**/*.py")

    assert monitored.matches("src/pkg/mod.py")
    assert not monitored.matches("tests/test_mod.py")


def test_absolute_paths_are_matched_relative_to_root(tmp_path: Path):
    monitored = MonitoredSet("src/**/*.py", root=tmp_path)

    assert monitored.matches(tmp_path / "src" / "a.py")
    assert not monitored.matches(tmp_path / "lib" / "src" / "a.py")


def test_callable_and_properties(tmp_path: Path):
    monitored = MonitoredSet("**/*.rs", root=tmp_path)

    assert monitored(tmp_path / "x.rs")
    assert monitored.glob_pattern == "**/*.rs"
    assert monitored.root == tmp_path.resolve()
