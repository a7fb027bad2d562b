#!/usr/bin/env python3
# file: tests/workflow_scripts/test_badges.py
# version: 1.0.0
# guid: 2c3d4e5f-6a7b-4c8d-9e0f-1a2b3c4d5e6f

"""Unit tests for badges module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / ".github/workflows/scripts"
sys.path.insert(0, str(SCRIPTS_DIR))

import badges  # pylint: disable=wrong-import-position
import workflow_common  # pylint: disable=wrong-import-position

README = """\
# My Action

![version](https://img.shields.io/badge/version-v1.0.0-blue) ![build](https://example.com/ci.svg)

Usage docs.
"""


def test_badge_url_escaping() -> None:
    """Dashes, underscores and spaces follow shields.io escaping."""
    badge = badges.Badge("quality gate", "v1.0.0-beta", "brightgreen")

    assert badge.url == (
        "https://img.shields.io/badge/quality_gate-v1.0.0--beta-brightgreen"
    )
    assert badge.markdown == f"![quality gate]({badge.url})"


def test_version_and_quality_badges() -> None:
    """Helper constructors produce the expected messages and colors."""
    assert badges.version_badge("2.3.1").message == "v2.3.1"
    assert badges.version_badge("v2.3.1").message == "v2.3.1"
    assert badges.quality_badge(True).color == "brightgreen"
    assert badges.quality_badge(False).message == "failing"


def test_update_badges_replaces_existing() -> None:
    """Existing shields badges are rewritten in place."""
    text, updated = badges.update_badges(README, [badges.version_badge("1.1.0")])

    assert updated == ["version"]
    assert "https://img.shields.io/badge/version-v1.1.0-blue" in text
    assert "v1.0.0" not in text
    assert "![build](https://example.com/ci.svg)" in text


def test_update_badges_inserts_between_markers() -> None:
    """Missing badges go between the badge markers."""
    readme = "# A\n\n<!-- badges:start -->\n<!-- badges:end -->\n"

    text, updated = badges.update_badges(readme, [badges.quality_badge(True)])

    assert updated == ["quality gate"]
    start = text.index(badges.START_MARKER)
    end = text.index(badges.END_MARKER)
    assert "![quality gate](" in text[start:end]


def test_update_badges_missing_without_markers(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Without markers a missing badge is only a warning."""
    text, updated = badges.update_badges("# A\n", [badges.quality_badge(True)])

    assert text == "# A\n"
    assert updated == []
    assert "::warning::Badge 'quality gate' not found" in capsys.readouterr().out


def test_update_badge_file_reports_change(tmp_path: Path) -> None:
    """update_badge_file only writes when the content changes."""
    readme = tmp_path / "README.md"
    readme.write_text(README, encoding="utf-8")

    assert badges.update_badge_file(readme, [badges.version_badge("1.0.0")]) is False
    assert badges.update_badge_file(readme, [badges.version_badge("1.2.0")]) is True
    assert "version-v1.2.0-blue" in readme.read_text(encoding="utf-8")


def test_update_badge_file_missing(tmp_path: Path) -> None:
    """A missing documentation file is fatal."""
    with pytest.raises(workflow_common.WorkflowError):
        badges.update_badge_file(tmp_path / "README.md", [badges.version_badge("1.0.0")])


def test_main_updates_readme(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The CLI updates both badges and reports the change."""
    workflow_common._CONFIG_CACHE = None  # type: ignore[attr-defined]
    monkeypatch.chdir(tmp_path)
    (tmp_path / "README.md").write_text(
        README + "\n<!-- badges:start -->\n<!-- badges:end -->\n",
        encoding="utf-8",
    )
    output_file = tmp_path / "output.txt"
    output_file.write_text("", encoding="utf-8")
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    monkeypatch.setattr(
        sys,
        "argv",
        ["badges.py", "--version", "2.0.0", "--quality", "true", "--output"],
    )

    badges.main()

    content = (tmp_path / "README.md").read_text(encoding="utf-8")
    assert "version-v2.0.0-blue" in content
    assert "quality_gate-passing-brightgreen" in content
    assert "changed=true" in output_file.read_text(encoding="utf-8")
    workflow_common._CONFIG_CACHE = None  # type: ignore[attr-defined]
