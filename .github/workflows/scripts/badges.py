#!/usr/bin/env python3
# file: .github/workflows/scripts/badges.py
# version: 1.0.0
# guid: 8b7a6f5e-4d3c-4b2a-9f1e-0d9c8b7a6e53

"""Update shields.io status badges in documentation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Iterable
from urllib.parse import quote

import workflow_common

SHIELDS_URL = "https://img.shields.io/badge"
START_MARKER = "<!-- badges:start -->"
END_MARKER = "<!-- badges:end -->"


def _escape(text: str) -> str:
    """Escape a badge segment the way shields.io static badges expect."""
    escaped = text.replace("-", "--").replace("_", "__").replace(" ", "_")
    return quote(escaped, safe="_-.")


@dataclass(frozen=True)
class Badge:
    label: str
    message: str
    color: str

    @property
    def url(self) -> str:
        return (
            f"{SHIELDS_URL}/{_escape(self.label)}-{_escape(self.message)}-"
            f"{quote(self.color, safe='')}"
        )

    @property
    def markdown(self) -> str:
        return f"![{self.label}]({self.url})"


def version_badge(version: str) -> Badge:
    return Badge("version", f"v{workflow_common.strip_version_prefix(version)}", "blue")


def quality_badge(passed: bool) -> Badge:
    if passed:
        return Badge("quality gate", "passing", "brightgreen")
    return Badge("quality gate", "failing", "red")


def update_badges(text: str, badges: Iterable[Badge]) -> tuple[str, list[str]]:
    """Replace badges in place, inserting missing ones between the markers.

    Returns the new text and the labels that were written.
    """
    updated: list[str] = []
    missing: list[Badge] = []

    for badge in badges:
        pattern = re.compile(
            rf"!\[{re.escape(badge.label)}\]\({re.escape(SHIELDS_URL)}/[^)\s]*\)"
        )
        text, count = pattern.subn(lambda _match, b=badge: b.markdown, text)
        if count:
            updated.append(badge.label)
        else:
            missing.append(badge)

    if missing and START_MARKER in text and END_MARKER in text:
        start = text.index(START_MARKER) + len(START_MARKER)
        end = text.index(END_MARKER)
        if start <= end:
            block = text[start:end].strip()
            additions = " ".join(badge.markdown for badge in missing)
            block = f"{block} {additions}".strip()
            text = f"{text[:start]}\n{block}\n{text[end:]}"
            updated.extend(badge.label for badge in missing)
            missing = []

    for badge in missing:
        print(f"::warning::Badge '{badge.label}' not found and no badge markers present")

    return text, updated


def update_badge_file(path: Path, badges: Iterable[Badge]) -> bool:
    """Rewrite badges in a documentation file; return True when it changed."""
    if not path.exists():
        raise workflow_common.WorkflowError(
            f"Documentation file not found: {path}",
            hint="Pass --file or set badges.file in repository-config.yml",
        )

    original = path.read_text(encoding="utf-8")
    content, labels = update_badges(original, badges)
    if content == original:
        print(f"ℹ️  Badges in {path} already up to date")
        return False

    path.write_text(content, encoding="utf-8")
    print(f"✅ Updated badges in {path}: {', '.join(labels)}")
    return True


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Update status badges in documentation",
    )
    parser.add_argument("--file", type=Path, help="Markdown file to update")
    parser.add_argument("--version", help="Released version for the version badge")
    parser.add_argument(
        "--quality",
        help="Quality gate result (true/false) for the quality badge",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write change flag to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        target = args.file or Path(
            workflow_common.config_path("README.md", "badges", "file")
        )
        badges: list[Badge] = []
        if args.version:
            badges.append(version_badge(args.version))
        if args.quality:
            badges.append(quality_badge(workflow_common.parse_bool(args.quality)))

        if not badges:
            raise workflow_common.WorkflowError(
                "No badges requested",
                hint="Pass --version and/or --quality",
            )

        changed = update_badge_file(target, badges)

        if args.output:
            workflow_common.write_output("changed", changed)

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Badge update")


if __name__ == "__main__":
    main()
