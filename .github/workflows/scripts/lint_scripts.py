#!/usr/bin/env python3
# file: .github/workflows/scripts/lint_scripts.py
# version: 1.0.0
# guid: 5d4c3b2a-8e9f-4a1b-b6c7-2d3e4f5a6b78

"""Run shellcheck over the action's shell scripts.

Usage:
    python lint_scripts.py [--pattern GLOB ...] [--output]
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
import shutil
import subprocess
import sys
from typing import Iterable, Optional

import workflow_common
from workflow_common import CheckStatus

LINTER = "shellcheck"
LINTER_PACKAGE = "shellcheck-py"
DEFAULT_PATTERNS = ("scripts/**/*.sh", "*.sh")


@dataclass(frozen=True)
class LintFinding:
    """Single shellcheck comment."""

    file: str
    line: int
    column: int
    level: str
    code: str
    message: str

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    def annotation(self) -> str:
        command = "error" if self.is_error else "warning"
        return (
            f"::{command} file={self.file},line={self.line},col={self.column}::"
            f"{self.code}: {self.message}"
        )


@dataclass
class LintReport:
    """Aggregated results across all analyzed scripts."""

    scripts_analyzed: int = 0
    findings: list[LintFinding] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return sum(1 for finding in self.findings if finding.is_error)

    @property
    def warnings(self) -> int:
        return len(self.findings) - self.errors

    @property
    def status(self) -> CheckStatus:
        if self.scripts_analyzed == 0:
            return CheckStatus.SKIPPED
        return CheckStatus.FAIL if self.errors else CheckStatus.PASS


def ensure_linter() -> str:
    """Return the shellcheck executable, installing it once when missing."""
    executable = shutil.which(LINTER)
    if executable:
        return executable

    print(f"📦 {LINTER} not found; installing {LINTER_PACKAGE}")
    workflow_common.run_command(
        [sys.executable, "-m", "pip", "install", "--quiet", LINTER_PACKAGE],
        hint=f"Install manually with: pip install {LINTER_PACKAGE}",
    )

    executable = shutil.which(LINTER)
    if not executable:
        raise workflow_common.WorkflowError(
            f"{LINTER} still not available after installing {LINTER_PACKAGE}",
            hint="Ensure the pip scripts directory is on PATH",
        )
    return executable


def discover_scripts(
    patterns: Iterable[str] = DEFAULT_PATTERNS,
    root: Optional[Path] = None,
) -> list[Path]:
    """Expand glob patterns into a sorted, de-duplicated list of files."""
    base = root or Path.cwd()
    found: set[Path] = set()
    for pattern in patterns:
        for path in base.glob(pattern):
            if path.is_file():
                found.add(path)
    return sorted(found)


def parse_findings(output: str, default_file: str) -> list[LintFinding]:
    """Parse shellcheck --format=json1 output."""
    if not output.strip():
        return []
    try:
        payload = json.loads(output)
    except json.JSONDecodeError as error:
        raise workflow_common.WorkflowError(
            f"Unreadable {LINTER} output for {default_file}: {error}",
        ) from error

    comments = payload.get("comments", []) if isinstance(payload, dict) else payload
    return [
        LintFinding(
            file=str(comment.get("file") or default_file),
            line=int(comment.get("line", 0)),
            column=int(comment.get("column", 0)),
            level=str(comment.get("level", "warning")),
            code=f"SC{comment.get('code', '')}",
            message=str(comment.get("message", "")),
        )
        for comment in comments
    ]


def lint_script(path: Path, linter: str = LINTER) -> list[LintFinding]:
    """Run shellcheck on one script; exit code 1 only means findings."""
    try:
        result = subprocess.run(
            [linter, "--format=json1", str(path)],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as error:
        raise workflow_common.WorkflowError(
            f"{linter} is not installed",
            hint=f"Install with: pip install {LINTER_PACKAGE}",
        ) from error

    if result.returncode not in (0, 1):
        raise workflow_common.WorkflowError(
            f"{linter} failed on {path} (exit {result.returncode}): "
            f"{result.stderr.strip()}",
        )
    return parse_findings(result.stdout, str(path))


def lint_scripts(paths: Iterable[Path], linter: str = LINTER) -> LintReport:
    """Lint each script and aggregate the findings."""
    report = LintReport()
    for path in paths:
        report.scripts_analyzed += 1
        findings = lint_script(path, linter)
        report.findings.extend(findings)
        icon = "❌" if any(finding.is_error for finding in findings) else "✅"
        print(f"   {icon} {path} ({len(findings)} findings)")
    return report


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Lint the action's shell scripts with shellcheck",
    )
    parser.add_argument(
        "--pattern",
        action="append",
        help="Glob pattern for scripts (repeatable)",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write lint results to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        patterns = args.pattern or workflow_common.config_path(
            list(DEFAULT_PATTERNS), "validation", "scripts"
        )
        scripts = discover_scripts(patterns)
        print(f"🔎 Found {len(scripts)} scripts to analyze")

        report = LintReport()
        if scripts:
            linter = ensure_linter()
            with workflow_common.timed_operation("Lint scripts"):
                report = lint_scripts(scripts, linter)

        for finding in report.findings:
            print(finding.annotation())

        print(
            f"📊 Lint: {report.status.icon} {report.errors} errors, "
            f"{report.warnings} warnings in {report.scripts_analyzed} scripts"
        )

        if args.output:
            workflow_common.write_outputs(
                {
                    "lint": report.status.value,
                    "errors": report.errors,
                    "warnings": report.warnings,
                    "scripts_analyzed": report.scripts_analyzed,
                }
            )

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Script linting")


if __name__ == "__main__":
    main()
