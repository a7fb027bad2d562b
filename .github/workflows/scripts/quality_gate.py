#!/usr/bin/env python3
# file: .github/workflows/scripts/quality_gate.py
# version: 1.1.0
# guid: 3e2d1c0b-9a8f-4e7d-86c5-b4a39281f706

"""Aggregate validation results into a single quality gate decision.

The gate passes only when the security scan, the manifest structure
check and the script lint all passed. A check that did not run (an empty
or ``skipped`` outcome) blocks as well, unless skipped checks are allowed
explicitly. The schema check is reported but never blocks, because
action manifests commonly use constructs the schema does not describe.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
import sys
from typing import Any

import workflow_common
from workflow_common import CheckStatus

BLOCKING_CHECKS = ("security", "structure", "lint")


@dataclass(frozen=True)
class QualityResult:
    """Statuses of the individual checks and the gate outcome."""

    security: CheckStatus
    structure: CheckStatus
    schema: CheckStatus
    lint: CheckStatus
    errors: int = 0
    warnings: int = 0
    scripts_analyzed: int = 0
    allow_skipped: bool = False

    def blocks(self, status: CheckStatus) -> bool:
        if status is CheckStatus.SKIPPED:
            return not self.allow_skipped
        return status is not CheckStatus.PASS

    @property
    def overall(self) -> bool:
        return not any(self.blocks(getattr(self, name)) for name in BLOCKING_CHECKS)

    def checks(self) -> list[tuple[str, CheckStatus, bool]]:
        """Return (name, status, blocking) rows in report order."""
        return [
            ("Security scan", self.security, True),
            ("Manifest structure", self.structure, True),
            ("Manifest schema", self.schema, False),
            ("Script lint", self.lint, True),
        ]


def evaluate_quality_gate(
    security: Any,
    structure: Any,
    schema: Any,
    lint: Any,
    errors: int = 0,
    warnings: int = 0,
    scripts_analyzed: int = 0,
    allow_skipped: bool = False,
) -> QualityResult:
    """Build the QualityResult from raw check signals."""
    result = QualityResult(
        security=CheckStatus.parse(security),
        structure=CheckStatus.parse(structure),
        schema=CheckStatus.parse(schema),
        lint=CheckStatus.parse(lint),
        errors=int(errors or 0),
        warnings=int(warnings or 0),
        scripts_analyzed=int(scripts_analyzed or 0),
        allow_skipped=allow_skipped,
    )
    if result.schema.failed:
        print("::warning::Manifest schema check failed (advisory, not blocking)")
    for name in BLOCKING_CHECKS:
        if getattr(result, name) is CheckStatus.SKIPPED:
            level = "notice" if allow_skipped else "error"
            print(f"::{level}::Blocking check '{name}' did not run")
    return result


def format_quality_report(result: QualityResult) -> str:
    """Render the gate as a markdown report."""
    verdict = "✅ PASSED" if result.overall else "❌ FAILED"
    lines = [
        "## 🛡️ Quality Gate",
        "",
        f"**Result**: {verdict}",
        "",
        "| Check | Status | Blocking |",
        "|-------|--------|----------|",
    ]
    for name, status, blocking in result.checks():
        lines.append(
            f"| {name} | {status.icon} {status.value} | "
            f"{'yes' if blocking else 'no (advisory)'} |"
        )

    lines.extend(
        [
            "",
            "### Counts",
            "",
            f"- Errors: {result.errors}",
            f"- Warnings: {result.warnings}",
            f"- Scripts analyzed: {result.scripts_analyzed}",
        ]
    )

    failed = [
        name
        for name, status, blocking in result.checks()
        if blocking and result.blocks(status)
    ]
    if failed:
        lines.extend(["", f"Blocking failures: {', '.join(failed)}"])
    elif result.schema.failed:
        lines.extend(["", "Schema issues found; review them before the next release."])

    return "\n".join(lines) + "\n"


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Evaluate the release quality gate",
    )
    parser.add_argument("--security", default=os.environ.get("SECURITY_RESULT", ""))
    parser.add_argument("--structure", default=os.environ.get("STRUCTURE_RESULT", ""))
    parser.add_argument("--schema", default=os.environ.get("SCHEMA_RESULT", ""))
    parser.add_argument("--lint", default=os.environ.get("LINT_RESULT", ""))
    parser.add_argument("--errors", type=int, default=0)
    parser.add_argument("--warnings", type=int, default=0)
    parser.add_argument("--scripts-analyzed", type=int, default=0)
    parser.add_argument(
        "--allow-skipped",
        action="store_true",
        help="Let blocking checks that did not run pass the gate",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write gate result to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        result = evaluate_quality_gate(
            security=args.security,
            structure=args.structure,
            schema=args.schema,
            lint=args.lint,
            errors=args.errors,
            warnings=args.warnings,
            scripts_analyzed=args.scripts_analyzed,
            allow_skipped=args.allow_skipped,
        )

        report = format_quality_report(result)
        print(report)

        if args.output:
            workflow_common.write_output("overall", result.overall)
        workflow_common.try_append_summary(report)

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Quality gate")

    if not result.overall:
        sys.exit(1)


if __name__ == "__main__":
    main()
