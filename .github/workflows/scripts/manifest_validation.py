#!/usr/bin/env python3
# file: .github/workflows/scripts/manifest_validation.py
# version: 1.0.0
# guid: 7c2d9e41-5f6a-4b8c-a3d2-1e0f9b8a7c65

"""Validate the action manifest (action.yml) structure and schema.

Structure problems block the quality gate. Schema findings come from a
JSON schema validation and are advisory only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Iterable, Optional

from jsonschema import Draft7Validator
import yaml

import workflow_common
from workflow_common import CheckStatus

REQUIRED_KEYS = ("name", "description", "inputs", "outputs", "runs")
DEFAULT_ALLOWED_RUNTIMES = ("composite", "docker", "node16", "node20", "node24")
DEFAULT_MANIFEST = Path("action.yml")
DEFAULT_SCHEMA = Path(".github/schemas/action-manifest.schema.json")


@dataclass
class ActionManifest:
    """Typed view of an action.yml document."""

    name: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    inputs: Optional[dict[str, Any]] = None
    outputs: Optional[dict[str, Any]] = None
    runs: Optional[dict[str, Any]] = None
    branding: Optional[dict[str, Any]] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionManifest":
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            author=data.get("author"),
            inputs=data.get("inputs"),
            outputs=data.get("outputs"),
            runs=data.get("runs"),
            branding=data.get("branding"),
            raw=data,
        )

    @property
    def using(self) -> Optional[str]:
        if isinstance(self.runs, dict):
            value = self.runs.get("using")
            return str(value) if value is not None else None
        return None


@dataclass
class ManifestReport:
    """Outcome of manifest validation."""

    path: Path
    structure: CheckStatus = CheckStatus.SKIPPED
    schema: CheckStatus = CheckStatus.SKIPPED
    errors: list[str] = field(default_factory=list)
    schema_errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class ManifestParseError(workflow_common.WorkflowError):
    """The manifest exists but is not a YAML mapping."""


def load_manifest(path: Path) -> ActionManifest:
    """Parse the manifest file into an ActionManifest."""
    if not path.exists():
        raise workflow_common.WorkflowError(
            f"Action manifest not found: {path}",
            hint="Pass --manifest or set validation.manifest in repository-config.yml",
        )

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise ManifestParseError(
            f"Invalid YAML in {path}: {error}",
            hint=f"Validate with: yamllint {path}",
        ) from error

    if not isinstance(data, dict):
        raise ManifestParseError(
            f"{path} must contain a YAML dictionary",
            hint="Ensure the manifest starts with top-level keys such as name:",
        )
    return ActionManifest.from_dict(data)


def check_structure(
    manifest: ActionManifest,
    allowed_runtimes: Iterable[str] = DEFAULT_ALLOWED_RUNTIMES,
) -> list[str]:
    """Return blocking structure errors for the manifest."""
    errors: list[str] = []
    allowed = tuple(allowed_runtimes)

    for key in REQUIRED_KEYS:
        if key not in manifest.raw or manifest.raw.get(key) in (None, ""):
            errors.append(f"Missing required field: {key}")

    for key in ("inputs", "outputs"):
        value = manifest.raw.get(key)
        if value is not None and not isinstance(value, dict):
            errors.append(f"Field '{key}' must be a mapping")

    if manifest.runs is None:
        return errors
    if not isinstance(manifest.runs, dict):
        errors.append("Field 'runs' must be a mapping")
        return errors

    using = manifest.using
    if not using:
        errors.append("Missing required field: runs.using")
        return errors
    if using not in allowed:
        errors.append(
            f"Invalid runs.using value '{using}' (allowed: {', '.join(allowed)})"
        )
        return errors

    if using == "composite" and not manifest.runs.get("steps"):
        errors.append("Composite actions require runs.steps")
    elif using == "docker" and not manifest.runs.get("image"):
        errors.append("Docker actions require runs.image")
    elif using.startswith("node") and not manifest.runs.get("main"):
        errors.append(f"{using} actions require runs.main")

    return errors


def collect_warnings(manifest: ActionManifest) -> list[str]:
    """Return non-blocking documentation warnings."""
    warnings: list[str] = []
    for section in ("inputs", "outputs"):
        entries = manifest.raw.get(section)
        if not isinstance(entries, dict):
            continue
        for name, spec in entries.items():
            if not isinstance(spec, dict) or not spec.get("description"):
                warnings.append(f"{section[:-1].capitalize()} '{name}' has no description")
    if not manifest.branding:
        warnings.append("No branding section (icon/color) for the Marketplace")
    return warnings


def load_schema(schema_path: Path) -> dict[str, Any]:
    if not schema_path.exists():
        raise workflow_common.WorkflowError(
            f"Schema not found: {schema_path}",
            hint="Pass --schema pointing at action-manifest.schema.json",
        )
    try:
        with schema_path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as error:
        raise workflow_common.WorkflowError(
            f"Failed to load schema from {schema_path}: {error}",
        ) from error


def check_schema(data: dict[str, Any], schema: dict[str, Any]) -> list[str]:
    """Validate manifest data against the JSON schema."""
    validator = Draft7Validator(schema)
    messages: list[str] = []
    errors = sorted(
        validator.iter_errors(data),
        key=lambda item: [str(part) for part in item.path],
    )
    for error in errors:
        path = ".".join(str(part) for part in error.path)
        messages.append(f"{path}: {error.message}" if path else error.message)
    return messages


def validate_manifest(
    manifest_path: Path,
    schema_path: Optional[Path] = None,
    allowed_runtimes: Iterable[str] = DEFAULT_ALLOWED_RUNTIMES,
) -> ManifestReport:
    """Run the structure and schema checks for the manifest."""
    report = ManifestReport(path=manifest_path)

    try:
        manifest = load_manifest(manifest_path)
    except ManifestParseError as error:
        report.structure = CheckStatus.FAIL
        report.schema = CheckStatus.FAIL
        report.errors.append(error.message)
        return report

    report.errors = check_structure(manifest, allowed_runtimes)
    report.structure = CheckStatus.FAIL if report.errors else CheckStatus.PASS
    report.warnings = collect_warnings(manifest)

    if schema_path is not None:
        report.schema_errors = check_schema(manifest.raw, load_schema(schema_path))
        report.schema = CheckStatus.FAIL if report.schema_errors else CheckStatus.PASS

    return report


def print_report(report: ManifestReport) -> None:
    print(f"📄 Manifest: {report.path}")
    print(f"   Structure: {report.structure.icon} {report.structure.value}")
    print(f"   Schema: {report.schema.icon} {report.schema.value}")
    for message in report.errors:
        print(f"::error file={report.path}::{message}")
    for message in report.schema_errors:
        print(f"::warning file={report.path}::Schema: {message}")
    for message in report.warnings:
        print(f"::warning file={report.path}::{message}")


def main() -> None:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Validate the action manifest",
    )
    parser.add_argument("--manifest", type=Path, help="Path to action.yml")
    parser.add_argument(
        "--schema",
        type=Path,
        default=DEFAULT_SCHEMA,
        help="Path to JSON schema",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write check results to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        manifest_path = args.manifest or Path(
            workflow_common.config_path(
                str(DEFAULT_MANIFEST), "validation", "manifest"
            )
        )
        allowed = workflow_common.config_path(
            list(DEFAULT_ALLOWED_RUNTIMES), "validation", "allowed_runtimes"
        )
        schema_path = args.schema if args.schema.exists() else None
        if schema_path is None:
            print(f"::warning::Schema not found at {args.schema}; skipping schema check")

        with workflow_common.timed_operation("Validate manifest"):
            report = validate_manifest(manifest_path, schema_path, allowed)

        print_report(report)

        if args.output:
            workflow_common.write_outputs(
                {
                    "structure": report.structure.value,
                    "schema": report.schema.value,
                    "errors": len(report.errors),
                    "warnings": len(report.warnings) + len(report.schema_errors),
                }
            )

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Manifest validation")


if __name__ == "__main__":
    main()
