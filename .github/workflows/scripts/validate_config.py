#!/usr/bin/env python3
# file: .github/workflows/scripts/validate_config.py
# version: 2.0.0
# guid: f6a7b8c9-d0e1-2f3a-4b5c-6d7e8f9a0b2d

"""Check repository-config.yml against the release configuration schema.

Every violation is reported, not only the first one, so a broken config
can be fixed in a single pass. A repository without the file is valid:
all release settings have built-in defaults.

Usage:
    python validate_config.py [--schema PATH] [--config PATH] [--output]
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys
from typing import Any

from jsonschema import Draft7Validator
import yaml

import workflow_common

DEFAULT_SCHEMA = Path(".github/schemas/repository-config.schema.json")


def load_schema(schema_path: Path) -> dict[str, Any]:
    try:
        with schema_path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as error:
        raise workflow_common.WorkflowError(
            f"Failed to load schema from {schema_path}: {error}",
            hint="Pass --schema pointing at repository-config.schema.json",
        ) from error


def collect_config_errors(config: Any, schema: dict[str, Any]) -> list[tuple[str, str]]:
    """Return (path, message) pairs for every schema violation."""
    validator = Draft7Validator(schema)
    errors = sorted(
        validator.iter_errors(config),
        key=lambda item: [str(part) for part in item.path],
    )
    return [
        (".".join(str(part) for part in error.path), error.message)
        for error in errors
    ]


def validate_repository_config(
    schema_path: Path,
    config_path: Path,
) -> bool:
    """Validate the config file and print each problem found."""
    try:
        schema = load_schema(schema_path)
    except workflow_common.WorkflowError as error:
        print(workflow_common.sanitize_log(f"❌ {error}"))
        return False

    try:
        with config_path.open(encoding="utf-8") as handle:
            config = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        message = f"❌ Failed to load config from {config_path}: {error}"
        print(workflow_common.sanitize_log(message))
        return False

    problems = collect_config_errors(config, schema)
    if not problems:
        print(f"✅ Configuration valid: {config_path}")
        return True

    print(f"❌ Configuration invalid: {config_path} ({len(problems)} problems)")
    for path, message in problems:
        print(f"   Error: {message}")
        if path:
            print(f"   Path: {path}")
        print(f"::error file={config_path}::{path or '(root)'}: {message}")
    return False


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Validate the release settings in repository-config.yml",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=DEFAULT_SCHEMA,
        help="Path to JSON schema",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=workflow_common.CONFIG_FILE,
        help="Path to repository config",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write the validation result to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    if not args.schema.exists():
        workflow_common.handle_error(
            workflow_common.WorkflowError(
                f"Schema not found: {args.schema}",
                hint="Run from the repository root or pass --schema",
            ),
            "Config validation",
        )

    if not args.config.exists():
        print(f"ℹ️  No config at {args.config}; built-in defaults apply")
        valid = True
    else:
        valid = validate_repository_config(args.schema, args.config)

    if args.output:
        workflow_common.write_output("valid", valid)

    if not valid:
        sys.exit(1)


if __name__ == "__main__":
    main()
