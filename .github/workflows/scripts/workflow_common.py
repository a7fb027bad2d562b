#!/usr/bin/env python3
# file: .github/workflows/scripts/workflow_common.py
# version: 2.0.0
# guid: 4b1e9c2a-7d3f-4e8a-9b6c-0f2d5a7e1c34

"""Shared utilities for the release automation helper scripts."""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
import os
from pathlib import Path
import re
import subprocess
import sys
import time
import traceback
from typing import Any
import uuid

import yaml

CONFIG_FILE = Path(".github/repository-config.yml")

_CONFIG_CACHE: dict[str, Any] | None = None

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


class WorkflowError(Exception):
    """Workflow execution error with optional hints and documentation links."""

    def __init__(
        self,
        message: str,
        hint: str = "",
        docs_url: str = "",
    ) -> None:
        """Initialize workflow error."""
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.docs_url = docs_url

    def __str__(self) -> str:
        """Format error with hints and documentation links."""
        parts = [f"❌ {self.message}"]
        if self.hint:
            parts.append(f"💡 Hint: {self.hint}")
        if self.docs_url:
            parts.append(f"📚 Docs: {self.docs_url}")
        return "\n".join(parts)


class CheckStatus(str, Enum):
    """Tri-state result of a single validation check."""

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"

    @classmethod
    def parse(cls, value: Any) -> "CheckStatus":
        """Parse booleans, "true"/"false" strings and GitHub step outcomes."""
        if isinstance(value, CheckStatus):
            return value
        if isinstance(value, bool):
            return cls.PASS if value else cls.FAIL
        if value is None:
            return cls.SKIPPED

        text = str(value).strip().lower()
        if not text or text in {"skipped", "skip", "neutral"}:
            return cls.SKIPPED
        if text in _TRUE_VALUES or text in {"pass", "passed", "success"}:
            return cls.PASS
        if text in _FALSE_VALUES or text in {
            "fail",
            "failed",
            "failure",
            "cancelled",
        }:
            return cls.FAIL

        raise WorkflowError(
            f"Unrecognized check status: {value!r}",
            hint="Use true/false or a step outcome such as success/failure/skipped",
        )

    @property
    def failed(self) -> bool:
        return self is CheckStatus.FAIL

    @property
    def icon(self) -> str:
        return {"pass": "✅", "fail": "❌", "skipped": "⏭️"}[self.value]


def parse_bool(value: Any, default: bool = False) -> bool:
    """Convert a workflow input ("true"/"false" text) to a boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return default

    text = str(value).strip().lower()
    if not text:
        return default
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False

    raise WorkflowError(
        f"Invalid boolean value: {value!r}",
        hint="Expected one of: true, false, yes, no, 1, 0",
    )


def append_to_file(path_env: str, content: str) -> None:
    """Append content to a GitHub Actions environment file."""
    file_path_str = os.environ.get(path_env)
    if not file_path_str:
        raise WorkflowError(
            f"Environment variable {path_env} not set",
            hint="This helper must run inside a GitHub Actions workflow",
            docs_url=(
                "https://docs.github.com/en/actions/using-workflows/"
                "workflow-commands-for-github-actions"
            ),
        )

    file_path = Path(file_path_str)
    if not file_path.exists():
        raise WorkflowError(
            f"File {file_path} does not exist",
            hint=f"Ensure GitHub Actions created the {path_env} file",
        )

    with file_path.open("a", encoding="utf-8") as handle:
        handle.write(content)


def write_output(name: str, value: Any) -> None:
    """Write an output variable for downstream workflow steps."""
    if isinstance(value, bool):
        value = str(value).lower()
    text = str(value)
    if "\n" in text:
        delimiter = f"EOF_{uuid.uuid4().hex}"
        append_to_file("GITHUB_OUTPUT", f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
    else:
        append_to_file("GITHUB_OUTPUT", f"{name}={text}\n")


def write_outputs(values: dict[str, Any]) -> None:
    """Write several output variables in insertion order."""
    for name, value in values.items():
        write_output(name, value)


def append_summary(text: str) -> None:
    """Append markdown content to the GitHub Actions step summary."""
    append_to_file("GITHUB_STEP_SUMMARY", text)


def try_append_summary(text: str) -> None:
    """Append to the step summary, printing the error when unavailable."""
    try:
        append_summary(text)
    except WorkflowError as error:
        print(sanitize_log(str(error)))


def get_repository_config() -> dict[str, Any]:
    """Load and cache `.github/repository-config.yml`.

    The file is optional. When it does not exist every lookup falls back
    to its default.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    if not CONFIG_FILE.exists():
        _CONFIG_CACHE = {}
        return _CONFIG_CACHE

    try:
        with CONFIG_FILE.open(encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
    except yaml.YAMLError as error:
        raise WorkflowError(
            f"Invalid YAML in repository-config.yml: {error}",
            hint="Validate with: yamllint .github/repository-config.yml",
        ) from error

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise WorkflowError(
            "repository-config.yml must contain a YAML dictionary",
            hint="Ensure the file starts with top-level keys",
        )

    _CONFIG_CACHE = loaded
    return _CONFIG_CACHE


def config_path(default: Any, *path: str) -> Any:
    """Navigate configuration dictionary and return value or default."""
    current: Any = get_repository_config()
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def run_command(
    args: list[str],
    hint: str = "",
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run an external command, raising WorkflowError when it fails."""
    try:
        return subprocess.run(
            args,
            capture_output=True,
            text=True,
            check=check,
        )
    except FileNotFoundError as error:
        raise WorkflowError(
            f"Command not found: {args[0]}",
            hint=hint or f"Install {args[0]} and ensure it is on PATH",
        ) from error
    except subprocess.CalledProcessError as error:
        detail = (error.stderr or error.stdout or "").strip()
        message = f"Command failed ({error.returncode}): {' '.join(args)}"
        if detail:
            message = f"{message}\n{detail}"
        raise WorkflowError(sanitize_log(message), hint=hint) from error


@contextmanager
def timed_operation(operation_name: str):
    """Context manager that records duration for an operation."""
    start_time = time.time()
    try:
        yield
    finally:
        duration = time.time() - start_time
        print(f"⏱️  {operation_name} took {duration:.2f}s")
        try:
            append_summary(f"| {operation_name} | {duration:.2f}s |\n")
        except WorkflowError as error:
            print(sanitize_log(str(error)), file=sys.stderr)


def format_diagnostic(error: BaseException, context: str) -> str:
    """Render an error as a diagnostic block with message, detail and stack."""
    if isinstance(error, WorkflowError):
        message = str(error)
    else:
        message = f"❌ Unexpected error in {context}: {error}"

    stack = "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    ).rstrip()

    lines = [
        f"::error::{context} failed",
        "----- diagnostic -----",
        f"Context: {context}",
        f"Message: {message}",
        f"Exception: {type(error).__name__}: {error!r}",
    ]
    if error.__cause__ is not None:
        cause = error.__cause__
        lines.append(f"Caused by: {type(cause).__name__}: {cause}")
    lines.append("Stack:")
    lines.append(stack or "(no traceback)")
    lines.append("----------------------")
    return sanitize_log("\n".join(lines))


def handle_error(error: Exception, context: str) -> None:
    """Handle workflow errors by printing details and exiting."""
    print(format_diagnostic(error, context), file=sys.stderr)
    sys.exit(1)


def sanitize_log(message: str) -> str:
    """Mask sensitive tokens from log messages."""
    sanitized = re.sub(r"ghp_[a-zA-Z0-9]{36}", "***GITHUB_TOKEN***", message)
    sanitized = re.sub(r"ghs_[a-zA-Z0-9]{36}", "***GITHUB_SECRET***", sanitized)
    sanitized = re.sub(
        r"github_pat_[a-zA-Z0-9_]{22,}",
        "***GITHUB_TOKEN***",
        sanitized,
    )
    sanitized = re.sub(
        r"Bearer\s+[a-zA-Z0-9\-._~+/]+=*",
        "Bearer ***TOKEN***",
        sanitized,
    )
    return sanitized


def strip_version_prefix(version: str | None) -> str:
    """Remove surrounding whitespace and a leading "v" from a version."""
    if not version:
        return ""
    text = version.strip()
    if text[:1] in {"v", "V"}:
        text = text[1:]
    return text
