#!/usr/bin/env python3
# file: .github/workflows/scripts/version_analysis.py
# version: 1.1.0
# guid: 9a3c5e71-2b8d-4f06-a1e4-6c7d8b9f0a25

"""Detect the next semantic version from commit messages and branch name.

The bump is classified from keyword markers in each commit message,
checked in priority order major > minor > patch. Commits without any
marker still produce a patch bump, while an empty range produces no
release at all. The branch name can then only raise the result, e.g. a
``feature/`` branch lifts a patch to a minor bump.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import os
import re
from typing import Iterable, Mapping, Optional

import workflow_common

DEFAULT_VERSION = "0.1.0"
DEFAULT_COMMIT_WINDOW = 50

_SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
_RELEASE_TAG_RE = re.compile(r"^v\d+\.\d+\.\d+(?:[-+].+)?$")
_COMMIT_SEPARATOR = "\x1e"


class BumpType(str, Enum):
    """How a version number moves between releases."""

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    MANUAL = "manual"
    FORCE = "force"

    @property
    def rank(self) -> int:
        """Override ordering; manual and force sit outside the scale."""
        return _BUMP_RANK.get(self, -1)

    @classmethod
    def parse(cls, value: str | None) -> "BumpType":
        text = (value or "").strip().lower()
        if not text:
            return cls.NONE
        try:
            return cls(text)
        except ValueError as error:
            raise workflow_common.WorkflowError(
                f"Unknown bump type: {value}",
                hint=f"Expected one of: {', '.join(item.value for item in cls)}",
            ) from error


_BUMP_RANK = {
    BumpType.NONE: 0,
    BumpType.PATCH: 1,
    BumpType.MINOR: 2,
    BumpType.MAJOR: 3,
}


@dataclass(frozen=True)
class SemVer:
    """Parsed semantic version."""

    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    @classmethod
    def parse(cls, version: str) -> "SemVer":
        text = workflow_common.strip_version_prefix(version)
        match = _SEMVER_RE.match(text)
        if not match:
            raise workflow_common.WorkflowError(
                f"Invalid semantic version: {version!r}",
                hint="Use MAJOR.MINOR.PATCH, optionally with -prerelease",
            )
        return cls(
            major=int(match.group(1)),
            minor=int(match.group(2)),
            patch=int(match.group(3)),
            prerelease=match.group(4) or "",
            build=match.group(5) or "",
        )

    def bump(self, kind: BumpType) -> "SemVer":
        """Return the next version; a prerelease finalizes when it can.

        ``1.0.0-beta`` bumped by patch, minor or major is ``1.0.0``, while
        ``1.2.3-rc.1`` bumped by minor is ``1.3.0``.
        """
        final = SemVer(self.major, self.minor, self.patch)
        if kind is BumpType.MAJOR:
            if self.prerelease and self.minor == 0 and self.patch == 0:
                return final
            return SemVer(self.major + 1, 0, 0)
        if kind is BumpType.MINOR:
            if self.prerelease and self.patch == 0:
                return final
            return SemVer(self.major, self.minor + 1, 0)
        if kind is BumpType.PATCH:
            if self.prerelease:
                return final
            return SemVer(self.major, self.minor, self.patch + 1)
        return self

    def precedence(self) -> tuple:
        """Sort key following semver precedence; build metadata is ignored."""
        if not self.prerelease:
            return (self.major, self.minor, self.patch, 1, ())
        identifiers = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease.split(".")
        )
        return (self.major, self.minor, self.patch, 0, identifiers)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


def is_valid_version(version: str) -> bool:
    """Return True when the text is a semantic version (a "v" is allowed)."""
    return bool(_SEMVER_RE.match(workflow_common.strip_version_prefix(version)))


DEFAULT_KEYWORDS: dict[BumpType, tuple[str, ...]] = {
    BumpType.MAJOR: ("BREAKING CHANGE", "BREAKING-CHANGE", "[major]"),
    BumpType.MINOR: ("[minor]",),
    BumpType.PATCH: ("[patch]", "bugfix", "hotfix"),
}

# Conventional commit headers, e.g. "feat(api)!: drop v1 endpoints".
_CONVENTIONAL_RE = re.compile(r"^(?P<type>[a-zA-Z]+)(?:\([^)]*\))?(?P<bang>!)?:")
_CONVENTIONAL_TYPES = {
    "feat": BumpType.MINOR,
    "feature": BumpType.MINOR,
    "fix": BumpType.PATCH,
}

DEFAULT_BRANCH_RULES: dict[str, BumpType] = {
    "major/": BumpType.MAJOR,
    "breaking/": BumpType.MAJOR,
    "feature/": BumpType.MINOR,
    "feat/": BumpType.MINOR,
}


@dataclass
class VersionAnalysis:
    """Result of scanning the repository for the next release."""

    last_tag: Optional[str]
    last_version: Optional[str]
    branch: str
    bump_type: BumpType
    new_version: str
    commits: list[str] = field(default_factory=list)

    @property
    def should_release(self) -> bool:
        return self.bump_type is not BumpType.NONE

    @property
    def is_initial_release(self) -> bool:
        return self.last_tag is None


def load_keywords() -> dict[BumpType, tuple[str, ...]]:
    """Return keyword markers, letting repository-config.yml override them."""
    keywords = dict(DEFAULT_KEYWORDS)
    for bump in (BumpType.MAJOR, BumpType.MINOR, BumpType.PATCH):
        configured = workflow_common.config_path(
            None, "release", "keywords", bump.value
        )
        if configured:
            keywords[bump] = tuple(str(item) for item in configured)
    return keywords


def load_branch_rules() -> dict[str, BumpType]:
    """Return branch prefix rules, letting repository-config.yml override them."""
    configured = workflow_common.config_path(None, "release", "branch_rules")
    if not configured:
        return dict(DEFAULT_BRANCH_RULES)
    return {
        str(prefix): BumpType.parse(str(bump))
        for prefix, bump in configured.items()
    }


def classify_commit(
    message: str,
    keywords: Optional[Mapping[BumpType, Iterable[str]]] = None,
) -> BumpType:
    """Classify a single commit message; NONE means no marker matched."""
    table = keywords if keywords is not None else DEFAULT_KEYWORDS
    lowered = message.lower()
    header = _CONVENTIONAL_RE.match(message.strip())

    if header and header.group("bang"):
        return BumpType.MAJOR

    for bump in (BumpType.MAJOR, BumpType.MINOR, BumpType.PATCH):
        if any(marker.lower() in lowered for marker in table.get(bump, ())):
            return bump
        if header and _CONVENTIONAL_TYPES.get(header.group("type").lower()) is bump:
            return bump

    return BumpType.NONE


def analyze_commits(
    messages: Iterable[str],
    keywords: Optional[Mapping[BumpType, Iterable[str]]] = None,
) -> BumpType:
    """Return the highest bump found across the commit messages."""
    result = BumpType.NONE
    seen_commit = False

    for message in messages:
        if not message.strip():
            continue
        seen_commit = True
        bump = classify_commit(message, keywords)
        if bump.rank > result.rank:
            result = bump
        if result is BumpType.MAJOR:
            break

    if seen_commit and result is BumpType.NONE:
        return BumpType.PATCH
    return result


def apply_branch_rules(
    bump: BumpType,
    branch: str,
    rules: Optional[Mapping[str, BumpType]] = None,
) -> BumpType:
    """Raise the bump according to the branch prefix; never lower it."""
    table = rules if rules is not None else DEFAULT_BRANCH_RULES
    branch_name = branch.strip().lower()
    if branch_name.startswith("refs/heads/"):
        branch_name = branch_name[len("refs/heads/"):]

    result = bump
    for prefix, floor in table.items():
        if branch_name.startswith(prefix.lower()) and floor.rank > result.rank:
            result = floor
    return result


def determine_bump(
    messages: Iterable[str],
    branch: str,
    keywords: Optional[Mapping[BumpType, Iterable[str]]] = None,
    rules: Optional[Mapping[str, BumpType]] = None,
) -> BumpType:
    """Classify commits, then apply the branch upgrade rules."""
    return apply_branch_rules(analyze_commits(messages, keywords), branch, rules)


def calculate_next_version(
    last_version: Optional[str],
    bump: BumpType,
    default_version: str = DEFAULT_VERSION,
) -> str:
    """Compute the version that follows `last_version` for the given bump."""
    if not last_version:
        return workflow_common.strip_version_prefix(default_version)
    current = SemVer.parse(last_version)
    if bump is BumpType.NONE:
        return str(current)
    return str(current.bump(bump))


def get_last_tag() -> Optional[str]:
    """Return the highest release tag, ignoring floating tags like v2 or latest.

    Tags are ranked by semver precedence, so ``v1.0.0`` outranks
    ``v1.0.0-beta`` even though git's version sort lists the beta later.
    """
    result = workflow_common.run_command(
        ["git", "tag", "--list", "v*"],
        hint="Ensure the checkout fetched tags (fetch-depth: 0)",
    )

    best: Optional[tuple[tuple, str]] = None
    for line in result.stdout.splitlines():
        tag = line.strip()
        if not _RELEASE_TAG_RE.match(tag) or not is_valid_version(tag):
            continue
        key = SemVer.parse(tag).precedence()
        if best is None or key > best[0]:
            best = (key, tag)
    return best[1] if best else None


def get_commits_since(
    tag: Optional[str],
    window: int = DEFAULT_COMMIT_WINDOW,
) -> list[str]:
    """Return full commit messages since `tag`, or the last `window` commits."""
    args = ["git", "log", f"--pretty=format:%B{_COMMIT_SEPARATOR}"]
    if tag:
        args.append(f"{tag}..HEAD")
    else:
        args.extend(["-n", str(window), "HEAD"])

    result = workflow_common.run_command(
        args,
        hint="Ensure git history is available (fetch-depth: 0)",
    )
    return [
        chunk.strip()
        for chunk in result.stdout.split(_COMMIT_SEPARATOR)
        if chunk.strip()
    ]


def get_current_branch() -> str:
    """Return the current branch, preferring the GitHub Actions context."""
    for variable in ("GITHUB_HEAD_REF", "GITHUB_REF_NAME"):
        value = os.environ.get(variable, "").strip()
        if value:
            return value

    result = workflow_common.run_command(
        ["git", "rev-parse", "--abbrev-ref", "HEAD"],
        hint="Ensure git repository is initialized",
    )
    return result.stdout.strip()


def analyze_repository(
    branch: Optional[str] = None,
    default_version: Optional[str] = None,
    window: Optional[int] = None,
) -> VersionAnalysis:
    """Scan git history and compute the next version."""
    resolved_branch = branch or get_current_branch()
    resolved_default = default_version or workflow_common.config_path(
        DEFAULT_VERSION, "release", "default_version"
    )
    resolved_window = window or int(
        workflow_common.config_path(
            DEFAULT_COMMIT_WINDOW, "release", "commit_window"
        )
    )

    last_tag = get_last_tag()
    if last_tag is None:
        print(
            "ℹ️  No previous release tag found; treating as initial release "
            f"(scanning last {resolved_window} commits)"
        )
    commits = get_commits_since(last_tag, resolved_window)

    bump = determine_bump(
        commits,
        resolved_branch,
        keywords=load_keywords(),
        rules=load_branch_rules(),
    )
    last_version = (
        workflow_common.strip_version_prefix(last_tag) if last_tag else None
    )
    new_version = calculate_next_version(last_version, bump, resolved_default)

    return VersionAnalysis(
        last_tag=last_tag,
        last_version=last_version,
        branch=resolved_branch,
        bump_type=bump,
        new_version=new_version,
        commits=commits,
    )


def main() -> None:
    """Entry point for CLI usage."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Detect the next semantic version from git history",
    )
    parser.add_argument("--branch", help="Branch name override")
    parser.add_argument(
        "--default-version",
        help="Version used for the first release (default from config or 0.1.0)",
    )
    parser.add_argument(
        "--commit-window",
        type=int,
        help="Commits scanned when no previous tag exists",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write analysis results to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        with workflow_common.timed_operation("Analyze commits"):
            analysis = analyze_repository(
                branch=args.branch,
                default_version=args.default_version,
                window=args.commit_window,
            )

        print("🔍 Version Analysis:")
        print(f"   Branch: {analysis.branch}")
        print(f"   Last tag: {analysis.last_tag or '(none)'}")
        print(f"   Commits analyzed: {len(analysis.commits)}")
        print(f"   Bump type: {analysis.bump_type.value}")
        print(f"   New version: {analysis.new_version}")
        print(f"   Should release: {'✅' if analysis.should_release else '❌'}")

        if args.output:
            workflow_common.write_outputs(
                {
                    "last_tag": analysis.last_tag or "",
                    "last_version": analysis.last_version or "",
                    "bump_type": analysis.bump_type.value,
                    "new_version": analysis.new_version,
                    "should_release": analysis.should_release,
                    "commit_count": len(analysis.commits),
                }
            )

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Version analysis")


if __name__ == "__main__":
    main()
