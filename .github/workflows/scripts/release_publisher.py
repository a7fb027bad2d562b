#!/usr/bin/env python3
# file: .github/workflows/scripts/release_publisher.py
# version: 2.1.0
# guid: e5f6a7b8-c9d0-1e2f-3a4b-5c6d7e8f9a0c

"""Create version and smart tags, then publish the GitHub release."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import re
from typing import Iterable, Optional

import version_analysis
import workflow_common
from version_analysis import BumpType, SemVer

DEFAULT_PRERELEASE_MARKERS = ("alpha", "beta", "rc", "preview", "pre")
LATEST_TAG = "latest"

CREATED = "created"
MOVED = "moved"


@dataclass(frozen=True)
class TagUpdate:
    """A smart tag to create or force-move onto the release commit."""

    name: str
    action: str


@dataclass
class ReleaseRecord:
    """What was published for a version."""

    tag: str
    url: str = ""
    created: bool = False
    smart_tags_updated: set[str] = field(default_factory=set)


def is_prerelease(
    version: str,
    markers: Iterable[str] = DEFAULT_PRERELEASE_MARKERS,
) -> bool:
    """Return True when the version names a prerelease."""
    lowered = version.lower()
    return any(marker.lower() in lowered for marker in markers)


def load_prerelease_markers() -> tuple[str, ...]:
    configured = workflow_common.config_path(
        None, "release", "prerelease_markers"
    )
    if not configured:
        return DEFAULT_PRERELEASE_MARKERS
    return tuple(str(marker) for marker in configured)


def plan_smart_tags(
    version: str,
    bump_type: BumpType | str,
    existing_tags: Iterable[str] = (),
    markers: Iterable[str] = DEFAULT_PRERELEASE_MARKERS,
) -> list[TagUpdate]:
    """Work out which floating tags follow the new version.

    Prereleases never touch floating tags. For patch, minor and major
    bumps the table decides whether the minor and major tags are new or
    moved; manual and forced releases look at the tags that exist.
    """
    if is_prerelease(version, markers):
        return []

    semver = SemVer.parse(version)
    bump = BumpType.parse(bump_type)
    minor_tag = f"v{semver.major}.{semver.minor}"
    major_tag = f"v{semver.major}"
    existing = set(existing_tags)

    if bump is BumpType.PATCH:
        actions = {minor_tag: MOVED, major_tag: MOVED}
    elif bump is BumpType.MINOR:
        actions = {minor_tag: CREATED, major_tag: MOVED}
    elif bump is BumpType.MAJOR:
        actions = {minor_tag: CREATED, major_tag: CREATED}
    else:
        actions = {
            tag: MOVED if tag in existing else CREATED
            for tag in (minor_tag, major_tag)
        }

    if bump in (BumpType.PATCH, BumpType.MINOR, BumpType.MAJOR):
        actions[LATEST_TAG] = MOVED
    else:
        actions[LATEST_TAG] = MOVED if LATEST_TAG in existing else CREATED

    return [TagUpdate(name, action) for name, action in actions.items()]


def list_tags() -> set[str]:
    result = workflow_common.run_command(
        ["git", "tag", "--list"],
        hint="Ensure the checkout fetched tags (fetch-depth: 0)",
    )
    return {line.strip() for line in result.stdout.splitlines() if line.strip()}


def release_exists(tag: str, repository: str) -> bool:
    """Ask the GitHub CLI whether a release already exists for the tag.

    Only a "release not found" answer means there is no release; any other
    failure (auth, network, wrong repository) is fatal.
    """
    args = ["gh", "release", "view", tag, "--repo", repository, "--json", "tagName"]
    result = workflow_common.run_command(
        args,
        hint="Install the GitHub CLI and set GH_TOKEN",
        check=False,
    )
    if result.returncode == 0:
        return True
    detail = (result.stderr or "").strip()
    if "release not found" in detail.lower():
        return False
    raise workflow_common.WorkflowError(
        workflow_common.sanitize_log(
            f"Command failed ({result.returncode}): {' '.join(args)}\n{detail}".rstrip()
        ),
        hint="Check GH_TOKEN and that --repository names an accessible repository",
    )


def delete_release(tag: str, repository: str) -> None:
    """Delete an existing release together with its tag."""
    print(f"♻️  Release {tag} already exists; deleting it before recreating")
    workflow_common.run_command(
        ["gh", "release", "delete", tag, "--repo", repository, "--yes", "--cleanup-tag"],
        hint="GH_TOKEN needs contents: write permission",
    )
    workflow_common.run_command(["git", "tag", "-d", tag], check=False)


def create_version_tag(tag: str, remote: str = "origin") -> None:
    """Create the immutable annotated tag for the release and push it."""
    workflow_common.run_command(
        ["git", "tag", "-a", tag, "-m", f"Release {tag}"],
        hint="Configure git user.name and user.email before tagging",
    )
    workflow_common.run_command(
        ["git", "push", remote, tag],
        hint="The workflow token needs contents: write permission",
    )


def move_smart_tag(name: str, target: str, remote: str = "origin") -> None:
    """Force-point a floating tag at the release tag and force-push it."""
    workflow_common.run_command(
        ["git", "tag", "-fa", name, f"{target}^{{}}", "-m", f"Point {name} at {target}"],
        hint="Configure git user.name and user.email before tagging",
    )
    workflow_common.run_command(
        ["git", "push", remote, name, "--force"],
        hint="The workflow token needs contents: write permission",
    )


def create_release(
    tag: str,
    repository: str,
    notes: str,
    prerelease: bool = False,
    title: Optional[str] = None,
) -> str:
    """Create the GitHub release and return its URL."""
    args = [
        "gh",
        "release",
        "create",
        tag,
        "--repo",
        repository,
        "--title",
        title or tag,
        "--notes",
        notes,
        "--verify-tag",
    ]
    if prerelease:
        args.append("--prerelease")
    else:
        args.append("--latest")

    result = workflow_common.run_command(
        args,
        hint="GH_TOKEN needs contents: write permission",
    )
    urls = re.findall(r"https://\S+", result.stdout)
    return urls[-1] if urls else ""


def publish_release(
    version: str,
    bump_type: BumpType | str,
    repository: str,
    notes: str,
    remote: str = "origin",
    markers: Iterable[str] = DEFAULT_PRERELEASE_MARKERS,
) -> ReleaseRecord:
    """Tag the release, update smart tags and create the GitHub release."""
    clean_version = workflow_common.strip_version_prefix(version)
    SemVer.parse(clean_version)
    if not repository or "/" not in repository:
        raise workflow_common.WorkflowError(
            f"Invalid repository: {repository!r}",
            hint="Pass --repository owner/repo or set GITHUB_REPOSITORY",
        )

    tag = f"v{clean_version}"
    record = ReleaseRecord(tag=tag)
    prerelease = is_prerelease(clean_version, markers)

    if release_exists(tag, repository):
        delete_release(tag, repository)

    existing = list_tags()
    if tag in existing:
        workflow_common.run_command(["git", "tag", "-d", tag])
        workflow_common.run_command(
            ["git", "push", remote, f":refs/tags/{tag}"],
            check=False,
        )
        existing.discard(tag)

    create_version_tag(tag, remote)
    print(f"🏷️  Created tag {tag}")

    plan = plan_smart_tags(clean_version, bump_type, existing, markers)
    if prerelease:
        print("ℹ️  Prerelease version; smart tags left untouched")
    for update in plan:
        move_smart_tag(update.name, tag, remote)
        record.smart_tags_updated.add(update.name)
        print(f"   {update.name}: {update.action}")

    record.url = create_release(tag, repository, notes, prerelease=prerelease)
    record.created = True
    print(f"🚀 Published release {tag}: {record.url or '(url unavailable)'}")
    return record


def build_release_notes(
    version: str,
    commits: Iterable[str],
    previous_tag: Optional[str] = None,
    repository: Optional[str] = None,
) -> str:
    """Group commit subjects into release note sections."""
    features: list[str] = []
    fixes: list[str] = []
    breaking: list[str] = []
    other: list[str] = []

    for commit in commits:
        subject = commit.strip().splitlines()[0].strip() if commit.strip() else ""
        if not subject:
            continue
        bump = version_analysis.classify_commit(commit)
        if bump is BumpType.MAJOR:
            breaking.append(subject)
        elif bump is BumpType.MINOR:
            features.append(subject)
        elif bump is BumpType.PATCH:
            fixes.append(subject)
        else:
            other.append(subject)

    tag = f"v{workflow_common.strip_version_prefix(version)}"
    sections: list[str] = [f"# Release {tag}", ""]

    if breaking:
        sections.append("## ⚠️ Breaking Changes\n")
        sections.extend(f"- {message}" for message in breaking)
        sections.append("")

    if features:
        sections.append("## ✨ Features\n")
        sections.extend(f"- {message}" for message in features)
        sections.append("")

    if fixes:
        sections.append("## 🐛 Bug Fixes\n")
        sections.extend(f"- {message}" for message in fixes)
        sections.append("")

    if other:
        sections.append("## 📝 Other Changes\n")
        sections.extend(f"- {message}" for message in other)
        sections.append("")

    if not (breaking or features or fixes or other):
        sections.append("## 📝 Other Changes\n")
        sections.append("- No notable changes")
        sections.append("")

    if previous_tag and repository:
        sections.append(
            "**Full Changelog**: "
            f"https://github.com/{repository}/compare/{previous_tag}...{tag}"
        )

    return "\n".join(sections).rstrip() + "\n"


def format_release_summary(record: ReleaseRecord, bump_type: BumpType | str) -> str:
    """Render the release as a markdown step summary."""
    bump = BumpType.parse(bump_type)
    smart_tags = ", ".join(f"`{name}`" for name in sorted(record.smart_tags_updated))
    lines = [
        f"## 🚀 Release {record.tag}",
        "",
        "| Field | Value |",
        "|-------|-------|",
        f"| Tag | `{record.tag}` |",
        f"| Bump type | {bump.value} |",
        f"| Smart tags | {smart_tags or 'none (prerelease)'} |",
        f"| URL | {record.url or 'n/a'} |",
    ]
    return "\n".join(lines) + "\n"


def main() -> None:
    """Entry point for CLI usage."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Create tags and publish a GitHub release",
    )
    parser.add_argument("--version", required=True, help="Version to release")
    parser.add_argument("--bump-type", default="patch", help="Resolved bump type")
    parser.add_argument(
        "--repository",
        default=os.environ.get("GITHUB_REPOSITORY", ""),
        help="Repository in owner/repo form",
    )
    parser.add_argument("--remote", default="origin", help="Git remote to push to")
    parser.add_argument(
        "--notes-file",
        help="Markdown file with release notes (generated when omitted)",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write release details to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        markers = load_prerelease_markers()

        if args.notes_file:
            notes_path = Path(args.notes_file)
            if not notes_path.exists():
                raise workflow_common.WorkflowError(
                    f"Release notes file not found: {notes_path}",
                )
            notes = notes_path.read_text(encoding="utf-8")
        else:
            with workflow_common.timed_operation("Generate release notes"):
                previous_tag = version_analysis.get_last_tag()
                commits = version_analysis.get_commits_since(
                    previous_tag,
                    int(
                        workflow_common.config_path(
                            version_analysis.DEFAULT_COMMIT_WINDOW,
                            "release",
                            "commit_window",
                        )
                    ),
                )
                notes = build_release_notes(
                    args.version,
                    commits,
                    previous_tag,
                    args.repository,
                )

        with workflow_common.timed_operation("Publish release"):
            record = publish_release(
                args.version,
                args.bump_type,
                args.repository,
                notes,
                remote=args.remote,
                markers=markers,
            )

        if args.output:
            workflow_common.write_outputs(
                {
                    "tag": record.tag,
                    "release_url": record.url,
                    "created": record.created,
                    "smart_tags": ",".join(sorted(record.smart_tags_updated)),
                }
            )

        workflow_common.try_append_summary(
            format_release_summary(record, args.bump_type)
        )

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Release publishing")


if __name__ == "__main__":
    main()
