#!/usr/bin/env python3
# file: .github/workflows/scripts/version_resolver.py
# version: 1.1.0
# guid: 2f8e6d4c-1a3b-4c5d-8e9f-7a6b5c4d3e21

"""Resolve the final release version from manual, automatic and forced inputs."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Optional

import requests

import release_publisher
import version_analysis
import workflow_common
from version_analysis import BumpType

GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class VersionDecision:
    """Outcome of version resolution for a single workflow run."""

    final_version: str
    bump_type: BumpType
    should_release: bool

    @property
    def tag(self) -> str:
        if not self.final_version:
            return ""
        return f"v{self.final_version}"


def resolve_version(
    manual_version: Optional[str],
    auto_bump: BumpType | str | None,
    auto_version: Optional[str],
    force: bool,
    last_version: Optional[str] = None,
    default_version: str = version_analysis.DEFAULT_VERSION,
) -> VersionDecision:
    """Pick the version to release.

    Priority order:
        1. A non-empty manual version always wins.
        2. An automatic bump other than ``none`` uses the detected version.
        3. A forced release reuses the last version, or ``default_version``.
        4. Otherwise nothing is released.
    """
    manual = workflow_common.strip_version_prefix(manual_version)
    if manual:
        if not version_analysis.is_valid_version(manual):
            raise workflow_common.WorkflowError(
                f"Manual version is not a semantic version: {manual_version}",
                hint="Use MAJOR.MINOR.PATCH, e.g. 1.4.0 or v1.4.0",
            )
        return VersionDecision(manual, BumpType.MANUAL, True)

    bump = BumpType.parse(auto_bump)
    detected = workflow_common.strip_version_prefix(auto_version)
    if bump is not BumpType.NONE:
        if not detected:
            raise workflow_common.WorkflowError(
                f"Automatic bump '{bump.value}' has no version",
                hint="Pass --auto-version from the version analysis step",
            )
        return VersionDecision(detected, bump, True)

    if force:
        previous = workflow_common.strip_version_prefix(last_version)
        version = previous or workflow_common.strip_version_prefix(default_version)
        return VersionDecision(version, BumpType.FORCE, True)

    return VersionDecision(
        workflow_common.strip_version_prefix(last_version),
        BumpType.NONE,
        False,
    )


def fetch_latest_release_version(
    repository: str,
    token: Optional[str] = None,
    api_url: str = GITHUB_API_URL,
) -> Optional[str]:
    """Return the version of the latest published release, if any."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    url = f"{api_url.rstrip('/')}/repos/{repository}/releases/latest"
    response = requests.get(url, headers=headers, timeout=30)
    if response.status_code == 404:
        return None
    if response.status_code != 200:
        raise workflow_common.WorkflowError(
            f"Failed to fetch latest release for {repository}: "
            f"HTTP {response.status_code}",
            hint="Check GITHUB_TOKEN permissions (contents: read)",
        )

    tag_name = response.json().get("tag_name") or ""
    version = workflow_common.strip_version_prefix(tag_name)
    return version or None


def discover_last_version(repository: Optional[str], token: Optional[str]) -> Optional[str]:
    """Find the last released version from local tags, then the GitHub API."""
    tag = version_analysis.get_last_tag()
    if tag:
        return workflow_common.strip_version_prefix(tag)
    if repository:
        print(f"ℹ️  No local release tags; asking GitHub for {repository}")
        return fetch_latest_release_version(repository, token)
    return None


def main() -> None:
    """Entry point for CLI usage."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Resolve the final release version",
    )
    parser.add_argument(
        "--manual-version",
        default=os.environ.get("INPUT_VERSION", ""),
        help="Manual version override (wins over everything else)",
    )
    parser.add_argument("--auto-bump", default="none", help="Detected bump type")
    parser.add_argument("--auto-version", default="", help="Detected new version")
    parser.add_argument(
        "--force",
        default=os.environ.get("INPUT_FORCE_RELEASE", "false"),
        help="Force a release even without changes (true/false)",
    )
    parser.add_argument(
        "--last-version",
        default="",
        help="Last released version (discovered when omitted)",
    )
    parser.add_argument(
        "--default-version",
        help="Version used for a forced release with no history",
    )
    parser.add_argument(
        "--repository",
        default=os.environ.get("GITHUB_REPOSITORY", ""),
        help="Repository in owner/repo form",
    )
    parser.add_argument(
        "--output",
        action="store_true",
        help="Write the decision to GITHUB_OUTPUT",
    )

    args = parser.parse_args()

    try:
        force = workflow_common.parse_bool(args.force)
        default_version = args.default_version or workflow_common.config_path(
            version_analysis.DEFAULT_VERSION, "release", "default_version"
        )
        last_version = args.last_version
        if not last_version and force and not args.manual_version:
            last_version = discover_last_version(
                args.repository,
                os.environ.get("GITHUB_TOKEN"),
            )

        decision = resolve_version(
            manual_version=args.manual_version,
            auto_bump=args.auto_bump,
            auto_version=args.auto_version,
            force=force,
            last_version=last_version,
            default_version=str(default_version),
        )

        prerelease = bool(decision.final_version) and release_publisher.is_prerelease(
            decision.final_version,
            release_publisher.load_prerelease_markers(),
        )

        print("🏷️  Version Decision:")
        print(f"   Version: {decision.final_version or '(none)'}")
        print(f"   Bump type: {decision.bump_type.value}")
        print(f"   Should release: {'✅' if decision.should_release else '❌'}")
        print(f"   Prerelease: {'✅' if prerelease else '❌'}")

        if args.output:
            workflow_common.write_outputs(
                {
                    "version": decision.final_version,
                    "tag": decision.tag,
                    "bump_type": decision.bump_type.value,
                    "should_release": decision.should_release,
                    "is_prerelease": prerelease,
                }
            )

    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, "Version resolution")


if __name__ == "__main__":
    main()
