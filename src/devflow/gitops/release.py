"""Semantic-version release tagging."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from devflow.errors import ConfigurationError, DevflowError, ExitCode
from devflow.github.gh import GhClient
from devflow.gitops.git import GitClient

logger = logging.getLogger(__name__)

_SEMVER_RE = re.compile(r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)$")


class BumpKind(str, Enum):
    """Which version component to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    """``MAJOR.MINOR.PATCH`` version."""

    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str, *, prefix: str = "") -> SemVer:
        value = text.strip()
        if prefix and value.startswith(prefix):
            value = value[len(prefix) :]
        match = _SEMVER_RE.match(value)
        if match is None:
            raise ValueError(f"Not a semantic version: {text!r}")
        return cls(int(match["major"]), int(match["minor"]), int(match["patch"]))

    def bump(self, kind: BumpKind) -> SemVer:
        if kind == BumpKind.MAJOR:
            return SemVer(self.major + 1, 0, 0)
        if kind == BumpKind.MINOR:
            return SemVer(self.major, self.minor + 1, 0)
        return SemVer(self.major, self.minor, self.patch + 1)

    def tag(self, prefix: str = "") -> str:
        return f"{prefix}{self.major}.{self.minor}.{self.patch}"


@dataclass(slots=True)
class ReleasePlan:
    """Resolved next release."""

    previous_tag: str | None
    next_tag: str
    branch: str


class DirtyWorkingTreeError(DevflowError):
    """Release refused because of uncommitted changes."""

    exit_code = ExitCode.DIRTY_WORKING_TREE


def latest_version(tags: list[str], *, prefix: str) -> tuple[str, SemVer] | None:
    """Highest semver tag, ignoring tags that do not parse (pre-releases, other schemes)."""

    versions: list[tuple[SemVer, str]] = []
    for tag in tags:
        try:
            versions.append((SemVer.parse(tag, prefix=prefix), tag))
        except ValueError:
            continue
    if not versions:
        return None
    version, tag = max(versions)
    return tag, version


class ReleaseTagger:
    """Tag HEAD with the next version, push the tag, optionally publish a GitHub release."""

    def __init__(self, *, git: GitClient, gh: GhClient | None = None, prefix: str = "v") -> None:
        self.git = git
        self.gh = gh
        self.prefix = prefix

    def plan(self, kind: BumpKind) -> ReleasePlan:
        found = latest_version(self.git.tags(f"{self.prefix}*"), prefix=self.prefix)
        if found is None:
            previous_tag, next_version = None, SemVer(0, 1, 0)
        else:
            previous_tag, version = found
            next_version = version.bump(kind)
        return ReleasePlan(
            previous_tag=previous_tag,
            next_tag=next_version.tag(self.prefix),
            branch=self.git.current_branch(),
        )

    def tag(
        self,
        kind: BumpKind,
        *,
        github_release: bool = False,
        dry_run: bool = False,
    ) -> list[str]:
        if self.git.has_uncommitted_changes():
            raise DirtyWorkingTreeError(
                "Working tree has uncommitted changes; commit or stash first.",
            )

        plan = self.plan(kind)
        lines = [
            f"Branch: {plan.branch}",
            f"Previous tag: {plan.previous_tag or '(none)'}",
            f"Next tag: {plan.next_tag}",
        ]
        if dry_run:
            lines.append("Dry run: no tag created.")
            return lines

        self.git.create_tag(plan.next_tag, f"Release {plan.next_tag}")
        self.git.push_tag(plan.next_tag)
        logger.info("Tagged and pushed %s", plan.next_tag)
        lines.append(f"Tag pushed: {plan.next_tag}")

        if github_release:
            if self.gh is None:
                raise ConfigurationError("GitHub client is required for --gh-release.")
            url = self.gh.create_release(plan.next_tag, generate_notes=True)
            lines.append(f"Release created: {url}")
        return lines
