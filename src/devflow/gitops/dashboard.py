"""Multi-repository git status dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from devflow.errors import DevflowError
from devflow.gitops.git import GitClient
from devflow.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RepoStatus:
    """Working-copy state parsed from ``git status --porcelain=v2 --branch``."""

    path: Path
    branch: str = ""
    upstream: str | None = None
    ahead: int = 0
    behind: int = 0
    staged: int = 0
    modified: int = 0
    untracked: int = 0
    conflicted: int = 0
    error: str | None = None

    @property
    def clean(self) -> bool:
        return (
            self.error is None
            and self.staged == 0
            and self.modified == 0
            and self.untracked == 0
            and self.conflicted == 0
        )

    @property
    def in_sync(self) -> bool:
        return self.ahead == 0 and self.behind == 0


def parse_porcelain_v2(path: Path, output: str) -> RepoStatus:
    status = RepoStatus(path=path)
    for line in output.splitlines():
        if line.startswith("# branch.head "):
            status.branch = line.removeprefix("# branch.head ").strip()
        elif line.startswith("# branch.upstream "):
            status.upstream = line.removeprefix("# branch.upstream ").strip()
        elif line.startswith("# branch.ab "):
            ahead_raw, behind_raw = line.removeprefix("# branch.ab ").split()
            status.ahead = int(ahead_raw.lstrip("+"))
            status.behind = abs(int(behind_raw))
        elif line.startswith(("1 ", "2 ")):
            xy = line.split(" ", 2)[1]
            if xy[0] != ".":
                status.staged += 1
            if xy[1] != ".":
                status.modified += 1
        elif line.startswith("u "):
            status.conflicted += 1
        elif line.startswith("? "):
            status.untracked += 1
    return status


def collect_repo_statuses(
    repos: list[Path],
    *,
    fetch: bool = False,
    runner: CommandRunner = run_command,
) -> list[RepoStatus]:
    """Read every repo's status; a failing repo is reported, not raised."""

    statuses: list[RepoStatus] = []
    for repo in repos:
        client = GitClient(repo, runner=runner)
        try:
            if fetch:
                client.fetch()
            statuses.append(parse_porcelain_v2(repo, client.status_porcelain()))
        except DevflowError as error:
            logger.warning("git status failed for %s: %s", repo, error)
            statuses.append(RepoStatus(path=repo, error=str(error)))
    return statuses


def render_dashboard(statuses: list[RepoStatus], *, root: Path) -> list[str]:
    headers = ("REPO", "BRANCH", "SYNC", "STAGED", "MODIFIED", "UNTRACKED", "STATE")
    rows = [_row(status, root=root) for status in statuses]
    widths = [
        max([len(header), *(len(row[column]) for row in rows)])
        for column, header in enumerate(headers)
    ]
    lines = [_format_row(headers, widths)]
    lines.append("  ".join("-" * width for width in widths))
    lines.extend(_format_row(row, widths) for row in rows)

    dirty = sum(1 for status in statuses if not status.clean)
    unsynced = sum(1 for status in statuses if status.error is None and not status.in_sync)
    lines.append(f"Repos={len(statuses)} Dirty={dirty} OutOfSync={unsynced}")
    return lines


def _row(status: RepoStatus, *, root: Path) -> tuple[str, ...]:
    try:
        name = status.path.relative_to(root).as_posix()
    except ValueError:
        name = str(status.path)
    if name == ".":
        name = status.path.name or str(status.path)

    if status.error is not None:
        return (name, "?", "?", "-", "-", "-", f"error: {status.error}")

    if status.upstream is None:
        sync = "no upstream"
    elif status.in_sync:
        sync = "up to date"
    else:
        sync = f"+{status.ahead}/-{status.behind}"

    if status.conflicted:
        state = f"conflicts({status.conflicted})"
    elif status.clean:
        state = "clean"
    else:
        state = "dirty"

    return (
        name,
        status.branch,
        sync,
        str(status.staged),
        str(status.modified),
        str(status.untracked),
        state,
    )


def _format_row(values: tuple[str, ...], widths: list[int]) -> str:
    return "  ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()
