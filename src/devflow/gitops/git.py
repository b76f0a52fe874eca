"""Git command wrapper."""

from __future__ import annotations

import logging
from pathlib import Path

from devflow.shell import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)


class GitClient:
    """Runs ``git`` against one working copy."""

    def __init__(self, repo_path: Path, *, runner: CommandRunner = run_command) -> None:
        self.repo_path = repo_path
        self._runner = runner

    def run(self, *args: str, check: bool = True) -> CommandResult:
        return self._runner(["git", *args], cwd=self.repo_path, check=check)

    def status_porcelain(self) -> str:
        return self.run("status", "--porcelain=v2", "--branch").stdout

    def fetch(self) -> None:
        self.run("fetch", "--quiet", "--prune")

    def current_branch(self) -> str:
        return self.run("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def has_uncommitted_changes(self) -> bool:
        return bool(self.run("status", "--porcelain").stdout.strip())

    def staged_diff(self) -> str:
        return self.run("diff", "--cached").stdout

    def diff_against(self, base: str) -> str:
        return self.run("diff", f"{base}...HEAD").stdout

    def log_oneline(self, base: str) -> list[str]:
        output = self.run("log", "--oneline", "--no-decorate", f"{base}..HEAD").stdout
        return [line for line in output.splitlines() if line.strip()]

    def tags(self, pattern: str = "*") -> list[str]:
        """Return tags matching ``pattern``, highest version first."""

        output = self.run("tag", "--list", "--sort=-v:refname", pattern).stdout
        return [line.strip() for line in output.splitlines() if line.strip()]

    def create_tag(self, tag: str, message: str) -> None:
        self.run("tag", "-a", tag, "-m", message)

    def push_tag(self, tag: str, remote: str = "origin") -> None:
        self.run("push", remote, tag)

    def add(self, *paths: str) -> None:
        self.run("add", "--", *paths)

    def commit(self, message: str) -> None:
        self.run("commit", "-m", message)

    def push(self, remote: str = "origin", branch: str | None = None) -> None:
        if branch is None:
            self.run("push", remote)
        else:
            self.run("push", remote, branch)

    def remote_url(self, remote: str = "origin") -> str | None:
        result = self.run("remote", "get-url", remote, check=False)
        return result.stdout.strip() if result.ok else None


def clone(url: str, destination: Path, *, runner: CommandRunner = run_command) -> GitClient:
    runner(["git", "clone", "--quiet", url, str(destination)])
    return GitClient(destination, runner=runner)


def find_git_repos(root: Path, max_depth: int = 2) -> list[Path]:
    """Return working copies at or below ``root``, without descending into a found repo."""

    if not root.is_dir():
        raise ValueError(f"Not a directory: {root}")

    found: list[Path] = []
    frontier: list[tuple[Path, int]] = [(root, 0)]
    while frontier:
        directory, depth = frontier.pop()
        if (directory / ".git").exists():
            found.append(directory)
            continue
        if depth >= max_depth:
            continue
        try:
            children = [child for child in directory.iterdir() if child.is_dir()]
        except PermissionError:
            logger.warning("Skipping unreadable directory %s", directory)
            continue
        frontier.extend(
            (child, depth + 1) for child in children if not child.name.startswith(".")
        )
    return sorted(found)
