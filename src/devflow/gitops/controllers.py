"""Controllers for git dashboard and release CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from devflow.config import load_settings
from devflow.errors import ConfigurationError, NothingToDoError
from devflow.github.gh import GhClient
from devflow.gitops.dashboard import collect_repo_statuses, render_dashboard
from devflow.gitops.git import GitClient, find_git_repos
from devflow.gitops.release import BumpKind, ReleaseTagger
from devflow.shell import CommandRunner, run_command


@dataclass(slots=True)
class GitStatusCommand:
    """CLI input for the multi-repo status dashboard."""

    root: Path | None = None
    depth: int | None = None
    dirty_only: bool = False
    fetch: bool | None = None


@dataclass(slots=True)
class ReleaseTagCommand:
    """CLI input for release tagging."""

    repo_path: Path
    bump: str = BumpKind.PATCH.value
    github_release: bool = False
    dry_run: bool = False
    prefix: str | None = None


class GitCliController:
    """Coordinates git status and release tagging."""

    def __init__(self, runner: CommandRunner = run_command) -> None:
        self._runner = runner

    def status(self, command: GitStatusCommand) -> list[str]:
        settings = load_settings()
        root = (command.root or settings.git.scan_root).resolve()
        depth = command.depth if command.depth is not None else settings.git.scan_depth
        fetch = command.fetch if command.fetch is not None else settings.git.fetch_before_status
        try:
            repos = find_git_repos(root, max_depth=depth)
        except ValueError as error:
            raise ConfigurationError(str(error)) from error
        if not repos:
            raise NothingToDoError(f"No git repositories found under {root} (depth {depth}).")

        statuses = collect_repo_statuses(repos, fetch=fetch, runner=self._runner)
        if command.dirty_only:
            statuses = [status for status in statuses if not status.clean or not status.in_sync]
            if not statuses:
                return [f"All {len(repos)} repositories are clean and in sync."]
        return render_dashboard(statuses, root=root)

    def release(self, command: ReleaseTagCommand) -> list[str]:
        settings = load_settings()
        prefix = command.prefix if command.prefix is not None else settings.git.tag_prefix
        tagger = ReleaseTagger(
            git=GitClient(command.repo_path, runner=self._runner),
            gh=GhClient(command.repo_path, runner=self._runner),
            prefix=prefix,
        )
        return tagger.tag(
            BumpKind(command.bump),
            github_release=command.github_release,
            dry_run=command.dry_run,
        )
