"""Controllers for GitHub issue, pull request, and workflow-run CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from tempfile import TemporaryDirectory

from devflow.config import LlmSettings, load_settings
from devflow.errors import ConfigurationError, NothingToDoError
from devflow.github.gh import GhClient
from devflow.github.screenshot import (
    GistImageUploader,
    grab_clipboard_image,
    screenshot_filename,
    screenshot_markdown,
)
from devflow.gitops.git import GitClient
from devflow.llm.client import ChatCompletionClient
from devflow.llm.prompts import generate_pr_description
from devflow.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GhIssueCommand:
    """CLI input for issue creation."""

    repo_path: Path
    title: str
    body: str = ""
    labels: tuple[str, ...] = ()
    screenshot: bool = False


@dataclass(slots=True)
class GhPrCommand:
    """CLI input for pull request creation."""

    repo_path: Path
    title: str | None = None
    body: str | None = None
    base: str | None = None
    draft: bool = False
    generate: bool = False


@dataclass(slots=True)
class GhRunsCommand:
    """CLI input for workflow run listing."""

    repo_path: Path
    limit: int = 10
    branch: str | None = None


class GitHubCliController:
    """Coordinates gh, git, and the LLM client for GitHub commands."""

    def __init__(
        self,
        runner: CommandRunner = run_command,
        llm_factory: Callable[[LlmSettings], ChatCompletionClient] = ChatCompletionClient,
    ) -> None:
        self._runner = runner
        self._llm_factory = llm_factory

    def create_issue(self, command: GhIssueCommand) -> list[str]:
        gh = GhClient(command.repo_path, runner=self._runner)
        body = command.body
        lines: list[str] = []
        if command.screenshot:
            with TemporaryDirectory(prefix="devflow-screenshot-") as temp_dir:
                workdir = Path(temp_dir)
                image = grab_clipboard_image(workdir / screenshot_filename())
                url = GistImageUploader(gh=gh, workdir=workdir, runner=self._runner).upload(image)
            body = f"{body}\n\n{screenshot_markdown(url)}".strip()
            lines.append(f"Screenshot uploaded: {url}")

        issue_url = gh.create_issue(command.title, body, labels=command.labels)
        lines.append(f"Issue created: {issue_url}")
        return lines

    def create_pr(self, command: GhPrCommand) -> list[str]:
        settings = load_settings()
        title, body = command.title, command.body
        lines: list[str] = []
        base = command.base or settings.git.default_base_branch

        if command.generate or not title:
            try:
                settings.validate_for_llm()
            except ValueError as error:
                raise ConfigurationError(str(error)) from error
            git = GitClient(command.repo_path, runner=self._runner)
            diff = git.diff_against(base)
            commits = git.log_oneline(base)
            if not diff.strip() and not commits:
                raise NothingToDoError(f"No changes between {base} and HEAD.")
            with self._llm_factory(settings.llm) as client:
                generated = generate_pr_description(
                    client,
                    diff=diff,
                    commits=commits,
                    max_chars=settings.llm.max_diff_chars,
                )
            if not title:
                title = generated.title
                lines.append(f"Generated title: {title}")
            body = body if body is not None else generated.body

        if not title:
            raise NothingToDoError("Pull request title is empty.")
        url = GhClient(command.repo_path, runner=self._runner).create_pr(
            title,
            body or "",
            base=base,
            draft=command.draft,
        )
        lines.append(f"Pull request created: {url}")
        return lines

    def list_runs(self, command: GhRunsCommand) -> list[str]:
        runs = GhClient(command.repo_path, runner=self._runner).list_runs(
            limit=command.limit,
            branch=command.branch,
        )
        if not runs:
            return ["No workflow runs found."]
        return [
            f"{run.run_id}  {run.state:<12}  {run.workflow}  [{run.branch}]  {run.title}"
            for run in runs
        ]
