"""Controller for LLM-assisted git CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from devflow.config import LlmSettings, load_settings
from devflow.errors import ConfigurationError, NothingToDoError
from devflow.gitops.git import GitClient
from devflow.llm.client import ChatCompletionClient
from devflow.llm.prompts import generate_commit_message
from devflow.shell import CommandRunner, run_command


@dataclass(slots=True)
class CommitMessageCommand:
    """CLI input for commit message generation."""

    repo_path: Path
    commit: bool = False


class LlmCliController:
    """Generates commit messages from the staged diff."""

    def __init__(
        self,
        runner: CommandRunner = run_command,
        llm_factory: Callable[[LlmSettings], ChatCompletionClient] = ChatCompletionClient,
    ) -> None:
        self._runner = runner
        self._llm_factory = llm_factory

    def commit_message(self, command: CommitMessageCommand) -> list[str]:
        settings = load_settings()
        try:
            settings.validate_for_llm()
        except ValueError as error:
            raise ConfigurationError(str(error)) from error

        git = GitClient(command.repo_path, runner=self._runner)
        diff = git.staged_diff()
        if not diff.strip():
            raise NothingToDoError("Nothing staged. Run `git add` first.")

        with self._llm_factory(settings.llm) as client:
            message = generate_commit_message(
                client,
                diff=diff,
                max_chars=settings.llm.max_diff_chars,
            )

        lines = message.splitlines()
        if command.commit:
            git.commit(message)
            lines.append("Committed.")
        return lines
