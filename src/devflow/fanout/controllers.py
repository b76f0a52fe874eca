"""Controller for fan-out CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from devflow.config import AgentSettings, load_settings
from devflow.errors import ConfigurationError, NothingToDoError
from devflow.fanout.command import CommandTemplateError, render_prompt
from devflow.fanout.executor import TaskExecutor, executor_from_settings
from devflow.fanout.models import FanOutSummary, FanOutTask, TaskStatus
from devflow.fanout.runner import BoundedFanOutRunner
from devflow.fanout.selection import discover_files

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FanOutRunCommand:
    """CLI input for one fan-out run."""

    root: Path
    pattern: str
    prompt_template: str
    concurrency: int | None = None
    agent_command: str | None = None
    timeout_seconds: int | None = None


class FanOutCliController:
    """Discovers files, runs the agent per file, and renders the summary."""

    def __init__(self, executor_factory: Callable[[AgentSettings], TaskExecutor] | None = None):
        self._executor_factory = executor_factory or executor_from_settings

    def agent_settings(self, command: FanOutRunCommand) -> AgentSettings:
        settings = load_settings()
        agent = settings.agent
        if command.concurrency is not None:
            agent = replace(agent, concurrency=command.concurrency)
        if command.agent_command is not None:
            agent = replace(agent, command_template=command.agent_command)
        if command.timeout_seconds is not None:
            agent = replace(agent, timeout_seconds=command.timeout_seconds)
        try:
            replace(settings, agent=agent).validate_for_fanout()
        except ValueError as error:
            raise ConfigurationError(str(error)) from error
        return agent

    def discover(self, command: FanOutRunCommand) -> list[Path]:
        try:
            files = discover_files(command.root, command.pattern)
        except ValueError as error:
            raise ConfigurationError(str(error)) from error
        if not files:
            raise NothingToDoError(f"No files match {command.pattern!r} under {command.root}.")
        return files

    def build_tasks(
        self,
        command: FanOutRunCommand,
        files: list[Path],
        agent: AgentSettings,
    ) -> list[FanOutTask]:
        token = agent.file_token
        try:
            return [
                FanOutTask(
                    file_path=path,
                    prompt=render_prompt(command.prompt_template, file_path=path, token=token),
                )
                for path in files
            ]
        except CommandTemplateError as error:
            raise ConfigurationError(str(error)) from error

    def runner(self, agent: AgentSettings) -> BoundedFanOutRunner:
        return BoundedFanOutRunner(
            executor=self._executor_factory(agent),
            concurrency=agent.concurrency,
        )


def progress_line(task: FanOutTask) -> str:
    marker = "OK  " if task.status == TaskStatus.SUCCEEDED else "FAIL"
    line = f"[{marker}] {task.file_path} ({task.elapsed_seconds:.1f}s)"
    if task.status == TaskStatus.FAILED and task.error:
        line = f"{line}: {task.error}"
    return line


def summary_lines(summary: FanOutSummary) -> list[str]:
    lines = [
        f"Total={summary.total} Success={summary.succeeded} Failed={summary.failed}",
    ]
    if summary.failed_tasks:
        lines.append("Failed files:")
        lines.extend(
            f"  - {task.file_path}: {task.error or 'no error text'}"
            for task in summary.failed_tasks
        )
    return lines
