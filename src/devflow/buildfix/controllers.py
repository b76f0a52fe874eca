"""Controller for the build remediation CLI command."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from devflow.buildfix.loop import BuildFixLoop, BuildFixReport
from devflow.config import AgentSettings, load_settings
from devflow.errors import ConfigurationError
from devflow.fanout.executor import TaskExecutor, executor_from_settings
from devflow.shell import CommandRunner, run_command


@dataclass(slots=True)
class BuildFixCommand:
    """CLI input for the build remediation loop."""

    project: Path | None = None
    max_iterations: int | None = None
    agent_command: str | None = None


class BuildCliController:
    def __init__(
        self,
        runner: CommandRunner = run_command,
        executor_factory: Callable[[AgentSettings], TaskExecutor] | None = None,
    ) -> None:
        self._runner = runner
        self._executor_factory = executor_factory or executor_from_settings

    def fix(
        self,
        command: BuildFixCommand,
        *,
        on_progress: Callable[[str], None] | None = None,
    ) -> BuildFixReport:
        settings = load_settings()
        if command.agent_command is not None:
            settings = replace(
                settings,
                agent=replace(settings.agent, command_template=command.agent_command),
            )
        if command.max_iterations is not None:
            settings = replace(
                settings,
                build=replace(settings.build, max_iterations=command.max_iterations),
            )
        try:
            settings.validate_for_build()
        except ValueError as error:
            raise ConfigurationError(str(error)) from error

        project = command.project or (
            Path(settings.build.project) if settings.build.project else Path()
        )
        loop = BuildFixLoop(
            project=project,
            executor=self._executor_factory(settings.agent),
            runner=self._runner,
            max_iterations=settings.build.max_iterations,
            max_error_lines=settings.build.max_error_lines,
            on_progress=on_progress,
        )
        return loop.run()
