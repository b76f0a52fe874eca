"""Build, hand compiler errors to the agent, rebuild."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from devflow.errors import BuildStillFailingError
from devflow.fanout.executor import TaskExecutor
from devflow.fanout.models import FanOutTask
from devflow.fanout.stream import parse_stream_json
from devflow.shell import CommandResult, CommandRunner, run_command

logger = logging.getLogger(__name__)

_ERROR_LINE_RE = re.compile(r"\berror\s+[A-Z]{2,}\d+\s*:", re.IGNORECASE)
_PROJECT_SUFFIX_RE = re.compile(r"\s+\[[^\]]+\]$")

FIX_PROMPT_TEMPLATE = """\
The .NET build of {project} fails with these errors:

{errors}

Fix the code so the build succeeds. Change only what is needed to resolve these
errors; do not disable warnings-as-errors or delete failing code paths."""


@dataclass(slots=True)
class BuildFixReport:
    """What happened across the remediation iterations."""

    succeeded: bool = False
    agent_runs: int = 0
    last_errors: list[str] = field(default_factory=list)


def extract_build_errors(output: str, *, limit: int) -> list[str]:
    """Distinct MSBuild error lines, in order; tail of the log when none match."""

    errors: list[str] = []
    seen: set[str] = set()
    for raw_line in output.splitlines():
        if not _ERROR_LINE_RE.search(raw_line):
            continue
        line = _PROJECT_SUFFIX_RE.sub("", raw_line.strip())
        if line in seen:
            continue
        seen.add(line)
        errors.append(line)
        if len(errors) >= limit:
            break
    if errors:
        return errors
    return [line for line in output.strip().splitlines()[-limit:] if line.strip()]


def render_fix_prompt(project: Path, errors: list[str]) -> str:
    return FIX_PROMPT_TEMPLATE.format(project=project, errors="\n".join(errors))


class BuildFixLoop:
    """Alternate ``dotnet build`` and agent runs until the build passes or attempts run out."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        project: Path,
        executor: TaskExecutor,
        runner: CommandRunner = run_command,
        max_iterations: int = 3,
        max_error_lines: int = 40,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self.project = project
        self.executor = executor
        self._runner = runner
        self.max_iterations = max_iterations
        self.max_error_lines = max_error_lines
        self._on_progress = on_progress

    def build(self) -> CommandResult:
        return self._runner(
            ["dotnet", "build", str(self.project), "--nologo"],
            check=False,
        )

    def run(self) -> BuildFixReport:
        report = BuildFixReport()
        while True:
            result = self.build()
            if result.ok:
                report.succeeded = True
                report.last_errors = []
                self._emit(f"Build succeeded after {report.agent_runs} agent run(s).")
                return report

            report.last_errors = extract_build_errors(result.output, limit=self.max_error_lines)
            self._emit(f"Build failed with {len(report.last_errors)} error line(s).")
            if report.agent_runs >= self.max_iterations:
                raise BuildStillFailingError(
                    f"Build still failing after {report.agent_runs} agent run(s): "
                    f"{report.last_errors[0] if report.last_errors else 'no error output'}",
                )

            report.agent_runs += 1
            self._emit(f"Agent run {report.agent_runs}/{self.max_iterations}...")
            outcome = self.executor.execute(
                FanOutTask(
                    file_path=self.project,
                    prompt=render_fix_prompt(self.project, report.last_errors),
                ),
            )
            digest = parse_stream_json(outcome.output).final_text
            if outcome.succeeded:
                self._emit(f"Agent finished: {digest[:200] or 'no summary'}")
            else:
                logger.warning("Agent run %d failed: %s", report.agent_runs, outcome.error)
                self._emit(f"Agent run failed: {outcome.error}")

    def _emit(self, message: str) -> None:
        logger.info("%s", message)
        if self._on_progress is not None:
            self._on_progress(message)
