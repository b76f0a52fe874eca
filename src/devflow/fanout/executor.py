"""Subprocess executor for one fan-out task."""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Protocol

from devflow.config import AgentSettings
from devflow.fanout.command import CommandTemplateError, build_run_args, resolve_executable
from devflow.fanout.models import FanOutTask, TaskOutcome
from devflow.fanout.stream import parse_stream_json
from devflow.shell import TIMEOUT_EXIT_CODE

logger = logging.getLogger(__name__)

NOT_FOUND_EXIT_CODE = 127
TEMPLATE_ERROR_EXIT_CODE = 2


class TaskExecutor(Protocol):
    """Runs one task to completion and reports its outcome."""

    def execute(self, task: FanOutTask) -> TaskOutcome:
        """Execute the task; must not raise for ordinary child failures."""


class SubprocessTaskExecutor:
    """Launch the agent CLI for a task and capture combined stdout+stderr."""

    def __init__(
        self,
        *,
        command_template: str,
        timeout_seconds: int = 0,
        env: dict[str, str] | None = None,
    ) -> None:
        self.command_template = command_template
        self.timeout_seconds = timeout_seconds
        self.env = env

    def execute(self, task: FanOutTask) -> TaskOutcome:
        started = time.monotonic()
        try:
            run_args, command_head = build_run_args(
                command_template=self.command_template,
                prompt=task.prompt,
                file_path=task.file_path,
            )
        except CommandTemplateError as error:
            return TaskOutcome(exit_code=TEMPLATE_ERROR_EXIT_CODE, output="", error=str(error))
        run_args = resolve_executable(run_args, command_head)

        env = os.environ.copy()
        if self.env:
            env.update(self.env)
        env["DEVFLOW_TASK_FILE"] = str(task.file_path)

        try:
            process = subprocess.Popen(  # noqa: S603
                run_args,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError:
            return TaskOutcome(
                exit_code=NOT_FOUND_EXIT_CODE,
                output="",
                error=f"Agent command not found: {command_head}",
                elapsed_seconds=time.monotonic() - started,
            )
        except OSError as error:
            return TaskOutcome(
                exit_code=NOT_FOUND_EXIT_CODE,
                output="",
                error=f"Agent command failed to start: {error}",
                elapsed_seconds=time.monotonic() - started,
            )

        try:
            output, _ = process.communicate(timeout=self.timeout_seconds or None)
        except subprocess.TimeoutExpired:
            _terminate_process(process)
            output, _ = process.communicate()
            return TaskOutcome(
                exit_code=TIMEOUT_EXIT_CODE,
                output=output or "",
                error=f"Timed out after {self.timeout_seconds}s",
                elapsed_seconds=time.monotonic() - started,
            )

        output = output or ""
        exit_code = process.returncode
        elapsed = time.monotonic() - started
        logger.debug("Task %s exited with %s in %.1fs", task.file_path, exit_code, elapsed)
        return TaskOutcome(
            exit_code=exit_code,
            output=output,
            error=None if exit_code == 0 else _error_text(output, exit_code),
            elapsed_seconds=elapsed,
        )


def _error_text(output: str, exit_code: int) -> str:
    digest = parse_stream_json(output).final_text
    if not digest:
        return f"exit code={exit_code}"
    return f"exit code={exit_code}: {_truncate(digest)}"


def _truncate(value: str, *, limit: int = 240) -> str:
    compact = value.strip().replace("\n", " ")
    if len(compact) <= limit:
        return compact
    return compact[:limit] + "..."


def _terminate_process(process: subprocess.Popen[str]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)


def executor_from_settings(agent: AgentSettings) -> TaskExecutor:
    return SubprocessTaskExecutor(
        command_template=agent.command_template,
        timeout_seconds=agent.timeout_seconds,
    )
