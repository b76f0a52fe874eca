"""Thin subprocess wrapper used by every external-tool client."""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from devflow.errors import CommandFailedError, ToolNotFoundError

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124


@dataclass(slots=True)
class CommandResult:
    """Captured outcome of one external command."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Stdout and stderr joined, for error reporting."""

        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr


class CommandRunner(Protocol):
    """Callable that executes an external command and returns its result."""

    def __call__(  # noqa: PLR0913
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        input_text: str | None = None,
        timeout_seconds: float | None = None,
        check: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


def run_command(  # noqa: PLR0913
    args: list[str],
    *,
    cwd: Path | None = None,
    input_text: str | None = None,
    timeout_seconds: float | None = None,
    check: bool = True,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run ``args`` to completion, capturing text output.

    Raises:
        ToolNotFoundError: the executable is not on PATH.
        CommandFailedError: the command timed out, or exited nonzero while ``check`` is set.
    """

    # Argument values may be secrets: log the command and subcommand only.
    logger.debug("Running: %s (%d args, cwd=%s)", " ".join(args[:2]), len(args), cwd or ".")
    try:
        completed = subprocess.run(  # noqa: S603
            [shutil.which(args[0]) or args[0], *args[1:]],
            cwd=cwd,
            input=input_text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_seconds,
            check=False,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as error:
        raise ToolNotFoundError(args[0]) from error
    except subprocess.TimeoutExpired as error:
        raise CommandFailedError(
            args,
            TIMEOUT_EXIT_CODE,
            f"Timed out after {timeout_seconds}s",
        ) from error

    result = CommandResult(
        args=list(args),
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if check and not result.ok:
        raise CommandFailedError(result.args, result.returncode, result.output)
    return result
