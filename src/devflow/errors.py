"""Exit codes and error types shared by all commands."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes used by devflow commands."""

    SUCCESS = 0
    FAILURE = 1
    USAGE = 2
    TOOL_NOT_FOUND = 3
    COMMAND_FAILED = 4
    NOTHING_TO_DO = 5
    CONFIGURATION = 6
    BUILD_STILL_FAILING = 7
    LLM_REQUEST_FAILED = 8
    DIRTY_WORKING_TREE = 9


class DevflowError(RuntimeError):
    """Base error carrying the exit code the CLI should terminate with."""

    exit_code: ExitCode = ExitCode.FAILURE


class ToolNotFoundError(DevflowError):
    """External executable is not available on PATH."""

    exit_code = ExitCode.TOOL_NOT_FOUND

    def __init__(self, executable: str) -> None:
        super().__init__(f"Executable not found in PATH: {executable}")
        self.executable = executable


class CommandFailedError(DevflowError):
    """External command finished with a nonzero exit code."""

    exit_code = ExitCode.COMMAND_FAILED

    def __init__(self, args: list[str], returncode: int, output: str) -> None:
        detail = output.strip().splitlines()[-1] if output.strip() else "no output"
        super().__init__(f"Command failed (exit {returncode}): {args[0]}: {detail}")
        self.args_list = args
        self.returncode = returncode
        self.output = output


class NothingToDoError(DevflowError):
    """Command found no input to work on."""

    exit_code = ExitCode.NOTHING_TO_DO


class ConfigurationError(DevflowError):
    """Required setting is missing or invalid."""

    exit_code = ExitCode.CONFIGURATION


class BuildStillFailingError(DevflowError):
    """Build did not pass within the allowed remediation iterations."""

    exit_code = ExitCode.BUILD_STILL_FAILING


class LlmRequestError(DevflowError):
    """Chat-completion endpoint request failed or returned an unusable body."""

    exit_code = ExitCode.LLM_REQUEST_FAILED
