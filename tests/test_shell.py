from __future__ import annotations

import logging
import shutil
import sys
from pathlib import Path

import allure
import pytest

from devflow.errors import CommandFailedError, ExitCode, ToolNotFoundError
from devflow.shell import TIMEOUT_EXIT_CODE, run_command

pytestmark = [
    allure.epic("Infrastructure"),
    allure.feature("External Commands"),
]


def test_run_command_captures_stdout_and_cwd(tmp_path: Path) -> None:
    result = run_command(
        [sys.executable, "-c", "import os; print(os.getcwd())"],
        cwd=tmp_path,
    )

    assert result.ok
    assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()


def test_run_command_passes_input_text() -> None:
    result = run_command(
        [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
        input_text="hello",
    )

    assert result.stdout.strip() == "HELLO"


def test_nonzero_exit_raises_with_last_output_line() -> None:
    with pytest.raises(CommandFailedError) as excinfo:
        run_command(
            [sys.executable, "-c", "import sys; print('first'); sys.exit('boom')"],
        )

    assert excinfo.value.returncode == 1
    assert excinfo.value.exit_code == ExitCode.COMMAND_FAILED
    assert str(excinfo.value).endswith(": boom")


def test_nonzero_exit_without_check_returns_result() -> None:
    result = run_command([sys.executable, "-c", "raise SystemExit(4)"], check=False)

    assert result.returncode == 4
    assert not result.ok


def test_missing_executable_is_tool_not_found() -> None:
    with pytest.raises(ToolNotFoundError) as excinfo:
        run_command(["definitely-not-a-real-tool-xyz", "--version"])

    assert excinfo.value.exit_code == ExitCode.TOOL_NOT_FOUND


def test_timeout_is_reported_as_failed_command() -> None:
    with pytest.raises(CommandFailedError) as excinfo:
        run_command([sys.executable, "-c", "import time; time.sleep(30)"], timeout_seconds=0.5)

    assert excinfo.value.returncode == TIMEOUT_EXIT_CODE
    assert "Timed out" in str(excinfo.value)


def test_command_head_is_resolved_through_path_lookup(monkeypatch) -> None:
    real_which = shutil.which
    monkeypatch.setattr(
        shutil,
        "which",
        lambda name: sys.executable if name == "az" else real_which(name),
    )

    result = run_command(["az", "-c", "print('shim ran')"])

    assert result.stdout.strip() == "shim ran"
    assert result.args[0] == "az"


def test_debug_log_omits_argument_values(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="devflow.shell"):
        run_command([sys.executable, "-c", "pass", "secret-value-xyz"])

    assert caplog.records
    assert all("secret-value-xyz" not in record.getMessage() for record in caplog.records)
