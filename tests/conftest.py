"""Shared test fixtures."""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path

import pytest

from devflow.errors import CommandFailedError
from devflow.shell import CommandResult

ECHO_AGENT_COMMAND_TEMPLATE = f"{sys.executable} -m devflow.fanout.echo_agent --prompt {{prompt}}"


class FakeRunner:
    """Scripted stand-in for ``run_command`` that records every call."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self._responses: dict[tuple[str, ...], list[tuple[int, str, str]]] = {}

    def add(self, *prefix: str, stdout: str = "", stderr: str = "", returncode: int = 0) -> None:
        """Queue a response for commands starting with ``prefix``; the last one repeats."""

        self._responses.setdefault(prefix, []).append((returncode, stdout, stderr))

    def __call__(  # noqa: PLR0913
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        input_text: str | None = None,
        timeout_seconds: float | None = None,
        check: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        self.calls.append(list(args))
        self.cwds.append(cwd)
        returncode, stdout, stderr = self._match(args)
        result = CommandResult(args=list(args), returncode=returncode, stdout=stdout, stderr=stderr)
        if check and returncode != 0:
            raise CommandFailedError(result.args, returncode, result.output)
        return result

    def called(self, *prefix: str) -> list[list[str]]:
        return [call for call in self.calls if tuple(call[: len(prefix)]) == prefix]

    def _match(self, args: list[str]) -> tuple[int, str, str]:
        candidates = [
            prefix for prefix in self._responses if tuple(args[: len(prefix)]) == prefix
        ]
        if not candidates:
            return 0, "", ""
        queued = self._responses[max(candidates, key=len)]
        return queued.pop(0) if len(queued) > 1 else queued[0]


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep host DEVFLOW_* settings out of tests."""
    for name in list(os.environ):
        if name.startswith("DEVFLOW_") or name == "OPENAI_API_KEY":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def echo_agent(monkeypatch) -> str:
    """Point the agent command template at the local echo agent."""
    monkeypatch.setenv("DEVFLOW_AGENT_COMMAND_TEMPLATE", ECHO_AGENT_COMMAND_TEMPLATE)
    return ECHO_AGENT_COMMAND_TEMPLATE
