from __future__ import annotations

from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from devflow import main
from devflow.buildfix.controllers import BuildCliController
from devflow.buildfix.loop import BuildFixLoop, extract_build_errors, render_fix_prompt
from devflow.errors import BuildStillFailingError, ExitCode
from devflow.fanout.models import FanOutTask, TaskOutcome

pytestmark = [
    allure.epic("Build"),
    allure.feature("Agent Build Remediation"),
]

BUILD_LOG = """\
  Determining projects to restore...
/src/Api/Program.cs(12,5): error CS0103: The name 'foo' does not exist [/src/Api/Api.csproj]
/src/Api/Program.cs(12,5): error CS0103: The name 'foo' does not exist [/src/Api/Api.csproj]
/src/Api/Startup.cs(3,1): warning CS8618: Non-nullable property [/src/Api/Api.csproj]
/src/Api/Startup.cs(9,7): error CS1002: ; expected [/src/Api/Api.csproj]
Build FAILED.
"""


class ScriptedExecutor:
    """Records prompts and returns a fixed outcome."""

    def __init__(self, outcome: TaskOutcome | None = None) -> None:
        self.prompts: list[str] = []
        self.outcome = outcome or TaskOutcome(
            exit_code=0,
            output='{"type": "result", "subtype": "success", "result": "Fixed foo"}\n',
        )

    def execute(self, task: FanOutTask) -> TaskOutcome:
        self.prompts.append(task.prompt)
        return self.outcome


def test_extract_build_errors_deduplicates_and_strips_project() -> None:
    errors = extract_build_errors(BUILD_LOG, limit=10)

    assert errors == [
        "/src/Api/Program.cs(12,5): error CS0103: The name 'foo' does not exist",
        "/src/Api/Startup.cs(9,7): error CS1002: ; expected",
    ]


def test_extract_build_errors_caps_and_falls_back_to_tail() -> None:
    assert len(extract_build_errors(BUILD_LOG, limit=1)) == 1
    log = "restore failed\nMSB1009: Project file does not exist."
    assert extract_build_errors(log, limit=1) == ["MSB1009: Project file does not exist."]


def test_render_fix_prompt_lists_errors() -> None:
    prompt = render_fix_prompt(Path("Api.csproj"), ["e1", "e2"])

    assert "Api.csproj" in prompt
    assert "e1\ne2" in prompt


def test_loop_fixes_then_succeeds(fake_runner) -> None:
    fake_runner.add("dotnet", "build", stdout=BUILD_LOG, returncode=1)
    fake_runner.add("dotnet", "build", stdout="Build succeeded.\n")
    executor = ScriptedExecutor()
    messages: list[str] = []

    report = BuildFixLoop(
        project=Path("Api.csproj"),
        executor=executor,
        runner=fake_runner,
        max_iterations=3,
        on_progress=messages.append,
    ).run()

    assert report.succeeded
    assert report.agent_runs == 1
    assert len(fake_runner.called("dotnet", "build")) == 2
    assert fake_runner.calls[0] == ["dotnet", "build", "Api.csproj", "--nologo"]
    assert "error CS1002" in executor.prompts[0]
    assert messages[0] == "Build failed with 2 error line(s)."
    assert "Agent finished: Fixed foo" in messages
    assert messages[-1] == "Build succeeded after 1 agent run(s)."


def test_loop_passing_build_needs_no_agent(fake_runner) -> None:
    executor = ScriptedExecutor()

    report = BuildFixLoop(project=Path("Api.csproj"), executor=executor, runner=fake_runner).run()

    assert report.succeeded
    assert report.agent_runs == 0
    assert not executor.prompts


def test_loop_gives_up_after_max_iterations(fake_runner) -> None:
    fake_runner.add("dotnet", "build", stdout=BUILD_LOG, returncode=1)
    executor = ScriptedExecutor(TaskOutcome(exit_code=1, output="", error="exit code=1"))

    with pytest.raises(BuildStillFailingError, match="after 2 agent run") as excinfo:
        BuildFixLoop(
            project=Path("Api.csproj"),
            executor=executor,
            runner=fake_runner,
            max_iterations=2,
        ).run()

    assert excinfo.value.exit_code == ExitCode.BUILD_STILL_FAILING
    assert len(executor.prompts) == 2
    assert len(fake_runner.called("dotnet", "build")) == 3


def test_cli_build_fix_exit_code_when_still_failing(fake_runner, monkeypatch) -> None:
    fake_runner.add("dotnet", "build", stdout=BUILD_LOG, returncode=1)
    executor = ScriptedExecutor()
    monkeypatch.setattr(
        main,
        "BUILD_CONTROLLER",
        BuildCliController(runner=fake_runner, executor_factory=lambda agent: executor),
    )

    result = CliRunner().invoke(
        main.devflow,
        ["build", "fix", "--project", "Api.csproj", "--max-iterations", "1"],
    )

    assert result.exit_code == ExitCode.BUILD_STILL_FAILING
    assert "Agent run 1/1..." in result.output
    assert "Build still failing after 1 agent run(s)" in result.output


def test_cli_build_fix_uses_agent_command_override(fake_runner, monkeypatch) -> None:
    monkeypatch.setenv("DEVFLOW_BUILD_PROJECT", "Env.sln")
    fake_runner.add("dotnet", "build", stdout=BUILD_LOG, returncode=1)
    fake_runner.add("dotnet", "build", stdout="ok")
    seen_templates: list[str] = []

    def factory(agent):
        seen_templates.append(agent.command_template)
        return ScriptedExecutor()

    monkeypatch.setattr(
        main,
        "BUILD_CONTROLLER",
        BuildCliController(runner=fake_runner, executor_factory=factory),
    )

    result = CliRunner().invoke(
        main.devflow,
        ["build", "fix", "--agent-command", "my-agent --ask {prompt}"],
    )

    assert result.exit_code == 0, result.output
    assert seen_templates == ["my-agent --ask {prompt}"]
    assert fake_runner.calls[0][2] == "Env.sln"


def test_cli_build_fix_rejects_template_without_prompt(fake_runner, monkeypatch) -> None:
    monkeypatch.setattr(main, "BUILD_CONTROLLER", BuildCliController(runner=fake_runner))

    result = CliRunner().invoke(main.devflow, ["build", "fix", "--agent-command", "my-agent"])

    assert result.exit_code == ExitCode.CONFIGURATION
    assert not fake_runner.calls
