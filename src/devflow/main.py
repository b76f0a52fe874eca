"""CLI entrypoint for devflow."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from devflow import __version__
from devflow.buildfix.controllers import BuildCliController, BuildFixCommand
from devflow.errors import DevflowError, ExitCode
from devflow.fanout.controllers import (
    FanOutCliController,
    FanOutRunCommand,
    progress_line,
    summary_lines,
)
from devflow.fanout.models import FanOutTask
from devflow.fanout.selection import parse_selection
from devflow.github.controllers import (
    GhIssueCommand,
    GhPrCommand,
    GhRunsCommand,
    GitHubCliController,
)
from devflow.gitops.controllers import GitCliController, GitStatusCommand, ReleaseTagCommand
from devflow.gitops.release import BumpKind
from devflow.llm.controllers import CommitMessageCommand, LlmCliController
from devflow.vault.controllers import SecretsCliController, SecretsImportCommand

click.rich_click.USE_MARKDOWN = True
FANOUT_CONTROLLER = FanOutCliController()
GIT_CONTROLLER = GitCliController()
GITHUB_CONTROLLER = GitHubCliController()
LLM_CONTROLLER = LlmCliController()
SECRETS_CONTROLLER = SecretsCliController()
BUILD_CONTROLLER = BuildCliController()

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class DevflowClickException(click.ClickException):
    """Click error that exits with a specific devflow exit code."""

    def __init__(self, message: str, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except DevflowError as error:
        raise DevflowClickException(str(error), int(error.exit_code)) from error


@click.group()
@click.version_option(version=__version__, prog_name="devflow")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
def devflow(verbose: bool) -> None:
    """Developer workflow automation."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
    )


@devflow.group()
def fanout() -> None:
    """Run the agent CLI once per matched file."""


@fanout.command("run")
@click.argument("pattern")
@click.option(
    "--prompt",
    "prompt_template",
    required=True,
    help="Prompt template. Every {file} is replaced with the matched file path.",
)
@click.option(
    "--root",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path(),
    show_default=True,
    help="Directory the pattern is matched against.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Max agent processes at once. Defaults to DEVFLOW_FANOUT_CONCURRENCY (5).",
)
@click.option(
    "--select/--no-select",
    default=False,
    show_default=True,
    help="Pick a subset of the matched files interactively.",
)
@click.option(
    "--retry/--no-retry",
    default=None,
    help="Retry failed files once without asking, or never retry. Asks when omitted.",
)
@click.option(
    "--agent-command",
    default=None,
    help="Agent command template with {prompt}. Defaults to DEVFLOW_AGENT_COMMAND_TEMPLATE.",
)
@click.option(
    "--timeout-seconds",
    type=click.IntRange(min=0),
    default=None,
    help="Per-file timeout; 0 disables it.",
)
def fanout_run(  # noqa: PLR0913
    pattern: str,
    prompt_template: str,
    root: Path,
    concurrency: int | None,
    select: bool,
    retry: bool | None,
    agent_command: str | None,
    timeout_seconds: int | None,
) -> None:
    """Run the agent for every file matching PATTERN and report per-file results."""

    command = FanOutRunCommand(
        root=root,
        pattern=pattern,
        prompt_template=prompt_template,
        concurrency=concurrency,
        agent_command=agent_command,
        timeout_seconds=timeout_seconds,
    )
    with _handle_errors():
        agent = FANOUT_CONTROLLER.agent_settings(command)
        files = FANOUT_CONTROLLER.discover(command)
        if select:
            files = _select_files(files)
        tasks = FANOUT_CONTROLLER.build_tasks(command, files, agent)
        runner = FANOUT_CONTROLLER.runner(agent)

    click.echo(f"Running {len(tasks)} file(s), concurrency {runner.concurrency}")
    summary = runner.run(tasks, on_complete=_echo_progress)
    _emit_lines(summary_lines(summary))

    auto_retry = retry
    while summary.failed and auto_retry is not False:
        if auto_retry is None and not click.confirm(
            f"Retry {summary.failed} failed file(s)?",
            default=False,
        ):
            break
        if auto_retry:
            auto_retry = False
        click.echo(f"Retrying {summary.failed} file(s)")
        summary = runner.retry_failed(summary, on_complete=_echo_progress)
        _emit_lines(summary_lines(summary))

    if summary.failed:
        raise DevflowClickException(f"{summary.failed} file(s) failed.", ExitCode.FAILURE)


@devflow.group()
def git() -> None:
    """Git working-copy commands."""


@git.command("status")
@click.argument("root", type=click.Path(path_type=Path, file_okay=False), required=False)
@click.option(
    "--depth",
    type=click.IntRange(min=0, max=10),
    default=None,
    help="How deep to look for repositories. Defaults to DEVFLOW_GIT_SCAN_DEPTH (2).",
)
@click.option(
    "--dirty-only/--all",
    default=False,
    show_default=True,
    help="Only list repositories with changes or unpushed/unpulled commits.",
)
@click.option(
    "--fetch/--no-fetch",
    default=None,
    help="Fetch remotes before reading status. Defaults to DEVFLOW_GIT_FETCH.",
)
def git_status(root: Path | None, depth: int | None, dirty_only: bool, fetch: bool | None) -> None:
    """Show a status dashboard for every git repository under ROOT."""

    with _handle_errors():
        _emit_lines(
            GIT_CONTROLLER.status(
                GitStatusCommand(root=root, depth=depth, dirty_only=dirty_only, fetch=fetch),
            ),
        )


@devflow.group()
def release() -> None:
    """Release commands."""


@release.command("tag")
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=Path(),
    help="Working copy to tag.",
)
@click.option(
    "--bump",
    type=click.Choice([kind.value for kind in BumpKind], case_sensitive=False),
    default=BumpKind.PATCH.value,
    show_default=True,
    help="Version component to increment.",
)
@click.option(
    "--gh-release/--no-gh-release",
    default=False,
    show_default=True,
    help="Also create a GitHub release with generated notes.",
)
@click.option(
    "--prefix",
    default=None,
    help="Tag prefix. Defaults to DEVFLOW_RELEASE_TAG_PREFIX (v).",
)
@click.option("--dry-run", is_flag=True, default=False, help="Only print the next tag.")
def release_tag(
    repo_path: Path,
    bump: str,
    gh_release: bool,
    prefix: str | None,
    dry_run: bool,
) -> None:
    """Tag HEAD with the next semantic version and push the tag."""

    with _handle_errors():
        _emit_lines(
            GIT_CONTROLLER.release(
                ReleaseTagCommand(
                    repo_path=repo_path,
                    bump=bump.lower(),
                    github_release=gh_release,
                    dry_run=dry_run,
                    prefix=prefix,
                ),
            ),
        )


@devflow.group()
def gh() -> None:
    """GitHub commands."""


@gh.command("issue")
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path(),
    help="Working copy to operate on.",
)
@click.option("--title", required=True, help="Issue title.")
@click.option("--body", default="", help="Issue body (markdown).")
@click.option("--label", "labels", multiple=True, help="Label to add. Can be repeated.")
@click.option(
    "--screenshot/--no-screenshot",
    default=False,
    show_default=True,
    help="Attach the clipboard image, hosted in a secret gist.",
)
def gh_issue(
    repo_path: Path,
    title: str,
    body: str,
    labels: tuple[str, ...],
    screenshot: bool,
) -> None:
    """Create a GitHub issue, optionally with a clipboard screenshot."""

    with _handle_errors():
        _emit_lines(
            GITHUB_CONTROLLER.create_issue(
                GhIssueCommand(
                    repo_path=repo_path,
                    title=title,
                    body=body,
                    labels=labels,
                    screenshot=screenshot,
                ),
            ),
        )


@gh.command("pr")
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path(),
    help="Working copy to operate on.",
)
@click.option("--title", default=None, help="PR title. Generated when omitted.")
@click.option("--body", default=None, help="PR body. Generated with the title when omitted.")
@click.option("--base", default=None, help="Base branch. Defaults to DEVFLOW_GIT_BASE_BRANCH.")
@click.option("--draft", is_flag=True, default=False, help="Open as draft.")
@click.option(
    "--generate",
    is_flag=True,
    default=False,
    help="Generate the body from commits and diff even if a title is given; the title is kept.",
)
def gh_pr(  # noqa: PLR0913
    repo_path: Path,
    title: str | None,
    body: str | None,
    base: str | None,
    draft: bool,
    generate: bool,
) -> None:
    """Create a pull request for the current branch."""

    with _handle_errors():
        _emit_lines(
            GITHUB_CONTROLLER.create_pr(
                GhPrCommand(
                    repo_path=repo_path,
                    title=title,
                    body=body,
                    base=base,
                    draft=draft,
                    generate=generate,
                ),
            ),
        )


@gh.command("runs")
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path(),
    help="Working copy to operate on.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=100),
    default=10,
    show_default=True,
    help="How many runs to list.",
)
@click.option("--branch", default=None, help="Only runs for this branch.")
def gh_runs(repo_path: Path, limit: int, branch: str | None) -> None:
    """List recent GitHub Actions workflow runs."""

    with _handle_errors():
        _emit_lines(
            GITHUB_CONTROLLER.list_runs(
                GhRunsCommand(repo_path=repo_path, limit=limit, branch=branch),
            ),
        )


@devflow.group()
def llm() -> None:
    """LLM-assisted git commands."""


@llm.command("commit-message")
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(path_type=Path, file_okay=False),
    default=Path(),
    help="Working copy to operate on.",
)
@click.option("--commit", is_flag=True, default=False, help="Commit with the generated message.")
def llm_commit_message(repo_path: Path, commit: bool) -> None:
    """Generate a commit message from the staged diff."""

    with _handle_errors():
        _emit_lines(
            LLM_CONTROLLER.commit_message(CommitMessageCommand(repo_path=repo_path, commit=commit)),
        )


@devflow.group()
def secrets() -> None:
    """Secret management commands."""


@secrets.command("import")
@click.option(
    "--vault",
    "vault_name",
    default=None,
    help="Key Vault name. Defaults to DEVFLOW_KEYVAULT_NAME.",
)
@click.option(
    "--project",
    type=click.Path(path_type=Path),
    default=None,
    help=".NET project with a UserSecretsId. Defaults to DEVFLOW_DOTNET_PROJECT.",
)
@click.option("--prefix", default=None, help="Only import secrets whose name starts with this.")
@click.option("--dry-run", is_flag=True, default=False, help="List what would be imported.")
def secrets_import(
    vault_name: str | None,
    project: Path | None,
    prefix: str | None,
    dry_run: bool,
) -> None:
    """Copy Key Vault secrets into .NET user secrets (`A--B` becomes `A:B`)."""

    with _handle_errors():
        result = SECRETS_CONTROLLER.import_secrets(
            SecretsImportCommand(
                vault_name=vault_name,
                project=project,
                prefix=prefix,
                dry_run=dry_run,
            ),
        )
    _emit_lines(result.lines)
    if not result.success:
        raise DevflowClickException("Some secrets failed to import.", ExitCode.COMMAND_FAILED)


@devflow.group()
def build() -> None:
    """Build commands."""


@build.command("fix")
@click.option(
    "--project",
    type=click.Path(path_type=Path),
    default=None,
    help="Project or solution to build. Defaults to DEVFLOW_BUILD_PROJECT.",
)
@click.option(
    "--max-iterations",
    type=click.IntRange(min=1, max=20),
    default=None,
    help="Agent runs before giving up. Defaults to DEVFLOW_BUILD_MAX_ITERATIONS (3).",
)
@click.option(
    "--agent-command",
    default=None,
    help="Agent command template with {prompt}. Defaults to DEVFLOW_AGENT_COMMAND_TEMPLATE.",
)
def build_fix(project: Path | None, max_iterations: int | None, agent_command: str | None) -> None:
    """Run `dotnet build` and let the agent fix errors until the build passes."""

    with _handle_errors():
        BUILD_CONTROLLER.fix(
            BuildFixCommand(
                project=project,
                max_iterations=max_iterations,
                agent_command=agent_command,
            ),
            on_progress=click.echo,
        )


def _select_files(files: list[Path]) -> list[Path]:
    for index, path in enumerate(files, start=1):
        click.echo(f"{index:>3}. {path}")
    while True:
        raw = click.prompt("Select files (e.g. 1,3-5 or all)", default="all")
        try:
            indexes = parse_selection(raw, len(files))
        except ValueError as error:
            click.echo(f"Invalid selection: {error}")
            continue
        return [files[index] for index in indexes]


def _echo_progress(task: FanOutTask) -> None:
    click.echo(progress_line(task))


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    devflow()
